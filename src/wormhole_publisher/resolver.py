#!/usr/bin/env python3
"""Message id resolution for the Wormhole publisher.

After a grace period for the transaction to propagate, the canonical
transaction is queried for LogMessagePublished events. Empty results and
missing receipts are retried with exponential backoff up to a fixed
number of attempts.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from web3.exceptions import TransactionNotFound

from .config import ResolverConfig
from .errors import IdentifierNotFound
from .models import MessageId, TransactionId

if TYPE_CHECKING:
    from .core_contract import WormholeCore
    from .signer import ChainSession

logger = logging.getLogger(__name__)


class IdentifierResolver:
    """Resolves the Wormhole message id of a published transaction."""

    def __init__(
        self,
        core: "WormholeCore",
        config: ResolverConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the IdentifierResolver.

        Args:
            core: Core contract client used to decode the transaction
            config: Grace period and retry policy
            sleep: Awaitable delay function (injected by tests)
        """
        self.core = core
        self.config = config
        self._sleep = sleep

    async def resolve(self, session: "ChainSession", tx_id: TransactionId) -> MessageId:
        """
        Return the first message id published by the transaction.

        Raises:
            IdentifierNotFound: If no id is found after all attempts, or the
                query fails for a reason other than a missing receipt
        """
        if self.config.grace_period > 0:
            logger.info(
                f"Waiting {self.config.grace_period}s for the transaction to propagate "
                "before parsing..."
            )
            await self._sleep(self.config.grace_period)

        max_attempts = self.config.max_attempts
        for attempt in range(1, max_attempts + 1):
            logger.info(
                f"Attempting to parse message ids from {tx_id.txid} "
                f"(attempt {attempt}/{max_attempts})..."
            )
            try:
                message_ids = self.core.parse_transaction(session, tx_id.txid)
            except TransactionNotFound:
                logger.warning(f"Receipt for {tx_id.txid} not available yet")
                message_ids = []
            except Exception as e:
                raise IdentifierNotFound(f"Query for {tx_id.txid} failed: {e}") from e

            if message_ids:
                if len(message_ids) > 1:
                    logger.info(f"Transaction published {len(message_ids)} messages, using the first")
                return message_ids[0]

            if attempt < max_attempts:
                delay = self.config.delay_for(attempt)
                logger.info(f"No message ids yet, retrying in {delay}s")
                await self._sleep(delay)

        raise IdentifierNotFound(
            f"Could not parse Wormhole message ids from transaction {tx_id.txid} "
            f"after {max_attempts} attempt(s)"
        )
