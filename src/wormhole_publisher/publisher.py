#!/usr/bin/env python3
"""Message publication for the Wormhole publisher.

This module asks the core contract client for the publish transaction(s),
then signs, submits and waits for each one strictly in order. Later steps
may depend on state changed by earlier ones, so nothing is sent in parallel.
"""

import functools
import logging
from typing import TYPE_CHECKING, Any, Callable

from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.types import HexBytes, TxReceipt

from .errors import PublicationFailed
from .models import Payload, PublicationParams, PublicationResult, TransactionId, UnsignedTransaction

if TYPE_CHECKING:
    from .core_contract import WormholeCore
    from .progress import PublicationLog
    from .signer import ChainSession, EvmSigner

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """Signs a single transaction, submits it and waits for its receipt."""

    GAS_HEADROOM: float = 1.2  # multiplier on the node's gas estimate

    def __init__(self, receipt_timeout: int = 120) -> None:
        self.receipt_timeout = receipt_timeout

    async def sign_and_submit(
        self,
        session: "ChainSession",
        tx: UnsignedTransaction,
        signer: "EvmSigner",
        on_sent: Callable[[str], None] | None = None,
    ) -> TransactionId:
        """
        Sign and send a transaction, blocking until it is accepted on chain.

        Args:
            session: Open session on the source chain
            tx: The transaction to sign
            signer: Signer whose address matches tx.sender
            on_sent: Called with the hash as soon as the transaction is broadcast

        Returns:
            Id of the accepted transaction

        Raises:
            PublicationFailed: On signing or submission errors, receipt
                timeout, or a reverted transaction
        """
        w3 = session.w3
        try:
            tx_params: dict[str, Any] = tx.to_tx_params()
            tx_params['nonce'] = w3.eth.get_transaction_count(signer.address(), 'pending')
            tx_params['gasPrice'] = w3.eth.gas_price
            tx_params['gas'] = int(w3.eth.estimate_gas(tx_params) * self.GAS_HEADROOM)

            logger.debug(
                f"Signing {tx.description} with nonce={tx_params['nonce']} "
                f"gas={tx_params['gas']} value={tx_params['value']}"
            )
            raw_tx: bytes = signer.sign_transaction(tx_params)

            tx_hash: HexBytes = w3.eth.send_raw_transaction(raw_tx)
            txid = Web3.to_hex(tx_hash)
            logger.info(f"✓ {tx.description} submitted: {txid}")
            if on_sent is not None:
                on_sent(txid)

            receipt: TxReceipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise PublicationFailed(f"{tx.description} failed: {e}") from e

        if (status := receipt.get('status', 0)) != 1:
            logger.error(f"✗ {tx.description} reverted with status={status}")
            raise PublicationFailed(f"{tx.description} reverted (tx {txid}, status={status})")

        logger.info(f"✓ {tx.description} confirmed in block {receipt['blockNumber']}")
        return TransactionId(chain=session.chain.name, txid=txid)

    async def confirm(self, session: "ChainSession", tx_id: TransactionId) -> None:
        """
        Check that a transaction is on chain and succeeded.

        Raises:
            PublicationFailed: If the receipt is missing or reports failure
        """
        try:
            receipt: TxReceipt = session.w3.eth.get_transaction_receipt(tx_id.txid)
        except Exception as e:
            raise PublicationFailed(f"No receipt for {tx_id.txid}: {e}") from e

        if (status := receipt.get('status', 0)) != 1:
            raise PublicationFailed(f"Transaction {tx_id.txid} failed with status={status}")

    async def recover(
        self,
        session: "ChainSession",
        txid: str,
        description: str,
    ) -> TransactionId | None:
        """
        Settle a transaction broadcast by an earlier run.

        Returns:
            Its id if it succeeded, or None if the node does not know it or
            it reverted, in which case the step must be sent again

        Raises:
            PublicationFailed: If it is still pending after the receipt timeout
        """
        w3 = session.w3
        try:
            w3.eth.get_transaction(txid)
        except TransactionNotFound:
            logger.warning(f"{description} {txid} is unknown to the node, sending it again")
            return None
        except Exception as e:
            raise PublicationFailed(f"Could not look up {description} {txid}: {e}") from e

        try:
            receipt: TxReceipt = w3.eth.wait_for_transaction_receipt(
                txid, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise PublicationFailed(f"{description} {txid} is still pending: {e}") from e

        if (status := receipt.get('status', 0)) != 1:
            logger.warning(f"✗ {description} {txid} reverted with status={status}, sending it again")
            return None

        logger.info(f"✓ {description} from the previous run confirmed: {txid}")
        return TransactionId(chain=session.chain.name, txid=txid)


class Publisher:
    """Publishes a payload through the core contract."""

    def __init__(self, core: "WormholeCore", submitter: TransactionSubmitter) -> None:
        self.core = core
        self.submitter = submitter

    async def publish(
        self,
        session: "ChainSession",
        signer: "EvmSigner",
        payload: Payload,
        params: PublicationParams,
        progress: "PublicationLog | None" = None,
    ) -> PublicationResult:
        """
        Publish the payload and return the id of every step.

        Steps already recorded in the progress log are skipped, and a step
        left pending by an earlier run is settled before it is sent again.
        Steps accepted before a failure are not rolled back.

        Raises:
            PublicationFailed: If no transactions are produced or any step fails
        """
        sender = Web3.to_checksum_address(signer.address())
        logger.info(f"Preparing to publish message from {sender} on {session.chain.name}...")

        done: list[str] = list(progress.steps) if progress else []
        tx_ids: list[TransactionId] = [
            TransactionId(chain=session.chain.name, txid=txid) for txid in done
        ]

        produced = 0
        try:
            unsigned_txs = self.core.publish_message(
                session,
                sender,
                payload.data,
                params.nonce,
                params.consistency_level,
            )
            for index, tx in enumerate(unsigned_txs):
                produced += 1
                if index < len(done):
                    logger.info(f"Step {index + 1} ({tx.description}) already done: {done[index]}")
                    continue

                if progress is not None and progress.pending:
                    recovered = await self.submitter.recover(
                        session, progress.pending, tx.description
                    )
                    if recovered is not None:
                        tx_ids.append(recovered)
                        progress.record_step(index, recovered.txid)
                        continue
                    progress.clear_pending()

                on_sent = (
                    functools.partial(progress.record_pending, index) if progress is not None else None
                )
                logger.info(f"Signing and sending step {index + 1}: {tx.description}")
                tx_id = await self.submitter.sign_and_submit(session, tx, signer, on_sent=on_sent)
                tx_ids.append(tx_id)
                if progress is not None:
                    progress.record_step(index, tx_id.txid)
        except PublicationFailed:
            if produced > 1:
                logger.error(
                    f"Publication stopped at step {produced}; earlier steps stay on chain"
                )
            raise
        except Exception as e:
            raise PublicationFailed(f"Core contract publish failed: {e}") from e

        if produced == 0:
            raise PublicationFailed("No transactions were produced for publishMessage")
        if produced < len(done):
            raise PublicationFailed(
                f"Progress log records {len(done)} steps but only {produced} were produced"
            )

        result = PublicationResult(transaction_ids=tuple(tx_ids))
        logger.info(f"Message publication sent in {len(tx_ids)} transaction(s)")
        return result

    async def confirm(self, session: "ChainSession", tx_id: TransactionId) -> None:
        await self.submitter.confirm(session, tx_id)
