#!/usr/bin/env python3
"""Client for the Wormhole core contract on an EVM chain.

This module builds the unsigned publishMessage transaction and decodes
LogMessagePublished events from a transaction receipt into message ids.
"""

import logging
from typing import Any, Iterator

from web3 import Web3
from web3.contract import Contract
from web3.logs import DISCARD
from web3.types import TxReceipt

from .models import MessageId, UnsignedTransaction
from .signer import ChainSession
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


def to_universal_address(address: str) -> str:
    """Left-pad a 20-byte EVM address to Wormhole's 32-byte universal form."""
    if not Web3.is_address(address):
        raise ValueError(f"Invalid EVM address: {address}")
    return "0x" + address.removeprefix("0x").lower().rjust(64, "0")


class WormholeCore:
    """Wormhole core contract client bound to no particular session."""

    PUBLISH_EVENT: str = "LogMessagePublished"

    def __init__(self, abi: list[dict[str, Any]] | None = None) -> None:
        self.abi: list[dict[str, Any]] = abi or ContractUtility.get_contract_abi("WormholeCore")

    def _contract(self, session: ChainSession) -> Contract:
        return session.w3.eth.contract(address=session.chain.core_address, abi=self.abi)

    def message_fee(self, session: ChainSession) -> int:
        """Current fee in wei that must accompany publishMessage."""
        return self._contract(session).functions.messageFee().call()

    def publish_message(
        self,
        session: ChainSession,
        sender: str,
        payload: bytes,
        nonce: int,
        consistency_level: int,
    ) -> Iterator[UnsignedTransaction]:
        """
        Yield the transactions needed to publish a message, in order.

        On EVM chains this is a single publishMessage call carrying the
        message fee. Callers must not rely on the count.

        Args:
            session: Open session on the source chain
            sender: Checksummed address that will sign the transaction(s)
            payload: Message bytes
            nonce: Caller-chosen uint32 nonce
            consistency_level: uint8 finality requirement
        """
        contract = self._contract(session)
        fee = self.message_fee(session)
        logger.debug(f"Core message fee on {session.chain.name}: {fee} wei")

        calldata: str = contract.encode_abi(
            "publishMessage",
            args=[nonce, payload, consistency_level],
        )

        yield UnsignedTransaction(
            sender=sender,
            to=session.chain.core_address,
            data=calldata,
            value=fee,
            chain_id=session.evm_chain_id,
            description="Core.publishMessage",
        )

    def parse_transaction(self, session: ChainSession, txid: str) -> list[MessageId]:
        """
        Read the message ids published by a transaction.

        Raises:
            web3.exceptions.TransactionNotFound: If the receipt is not available yet
        """
        receipt: TxReceipt = session.w3.eth.get_transaction_receipt(txid)
        return self.parse_receipt(session, receipt)

    def parse_receipt(self, session: ChainSession, receipt: TxReceipt) -> list[MessageId]:
        contract = self._contract(session)
        events = getattr(contract.events, self.PUBLISH_EVENT)().process_receipt(
            receipt, errors=DISCARD
        )

        core_address = session.chain.core_address
        message_ids: list[MessageId] = []
        for event in events:
            # Only logs from the core contract itself count
            if Web3.to_checksum_address(event["address"]) != core_address:
                continue
            args = event["args"]
            message_ids.append(
                MessageId(
                    chain=session.chain.name,
                    emitter=to_universal_address(args["sender"]),
                    sequence=int(args["sequence"]),
                )
            )

        logger.debug(f"Found {len(message_ids)} {self.PUBLISH_EVENT} events in receipt")
        return message_ids
