#!/usr/bin/env python3
"""Data models for the Wormhole publisher.

This module provides immutable data classes for the values that flow
between the workflow stages: the payload and its publication parameters,
unsigned and submitted transactions, and the resolved message id.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_NONCE: int = 10**9


@dataclass(frozen=True, slots=True)
class Payload:
    """Message payload to publish.

    Attributes:
        data: Raw bytes handed to the core contract
        text: Source string, kept for logging only
    """

    data: bytes
    text: str

    def __str__(self) -> str:
        return f"Payload({len(self.data)} bytes, text={self.text!r})"


@dataclass(frozen=True, slots=True)
class PublicationParams:
    """Parameters for a single publishMessage call.

    Attributes:
        nonce: Caller-chosen integer in [0, 10**9), not a cryptographic nonce
        consistency_level: Finality the guardians wait for before observing
    """

    nonce: int
    consistency_level: int

    def __post_init__(self) -> None:
        if not 0 <= self.nonce < MAX_NONCE:
            raise ValueError(f"Nonce must be in [0, {MAX_NONCE}), got {self.nonce}")
        if not 0 <= self.consistency_level <= 255:
            raise ValueError(
                f"Consistency level must fit in a uint8, got {self.consistency_level}"
            )


@dataclass(frozen=True, slots=True)
class UnsignedTransaction:
    """A transaction produced by the core contract client, not yet signed.

    Attributes:
        sender: Checksummed address expected to sign the transaction
        to: Checksummed target contract address
        data: 0x-prefixed calldata
        value: Wei attached to the call
        chain_id: EVM chain id the transaction is bound to
        description: Short label used in logs (e.g. "Core.publishMessage")
    """

    sender: str
    to: str
    data: str
    value: int
    chain_id: int
    description: str

    def to_tx_params(self) -> dict[str, Any]:
        """Convert to a web3 transaction dict (without nonce, gas or fees)."""
        return {
            "from": self.sender,
            "to": self.to,
            "data": self.data,
            "value": self.value,
            "chainId": self.chain_id,
        }


@dataclass(frozen=True, slots=True)
class TransactionId:
    """Hash of a transaction accepted by the network."""

    chain: str
    txid: str

    def __str__(self) -> str:
        return self.txid


@dataclass(frozen=True, slots=True)
class MessageId:
    """Wormhole message identifier.

    Attributes:
        chain: Emitter chain name (e.g. "Sepolia")
        emitter: Emitter address in 32-byte universal form
        sequence: Per-emitter sequence assigned by the core contract
    """

    chain: str
    emitter: str
    sequence: int

    def __str__(self) -> str:
        return f"{self.chain}/{self.emitter}/{self.sequence}"


@dataclass(frozen=True, slots=True)
class PublicationResult:
    """Transaction ids of every publish step, in submission order."""

    transaction_ids: tuple[TransactionId, ...]

    @property
    def canonical(self) -> TransactionId:
        """The last transaction, which represents the publish itself."""
        return self.transaction_ids[-1]


class WorkflowState(Enum):
    START = "Start"
    SIGNER_READY = "SignerReady"
    PAYLOAD_READY = "PayloadReady"
    PUBLISHED = "Published"
    CONFIRMED = "Confirmed"
    IDENTIFIER_RESOLVED = "IdentifierResolved"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.IDENTIFIER_RESOLVED, WorkflowState.FAILED)


@dataclass(slots=True)
class WorkflowResult:
    """Outcome of one workflow run.

    Attributes:
        state: Terminal state reached
        message_id: Resolved identifier on success
        transaction_id: Canonical transaction id, if publication got that far
        error: The classified error on failure
        history: Every state visited, in order
        vaa: Base64 signed VAA, when it was requested and found
    """

    state: WorkflowState = WorkflowState.START
    message_id: MessageId | None = None
    transaction_id: TransactionId | None = None
    error: Exception | None = None
    history: list[WorkflowState] = field(default_factory=lambda: [WorkflowState.START])
    vaa: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is WorkflowState.IDENTIFIER_RESOLVED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
