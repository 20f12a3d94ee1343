"""
Wormhole publisher package.

Publishes a message through the Wormhole core contract on an EVM testnet
and resolves the resulting message id.
"""

from .config import PublisherConfig
from .errors import IdentifierNotFound, PublicationFailed, SignerUnavailable, UnexpectedError
from .models import MessageId, TransactionId, WorkflowResult, WorkflowState
from .workflow import MessageWorkflow

__all__ = [
    "PublisherConfig",
    "MessageWorkflow",
    "MessageId",
    "TransactionId",
    "WorkflowResult",
    "WorkflowState",
    "SignerUnavailable",
    "PublicationFailed",
    "IdentifierNotFound",
    "UnexpectedError",
]
__version__ = "0.1.0"
