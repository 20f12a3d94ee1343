"""Error taxonomy for the publish workflow.

Each stage raises exactly one of these; the workflow catches them in one
place and records the run as failed.
"""


class PublisherError(Exception):
    """Base class for all workflow failures."""


class SignerUnavailable(PublisherError):
    """Key material or RPC connectivity could not be established."""


class PublicationFailed(PublisherError):
    """Signing, submission or the core contract call failed.

    Also raised when the core contract produced no transactions at all.
    Steps accepted before the failure are not rolled back.
    """


class IdentifierNotFound(PublisherError):
    """No Wormhole message id could be read for the canonical transaction."""


class UnexpectedError(PublisherError):
    """Wraps any exception that does not fall into the categories above."""
