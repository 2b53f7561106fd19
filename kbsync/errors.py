"""
Error taxonomy shared by the matching engine and the discovery loop.

Normal terminal states (provider exhausted, iteration limit reached) are
reported through DiscoveryResult.status and are not exceptions.
"""


class KBSyncError(Exception):
    """Base class for all KB Sync errors."""

    pass


class ContractViolationError(KBSyncError):
    """
    Raised when a caller breaks an operation's contract.
    Examples: no content items, no candidate units, mixed page/cursor pagination.
    Never retried.
    """

    pass


class RemoteUnavailableError(KBSyncError):
    """
    Raised when the semantic matching service fails or times out.
    Fatal for the semantic strategy, degraded to keyword results for hybrid.
    """

    pass


class MalformedScopeError(KBSyncError):
    """Raised when scope markup is present but a required field is missing."""

    pass


class ProviderError(KBSyncError):
    """Raised when an external content provider call fails."""

    pass


class OperationCancelledError(KBSyncError):
    """Raised when a matching call is cancelled before its remote call."""

    pass
