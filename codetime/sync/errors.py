"""Store error hierarchy and failure classification."""

from .models import FailureKind

__all__ = [
    "StoreError",
    "TransientStoreError",
    "PermanentStoreError",
    "StoreAuthError",
    "StoreNotConnectedError",
    "classify_failure",
    "looks_like_network_error",
]

# Lowercased fragments of transport error text that mean "try again later".
NETWORK_ERROR_MARKERS = (
    "network",
    "enotfound",
    "econnrefused",
    "econnreset",
    "etimedout",
    "timeout",
    "timed out",
    "socket hang up",
    "socket",
    "connection refused",
    "connection reset",
    "name resolution",
    "temporary failure in name resolution",
)


class StoreError(Exception):
    """Remote store error."""

    kind = FailureKind.PERMANENT


class TransientStoreError(StoreError):
    """Network-class failure; worth retrying."""

    kind = FailureKind.TRANSIENT


class PermanentStoreError(StoreError):
    """Validation, authorization or schema rejection; retrying is pointless."""

    kind = FailureKind.PERMANENT


class StoreAuthError(PermanentStoreError):
    """Authentication error."""

    pass


class StoreNotConnectedError(TransientStoreError):
    """The store was used before connect() succeeded."""

    pass


def looks_like_network_error(error: BaseException) -> bool:
    """Guess from the error text whether a failure is network-related."""
    message = str(error).lower()
    return any(marker in message for marker in NETWORK_ERROR_MARKERS)


def classify_failure(error: BaseException) -> FailureKind:
    """Decide whether a failed store call should be retried.

    Adapters raise StoreError subclasses carrying their own classification.
    Anything else falls back to sniffing the error text, which can misfire in
    both directions.
    """
    if isinstance(error, StoreError):
        return error.kind
    if isinstance(error, (ConnectionError, TimeoutError)):
        return FailureKind.TRANSIENT
    if looks_like_network_error(error):
        return FailureKind.TRANSIENT
    return FailureKind.PERMANENT
