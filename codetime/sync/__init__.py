"""Sync module - merges coding time deltas into a remote store."""

from .accumulator import DeltaAccumulator
from .coordinator import DrainStats, SyncCoordinator, SyncStats
from .errors import (
    PermanentStoreError,
    StoreAuthError,
    StoreError,
    TransientStoreError,
    classify_failure,
)
from .firestore_store import FirestoreStore
from .http_store import HttpStore
from .memory_store import InMemoryStore
from .merge import combine_deltas, format_duration, merge_day_record
from .models import (
    DayRecord,
    DeltaRecord,
    FailureKind,
    InvalidDeltaError,
    QueuedUpdate,
    SyncOutcome,
    validate_delta,
)
from .protocols import AtomicIncrementProtocol, OfflineQueueProtocol, RemoteStoreProtocol
from .queue import OfflineQueue
from .retry import RetryConfig, retry_with_backoff
from .sqlite_store import SqliteStore

__all__ = [
    "DeltaAccumulator",
    "DrainStats",
    "SyncCoordinator",
    "SyncStats",
    "PermanentStoreError",
    "StoreAuthError",
    "StoreError",
    "TransientStoreError",
    "classify_failure",
    "FirestoreStore",
    "HttpStore",
    "InMemoryStore",
    "SqliteStore",
    "combine_deltas",
    "format_duration",
    "merge_day_record",
    "DayRecord",
    "DeltaRecord",
    "FailureKind",
    "InvalidDeltaError",
    "QueuedUpdate",
    "SyncOutcome",
    "validate_delta",
    "AtomicIncrementProtocol",
    "OfflineQueueProtocol",
    "RemoteStoreProtocol",
    "OfflineQueue",
    "RetryConfig",
    "retry_with_backoff",
]
