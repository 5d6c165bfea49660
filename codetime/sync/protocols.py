"""Protocol types for SyncCoordinator dependencies.

Defines the interfaces that SyncCoordinator requires from its collaborators,
enabling easier testing and looser coupling.
"""

from typing import Callable, Optional, Protocol, runtime_checkable

from .models import DayRecord, DeltaRecord, QueuedUpdate


@runtime_checkable
class RemoteStoreProtocol(Protocol):
    """Interface for reading and writing day records by (user_id, date)."""

    @property
    def is_connected(self) -> bool: ...

    def connect(self) -> None: ...

    def read(self, user_id: str, date: str) -> Optional[DayRecord]: ...

    def write(self, user_id: str, date: str, record: DayRecord) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class AtomicIncrementProtocol(Protocol):
    """Optional store capability: add a delta in one atomic call."""

    def increment(self, user_id: str, delta: DeltaRecord) -> Optional[DayRecord]: ...


@runtime_checkable
class OfflineQueueProtocol(Protocol):
    """Interface for buffering undelivered deltas."""

    def enqueue(self, item: QueuedUpdate) -> Optional[QueuedUpdate]: ...

    def drain_all(self, deliver: Callable[[QueuedUpdate], object]) -> int: ...

    def size(self) -> int: ...

    def is_empty(self) -> bool: ...
