"""Sync coordinator - read, merge and write day records, queueing on failure."""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .errors import classify_failure
from .merge import format_duration, merge_day_record
from .models import DeltaRecord, FailureKind, QueuedUpdate, SyncOutcome
from .protocols import AtomicIncrementProtocol, OfflineQueueProtocol, RemoteStoreProtocol
from .queue import OfflineQueue

__all__ = ["SyncCoordinator", "SyncStats", "DrainStats"]

logger = logging.getLogger(__name__)


@dataclass
class SyncStats:
    """Running counters since the coordinator was created."""

    submitted: int = 0
    succeeded: int = 0
    queued: int = 0
    failed: int = 0
    dropped: int = 0


@dataclass
class DrainStats:
    """Result of one pass over the offline queue."""

    drained: int = 0
    succeeded: int = 0
    requeued: int = 0
    failed: int = 0

    @property
    def success(self) -> bool:
        return self.requeued == 0 and self.failed == 0


class SyncCoordinator:
    """Delivers deltas to a remote store.

    Each submission reads the stored record for ``(user_id, date)``, merges
    the delta into it and writes the result back as a full replacement. When
    the store offers an atomic increment, that single call is used instead.

    Transient failures park the original delta in the offline queue; the
    queue is drained after every successful ``connect()`` and once more on
    ``shutdown()``. Permanent failures are reported as ``FAILED`` and the
    delta is dropped.

    The read-merge-write sequence is not atomic against the backend, so all
    submissions and drains from this instance are serialized by a lock.
    Other processes writing the same key are not coordinated.
    """

    def __init__(
        self,
        store: RemoteStoreProtocol,
        queue: Optional[OfflineQueueProtocol] = None,
        max_retries: Optional[int] = None,
        prefer_atomic: bool = True,
    ):
        """Initialize the coordinator.

        Args:
            store: Remote store adapter
            queue: Offline queue (a fresh in-memory queue by default)
            max_retries: Drop queued deltas after this many failed redeliveries
                (None retries for the whole process lifetime)
            prefer_atomic: Use the store's atomic increment when available
        """
        self.store = store
        self.queue = queue if queue is not None else OfflineQueue()
        self.max_retries = max_retries
        self.prefer_atomic = prefer_atomic
        self.stats = SyncStats()
        self._lock = threading.RLock()
        self._closed = False

    @property
    def is_ready(self) -> bool:
        """Whether the backend connection has been established."""
        return not self._closed and self.store.is_connected

    def connect(self) -> bool:
        """Connect to the backend and drain anything queued while offline.

        Returns:
            True if the store is connected
        """
        if self._closed:
            return False
        if not self.store.is_connected:
            try:
                self.store.connect()
            except Exception as e:
                logger.warning(f"Store connection failed: {e}")
                return False
            logger.info("Store connected")

        if not self.queue.is_empty():
            self.drain_queue()
        return True

    def submit(self, user_id: str, delta: DeltaRecord) -> SyncOutcome:
        """Deliver one delta.

        Returns:
            SUCCESS when merged into the store, QUEUED when parked for a later
            drain, FAILED when the store rejected it permanently.
        """
        with self._lock:
            self.stats.submitted += 1
            return self._deliver(user_id, delta)

    def drain_queue(self) -> DrainStats:
        """Resubmit every queued delta once, oldest first."""
        result = DrainStats()

        def redeliver(item: QueuedUpdate) -> None:
            outcome = self._deliver(item.user_id, item.delta, queued=item)
            if outcome is SyncOutcome.SUCCESS:
                result.succeeded += 1
            elif outcome is SyncOutcome.QUEUED:
                result.requeued += 1
            else:
                result.failed += 1

        with self._lock:
            result.drained = self.queue.drain_all(redeliver)
        return result

    def shutdown(self) -> None:
        """Final best-effort drain, then release the backend connection.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            if self.is_ready and not self.queue.is_empty():
                logger.info("Draining offline queue before shutdown...")
                self.drain_queue()

            pending = self.queue.size()
            if pending:
                logger.warning(f"Shutting down with {pending} undelivered delta(s)")

            self._closed = True
            try:
                self.store.close()
            except Exception as e:
                logger.warning(f"Error closing store: {e}")

    def get_status(self) -> dict:
        """Get current sync status."""
        return {
            "ready": self.is_ready,
            "queue_size": self.queue.size(),
            "submitted": self.stats.submitted,
            "succeeded": self.stats.succeeded,
            "queued": self.stats.queued,
            "failed": self.stats.failed,
            "dropped": self.stats.dropped,
        }

    # -- internal ---------------------------------------------------------

    def _deliver(
        self, user_id: str, delta: DeltaRecord, queued: Optional[QueuedUpdate] = None
    ) -> SyncOutcome:
        if not self.is_ready:
            logger.debug("Store not ready, queueing update")
            return self._park(user_id, delta, queued, attempted=False)

        try:
            self._write_through(user_id, delta)
        except Exception as e:
            if classify_failure(e) is FailureKind.TRANSIENT:
                logger.warning(f"Write for {delta.date} failed (network): {e}")
                return self._park(user_id, delta, queued, attempted=True)

            logger.error(
                f"Write for {delta.date} rejected, {delta.total_seconds}s lost: {e}"
            )
            self.stats.failed += 1
            return SyncOutcome.FAILED

        self.stats.succeeded += 1
        return SyncOutcome.SUCCESS

    def _write_through(self, user_id: str, delta: DeltaRecord) -> None:
        """Apply the delta to the stored record for its day."""
        if self.prefer_atomic and isinstance(self.store, AtomicIncrementProtocol):
            self.store.increment(user_id, delta)
            logger.info(f"Incremented {delta.date}: +{delta.total_seconds}s")
            return

        existing = self.store.read(user_id, delta.date)
        merged = merge_day_record(existing, delta, user_id)
        self.store.write(user_id, delta.date, merged)

        if existing is None:
            logger.info(f"Created {delta.date}: {delta.total_seconds}s")
        else:
            logger.info(
                f"Merged {delta.date}: +{delta.total_seconds}s "
                f"(total now {format_duration(merged.total_seconds)})"
            )

    def _park(
        self,
        user_id: str,
        delta: DeltaRecord,
        queued: Optional[QueuedUpdate],
        attempted: bool,
    ) -> SyncOutcome:
        """Put the original delta (never a merge result) back in the queue."""
        if queued is None:
            item = QueuedUpdate(user_id=user_id, delta=delta)
        else:
            item = QueuedUpdate(
                user_id=queued.user_id,
                delta=queued.delta,
                timestamp=queued.timestamp,
                retry_count=queued.retry_count + (1 if attempted else 0),
            )

        if self.max_retries is not None and item.retry_count > self.max_retries:
            logger.warning(
                f"Dropping delta for {item.date} ({item.delta.total_seconds}s) "
                f"after {item.retry_count} failed redeliveries"
            )
            self.stats.dropped += 1
            return SyncOutcome.FAILED

        evicted = self.queue.enqueue(item)
        if evicted is not None:
            self.stats.dropped += 1
        self.stats.queued += 1
        return SyncOutcome.QUEUED
