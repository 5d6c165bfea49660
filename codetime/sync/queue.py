"""Offline queue for deltas that could not be delivered."""

import logging
import threading
from collections import deque
from typing import Callable, Optional

from .models import QueuedUpdate

__all__ = ["OfflineQueue"]

logger = logging.getLogger(__name__)


class OfflineQueue:
    """In-memory FIFO of undelivered deltas.

    Items are never deduplicated or merged with each other: two deltas for
    the same day each get their own read-merge-write when drained, which is
    safe because the merge is additive. Contents do not survive a restart.
    """

    def __init__(self, max_size: Optional[int] = None):
        """Initialize the offline queue.

        Args:
            max_size: Maximum number of queued deltas, or None for unbounded
        """
        self.max_size = max_size
        self._items: deque[QueuedUpdate] = deque()
        self._lock = threading.Lock()

    def enqueue(self, item: QueuedUpdate) -> Optional[QueuedUpdate]:
        """Append an item to the back of the queue.

        Returns:
            The oldest item if it was evicted to respect ``max_size``, else None
        """
        dropped = None
        with self._lock:
            if self.max_size is not None and len(self._items) >= self.max_size:
                dropped = self._items.popleft()
                logger.warning(
                    f"Queue full, dropped oldest delta for {dropped.date} "
                    f"({dropped.delta.total_seconds}s)"
                )
            self._items.append(item)
            size = len(self._items)
        logger.info(f"Offline queue size: {size}")
        return dropped

    def drain_all(self, deliver: Callable[[QueuedUpdate], object]) -> int:
        """Hand every queued item to ``deliver``, oldest first.

        The queue is snapshotted and cleared before delivery starts, so items
        that ``deliver`` re-enqueues (because they failed again) land in the
        fresh queue instead of the batch being iterated. If ``deliver`` raises,
        the item it was handling and everything after it go back to the front
        of the queue before the exception propagates.

        Args:
            deliver: Called once per item, sequentially

        Returns:
            Number of items handed to ``deliver``
        """
        with self._lock:
            batch = list(self._items)
            self._items.clear()

        if not batch:
            return 0

        logger.info(f"Draining {len(batch)} queued update(s)...")
        handed = 0
        try:
            for item in batch:
                deliver(item)
                handed += 1
        finally:
            undelivered = batch[handed:]
            if undelivered:
                with self._lock:
                    self._items.extendleft(reversed(undelivered))
                logger.warning(
                    f"Drain interrupted, restored {len(undelivered)} item(s) to the queue"
                )

        remaining = self.size()
        if remaining:
            logger.info(f"{remaining} item(s) still queued after drain")
        else:
            logger.info("Queue fully drained")
        return len(batch)

    def size(self) -> int:
        """Get the current queue size."""
        with self._lock:
            return len(self._items)

    def is_empty(self) -> bool:
        """Check if queue is empty."""
        return self.size() == 0

    def clear(self) -> int:
        """Remove all queued items."""
        with self._lock:
            count = len(self._items)
            self._items.clear()
            return count
