"""Tests for offline queue."""

import pytest

from codetime.sync.models import DeltaRecord, QueuedUpdate
from codetime.sync.queue import OfflineQueue


def make_item(seconds: int, date: str = "2024-01-01") -> QueuedUpdate:
    return QueuedUpdate(
        user_id="user-1",
        delta=DeltaRecord(date=date, total_seconds=seconds, languages={"go": seconds}),
    )


class TestOfflineQueue:
    """Tests for OfflineQueue."""

    def setup_method(self):
        """Set up test fixtures."""
        self.queue = OfflineQueue()

    def test_enqueue(self):
        """Enqueue appends an item."""
        self.queue.enqueue(make_item(10))

        assert self.queue.size() == 1
        assert self.queue.is_empty() is False

    def test_no_deduplication(self):
        """Equal items for the same day are kept separately."""
        self.queue.enqueue(make_item(10))
        self.queue.enqueue(make_item(10))

        assert self.queue.size() == 2

    def test_drain_delivers_in_fifo_order(self):
        """Items are delivered oldest first."""
        for seconds in (1, 2, 3):
            self.queue.enqueue(make_item(seconds))
        delivered = []

        count = self.queue.drain_all(lambda item: delivered.append(item.delta.total_seconds))

        assert count == 3
        assert delivered == [1, 2, 3]
        assert self.queue.is_empty()

    def test_drain_empty_queue(self):
        """Draining an empty queue never calls deliver."""
        calls = []

        count = self.queue.drain_all(calls.append)

        assert count == 0
        assert calls == []

    def test_requeued_items_land_in_fresh_queue(self):
        """An item re-enqueued during drain is not delivered twice in that pass."""
        a, b = make_item(1), make_item(2)
        self.queue.enqueue(a)
        self.queue.enqueue(b)
        delivered = []

        def deliver(item):
            delivered.append(item)
            if item is b:
                self.queue.enqueue(item)

        self.queue.drain_all(deliver)

        assert delivered == [a, b]
        assert self.queue.size() == 1
        remaining = []
        self.queue.drain_all(remaining.append)
        assert remaining == [b]

    def test_max_size_drops_oldest(self):
        """A bounded queue drops its oldest item when full."""
        queue = OfflineQueue(max_size=2)
        for seconds in (1, 2, 3):
            queue.enqueue(make_item(seconds))
        delivered = []

        queue.drain_all(lambda item: delivered.append(item.delta.total_seconds))

        assert delivered == [2, 3]

    def test_enqueue_returns_evicted_item(self):
        queue = OfflineQueue(max_size=1)
        first, second = make_item(1), make_item(2)

        assert queue.enqueue(first) is None
        assert queue.enqueue(second) is first

    def test_interrupted_drain_restores_undelivered_items(self):
        """Items not yet delivered go back to the front, in order."""
        a, b, c = make_item(1), make_item(2), make_item(3)
        for item in (a, b, c):
            self.queue.enqueue(item)
        delivered = []

        def deliver(item):
            if item is b:
                raise KeyboardInterrupt
            delivered.append(item)

        with pytest.raises(KeyboardInterrupt):
            self.queue.drain_all(deliver)
        self.queue.enqueue(make_item(4))

        remaining = []
        self.queue.drain_all(lambda item: remaining.append(item.delta.total_seconds))
        assert delivered == [a]
        assert remaining == [2, 3, 4]

    def test_clear(self):
        """Clear empties the queue."""
        self.queue.enqueue(make_item(1))

        assert self.queue.clear() == 1
        assert self.queue.is_empty()
