"""In-memory day record store, used for tests and offline dry runs."""

import copy
import logging
import threading
from typing import Optional

from .errors import StoreNotConnectedError
from .models import DayRecord

__all__ = ["InMemoryStore"]

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed store keyed by ``(user_id, date)``.

    ``fail_next_read`` / ``fail_next_write`` hold exceptions to raise on the
    next call, to simulate transport trouble.
    """

    def __init__(self, connect_error: Optional[Exception] = None):
        self.records: dict[tuple[str, str], DayRecord] = {}
        self.connect_error = connect_error
        self.fail_next_read: Optional[Exception] = None
        self.fail_next_write: Optional[Exception] = None
        self.reads = 0
        self.writes = 0
        self._connected = False
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = True

    def read(self, user_id: str, date: str) -> Optional[DayRecord]:
        self._check_connected()
        self.reads += 1
        if self.fail_next_read is not None:
            error, self.fail_next_read = self.fail_next_read, None
            raise error
        with self._lock:
            record = self.records.get((user_id, date))
            return copy.deepcopy(record)

    def write(self, user_id: str, date: str, record: DayRecord) -> None:
        self._check_connected()
        self.writes += 1
        if self.fail_next_write is not None:
            error, self.fail_next_write = self.fail_next_write, None
            raise error
        with self._lock:
            self.records[(user_id, date)] = copy.deepcopy(record)

    def get(self, user_id: str, date: str) -> Optional[DayRecord]:
        """Inspect a stored record without counting it as a read."""
        return self.records.get((user_id, date))

    def close(self) -> None:
        self._connected = False

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreNotConnectedError("In-memory store is not connected")
