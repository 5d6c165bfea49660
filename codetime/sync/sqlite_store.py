"""SQLite-backed day record store for local-only tracking."""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .errors import PermanentStoreError, StoreNotConnectedError, TransientStoreError
from .merge import merge_day_record
from .models import DayRecord, DeltaRecord

__all__ = ["SqliteStore"]

logger = logging.getLogger(__name__)


class SqliteStore:
    """Stores one row per ``(user_id, date)`` in a local SQLite file.

    ``languages`` is kept as a JSON object in a text column. ``increment``
    runs the read-merge-write inside one write transaction, so it is atomic
    against other connections to the same file.
    """

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._local = threading.local()
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Create the schema if needed."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS day_records (
                        user_id TEXT NOT NULL,
                        date TEXT NOT NULL,
                        total_seconds INTEGER NOT NULL DEFAULT 0,
                        languages TEXT NOT NULL DEFAULT '{}',
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (user_id, date)
                    )
                    """
                )
        except OSError as e:
            raise PermanentStoreError(f"Cannot create store at {self.db_path}: {e}") from e
        self._connected = True
        logger.debug(f"SQLite store ready at {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "connection"):
            self._local.connection = sqlite3.connect(str(self.db_path), timeout=5.0)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Cursor in a transaction, with sqlite errors mapped to store errors."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            message = str(e).lower()
            if "locked" in message or "busy" in message:
                raise TransientStoreError(f"SQLite busy: {e}") from e
            raise PermanentStoreError(f"SQLite error: {e}") from e
        except sqlite3.DatabaseError as e:
            conn.rollback()
            raise PermanentStoreError(f"SQLite error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def read(self, user_id: str, date: str) -> Optional[DayRecord]:
        self._check_connected()
        with self._cursor() as cursor:
            return self._select(cursor, user_id, date)

    def write(self, user_id: str, date: str, record: DayRecord) -> None:
        self._check_connected()
        with self._cursor() as cursor:
            self._upsert(cursor, user_id, date, record)

    def increment(self, user_id: str, delta: DeltaRecord) -> DayRecord:
        """Add a delta to the stored record in a single write transaction."""
        self._check_connected()
        with self._cursor() as cursor:
            cursor.execute("BEGIN IMMEDIATE")
            existing = self._select(cursor, user_id, delta.date)
            merged = merge_day_record(existing, delta, user_id)
            self._upsert(cursor, user_id, delta.date, merged)
            return merged

    def list_days(self, user_id: str) -> list[DayRecord]:
        """All stored records for a user, newest first."""
        self._check_connected()
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT user_id, date, total_seconds, languages FROM day_records
                WHERE user_id = ?
                ORDER BY date DESC
                """,
                (user_id,),
            )
            return [self._from_row(row) for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        if hasattr(self._local, "connection"):
            self._local.connection.close()
            del self._local.connection
        self._connected = False

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreNotConnectedError("SQLite store is not connected")

    def _select(
        self, cursor: sqlite3.Cursor, user_id: str, date: str
    ) -> Optional[DayRecord]:
        cursor.execute(
            """
            SELECT user_id, date, total_seconds, languages FROM day_records
            WHERE user_id = ? AND date = ?
            """,
            (user_id, date),
        )
        row = cursor.fetchone()
        return self._from_row(row) if row else None

    @staticmethod
    def _upsert(
        cursor: sqlite3.Cursor, user_id: str, date: str, record: DayRecord
    ) -> None:
        now = datetime.now(timezone.utc).isoformat()
        cursor.execute(
            """
            INSERT INTO day_records (user_id, date, total_seconds, languages, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id, date) DO UPDATE SET
                total_seconds = excluded.total_seconds,
                languages = excluded.languages,
                updated_at = excluded.updated_at
            """,
            (user_id, date, record.total_seconds, json.dumps(record.languages), now),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> DayRecord:
        return DayRecord(
            user_id=row["user_id"],
            date=row["date"],
            total_seconds=int(row["total_seconds"]),
            languages={k: int(v) for k, v in json.loads(row["languages"]).items()},
        )
