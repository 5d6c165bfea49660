"""Value types shared by the sync components."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

__all__ = [
    "DayRecord",
    "DeltaRecord",
    "QueuedUpdate",
    "SyncOutcome",
    "FailureKind",
    "InvalidDeltaError",
    "validate_delta",
]

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SyncOutcome(Enum):
    """What happened to a submitted delta."""

    SUCCESS = "success"
    QUEUED = "queued"
    FAILED = "failed"


class FailureKind(Enum):
    """Retry classification of a store failure."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class InvalidDeltaError(ValueError):
    """A delta failed ingress validation."""

    pass


@dataclass
class DayRecord:
    """Cumulative coding time for one user on one calendar day."""

    user_id: str
    date: str  # YYYY-MM-DD
    total_seconds: int = 0
    languages: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "date": self.date,
            "totalSeconds": self.total_seconds,
            "languages": dict(self.languages),
        }

    @classmethod
    def from_dict(cls, data: dict, user_id: Optional[str] = None) -> "DayRecord":
        """Create from a stored document.

        Documents keyed by path (e.g. Firestore) may omit ``userId``; the
        caller then supplies it.
        """
        return cls(
            user_id=data.get("userId") or user_id or "",
            date=data["date"],
            total_seconds=int(data.get("totalSeconds", 0)),
            languages={k: int(v) for k, v in (data.get("languages") or {}).items()},
        )


@dataclass
class DeltaRecord:
    """Seconds elapsed since the last successful sync. Additive, never absolute."""

    date: str
    total_seconds: int = 0
    languages: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "totalSeconds": self.total_seconds,
            "languages": dict(self.languages),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeltaRecord":
        return cls(
            date=data["date"],
            total_seconds=data.get("totalSeconds", 0),
            languages=dict(data.get("languages") or {}),
        )

    def as_day_record(self, user_id: str) -> DayRecord:
        """Reinterpret as the first stored record for the day."""
        return DayRecord(
            user_id=user_id,
            date=self.date,
            total_seconds=self.total_seconds,
            languages=dict(self.languages),
        )


@dataclass
class QueuedUpdate:
    """A delta waiting in the offline queue."""

    user_id: str
    delta: DeltaRecord
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = 0

    @property
    def date(self) -> str:
        return self.delta.date


def validate_delta(delta: DeltaRecord) -> None:
    """Check a delta at an ingress boundary.

    The sync core accepts deltas as-is; only outer surfaces call this.

    Raises:
        InvalidDeltaError: On a malformed date or negative seconds
    """
    if not isinstance(delta.date, str) or not DATE_PATTERN.match(delta.date):
        raise InvalidDeltaError("date must be in YYYY-MM-DD format")
    try:
        datetime.strptime(delta.date, "%Y-%m-%d")
    except ValueError as e:
        raise InvalidDeltaError(f"date is not a calendar day: {delta.date}") from e

    if not isinstance(delta.total_seconds, int) or delta.total_seconds < 0:
        raise InvalidDeltaError("totalSeconds must be a non-negative integer")

    for lang, seconds in delta.languages.items():
        if not isinstance(seconds, int) or seconds < 0:
            raise InvalidDeltaError(f"Invalid seconds value for language: {lang}")
