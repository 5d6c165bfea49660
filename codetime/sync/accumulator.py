"""Delta accumulator - coding time gathered between two syncs."""

import logging
import threading
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable, Optional

from .models import DeltaRecord, SyncOutcome

if TYPE_CHECKING:
    from .coordinator import SyncCoordinator

__all__ = ["DeltaAccumulator"]

logger = logging.getLogger(__name__)


class DeltaAccumulator:
    """Collects per-language seconds per local calendar day.

    Whatever is taken out by ``take_deltas()`` is gone from the accumulator,
    so each delta carries only the time since the previous hand-off. Time
    that crosses local midnight ends up in a separate delta per day.

    Usage:
        acc = DeltaAccumulator()
        acc.add("python", 30)
        acc.flush(coordinator, user_id)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """Initialize the accumulator.

        Args:
            clock: Returns the current local time (replaced in tests)
        """
        self._clock = clock or datetime.now
        self._days: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def _get_local_date(self) -> date:
        return self._clock().date()

    def add(self, language: str, seconds: int, day: Optional[date] = None) -> None:
        """Add coding time for a language.

        Args:
            language: Language identifier, e.g. "python"
            seconds: Whole seconds to add; non-positive values are ignored
            day: Day the time belongs to (defaults to today, local time)
        """
        if seconds <= 0:
            return

        key = (day or self._get_local_date()).isoformat()
        with self._lock:
            languages = self._days.setdefault(key, {})
            languages[language] = languages.get(language, 0) + int(seconds)

    def pending_seconds(self) -> int:
        """Seconds collected but not yet handed off."""
        with self._lock:
            return sum(sum(langs.values()) for langs in self._days.values())

    def is_empty(self) -> bool:
        return self.pending_seconds() == 0

    def take_deltas(self) -> list[DeltaRecord]:
        """Snapshot and reset: one delta per day, oldest day first."""
        with self._lock:
            days, self._days = self._days, {}

        return [
            DeltaRecord(
                date=day,
                total_seconds=sum(languages.values()),
                languages=languages,
            )
            for day, languages in sorted(days.items())
            if languages
        ]

    def flush(self, coordinator: "SyncCoordinator", user_id: str) -> list[SyncOutcome]:
        """Hand all pending time to the coordinator.

        Deltas are not put back on any outcome: queued ones now belong to the
        offline queue, and failed ones were rejected permanently.
        """
        outcomes = []
        for delta in self.take_deltas():
            outcome = coordinator.submit(user_id, delta)
            outcomes.append(outcome)
            if outcome is SyncOutcome.FAILED:
                logger.error(
                    f"Discarded {delta.total_seconds}s for {delta.date} after rejection"
                )
        return outcomes
