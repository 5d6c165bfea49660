"""Additive merge of stored day records with incoming deltas.

Deltas are *additive*: the accumulator resets after every hand-off, so each
payload carries only the seconds since the previous one. Merging therefore
adds, and never overwrites. Sequential deltas combine safely; delivering the
same delta twice counts it twice.
"""

from typing import Optional

from .models import DayRecord, DeltaRecord

__all__ = ["merge_day_record", "combine_deltas", "add_languages", "format_duration"]


def add_languages(base: dict[str, int], extra: dict[str, int]) -> dict[str, int]:
    """Return a new mapping with ``extra`` seconds added onto ``base``."""
    languages = dict(base)
    for lang, seconds in extra.items():
        languages[lang] = languages.get(lang, 0) + seconds
    return languages


def merge_day_record(
    existing: Optional[DayRecord], incoming: DeltaRecord, user_id: str
) -> DayRecord:
    """Combine a stored record with a delta.

    Args:
        existing: The stored record, or None on the first sync of the day
        incoming: Seconds accumulated since the last sync
        user_id: Owner used when no record exists yet

    Returns:
        A new DayRecord; neither input is modified.
    """
    if existing is None:
        return incoming.as_day_record(user_id)

    return DayRecord(
        user_id=existing.user_id,
        date=existing.date,
        total_seconds=existing.total_seconds + incoming.total_seconds,
        languages=add_languages(existing.languages, incoming.languages),
    )


def combine_deltas(first: DeltaRecord, second: DeltaRecord) -> DeltaRecord:
    """Field-wise sum of two deltas for the same day."""
    if first.date != second.date:
        raise ValueError(f"Cannot combine deltas for {first.date} and {second.date}")
    return DeltaRecord(
        date=first.date,
        total_seconds=first.total_seconds + second.total_seconds,
        languages=add_languages(first.languages, second.languages),
    )


def format_duration(total_seconds: int) -> str:
    """Format seconds as e.g. ``"1h 5m"`` or ``"42s"``."""
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if seconds > 0 or not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)
