"""
Time and date utilities for day-window batch jobs.

Every aggregation run covers one half-open UTC day ``[start, end)``. Timestamps
are persisted as fixed-width ISO strings (``to_db_timestamp``) so SQLite can
range-filter them lexically.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

DB_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


@dataclass(frozen=True)
class DayWindow:
    """Half-open UTC interval covering one calendar day.

    Attributes:
        start: Midnight UTC of the target day (inclusive).
        end: Midnight UTC of the following day (exclusive).
    """

    start: datetime
    end: datetime

    @property
    def metric_date(self) -> date:
        return self.start.date()

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def day_window(target: date | datetime) -> DayWindow:
    """Build the ``[start, end)`` window for the UTC day containing ``target``.

    A ``datetime`` is first converted to UTC and truncated to midnight; a
    plain ``date`` is taken as a UTC calendar day.

    Args:
        target: Any moment (or calendar date) inside the desired day.

    Returns:
        ``DayWindow`` with ``end == start + 1 day``.
    """
    if isinstance(target, datetime):
        day = ensure_utc(target).date()
    else:
        day = target
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return DayWindow(start=start, end=start + timedelta(days=1))


def parse_target_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` (or full ISO timestamp) string into a UTC date.

    Returns ``None`` for ``None`` or blank input.

    Raises:
        ValueError: If the value is not a valid ISO date or timestamp.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return ensure_utc(datetime.fromisoformat(text)).date()
    except ValueError as exc:
        raise ValueError(f"Invalid target date '{value}': expected YYYY-MM-DD.") from exc


def to_db_timestamp(ts: datetime) -> str:
    """Serialize a datetime as a fixed-width UTC string for storage."""
    return ensure_utc(ts).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Inverse of ``to_db_timestamp``; also accepts any ISO-8601 string."""
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))
