"""UTC-everywhere time handling."""

import math
from datetime import datetime, timedelta, timezone

_SECONDS_PER_DAY = 24 * 60 * 60


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)


def days_until(target: datetime, now: datetime | None = None) -> int:
    """
    Whole days from now until target, rounded up.

    A target 1 second in the past gives 0, a full day in the past gives -1.
    """
    now = now or now_utc()
    delta = to_utc(target) - to_utc(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def add_days(dt: datetime, days: int) -> datetime:
    """Shift a datetime by a whole number of days."""
    return dt + timedelta(days=days)


def month_start(dt: datetime, months_back: int = 0) -> datetime:
    """First instant of the month containing dt, optionally N months earlier."""
    dt = to_utc(dt)
    year, month = dt.year, dt.month - months_back
    while month < 1:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def year_start(dt: datetime) -> datetime:
    """First instant of the calendar year containing dt."""
    return datetime(to_utc(dt).year, 1, 1, tzinfo=timezone.utc)
