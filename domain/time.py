"""
Domain time utilities (pure).

Centralized timestamp validation and calendar helpers.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be datetimes.
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if not isinstance(value, datetime):
        raise ValueError(f"{name} must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_optional_utc_timestamp(name: str, value: Optional[datetime]) -> None:
    """Same as require_utc_timestamp, but None is accepted."""

    if value is not None:
        require_utc_timestamp(name, value)


def whole_days_between(start: datetime, end: datetime) -> int:
    """
    Number of whole 24-hour days from start to end.

    Partial days round up, so a vehicle that arrived yesterday afternoon has
    been in inventory for 1 day. Returns 0 when end precedes start.
    """

    require_utc_timestamp("start", start)
    require_utc_timestamp("end", end)

    if end <= start:
        return 0

    delta = end - start
    days = delta // timedelta(days=1)
    if delta % timedelta(days=1):
        days += 1
    return int(days)


def add_business_days(start: datetime, days: int) -> datetime:
    """
    Move forward `days` business days (Monday-Friday) from start.

    The start day itself is never counted.
    """

    if days < 0:
        raise ValueError("days must be >= 0")

    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() < 5:
            added += 1
    return result
