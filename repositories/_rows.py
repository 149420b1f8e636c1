"""
Row conversion helpers shared by the repository modules.

Supabase returns timestamps as ISO-8601 strings (sometimes with a trailing
'Z'), numerics as strings or floats, and ids as strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from domain.time import require_utc_timestamp


def parse_utc_datetime(value: Any) -> datetime:
    """Parse a Supabase timestamp into a timezone-aware UTC datetime."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_utc_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_utc_datetime(value)


def parse_optional_uuid(value: Any) -> Optional[UUID]:
    if value is None or value == "":
        return None
    return UUID(str(value))


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def to_optional_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    if dt is None:
        return None
    return to_iso_utc(dt, name=name)


def raise_on_error(response: Any, action: str) -> None:
    """Raise RuntimeError if a Supabase response carries an error."""

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")


def response_rows(response: Any) -> list:
    return getattr(response, "data", None) or []
