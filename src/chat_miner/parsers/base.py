"""Shared helpers for parsers: id generation and timestamps."""

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

__all__ = [
    "Clock",
    "IdFactory",
    "generate_id",
    "parse_timestamp",
    "to_iso",
    "utc_now",
]

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def generate_id() -> str:
    """Generate a short random identifier for records that carry none.

    Returns:
        Nine lowercase hex characters
    """
    return uuid.uuid4().hex[:9]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime | int | float) -> str:
    """Format a datetime or epoch milliseconds as ISO-8601.

    Output is UTC with millisecond precision and a trailing 'Z', e.g.
    ``1970-01-01T00:00:01.000Z`` for 1000 ms.

    Args:
        value: Aware/naive datetime (naive is taken as UTC) or epoch milliseconds

    Returns:
        ISO-8601 timestamp string
    """
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
    else:
        dt = _EPOCH + timedelta(milliseconds=value)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Returns:
        The parsed datetime, or None when the value is missing or unparseable
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
