"""Time utilities for consistent timestamp handling."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise an aware datetime to UTC.

    Raises:
        ValueError: If value is naive.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("datetime must be timezone-aware")
    return value.astimezone(timezone.utc)
