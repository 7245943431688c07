"""Shared test constants and builders."""

from datetime import datetime, timezone

NOW = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

SPACE_ID = "space-desk-1"
OTHER_SPACE_ID = "space-room-2"
INACTIVE_SPACE_ID = "space-closed"
USER_ID = "user-1"


def at(day: int, hour: int, minute: int = 0, month: int = 6) -> datetime:
    """UTC timestamp in 2024 (June by default)."""
    return datetime(2024, month, day, hour, minute, tzinfo=timezone.utc)
