"""Spaces repository - read-only access to the space catalog.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from coworkly.domain.models import Space
from coworkly.infra.db import fetchone


def get_space(cur: PgCursor, space_id: str) -> Space | None:
    """Get a space by ID.

    Returns:
        Space with id, hourly price and active flag, or None if not found.
    """
    row = fetchone(
        cur,
        "SELECT id, price, is_active, name FROM spaces WHERE id = %s",
        (space_id,),
    )
    if row is None:
        return None
    return Space(id=str(row[0]), price=row[1], is_active=bool(row[2]), name=row[3])
