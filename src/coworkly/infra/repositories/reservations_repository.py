"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from coworkly.domain.models import ACTIVE_STATUSES, Reservation, ReservationStatus
from coworkly.infra.db import fetchall, fetchone, for_update

_COLUMNS = """
    id, space_id, user_id, start_date, end_date,
    total_price, status, notes, created_at, updated_at
"""

ACTIVE_STATUS_VALUES = sorted(s.value for s in ACTIVE_STATUSES)


def _row_to_reservation(row: tuple[Any, ...]) -> Reservation:
    return Reservation(
        id=str(row[0]),
        space_id=str(row[1]),
        user_id=str(row[2]),
        start_date=row[3],
        end_date=row[4],
        total_price=row[5],
        status=ReservationStatus(row[6]),
        notes=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


def find_active_reservations_for_space(cur: PgCursor, space_id: str) -> list[Reservation]:
    """Get PENDING/CONFIRMED reservations of a space, ordered by start_date."""
    rows = fetchall(
        cur,
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE space_id = %s
          AND status = ANY(%s)
        ORDER BY start_date, id
        """,
        (space_id, ACTIVE_STATUS_VALUES),
    )
    return [_row_to_reservation(row) for row in rows]


def get_reservation(
    cur: PgCursor,
    reservation_id: str,
    *,
    lock: bool = False,
) -> Reservation | None:
    """Get a reservation by ID.

    Args:
        cur: Database cursor (within transaction when lock=True).
        reservation_id: Reservation UUID.
        lock: If True, holds a row lock until the transaction ends.
    """
    query = f"SELECT {_COLUMNS} FROM reservations WHERE id = %s"
    if lock:
        row = for_update(cur, query, (reservation_id,))
    else:
        row = fetchone(cur, query, (reservation_id,))
    return _row_to_reservation(row) if row is not None else None


def list_reservations(
    cur: PgCursor,
    *,
    user_id: str | None = None,
    space_id: str | None = None,
    status: ReservationStatus | None = None,
) -> list[Reservation]:
    """List reservations with optional filters, most recent start first."""
    conditions: list[str] = []
    params: list[Any] = []

    if user_id:
        conditions.append("user_id = %s")
        params.append(user_id)

    if space_id:
        conditions.append("space_id = %s")
        params.append(space_id)

    if status:
        conditions.append("status = %s")
        params.append(status.value)

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    rows = fetchall(
        cur,
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        {where_clause}
        ORDER BY start_date DESC, id
        """,
        params,
    )
    return [_row_to_reservation(row) for row in rows]


def find_elapsed_confirmed(cur: PgCursor, now: datetime) -> list[Reservation]:
    """Get CONFIRMED reservations whose end_date is at or before now.

    Rows are locked; SKIP LOCKED lets concurrent sweeps share the work.
    """
    rows = fetchall(
        cur,
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE status = %s
          AND end_date <= %s
        ORDER BY end_date, id
        FOR UPDATE SKIP LOCKED
        """,
        (ReservationStatus.CONFIRMED.value, now),
    )
    return [_row_to_reservation(row) for row in rows]


def insert_reservation(cur: PgCursor, reservation: Reservation) -> None:
    """Insert a reservation.

    The reservations_no_overlap exclusion constraint rejects an active row
    overlapping another active row of the same space.
    """
    cur.execute(
        """
        INSERT INTO reservations (
            id, space_id, user_id, start_date, end_date,
            total_price, status, notes, created_at, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            reservation.id,
            reservation.space_id,
            reservation.user_id,
            reservation.start_date,
            reservation.end_date,
            reservation.total_price,
            reservation.status.value,
            reservation.notes,
            reservation.created_at,
            reservation.updated_at,
        ),
    )


def update_reservation_status(
    cur: PgCursor,
    *,
    reservation_id: str,
    status: ReservationStatus,
    updated_at: datetime,
) -> int:
    """Update reservation status.

    Returns:
        Number of rows updated (0 when the reservation does not exist).
    """
    cur.execute(
        """
        UPDATE reservations
        SET status = %s, updated_at = %s
        WHERE id = %s
        """,
        (status.value, updated_at, reservation_id),
    )
    return cur.rowcount
