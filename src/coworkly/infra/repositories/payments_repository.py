"""Payments repository - persistence for payment records.

Uses raw SQL with psycopg2 (no ORM). payments.reservation_id is UNIQUE,
which keeps payments one-to-one with reservations.
"""

from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from coworkly.domain.models import Payment, PaymentMethod, PaymentStatus
from coworkly.infra.db import fetchall, fetchone

_COLUMNS = """
    id, reservation_id, user_id, amount, method,
    status, transaction_id, created_at, updated_at
"""


def _row_to_payment(row: tuple[Any, ...]) -> Payment:
    return Payment(
        id=str(row[0]),
        reservation_id=str(row[1]),
        user_id=str(row[2]),
        amount=row[3],
        method=PaymentMethod(row[4]),
        status=PaymentStatus(row[5]),
        transaction_id=row[6],
        created_at=row[7],
        updated_at=row[8],
    )


def find_payment_by_reservation(cur: PgCursor, reservation_id: str) -> Payment | None:
    """Get the payment attached to a reservation, if any."""
    row = fetchone(
        cur,
        f"SELECT {_COLUMNS} FROM payments WHERE reservation_id = %s",
        (reservation_id,),
    )
    return _row_to_payment(row) if row is not None else None


def get_payment(cur: PgCursor, payment_id: str) -> Payment | None:
    row = fetchone(cur, f"SELECT {_COLUMNS} FROM payments WHERE id = %s", (payment_id,))
    return _row_to_payment(row) if row is not None else None


def list_payments(cur: PgCursor, *, user_id: str | None = None) -> list[Payment]:
    """List payments, newest first, optionally for one user."""
    query = f"SELECT {_COLUMNS} FROM payments"
    params: list[Any] = []
    if user_id is not None:
        query += " WHERE user_id = %s"
        params.append(user_id)
    query += " ORDER BY created_at DESC, id"
    return [_row_to_payment(row) for row in fetchall(cur, query, params)]


def insert_payment(cur: PgCursor, payment: Payment) -> None:
    """Insert a payment record.

    Raises:
        psycopg2.errors.UniqueViolation: If the reservation already has one.
    """
    cur.execute(
        """
        INSERT INTO payments (
            id, reservation_id, user_id, amount, method,
            status, transaction_id, created_at, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            payment.id,
            payment.reservation_id,
            payment.user_id,
            payment.amount,
            payment.method.value,
            payment.status.value,
            payment.transaction_id,
            payment.created_at,
            payment.updated_at,
        ),
    )


def update_payment_status(
    cur: PgCursor,
    *,
    payment_id: str,
    status: PaymentStatus,
    updated_at: datetime,
    transaction_id: str | None = None,
) -> None:
    """Update payment status.

    Args:
        cur: Database cursor.
        payment_id: Payment UUID.
        status: New status.
        updated_at: Caller-supplied change timestamp.
        transaction_id: Optional provider reference; kept when None.

    Raises:
        ValueError: If status is not a PaymentStatus value.
    """
    status = PaymentStatus(status)

    if transaction_id is not None:
        cur.execute(
            """
            UPDATE payments
            SET status = %s,
                transaction_id = %s,
                updated_at = %s
            WHERE id = %s
            """,
            (status.value, transaction_id, updated_at, payment_id),
        )
    else:
        cur.execute(
            """
            UPDATE payments
            SET status = %s, updated_at = %s
            WHERE id = %s
            """,
            (status.value, updated_at, payment_id),
        )
