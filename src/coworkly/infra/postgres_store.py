"""Postgres implementation of the storage port.

Each session is one transaction on a pooled connection. Driver errors are
translated here: overlap and duplicate-payment constraint violations become
domain errors, everything else becomes StorageError.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from coworkly.domain.conflicts import find_conflicts
from coworkly.domain.errors import ConflictError, DuplicatePaymentError, StorageError
from coworkly.domain.models import (
    Payment,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    Space,
)
from coworkly.infra.db import Database, advisory_xact_lock, txn
from coworkly.infra.repositories import (
    payments_repository,
    reservations_repository,
    spaces_repository,
)
from coworkly.observability.logging import get_logger

logger = get_logger(__name__)

OVERLAP_CONSTRAINT = "reservations_no_overlap"
PAYMENT_RESERVATION_CONSTRAINT = "payments_reservation_id_key"


def space_lock_key(space_id: str) -> str:
    return f"space:{space_id}"


class PostgresSession:
    """StoreSession bound to an open transaction cursor."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def get_space(self, space_id: str) -> Space | None:
        return spaces_repository.get_space(self._cur, space_id)

    def find_active_reservations_for_space(self, space_id: str) -> list[Reservation]:
        return reservations_repository.find_active_reservations_for_space(self._cur, space_id)

    def get_reservation(self, reservation_id: str, *, lock: bool = False) -> Reservation | None:
        return reservations_repository.get_reservation(self._cur, reservation_id, lock=lock)

    def list_reservations(
        self,
        *,
        user_id: str | None = None,
        space_id: str | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]:
        return reservations_repository.list_reservations(
            self._cur, user_id=user_id, space_id=space_id, status=status
        )

    def find_elapsed_confirmed(self, now: datetime) -> list[Reservation]:
        return reservations_repository.find_elapsed_confirmed(self._cur, now)

    def insert_reservation(self, reservation: Reservation) -> None:
        """Insert, turning an overlap constraint violation into ConflictError.

        The insert runs under a savepoint so the transaction stays usable
        after a violation and the clashing rows can be read back.
        """
        self._cur.execute("SAVEPOINT insert_reservation")
        try:
            reservations_repository.insert_reservation(self._cur, reservation)
        except pg_errors.ExclusionViolation as exc:
            self._cur.execute("ROLLBACK TO SAVEPOINT insert_reservation")
            if exc.diag.constraint_name != OVERLAP_CONSTRAINT:
                raise
            active = self.find_active_reservations_for_space(reservation.space_id)
            raise ConflictError(
                reservation.space_id,
                reservation.start_date,
                reservation.end_date,
                find_conflicts(
                    reservation.space_id, reservation.start_date, reservation.end_date, active
                ),
            ) from exc
        self._cur.execute("RELEASE SAVEPOINT insert_reservation")

    def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus, *, updated_at: datetime
    ) -> None:
        reservations_repository.update_reservation_status(
            self._cur, reservation_id=reservation_id, status=status, updated_at=updated_at
        )

    def insert_payment(self, payment: Payment) -> None:
        try:
            payments_repository.insert_payment(self._cur, payment)
        except pg_errors.UniqueViolation as exc:
            if exc.diag.constraint_name != PAYMENT_RESERVATION_CONSTRAINT:
                raise
            raise DuplicatePaymentError(payment.reservation_id) from exc

    def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        *,
        updated_at: datetime,
        transaction_id: str | None = None,
    ) -> None:
        payments_repository.update_payment_status(
            self._cur,
            payment_id=payment_id,
            status=status,
            updated_at=updated_at,
            transaction_id=transaction_id,
        )

    def find_payment_by_reservation(self, reservation_id: str) -> Payment | None:
        return payments_repository.find_payment_by_reservation(self._cur, reservation_id)

    def get_payment(self, payment_id: str) -> Payment | None:
        return payments_repository.get_payment(self._cur, payment_id)

    def list_payments(self, *, user_id: str | None = None) -> list[Payment]:
        return payments_repository.list_payments(self._cur, user_id=user_id)


class PostgresStore:
    """Store backed by a psycopg2 connection pool."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @contextmanager
    def session(self, *, lock_space: str | None = None) -> Iterator[PostgresSession]:
        """Open a transaction, optionally holding the space's advisory lock.

        Raises:
            StorageError: On any driver failure not mapped to a domain error.
        """
        try:
            with self._db.connection() as conn, txn(conn) as cur:
                if lock_space is not None:
                    advisory_xact_lock(cur, space_lock_key(lock_space))
                yield PostgresSession(cur)
        except psycopg2.Error as exc:
            logger.error(
                "storage_error",
                extra={
                    "extra_fields": {
                        "pgcode": exc.pgcode,
                        "error_type": type(exc).__name__,
                        "lock_space": lock_space,
                    }
                },
            )
            raise StorageError(f"Database operation failed: {type(exc).__name__}") from exc

    def close(self) -> None:
        self._db.close()
