"""Scheduling facade - entry point for request handlers.

create_reservation runs inside one storage session holding the space lock:
lock space -> load space -> load active reservations -> conflict check
-> price -> insert PENDING reservation.

Payment creation and confirmation are separate calls, delegated to
ReservationLifecycle, so a reservation without a settled payment is a
representable state.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from coworkly.domain.conflicts import find_conflicts
from coworkly.domain.errors import ConflictError, NotFoundError, ValidationError
from coworkly.domain.lifecycle import ReservationLifecycle
from coworkly.domain.models import (
    Payment,
    PaymentMethod,
    Reservation,
    ReservationStatus,
)
from coworkly.domain.pricing import compute_price
from coworkly.infra.store import Store
from coworkly.infra.time import to_utc, utc_now
from coworkly.observability.logging import get_logger

logger = get_logger(__name__)


def _normalise(value: datetime, field: str) -> datetime:
    try:
        return to_utc(value)
    except ValueError:
        raise ValidationError(f"{field} must include a timezone", field=field) from None


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


class SchedulingService:
    """Creates reservations and routes status changes to the lifecycle."""

    def __init__(
        self,
        store: Store,
        *,
        clock: Callable[[], datetime] = utc_now,
        payment_auto_capture: bool = True,
        lifecycle: ReservationLifecycle | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._payment_auto_capture = payment_auto_capture
        self.lifecycle = lifecycle or ReservationLifecycle(store, clock=clock)

    def _validate_interval(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        allow_past: bool = False,
    ) -> tuple[datetime, datetime]:
        start = _normalise(start_date, "start_date")
        end = _normalise(end_date, "end_date")
        if start >= end:
            raise ValidationError("end_date must be after start_date", field="end_date")
        if not allow_past and start < self._clock():
            raise ValidationError("start_date cannot be in the past", field="start_date")
        return start, end

    def create_reservation(
        self,
        space_id: str,
        user_id: str,
        start_date: datetime,
        end_date: datetime,
        notes: str | None = None,
    ) -> Reservation:
        """Book a space for [start_date, end_date).

        Args:
            space_id: Space to book.
            user_id: Booking user (already authenticated by the caller).
            start_date: Timezone-aware start, not in the past.
            end_date: Timezone-aware end, after start_date.
            notes: Optional free text.

        Returns:
            The persisted PENDING reservation.

        Raises:
            ValidationError: Naive, inverted, empty or past interval.
            NotFoundError: Space missing or inactive.
            ConflictError: Interval overlaps an active reservation.
            StorageError: Backend failure.
        """
        start, end = self._validate_interval(start_date, end_date)

        with self._store.session(lock_space=space_id) as session:
            space = session.get_space(space_id)
            if space is None or not space.is_active:
                raise NotFoundError("space", space_id)

            active = session.find_active_reservations_for_space(space_id)
            conflicts = find_conflicts(space_id, start, end, active)
            if conflicts:
                logger.warning(
                    "reservation_conflict",
                    extra={
                        "extra_fields": {
                            "space_id": space_id,
                            "requested_start": start.isoformat(),
                            "requested_end": end.isoformat(),
                            "conflicting_reservation_ids": [r.id for r in conflicts],
                        }
                    },
                )
                raise ConflictError(space_id, start, end, conflicts)

            now = self._clock()
            reservation = Reservation(
                id=str(uuid.uuid4()),
                space_id=space_id,
                user_id=user_id,
                start_date=start,
                end_date=end,
                total_price=compute_price(space.price, start, end),
                status=ReservationStatus.PENDING,
                notes=_clean_notes(notes),
                created_at=now,
                updated_at=now,
            )
            session.insert_reservation(reservation)

        logger.info(
            "reservation_created",
            extra={
                "extra_fields": {
                    "reservation_id": reservation.id,
                    "space_id": space_id,
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "total_price": str(reservation.total_price),
                }
            },
        )
        return reservation

    def check_availability(
        self,
        space_id: str,
        start_date: datetime,
        end_date: datetime,
    ) -> list[Reservation]:
        """Return the active reservations blocking the interval (empty if free).

        Read-only snapshot; a later create_reservation may still conflict.
        """
        start, end = self._validate_interval(start_date, end_date, allow_past=True)
        with self._store.session() as session:
            space = session.get_space(space_id)
            if space is None or not space.is_active:
                raise NotFoundError("space", space_id)
            active = session.find_active_reservations_for_space(space_id)
        return find_conflicts(space_id, start, end, active)

    def get_reservation(self, reservation_id: str) -> Reservation:
        with self._store.session() as session:
            reservation = session.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError("reservation", reservation_id)
        return reservation

    def get_payment(self, reservation_id: str) -> Payment | None:
        """Payment attached to a reservation, or None if not paid yet."""
        with self._store.session() as session:
            if session.get_reservation(reservation_id) is None:
                raise NotFoundError("reservation", reservation_id)
            return session.find_payment_by_reservation(reservation_id)

    def list_reservations(
        self,
        *,
        user_id: str | None = None,
        space_id: str | None = None,
        status: ReservationStatus | str | None = None,
    ) -> list[Reservation]:
        """List reservations, most recent start first."""
        if status is not None:
            try:
                status = ReservationStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown status {status!r}", field="status") from None
        with self._store.session() as session:
            return session.list_reservations(user_id=user_id, space_id=space_id, status=status)

    def get_payment_by_id(self, payment_id: str) -> Payment:
        with self._store.session() as session:
            payment = session.get_payment(payment_id)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        return payment

    def list_payments(self, *, user_id: str | None = None) -> list[Payment]:
        """List payments, newest first."""
        with self._store.session() as session:
            return session.list_payments(user_id=user_id)

    # -- lifecycle delegation ----------------------------------------------

    def confirm(self, reservation_id: str) -> Reservation:
        return self.lifecycle.confirm(reservation_id)

    def complete(self, reservation_id: str) -> Reservation:
        return self.lifecycle.complete(reservation_id)

    def complete_elapsed(self, now: datetime | None = None) -> list[str]:
        return self.lifecycle.complete_elapsed(now)

    def cancel(self, reservation_id: str, *, cancelled_by: str | None = None) -> Reservation:
        return self.lifecycle.cancel(reservation_id, cancelled_by=cancelled_by)

    def create_payment(
        self,
        reservation_id: str,
        *,
        user_id: str,
        method: PaymentMethod | str,
        transaction_id: str | None = None,
    ) -> Payment:
        return self.lifecycle.create_payment(
            reservation_id, user_id=user_id, method=method, transaction_id=transaction_id
        )

    def record_payment_success(
        self,
        reservation_id: str,
        *,
        transaction_id: str | None = None,
    ) -> Payment:
        return self.lifecycle.record_payment_success(reservation_id, transaction_id=transaction_id)

    def record_payment_failure(self, reservation_id: str) -> Payment:
        return self.lifecycle.record_payment_failure(reservation_id)

    def pay(
        self,
        reservation_id: str,
        *,
        user_id: str,
        method: PaymentMethod | str,
        transaction_id: str | None = None,
    ) -> Payment:
        """Create the payment and, with auto-capture on, settle it.

        Auto-capture stands in for a payment gateway: the payment is marked
        PAID immediately. The two steps are separate sessions; if the second
        fails the PENDING payment stays and record_payment_success can retry.
        """
        payment = self.create_payment(
            reservation_id, user_id=user_id, method=method, transaction_id=transaction_id
        )
        if not self._payment_auto_capture:
            return payment
        return self.record_payment_success(reservation_id, transaction_id=transaction_id)
