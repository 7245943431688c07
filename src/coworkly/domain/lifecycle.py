"""Reservation lifecycle - status transitions and the dependent payment record.

Every operation runs in one storage session with the reservation row locked,
so a reservation and its payment always change together or not at all.

Transitions:
    PENDING   --confirm---------> CONFIRMED
    CONFIRMED --confirm---------> CONFIRMED   (no-op)
    PENDING   --payment_success-> CONFIRMED   (payment -> PAID)
    CONFIRMED --payment_success-> CONFIRMED   (payment -> PAID)
    PENDING   --cancel----------> CANCELLED   (payment -> REFUNDED)
    CONFIRMED --cancel----------> CANCELLED   (payment -> REFUNDED)
    CONFIRMED --complete--------> COMPLETED

CANCELLED and COMPLETED are terminal.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from coworkly.domain.errors import (
    AlreadyCancelledError,
    DuplicatePaymentError,
    InvalidStateError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from coworkly.domain.models import (
    LifecycleEvent,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from coworkly.infra.store import Store, StoreSession
from coworkly.infra.time import to_utc, utc_now
from coworkly.observability.logging import get_logger

logger = get_logger(__name__)

_S = ReservationStatus
_E = LifecycleEvent

TRANSITIONS: dict[tuple[ReservationStatus, LifecycleEvent], ReservationStatus] = {
    (_S.PENDING, _E.CONFIRM): _S.CONFIRMED,
    (_S.CONFIRMED, _E.CONFIRM): _S.CONFIRMED,
    (_S.PENDING, _E.PAYMENT_SUCCESS): _S.CONFIRMED,
    (_S.CONFIRMED, _E.PAYMENT_SUCCESS): _S.CONFIRMED,
    (_S.PENDING, _E.CANCEL): _S.CANCELLED,
    (_S.CONFIRMED, _E.CANCEL): _S.CANCELLED,
    (_S.CONFIRMED, _E.COMPLETE): _S.COMPLETED,
}


def next_status(
    reservation_id: str,
    current: ReservationStatus,
    event: LifecycleEvent,
) -> ReservationStatus:
    """Return the status reached by applying event to current.

    Raises:
        AlreadyCancelledError: cancel on a CANCELLED reservation.
        TerminalStateError: any other event on CANCELLED or COMPLETED.
        InvalidStateError: event not allowed from a non-terminal status.
    """
    target = TRANSITIONS.get((current, event))
    if target is not None:
        return target

    if current == _S.CANCELLED and event == _E.CANCEL:
        raise AlreadyCancelledError(
            reservation_id, current, event, f"Reservation {reservation_id} is already cancelled"
        )
    if current.is_terminal:
        raise TerminalStateError(
            reservation_id,
            current,
            event,
            f"Reservation {reservation_id} is {current.value} and cannot change",
        )
    raise InvalidStateError(reservation_id, current, event)


class ReservationLifecycle:
    """Applies lifecycle events against an injected store."""

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _load_locked(session: StoreSession, reservation_id: str) -> Reservation:
        reservation = session.get_reservation(reservation_id, lock=True)
        if reservation is None:
            raise NotFoundError("reservation", reservation_id)
        return reservation

    def _apply(
        self,
        session: StoreSession,
        reservation: Reservation,
        event: LifecycleEvent,
    ) -> Reservation:
        previous = reservation.status
        target = next_status(reservation.id, previous, event)
        if target != previous:
            now = self._clock()
            session.update_reservation_status(reservation.id, target, updated_at=now)
            reservation.status = target
            reservation.updated_at = now
            logger.info(
                "reservation_status_changed",
                extra={
                    "extra_fields": {
                        "reservation_id": reservation.id,
                        "space_id": reservation.space_id,
                        "event": event.value,
                        "from_status": previous.value,
                        "to_status": target.value,
                    }
                },
            )
        return reservation

    def _set_payment_status(
        self,
        session: StoreSession,
        payment: Payment,
        status: PaymentStatus,
        *,
        transaction_id: str | None = None,
    ) -> Payment:
        previous = payment.status
        now = self._clock()
        session.update_payment_status(
            payment.id, status, updated_at=now, transaction_id=transaction_id
        )
        payment.status = status
        if transaction_id is not None:
            payment.transaction_id = transaction_id
        payment.updated_at = now
        logger.info(
            "payment_status_changed",
            extra={
                "extra_fields": {
                    "payment_id": payment.id,
                    "reservation_id": payment.reservation_id,
                    "from_status": previous.value,
                    "to_status": status.value,
                }
            },
        )
        return payment

    # -- reservation events ------------------------------------------------

    def confirm(self, reservation_id: str) -> Reservation:
        """Admin confirmation: PENDING -> CONFIRMED."""
        with self._store.session() as session:
            reservation = self._load_locked(session, reservation_id)
            return self._apply(session, reservation, _E.CONFIRM)

    def complete(self, reservation_id: str) -> Reservation:
        """Admin completion: CONFIRMED -> COMPLETED."""
        with self._store.session() as session:
            reservation = self._load_locked(session, reservation_id)
            return self._apply(session, reservation, _E.COMPLETE)

    def complete_elapsed(self, now: datetime | None = None) -> list[str]:
        """Complete every CONFIRMED reservation whose end_date has passed.

        Returns:
            IDs of the reservations moved to COMPLETED.
        """
        cutoff = to_utc(now) if now is not None else self._clock()
        completed: list[str] = []
        with self._store.session() as session:
            for reservation in session.find_elapsed_confirmed(cutoff):
                self._apply(session, reservation, _E.COMPLETE)
                completed.append(reservation.id)

        if completed:
            logger.info(
                "reservations_completed",
                extra={"extra_fields": {"count": len(completed), "cutoff": cutoff.isoformat()}},
            )
        return completed

    def cancel(self, reservation_id: str, *, cancelled_by: str | None = None) -> Reservation:
        """Cancel a PENDING or CONFIRMED reservation.

        The attached payment, if any, is marked REFUNDED in the same session.

        Raises:
            NotFoundError: Reservation does not exist.
            AlreadyCancelledError: Reservation is already CANCELLED.
            TerminalStateError: Reservation is COMPLETED.
        """
        with self._store.session() as session:
            reservation = self._load_locked(session, reservation_id)
            self._apply(session, reservation, _E.CANCEL)

            payment = session.find_payment_by_reservation(reservation_id)
            if payment is not None and payment.status != PaymentStatus.REFUNDED:
                self._set_payment_status(session, payment, PaymentStatus.REFUNDED)

        logger.info(
            "reservation_cancelled",
            extra={
                "extra_fields": {
                    "reservation_id": reservation_id,
                    "cancelled_by": cancelled_by,
                    "refunded_payment_id": payment.id if payment is not None else None,
                }
            },
        )
        return reservation

    # -- payment events ----------------------------------------------------

    def create_payment(
        self,
        reservation_id: str,
        *,
        user_id: str,
        method: PaymentMethod | str,
        transaction_id: str | None = None,
    ) -> Payment:
        """Attach a PENDING payment for the reservation's total price.

        Raises:
            NotFoundError: Reservation does not exist.
            InvalidStateError: Reservation is CANCELLED.
            TerminalStateError: Reservation is COMPLETED.
            DuplicatePaymentError: Reservation already has a payment.
            ValidationError: Unknown payment method.
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method {method!r}", field="method") from None
        with self._store.session() as session:
            reservation = self._load_locked(session, reservation_id)

            if reservation.status == _S.CANCELLED:
                raise InvalidStateError(
                    reservation_id,
                    reservation.status,
                    "create_payment",
                    f"Cannot pay cancelled reservation {reservation_id}",
                )
            if reservation.status == _S.COMPLETED:
                raise TerminalStateError(reservation_id, reservation.status, "create_payment")

            existing = session.find_payment_by_reservation(reservation_id)
            if existing is not None:
                raise DuplicatePaymentError(reservation_id, existing.id)

            now = self._clock()
            payment = Payment(
                id=str(uuid.uuid4()),
                reservation_id=reservation_id,
                user_id=user_id,
                amount=reservation.total_price,
                method=method,
                status=PaymentStatus.PENDING,
                transaction_id=transaction_id,
                created_at=now,
                updated_at=now,
            )
            session.insert_payment(payment)

        logger.info(
            "payment_created",
            extra={
                "extra_fields": {
                    "payment_id": payment.id,
                    "reservation_id": reservation_id,
                    "amount": str(payment.amount),
                    "method": method.value,
                }
            },
        )
        return payment

    def record_payment_success(
        self,
        reservation_id: str,
        *,
        transaction_id: str | None = None,
    ) -> Payment:
        """Mark the payment PAID and confirm the reservation.

        Already-PAID payments are returned unchanged. FAILED payments may be
        retried.

        Raises:
            NotFoundError: Reservation or its payment does not exist.
            InvalidStateError: Payment was REFUNDED.
            TerminalStateError: Reservation is CANCELLED or COMPLETED.
        """
        with self._store.session() as session:
            reservation = self._load_locked(session, reservation_id)
            payment = session.find_payment_by_reservation(reservation_id)
            if payment is None:
                raise NotFoundError("payment", reservation_id)

            # Validate before writing anything.
            next_status(reservation_id, reservation.status, _E.PAYMENT_SUCCESS)
            if payment.status == PaymentStatus.REFUNDED:
                raise InvalidStateError(
                    reservation_id,
                    payment.status,
                    _E.PAYMENT_SUCCESS,
                    f"Payment {payment.id} was refunded",
                )

            self._apply(session, reservation, _E.PAYMENT_SUCCESS)
            if payment.status != PaymentStatus.PAID:
                self._set_payment_status(
                    session, payment, PaymentStatus.PAID, transaction_id=transaction_id
                )
        return payment

    def record_payment_failure(self, reservation_id: str) -> Payment:
        """Mark a PENDING payment FAILED; the reservation is left as is.

        Raises:
            NotFoundError: Reservation or its payment does not exist.
            InvalidStateError: Payment is PAID or REFUNDED.
        """
        with self._store.session() as session:
            self._load_locked(session, reservation_id)
            payment = session.find_payment_by_reservation(reservation_id)
            if payment is None:
                raise NotFoundError("payment", reservation_id)

            if payment.status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
                raise InvalidStateError(
                    reservation_id,
                    payment.status,
                    "payment_failure",
                    f"Payment {payment.id} is {payment.status.value} and cannot fail",
                )
            if payment.status != PaymentStatus.FAILED:
                self._set_payment_status(session, payment, PaymentStatus.FAILED)
        return payment
