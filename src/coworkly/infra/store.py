"""Storage port used by the scheduling core.

A Store hands out sessions. Every write made through a session commits
together when the session exits cleanly, and is discarded on exception.

Passing lock_space to session() serialises the whole session against other
sessions holding the same space, which is what makes check-then-insert safe.
"""

from __future__ import annotations

from datetime import datetime
from typing import ContextManager, Protocol

from coworkly.domain.models import (
    Payment,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    Space,
)


class StoreSession(Protocol):
    def get_space(self, space_id: str) -> Space | None: ...

    def find_active_reservations_for_space(self, space_id: str) -> list[Reservation]: ...

    def get_reservation(self, reservation_id: str, *, lock: bool = False) -> Reservation | None: ...

    def list_reservations(
        self,
        *,
        user_id: str | None = None,
        space_id: str | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]: ...

    def find_elapsed_confirmed(self, now: datetime) -> list[Reservation]: ...

    def insert_reservation(self, reservation: Reservation) -> None: ...

    def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus, *, updated_at: datetime
    ) -> None: ...

    def insert_payment(self, payment: Payment) -> None: ...

    def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        *,
        updated_at: datetime,
        transaction_id: str | None = None,
    ) -> None: ...

    def find_payment_by_reservation(self, reservation_id: str) -> Payment | None: ...

    def get_payment(self, payment_id: str) -> Payment | None: ...

    def list_payments(self, *, user_id: str | None = None) -> list[Payment]: ...


class Store(Protocol):
    def session(self, *, lock_space: str | None = None) -> ContextManager[StoreSession]: ...

    def close(self) -> None: ...
