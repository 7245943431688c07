"""In-process implementation of the storage port.

Used for local development and tests. Mirrors the Postgres guarantees:
- per-space mutex held for the whole session (advisory lock equivalent)
- writes staged in the session and applied atomically on clean exit
- commit-time checks standing in for the overlap exclusion constraint and
  the UNIQUE(payments.reservation_id) constraint
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator

from coworkly.domain.conflicts import find_conflicts
from coworkly.domain.errors import ConflictError, DuplicatePaymentError, StorageError
from coworkly.domain.models import (
    Payment,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    Space,
)


class MemorySession:
    """StoreSession over a MemoryStore with staged writes."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._reservations: dict[str, Reservation] = {}
        self._payments: dict[str, Payment] = {}
        self._new_reservation_ids: set[str] = set()
        self._new_payment_ids: set[str] = set()
        self._held: list[threading.RLock] = []

    # -- locking -----------------------------------------------------------

    def acquire_space(self, space_id: str, *, blocking: bool = True) -> bool:
        lock = self._store._space_lock(space_id)
        if not lock.acquire(blocking=blocking):
            return False
        self._held.append(lock)
        return True

    def release(self) -> None:
        while self._held:
            self._held.pop().release()

    # -- views -------------------------------------------------------------

    def _all_reservations(self) -> dict[str, Reservation]:
        with self._store._data_lock:
            merged = {rid: replace(r) for rid, r in self._store._reservations.items()}
        merged.update({rid: replace(r) for rid, r in self._reservations.items()})
        return merged

    def _all_payments(self) -> dict[str, Payment]:
        with self._store._data_lock:
            merged = {pid: replace(p) for pid, p in self._store._payments.items()}
        merged.update({pid: replace(p) for pid, p in self._payments.items()})
        return merged

    # -- reads -------------------------------------------------------------

    def get_space(self, space_id: str) -> Space | None:
        with self._store._data_lock:
            return self._store._spaces.get(space_id)

    def find_active_reservations_for_space(self, space_id: str) -> list[Reservation]:
        found = [
            r
            for r in self._all_reservations().values()
            if r.space_id == space_id and r.status.is_active
        ]
        return sorted(found, key=lambda r: (r.start_date, r.id))

    def get_reservation(self, reservation_id: str, *, lock: bool = False) -> Reservation | None:
        reservation = self._all_reservations().get(reservation_id)
        if reservation is None or not lock:
            return reservation
        self.acquire_space(reservation.space_id)
        # Re-read: another session may have committed while we waited.
        return self._all_reservations().get(reservation_id)

    def list_reservations(
        self,
        *,
        user_id: str | None = None,
        space_id: str | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]:
        found = [
            r
            for r in self._all_reservations().values()
            if (user_id is None or r.user_id == user_id)
            and (space_id is None or r.space_id == space_id)
            and (status is None or r.status == status)
        ]
        found.sort(key=lambda r: r.id)
        found.sort(key=lambda r: r.start_date, reverse=True)
        return found

    def find_elapsed_confirmed(self, now: datetime) -> list[Reservation]:
        candidates = sorted(
            (
                r
                for r in self._all_reservations().values()
                if r.status == ReservationStatus.CONFIRMED and r.end_date <= now
            ),
            key=lambda r: (r.end_date, r.id),
        )
        elapsed = []
        for candidate in candidates:
            # Skip spaces busy in another session, like FOR UPDATE SKIP LOCKED.
            if not self.acquire_space(candidate.space_id, blocking=False):
                continue
            current = self._all_reservations()[candidate.id]
            if current.status == ReservationStatus.CONFIRMED:
                elapsed.append(current)
        return elapsed

    def find_payment_by_reservation(self, reservation_id: str) -> Payment | None:
        for payment in self._all_payments().values():
            if payment.reservation_id == reservation_id:
                return payment
        return None

    def get_payment(self, payment_id: str) -> Payment | None:
        return self._all_payments().get(payment_id)

    def list_payments(self, *, user_id: str | None = None) -> list[Payment]:
        found = [
            p for p in self._all_payments().values() if user_id is None or p.user_id == user_id
        ]
        found.sort(key=lambda p: p.id)
        found.sort(key=lambda p: p.created_at, reverse=True)
        return found

    # -- writes ------------------------------------------------------------

    def insert_reservation(self, reservation: Reservation) -> None:
        self._reservations[reservation.id] = replace(reservation)
        self._new_reservation_ids.add(reservation.id)

    def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus, *, updated_at: datetime
    ) -> None:
        current = self._all_reservations().get(reservation_id)
        if current is None:
            return
        self._reservations[reservation_id] = replace(current, status=status, updated_at=updated_at)

    def insert_payment(self, payment: Payment) -> None:
        existing = self.find_payment_by_reservation(payment.reservation_id)
        if existing is not None:
            raise DuplicatePaymentError(payment.reservation_id, existing.id)
        self._payments[payment.id] = replace(payment)
        self._new_payment_ids.add(payment.id)

    def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        *,
        updated_at: datetime,
        transaction_id: str | None = None,
    ) -> None:
        current = self._all_payments().get(payment_id)
        if current is None:
            return
        self._payments[payment_id] = replace(
            current,
            status=status,
            transaction_id=transaction_id if transaction_id is not None else current.transaction_id,
            updated_at=updated_at,
        )


class MemoryStore:
    """Thread-safe in-memory Store."""

    def __init__(self) -> None:
        self._spaces: dict[str, Space] = {}
        self._reservations: dict[str, Reservation] = {}
        self._payments: dict[str, Payment] = {}
        self._data_lock = threading.Lock()
        self._registry_lock = threading.Lock()
        self._space_locks: dict[str, threading.RLock] = {}

    def add_space(self, space: Space) -> None:
        """Seed the catalog (the core itself never writes spaces)."""
        with self._data_lock:
            self._spaces[space.id] = space

    def _space_lock(self, space_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._space_locks.get(space_id)
            if lock is None:
                lock = self._space_locks[space_id] = threading.RLock()
            return lock

    @contextmanager
    def session(self, *, lock_space: str | None = None) -> Iterator[MemorySession]:
        session = MemorySession(self)
        try:
            if lock_space is not None:
                session.acquire_space(lock_space)
            yield session
            self._commit(session)
        finally:
            session.release()

    def _commit(self, session: MemorySession) -> None:
        with self._data_lock:
            committed = dict(self._reservations)
            committed.update(session._reservations)

            for rid in session._new_reservation_ids:
                if rid in self._reservations:
                    raise StorageError(f"Reservation {rid} already exists")

            for reservation in session._reservations.values():
                if not reservation.status.is_active:
                    continue
                others = [r for r in committed.values() if r.id != reservation.id]
                conflicts = find_conflicts(
                    reservation.space_id, reservation.start_date, reservation.end_date, others
                )
                if conflicts:
                    raise ConflictError(
                        reservation.space_id,
                        reservation.start_date,
                        reservation.end_date,
                        conflicts,
                    )

            for pid in session._new_payment_ids:
                payment = session._payments[pid]
                for existing in self._payments.values():
                    if existing.reservation_id == payment.reservation_id:
                        raise DuplicatePaymentError(payment.reservation_id, existing.id)

            self._reservations.update(session._reservations)
            self._payments.update(session._payments)

    def close(self) -> None:
        """Nothing to release; present for Store parity."""
