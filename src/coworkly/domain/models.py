"""Domain records for the scheduling core.

Statuses are closed enums; persisted as their string values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from coworkly.infra.time import utc_now


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_active(self) -> bool:
        """Active reservations occupy the space's calendar."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED})


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"


class LifecycleEvent(str, Enum):
    CONFIRM = "confirm"
    PAYMENT_SUCCESS = "payment_success"
    CANCEL = "cancel"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Space:
    id: str
    price: Decimal
    is_active: bool = True
    name: str | None = None


@dataclass
class Reservation:
    id: str
    space_id: str
    user_id: str
    start_date: datetime
    end_date: datetime
    total_price: Decimal
    status: ReservationStatus = ReservationStatus.PENDING
    notes: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "space_id": self.space_id,
            "user_id": self.user_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_price": str(self.total_price),
            "status": self.status.value,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Payment:
    id: str
    reservation_id: str
    user_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reservation_id": self.reservation_id,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "method": self.method.value,
            "status": self.status.value,
            "transaction_id": self.transaction_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
