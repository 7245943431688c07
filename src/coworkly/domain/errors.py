"""Typed failures raised by the scheduling core.

Domain errors derive from SchedulingError. StorageError is a separate root
so infrastructure failures are never mistaken for business outcomes.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from coworkly.domain.models import LifecycleEvent, Reservation, ReservationStatus


class SchedulingError(Exception):
    """Base class for domain errors."""

    kind = "scheduling_error"

    def to_dict(self) -> dict[str, Any]:
        """Structured detail for callers rendering a response."""
        return {"error": self.kind, "detail": str(self)}


class ValidationError(SchedulingError):
    """Malformed or illegal input."""

    kind = "validation_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.field is not None:
            payload["field"] = self.field
        return payload


class InvalidIntervalError(ValidationError):
    """Raised when an interval has zero or negative length."""

    kind = "invalid_interval"

    def __init__(self, start_date: datetime, end_date: datetime) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Interval {start_date.isoformat()} to {end_date.isoformat()} "
            "must have a positive duration",
            field="end_date",
        )


class NotFoundError(SchedulingError):
    kind = "not_found"

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(resource=self.resource, id=self.identifier)
        return payload


class ConflictError(SchedulingError):
    """Raised when a requested interval overlaps active reservations."""

    kind = "conflict"

    def __init__(
        self,
        space_id: str,
        start_date: datetime,
        end_date: datetime,
        conflicts: Sequence[Reservation] = (),
    ) -> None:
        self.space_id = space_id
        self.start_date = start_date
        self.end_date = end_date
        self.conflicts = tuple(conflicts)
        super().__init__(
            f"Space {space_id} is already booked between "
            f"{start_date.isoformat()} and {end_date.isoformat()}"
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            space_id=self.space_id,
            start_date=self.start_date.isoformat(),
            end_date=self.end_date.isoformat(),
            conflicts=[
                {
                    "id": r.id,
                    "start_date": r.start_date.isoformat(),
                    "end_date": r.end_date.isoformat(),
                    "status": r.status.value,
                }
                for r in self.conflicts
            ],
        )
        return payload


class DuplicatePaymentError(SchedulingError):
    kind = "duplicate_payment"

    def __init__(self, reservation_id: str, payment_id: str | None = None) -> None:
        self.reservation_id = reservation_id
        self.payment_id = payment_id
        super().__init__(f"Reservation {reservation_id} already has a payment")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(reservation_id=self.reservation_id, payment_id=self.payment_id)
        return payload


class InvalidStateError(SchedulingError):
    """Raised when an event is not allowed from the current status."""

    kind = "invalid_state"

    def __init__(
        self,
        reservation_id: str,
        status: ReservationStatus | str,
        event: LifecycleEvent | str,
        message: str | None = None,
    ) -> None:
        self.reservation_id = reservation_id
        self.status = getattr(status, "value", status)
        self.event = getattr(event, "value", event)
        super().__init__(
            message
            or f"Cannot {self.event} reservation {reservation_id} in status {self.status}"
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            reservation_id=self.reservation_id, status=self.status, event=self.event
        )
        return payload


class AlreadyCancelledError(InvalidStateError):
    kind = "already_cancelled"


class TerminalStateError(InvalidStateError):
    kind = "terminal_state"


class StorageError(Exception):
    """Raised when the storage backend fails (connectivity, unexpected constraint)."""

    kind = "storage_error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": "Storage unavailable"}
