"""Reservation endpoints.

Authentication is handled upstream; callers pass the acting user_id.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from coworkly.api.deps import get_scheduling
from coworkly.domain.models import ReservationStatus
from coworkly.domain.scheduling import SchedulingService

router = APIRouter(prefix="/reservations", tags=["reservations"])


class CreateReservationRequest(BaseModel):
    space_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime
    notes: str | None = None


class CancelReservationRequest(BaseModel):
    """Request body for cancel action."""

    cancelled_by: str | None = None


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    reservation = service.create_reservation(
        body.space_id,
        body.user_id,
        body.start_date,
        body.end_date,
        body.notes,
    )
    return {"reservation": reservation.to_dict()}


@router.get("")
def list_reservations(
    user_id: str | None = Query(None),
    space_id: str | None = Query(None),
    status: ReservationStatus | None = Query(None),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    reservations = service.list_reservations(user_id=user_id, space_id=space_id, status=status)
    return {"reservations": [r.to_dict() for r in reservations]}


@router.get("/availability")
def check_availability(
    space_id: str = Query(..., min_length=1),
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    """Report whether a space is free over [start_date, end_date)."""
    conflicts = service.check_availability(space_id, start_date, end_date)
    return {
        "space_id": space_id,
        "available": not conflicts,
        "conflicts": [r.to_dict() for r in conflicts],
    }


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    reservation = service.get_reservation(reservation_id)
    payment = service.get_payment(reservation_id)
    payload = reservation.to_dict()
    payload["payment"] = payment.to_dict() if payment is not None else None
    return {"reservation": payload}


@router.post("/{reservation_id}/actions/confirm")
def confirm_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    return {"reservation": service.confirm(reservation_id).to_dict()}


@router.post("/{reservation_id}/actions/complete")
def complete_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    return {"reservation": service.complete(reservation_id).to_dict()}


@router.post("/{reservation_id}/actions/cancel")
def cancel_reservation(
    body: CancelReservationRequest | None = None,
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    cancelled_by = body.cancelled_by if body is not None else None
    reservation = service.cancel(reservation_id, cancelled_by=cancelled_by)
    return {"reservation": reservation.to_dict()}
