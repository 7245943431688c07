"""Payment endpoints.

POST /payments settles immediately when auto-capture is enabled; otherwise
the payment stays PENDING until /actions/succeed or /actions/fail.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from coworkly.api.deps import get_scheduling
from coworkly.domain.models import PaymentMethod
from coworkly.domain.scheduling import SchedulingService

router = APIRouter(prefix="/payments", tags=["payments"])


class CreatePaymentRequest(BaseModel):
    reservation_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    method: PaymentMethod
    transaction_id: str | None = None


class PaymentSucceededRequest(BaseModel):
    transaction_id: str | None = None


@router.get("")
def list_payments(
    user_id: str | None = Query(None),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    return {"payments": [p.to_dict() for p in service.list_payments(user_id=user_id)]}


@router.get("/{payment_id}")
def get_payment(
    payment_id: str = Path(..., description="Payment UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    """Fetch one payment together with its reservation."""
    payment = service.get_payment_by_id(payment_id)
    payload = payment.to_dict()
    payload["reservation"] = service.get_reservation(payment.reservation_id).to_dict()
    return {"payment": payload}


@router.post("", status_code=201)
def create_payment(
    body: CreatePaymentRequest,
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    payment = service.pay(
        body.reservation_id,
        user_id=body.user_id,
        method=body.method,
        transaction_id=body.transaction_id,
    )
    return {"payment": payment.to_dict()}


@router.post("/{reservation_id}/actions/succeed")
def payment_succeeded(
    body: PaymentSucceededRequest | None = None,
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    transaction_id = body.transaction_id if body is not None else None
    payment = service.record_payment_success(reservation_id, transaction_id=transaction_id)
    return {"payment": payment.to_dict()}


@router.post("/{reservation_id}/actions/fail")
def payment_failed(
    reservation_id: str = Path(..., description="Reservation UUID"),
    service: SchedulingService = Depends(get_scheduling),
) -> dict:
    return {"payment": service.record_payment_failure(reservation_id).to_dict()}
