"""Reservation endpoints for the booking app.

All actions run as the authenticated user; the user id is passed explicitly
to every lifecycle operation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from travelmate.api.auth import CurrentUser, get_current_user
from travelmate.api.deps import get_lifecycle
from travelmate.api.errors import error_body, http_error, status_for
from travelmate.domain.booking_flow import BookingFlow
from travelmate.domain.errors import BookingError
from travelmate.domain.lifecycle import ReservationLifecycle
from travelmate.observability.correlation import get_correlation_id
from travelmate.observability.logging import get_logger
from travelmate.observability.redaction import safe_log_context


class CreateReservationRequest(BaseModel):
    """Request body for creating a reservation."""

    destination_id: str
    start_date: date
    end_date: date
    number_of_people: int
    total_price: Decimal


class PayReservationRequest(BaseModel):
    """Request body for the pay action (card already tokenized client-side)."""

    client_secret: str
    payment_method_id: str


class ConfirmReservationRequest(BaseModel):
    payment_reference: str


router = APIRouter(prefix="/reservations", tags=["reservations"])

logger = get_logger(__name__)


@router.post("", status_code=201)
def create_reservation(
    req: CreateReservationRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
):
    """Create a pending reservation and its payment intent.

    Returns:
        201 with reservation_id, payment_reference and client_secret.
        502/503 with reservation_id when the reservation was stored but the
        payment step failed (the reservation exists, unpaid and pending).
    """
    correlation_id = get_correlation_id()
    flow = BookingFlow(
        lifecycle,
        lifecycle.gateway,
        user_id=user.id,
        correlation_id=correlation_id,
    )
    try:
        outcome = flow.start(
            destination_id=req.destination_id,
            start_date=req.start_date,
            end_date=req.end_date,
            number_of_people=req.number_of_people,
            total_price=req.total_price,
        )
    except BookingError as e:
        logger.info(
            "reservation request rejected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    destination_id=req.destination_id,
                    error=e.kind,
                )
            },
        )
        raise http_error(e)

    if not outcome.success:
        body = error_body(outcome.failure)
        body["reservation_id"] = outcome.reservation_id
        body["reservation_status"] = "pending"
        return JSONResponse(status_code=status_for(outcome.failure), content=body)

    return {
        "reservation_id": outcome.reservation_id,
        "payment_reference": outcome.payment_reference,
        "client_secret": outcome.client_secret,
        "status": "pending",
    }


@router.get("")
def list_reservations(
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> list[dict]:
    """List the user's reservations, newest first."""
    try:
        reservations = lifecycle.list(user.id)
    except BookingError as e:
        raise http_error(e)
    return [r.to_dict() for r in reservations]


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(...),
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    try:
        reservation = lifecycle.get(reservation_id, user.id)
    except BookingError as e:
        raise http_error(e)
    return reservation.to_dict()


@router.post("/{reservation_id}/actions/pay")
def pay_reservation(
    req: PayReservationRequest,
    reservation_id: str = Path(...),
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    """Confirm the payment intent, then the reservation when the payment succeeded."""
    flow = BookingFlow(
        lifecycle,
        lifecycle.gateway,
        user_id=user.id,
        correlation_id=get_correlation_id(),
    )
    try:
        result = flow.pay(reservation_id, req.client_secret, req.payment_method_id)
    except BookingError as e:
        raise http_error(e)

    return {
        "payment_intent_id": result.payment_intent_id,
        "payment_status": result.payment_status,
        "confirmed": result.confirmed,
        "reservation": result.reservation.to_dict() if result.reservation else None,
    }


@router.post("/{reservation_id}/actions/confirm")
def confirm_reservation(
    req: ConfirmReservationRequest,
    reservation_id: str = Path(...),
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    """Confirm after an externally completed payment (idempotent).

    The reference is checked with the gateway: 409 if it belongs to another
    reservation, 402 if the payment has not succeeded.
    """
    try:
        reservation = lifecycle.confirm_paid(
            reservation_id,
            req.payment_reference,
            user.id,
            correlation_id=get_correlation_id(),
        )
    except BookingError as e:
        raise http_error(e)
    return reservation.to_dict()


@router.post("/{reservation_id}/actions/cancel")
def cancel_reservation(
    reservation_id: str = Path(...),
    user: CurrentUser = Depends(get_current_user),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    """Cancel a pending reservation. Confirmed or completed ones are rejected (409)."""
    try:
        reservation = lifecycle.cancel(reservation_id, user.id)
    except BookingError as e:
        raise http_error(e)
    return reservation.to_dict()
