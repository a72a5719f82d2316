"""Destination availability endpoints (calendar highlighting and range checks).

Only dates and reservation ids are returned; no user data leaves this route.
"""

from __future__ import annotations

import calendar
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from travelmate.api.deps import get_lifecycle
from travelmate.api.errors import http_error
from travelmate.domain.availability import find_conflict, reserved_days
from travelmate.domain.errors import BookingError
from travelmate.domain.lifecycle import ReservationLifecycle

router = APIRouter(prefix="/destinations", tags=["availability"])


def _parse_month(month: str) -> tuple[date, date]:
    """Parse YYYY-MM into the first and last day of that month.

    Raises:
        HTTPException: 400 if malformed.
    """
    try:
        year_str, month_str = month.split("-")
        year, month_num = int(year_str), int(month_str)
        first = date(year, month_num, 1)
    except ValueError:
        raise HTTPException(status_code=400, detail="month must be YYYY-MM")
    last = first.replace(day=calendar.monthrange(year, month_num)[1])
    return first, last


@router.get("/{destination_id}/availability")
def get_availability(
    destination_id: str = Path(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    """Report whether [start_date, end_date] is free for the destination."""
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    try:
        reservations = lifecycle.list_for_destination(destination_id)
    except BookingError as e:
        raise http_error(e)

    conflicting = find_conflict(reservations, start_date, end_date, lifecycle.policy)
    return {
        "destination_id": destination_id,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "available": conflicting is None,
        "conflicting_reservation_id": conflicting.id if conflicting else None,
    }


@router.get("/{destination_id}/reserved-days")
def get_reserved_days(
    destination_id: str = Path(...),
    month: str = Query(..., description="YYYY-MM"),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> dict:
    """List the blocked days of a month for the calendar view."""
    first, last = _parse_month(month)

    try:
        reservations = lifecycle.list_for_destination(destination_id)
    except BookingError as e:
        raise http_error(e)

    days = reserved_days(reservations, first, last, lifecycle.policy)
    return {
        "destination_id": destination_id,
        "month": month,
        "reserved_days": [d.isoformat() for d in days],
    }
