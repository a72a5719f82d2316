"""Map booking errors to HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from travelmate.domain.errors import BookingError

_STATUS_BY_KIND = {
    "validation_error": 400,
    "payment_declined": 402,
    "payment_incomplete": 402,
    "not_found": 404,
    "conflict_error": 409,
    "invalid_transition": 409,
    "payment_mismatch": 409,
    "abandoned": 409,
    "gateway_error": 502,
    "store_unavailable": 503,
}


def status_for(error: BookingError) -> int:
    return _STATUS_BY_KIND.get(error.kind, 500)


def error_body(error: BookingError) -> dict[str, str]:
    return {"error": error.kind, "detail": str(error)}


def http_error(error: BookingError) -> HTTPException:
    """Build the HTTPException for a booking error (raise it from the route)."""
    return HTTPException(status_code=status_for(error), detail=error_body(error))
