"""Booking error taxonomy.

Every failure the booking kernel reports carries a stable ``kind`` string so
the API layer (and any UI) can map it without inspecting messages.
"""

from __future__ import annotations

from datetime import date


class BookingError(Exception):
    """Base class for all booking failures."""

    kind = "booking_error"


class ValidationError(BookingError):
    """Invalid date range, party size or price."""

    kind = "validation_error"


class ConflictError(BookingError):
    """Requested range overlaps an existing reservation."""

    kind = "conflict_error"

    def __init__(
        self,
        destination_id: str,
        start: date,
        end: date,
        conflicting_reservation_id: str | None = None,
    ) -> None:
        self.destination_id = destination_id
        self.start = start
        self.end = end
        self.conflicting_reservation_id = conflicting_reservation_id
        super().__init__(
            f"Destination {destination_id} is already reserved "
            f"between {start.isoformat()} and {end.isoformat()}"
        )


class StoreUnavailableError(BookingError):
    """Remote store unreachable or returned malformed data."""

    kind = "store_unavailable"


class GatewayError(BookingError):
    """Payment intent creation or confirmation failed."""

    kind = "gateway_error"


class PaymentDeclinedError(BookingError):
    """The gateway explicitly rejected the payment method."""

    kind = "payment_declined"

    def __init__(self, reason: str, decline_code: str | None = None) -> None:
        self.reason = reason
        self.decline_code = decline_code
        super().__init__(reason)


class ReservationNotFoundError(BookingError):
    """Reservation does not exist or belongs to another user."""

    kind = "not_found"


class InvalidTransitionError(BookingError):
    """Requested status change is not allowed from the current status."""

    kind = "invalid_transition"

    def __init__(self, reservation_id: str, current: str, target: str) -> None:
        self.reservation_id = reservation_id
        self.current = current
        self.target = target
        super().__init__(
            f"Reservation {reservation_id} has status '{current}', "
            f"cannot move to '{target}'"
        )


class PaymentMismatchError(BookingError):
    """Payment reference does not belong to the reservation."""

    kind = "payment_mismatch"

    def __init__(self, reservation_id: str, payment_reference: str) -> None:
        self.reservation_id = reservation_id
        self.payment_reference = payment_reference
        super().__init__(
            f"Payment {payment_reference} does not belong to reservation {reservation_id}"
        )


class PaymentIncompleteError(BookingError):
    """The payment exists but has not succeeded."""

    kind = "payment_incomplete"

    def __init__(self, payment_reference: str, status: str) -> None:
        self.payment_reference = payment_reference
        self.status = status
        super().__init__(f"Payment {payment_reference} has status '{status}'")
