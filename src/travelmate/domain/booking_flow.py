"""Booking flow: create → pay → confirm as one sequential chain.

One BookingFlow instance backs one user-initiated booking. When the caller
goes away (view teardown, closed request) it calls ``abandon()``; from then
on no step starts and no late gateway result mutates the reservation. A
payment that still succeeds after abandonment is confirmed server-side by
the Stripe webhook, which uses the same idempotent ``confirm``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from travelmate.stripe.client import payment_intent_id_from_client_secret

from .errors import BookingError, GatewayError, PaymentMismatchError, ValidationError
from .lifecycle import CreateOutcome, PaymentGateway, ReservationLifecycle
from .reservations import Reservation, ReservationStatus

logger = logging.getLogger(__name__)

_SUCCEEDED = "succeeded"


class FlowAbandonedError(BookingError):
    """The flow was abandoned before the step could run."""

    kind = "abandoned"


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of the pay step.

    ``reservation`` is the confirmed reservation when the payment succeeded,
    else the reservation as it stands (still pending, e.g. awaiting 3-D
    Secure). ``discarded`` is True when the gateway answered after the flow
    was abandoned and the answer was not applied.
    """

    payment_intent_id: str
    payment_status: str
    reservation: Reservation | None
    discarded: bool = False

    @property
    def confirmed(self) -> bool:
        return (
            self.reservation is not None
            and self.reservation.status is ReservationStatus.CONFIRMED
        )


class BookingFlow:
    """Sequential booking chain for one user with explicit abandonment.

    Usage:
        flow = BookingFlow(lifecycle, gateway, user_id="u1")
        outcome = flow.start(destination_id="d1", start_date=..., end_date=...,
                             number_of_people=2, total_price=Decimal("400"))
        result = flow.pay(outcome.reservation_id, outcome.client_secret, "pm_card_visa")
    """

    def __init__(
        self,
        lifecycle: ReservationLifecycle,
        gateway: PaymentGateway,
        *,
        user_id: str,
        correlation_id: str | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.gateway = gateway
        self.user_id = user_id
        self.correlation_id = correlation_id
        self._abandoned = threading.Event()

    @property
    def abandoned(self) -> bool:
        return self._abandoned.is_set()

    def abandon(self) -> None:
        """Mark the flow torn down; pending steps will not mutate state."""
        if not self._abandoned.is_set():
            logger.info(
                "booking flow abandoned",
                extra={"extra_fields": {"correlation_id": self.correlation_id}},
            )
        self._abandoned.set()

    def _ensure_active(self, step: str) -> None:
        if self._abandoned.is_set():
            raise FlowAbandonedError(f"Booking flow abandoned before {step}")

    def start(
        self,
        *,
        destination_id: str,
        start_date: date,
        end_date: date,
        number_of_people: int,
        total_price: Decimal | float | int | str,
    ) -> CreateOutcome:
        """Create the pending reservation and its payment intent."""
        self._ensure_active("create")
        return self.lifecycle.create(
            user_id=self.user_id,
            destination_id=destination_id,
            start_date=start_date,
            end_date=end_date,
            number_of_people=number_of_people,
            total_price=total_price,
            correlation_id=self.correlation_id,
        )

    def pay(
        self,
        reservation_id: str,
        client_secret: str,
        payment_method_id: str,
    ) -> PaymentResult:
        """Confirm the payment with the gateway, then confirm the reservation.

        The client secret must belong to the payment intent opened for this
        reservation; it is checked before the gateway is called.

        Raises:
            FlowAbandonedError: If the flow was abandoned before paying.
            ReservationNotFoundError: If missing or owned by another user.
            PaymentMismatchError: If the secret belongs to another payment.
            PaymentDeclinedError: If the gateway rejected the payment method.
            GatewayError: If the gateway call failed.
        """
        self._ensure_active("payment")
        reservation = self.lifecycle.get(reservation_id, self.user_id)
        try:
            intent_ref = payment_intent_id_from_client_secret(client_secret)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if reservation.payment_reference != intent_ref:
            raise PaymentMismatchError(reservation_id, intent_ref)

        payment = self.gateway.confirm_payment(
            client_secret,
            payment_method_id,
            correlation_id=self.correlation_id,
        )
        intent_id = payment.get("payment_intent_id")
        status = payment.get("status")
        if not intent_id or not status:
            raise GatewayError("Payment confirmation response missing id or status")

        if self._abandoned.is_set():
            logger.info(
                "late payment result discarded",
                extra={
                    "extra_fields": {
                        "reservation_id": reservation_id,
                        "payment_intent_id": intent_id,
                        "status": status,
                    }
                },
            )
            return PaymentResult(intent_id, status, reservation=None, discarded=True)

        if status != _SUCCEEDED:
            reservation = self.lifecycle.get(reservation_id, self.user_id)
            return PaymentResult(intent_id, status, reservation=reservation)

        reservation = self.lifecycle.confirm(reservation_id, intent_id, self.user_id)
        return PaymentResult(intent_id, status, reservation=reservation)

    def cancel(self, reservation_id: str) -> Reservation:
        """Cancel the flow's pending reservation (explicit user action)."""
        return self.lifecycle.cancel(reservation_id, self.user_id)
