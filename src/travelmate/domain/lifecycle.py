"""Reservation lifecycle: create (pending) → confirm | cancel.

Transitions:
- create: inserts a pending row, opens a payment intent, attaches its id
- confirm: pending → confirmed (idempotent for the same payment reference);
  the reference must be the one attached at create
- confirm_paid: confirm after checking the payment with the gateway
- cancel: pending → cancelled (idempotent; confirmed/completed are rejected)
- expire_abandoned: pending rows never given a payment reference are
  cancelled once older than the configured TTL

Status updates are compare-and-set on the current status, so the remote
store serializes competing writers. The acting user is always an explicit
argument; there is no ambient session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Protocol

from travelmate.infra.repositories.reservations_repository import ReservationsRepository
from travelmate.infra.store import ExclusionViolationError
from travelmate.infra.time import utc_now

from .availability import DEFAULT_POLICY, AvailabilityPolicy, assert_available
from .errors import (
    ConflictError,
    GatewayError,
    InvalidTransitionError,
    PaymentIncompleteError,
    PaymentMismatchError,
    ReservationNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .reservations import Reservation, ReservationStatus, parse_price, to_minor_units

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Protocol for the external payment processor."""

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        ...

    def confirm_payment(
        self,
        client_secret: str,
        payment_method_id: str,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        ...

    def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        ...


@dataclass(frozen=True)
class CreateOutcome:
    """Result of ``ReservationLifecycle.create``.

    ``success`` is True only when the reservation exists and carries a payment
    reference. When the insert succeeded but the payment step did not,
    ``reservation_id`` is set, ``success`` is False and ``failure`` holds the
    structured error: the reservation exists but is unconfirmed.
    """

    success: bool
    reservation_id: str | None
    payment_reference: str | None = None
    client_secret: str | None = None
    failure: Exception | None = None

    @property
    def unconfirmed(self) -> bool:
        return self.reservation_id is not None and self.payment_reference is None


def _payment_idempotency_key(reservation_id: str) -> str:
    return f"reservation:{reservation_id}:payment_intent"


def validate_request(
    *,
    start_date: date,
    end_date: date,
    number_of_people: int,
    total_price: Decimal,
) -> None:
    """Raise ValidationError for an impossible booking request."""
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    if number_of_people < 1:
        raise ValidationError("number_of_people must be at least 1")
    # A payment intent needs a positive amount
    if total_price <= 0:
        raise ValidationError("total_price must be positive")


class ReservationLifecycle:
    """Creates, confirms, cancels and lists reservations.

    Usage:
        lifecycle = ReservationLifecycle(ReservationsRepository(store), StripeClient())
        outcome = lifecycle.create(
            user_id="u1",
            destination_id="d1",
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 5),
            number_of_people=2,
            total_price=Decimal("400.00"),
        )
    """

    def __init__(
        self,
        repo: ReservationsRepository,
        gateway: PaymentGateway,
        *,
        currency: str = "eur",
        policy: AvailabilityPolicy = DEFAULT_POLICY,
        pending_ttl: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repo = repo
        self.gateway = gateway
        self.currency = currency
        self.policy = policy
        self.pending_ttl = pending_ttl
        self._clock = clock

    def create(
        self,
        *,
        user_id: str,
        destination_id: str,
        start_date: date,
        end_date: date,
        number_of_people: int,
        total_price: Decimal | float | int | str,
        correlation_id: str | None = None,
    ) -> CreateOutcome:
        """Create a pending reservation and open its payment intent.

        Raises:
            ValidationError: If the request is invalid.
            ConflictError: If the range overlaps an existing reservation.
            StoreUnavailableError: If the store fails before the row exists.
        """
        try:
            price = parse_price(total_price)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        validate_request(
            start_date=start_date,
            end_date=end_date,
            number_of_people=number_of_people,
            total_price=price,
        )

        assert_available(
            self.repo.list_for_destination(destination_id),
            destination_id=destination_id,
            start=start_date,
            end=end_date,
            policy=self.policy,
        )

        try:
            reservation = self.repo.insert_pending(
                user_id=user_id,
                destination_id=destination_id,
                start_date=start_date,
                end_date=end_date,
                number_of_people=number_of_people,
                total_price=price,
            )
        except ExclusionViolationError as e:
            raise ConflictError(destination_id, start_date, end_date) from e

        logger.info(
            "reservation created",
            extra={
                "extra_fields": {
                    "reservation_id": reservation.id,
                    "destination_id": destination_id,
                    "correlation_id": correlation_id,
                }
            },
        )

        try:
            intent = self.gateway.create_payment_intent(
                amount_cents=to_minor_units(price),
                currency=self.currency,
                idempotency_key=_payment_idempotency_key(reservation.id),
                metadata={
                    "reservation_id": reservation.id,
                    "user_id": user_id,
                    "destination_id": destination_id,
                },
                correlation_id=correlation_id,
            )
        except GatewayError as e:
            logger.warning(
                "payment intent failed, reservation left pending",
                extra={"extra_fields": {"reservation_id": reservation.id, "error": str(e)}},
            )
            return CreateOutcome(success=False, reservation_id=reservation.id, failure=e)

        payment_reference = intent["payment_intent_id"]
        try:
            self.repo.update_status(
                reservation.id,
                status=ReservationStatus.PENDING,
                payment_reference=payment_reference,
                expected_status=ReservationStatus.PENDING,
            )
        except StoreUnavailableError as e:
            logger.warning(
                "payment reference not stored, reservation left pending",
                extra={"extra_fields": {"reservation_id": reservation.id}},
            )
            return CreateOutcome(success=False, reservation_id=reservation.id, failure=e)

        return CreateOutcome(
            success=True,
            reservation_id=reservation.id,
            payment_reference=payment_reference,
            client_secret=intent["client_secret"],
        )

    def get(self, reservation_id: str, user_id: str) -> Reservation:
        """Return the user's reservation.

        Raises:
            ReservationNotFoundError: If missing or owned by another user.
        """
        reservation = self.repo.get(reservation_id)
        if reservation is None or reservation.user_id != user_id:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    def confirm(self, reservation_id: str, payment_reference: str, user_id: str) -> Reservation:
        """Mark a pending reservation confirmed after a successful payment.

        Repeating the call with the same arguments returns the confirmed
        reservation without writing again.

        Callers must have seen the payment succeed (gateway answer or signed
        webhook); see ``confirm_paid`` for unverified references.

        Raises:
            ValidationError: If payment_reference is empty.
            ReservationNotFoundError: If missing or owned by another user.
            InvalidTransitionError: If the reservation cannot be confirmed.
            PaymentMismatchError: If the reservation carries another reference.
        """
        if not payment_reference:
            raise ValidationError("payment_reference is required")

        reservation = self.get(reservation_id, user_id)
        if self._already_confirmed(reservation, payment_reference):
            return reservation
        if reservation.status is not ReservationStatus.PENDING:
            raise InvalidTransitionError(reservation_id, reservation.status.value, "confirmed")
        if (
            reservation.payment_reference is not None
            and reservation.payment_reference != payment_reference
        ):
            raise PaymentMismatchError(reservation_id, payment_reference)

        updated = self.repo.update_status(
            reservation_id,
            status=ReservationStatus.CONFIRMED,
            payment_reference=payment_reference,
            expected_status=ReservationStatus.PENDING,
        )
        if updated is None:
            # Lost a race; accept only an identical confirmation
            current = self.get(reservation_id, user_id)
            if self._already_confirmed(current, payment_reference):
                return current
            raise InvalidTransitionError(reservation_id, current.status.value, "confirmed")

        logger.info(
            "reservation confirmed",
            extra={"extra_fields": {"reservation_id": reservation_id}},
        )
        return updated

    def confirm_paid(
        self,
        reservation_id: str,
        payment_reference: str,
        user_id: str,
        *,
        correlation_id: str | None = None,
    ) -> Reservation:
        """Confirm with a client-supplied reference, checked against the gateway.

        The payment must have succeeded and must have been opened for this
        reservation.

        Raises:
            PaymentMismatchError: If the payment belongs to another reservation.
            PaymentIncompleteError: If the payment has not succeeded.
            GatewayError: If the gateway lookup failed.
        """
        if not payment_reference:
            raise ValidationError("payment_reference is required")

        reservation = self.get(reservation_id, user_id)
        if self._already_confirmed(reservation, payment_reference):
            return reservation
        if reservation.payment_reference not in (None, payment_reference):
            raise PaymentMismatchError(reservation_id, payment_reference)

        intent = self.gateway.retrieve_payment_intent(
            payment_reference, correlation_id=correlation_id
        )
        metadata = intent.get("metadata") or {}
        if metadata.get("reservation_id") != reservation_id:
            raise PaymentMismatchError(reservation_id, payment_reference)
        if intent.get("status") != "succeeded":
            raise PaymentIncompleteError(payment_reference, intent.get("status") or "unknown")

        return self.confirm(reservation_id, payment_reference, user_id)

    @staticmethod
    def _already_confirmed(reservation: Reservation, payment_reference: str) -> bool:
        return (
            reservation.status is ReservationStatus.CONFIRMED
            and reservation.payment_reference == payment_reference
        )

    def cancel(self, reservation_id: str, user_id: str) -> Reservation:
        """Cancel a pending reservation and clear its payment reference.

        Raises:
            ReservationNotFoundError: If missing or owned by another user.
            InvalidTransitionError: If the reservation is confirmed or completed.
        """
        reservation = self.get(reservation_id, user_id)
        if reservation.status is ReservationStatus.CANCELLED:
            return reservation
        if reservation.status is not ReservationStatus.PENDING:
            raise InvalidTransitionError(reservation_id, reservation.status.value, "cancelled")

        updated = self.repo.update_status(
            reservation_id,
            status=ReservationStatus.CANCELLED,
            payment_reference=None,
            expected_status=ReservationStatus.PENDING,
        )
        if updated is None:
            current = self.get(reservation_id, user_id)
            if current.status is ReservationStatus.CANCELLED:
                return current
            raise InvalidTransitionError(reservation_id, current.status.value, "cancelled")

        logger.info(
            "reservation cancelled",
            extra={"extra_fields": {"reservation_id": reservation_id}},
        )
        return updated

    def expire_abandoned(self, now: datetime | None = None) -> list[Reservation]:
        """Cancel pending reservations that never got a payment reference.

        Only rows older than pending_ttl are touched. Returns the cancelled
        reservations.
        """
        cutoff = (now or self._clock()) - self.pending_ttl
        expired = []
        for reservation in self.repo.list_with_status(ReservationStatus.PENDING):
            if reservation.payment_reference is not None or reservation.created_at >= cutoff:
                continue
            updated = self.repo.update_status(
                reservation.id,
                status=ReservationStatus.CANCELLED,
                payment_reference=None,
                expected_status=ReservationStatus.PENDING,
            )
            if updated is not None:
                expired.append(updated)

        logger.info(
            "abandoned reservations expired",
            extra={"extra_fields": {"count": len(expired), "cutoff": cutoff.isoformat()}},
        )
        return expired

    def list_for_destination(self, destination_id: str) -> list[Reservation]:
        return self.repo.list_for_destination(destination_id)

    def list(self, user_id: str) -> list[Reservation]:
        """User's reservations, newest first."""
        return self.repo.list_for_user(user_id)
