"""Apply Stripe payment_intent events to reservations.

payment_intent.succeeded confirms the reservation named in the intent
metadata. The confirm is idempotent, so redelivered events and the
client-side pay step can both land without double effects.
"""

from __future__ import annotations

import logging

from travelmate.stripe.webhook import StripeWebhookEvent

from .errors import InvalidTransitionError, PaymentMismatchError, ReservationNotFoundError
from .lifecycle import ReservationLifecycle

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


def handle_payment_event(lifecycle: ReservationLifecycle, event: StripeWebhookEvent) -> str:
    """Process one verified webhook event.

    Returns:
        "confirmed", "payment_failed" or "ignored".

    Raises:
        StoreUnavailableError: If the store fails (the webhook should be retried).
    """
    reservation_id = event.metadata.get("reservation_id")
    user_id = event.metadata.get("user_id")

    if event.event_type == PAYMENT_FAILED:
        logger.info(
            "payment failed for reservation",
            extra={"extra_fields": {"reservation_id": reservation_id, "event_id": event.event_id}},
        )
        return "payment_failed"

    if event.event_type != PAYMENT_SUCCEEDED:
        return "ignored"

    if not reservation_id or not user_id or not event.object_id:
        logger.warning(
            "payment event without reservation metadata",
            extra={"extra_fields": {"event_id": event.event_id}},
        )
        return "ignored"

    try:
        lifecycle.confirm(reservation_id, event.object_id, user_id)
    except (ReservationNotFoundError, InvalidTransitionError, PaymentMismatchError) as e:
        # Not retryable: the reservation is gone or already moved on
        logger.warning(
            "payment event could not confirm reservation",
            extra={
                "extra_fields": {
                    "reservation_id": reservation_id,
                    "event_id": event.event_id,
                    "error": e.kind,
                }
            },
        )
        return "ignored"

    return "confirmed"
