"""Stripe webhook signature validation and payload parsing.

Purpose:
- Validate webhook signature using Stripe-Signature header.
- Extract minimal data needed to route payment_intent.* events.
- Never log payload or signature.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import stripe

logger = logging.getLogger(__name__)

# Metadata keys set on every payment intent at reservation creation
_METADATA_KEYS = ("reservation_id", "user_id", "destination_id")


class InvalidSignatureError(Exception):
    """Webhook signature validation failed."""


class InvalidPayloadError(Exception):
    """Payload structure is invalid or missing required fields."""


@dataclass
class StripeWebhookEvent:
    """Minimal extracted data from a Stripe webhook event."""

    event_id: str
    event_type: str
    object_id: str | None  # e.g., payment_intent.id
    metadata: dict[str, str] = field(default_factory=dict)


def verify_and_extract(
    payload_bytes: bytes,
    signature_header: str,
    webhook_secret: str,
) -> StripeWebhookEvent:
    """Validate Stripe webhook signature and extract minimal event data.

    Args:
        payload_bytes: Raw request body bytes.
        signature_header: Value of Stripe-Signature header.
        webhook_secret: Webhook endpoint secret from Stripe.

    Returns:
        StripeWebhookEvent with event_id, event_type, object_id and the
        reservation metadata of the object.

    Raises:
        InvalidSignatureError: If signature validation fails.
        InvalidPayloadError: If event structure is invalid.
    """
    try:
        event = stripe.Webhook.construct_event(
            payload_bytes,
            signature_header,
            webhook_secret,
        )
    except stripe.SignatureVerificationError as e:
        # Do NOT log signature or payload
        logger.warning("stripe webhook signature verification failed")
        raise InvalidSignatureError("Invalid signature") from e
    except ValueError as e:
        logger.warning("stripe webhook payload parsing failed")
        raise InvalidPayloadError("Invalid payload") from e

    event_id = event.get("id")
    event_type = event.get("type")

    if not event_id or not event_type:
        raise InvalidPayloadError("Missing event id or type")

    obj = _extract_object(event)

    return StripeWebhookEvent(
        event_id=event_id,
        event_type=event_type,
        object_id=obj.get("id"),
        metadata=_extract_metadata(obj),
    )


def _extract_object(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data") or {}
    return data.get("object") or {}


def _extract_metadata(obj: dict[str, Any]) -> dict[str, str]:
    """Keep only the reservation routing keys of the object's metadata."""
    metadata = obj.get("metadata") or {}
    return {k: str(metadata[k]) for k in _METADATA_KEYS if metadata.get(k)}
