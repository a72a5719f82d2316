"""Stripe webhook routes - public endpoint for payment_intent events.

Security rules:
- Validate Stripe-Signature on every request.
- Never log payload or signature header.
- Return 5xx if the store fails (so Stripe retries).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request, Response
from starlette.concurrency import run_in_threadpool

from travelmate.api.deps import get_lifecycle, get_settings
from travelmate.domain.errors import StoreUnavailableError
from travelmate.domain.lifecycle import ReservationLifecycle
from travelmate.domain.payment_events import handle_payment_event
from travelmate.observability.correlation import get_correlation_id
from travelmate.observability.logging import get_logger
from travelmate.observability.redaction import safe_log_context
from travelmate.stripe.webhook import (
    InvalidPayloadError,
    InvalidSignatureError,
    verify_and_extract,
)

router = APIRouter(tags=["webhooks"])

logger = get_logger(__name__)


def _get_webhook_secret() -> str:
    """Stripe webhook secret from the service configuration."""
    secret = get_settings().stripe_webhook_secret
    if not secret:
        raise RuntimeError("STRIPE_WEBHOOK_SECRET not configured")
    return secret


def _prefix(value: str) -> str:
    return value[:8] if len(value) >= 8 else value


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="Stripe-Signature"),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> Response:
    """Receive Stripe webhook events.

    Returns:
        200 OK if processed, ignored or duplicate.
        400 Bad Request if signature or payload invalid.
        500 Internal Server Error on configuration or store failure.
    """
    correlation_id = get_correlation_id()

    payload_bytes = await request.body()

    try:
        webhook_secret = _get_webhook_secret()
    except RuntimeError:
        logger.error(
            "webhook secret not configured",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=500, content="server configuration error")

    try:
        event = verify_and_extract(payload_bytes, stripe_signature, webhook_secret)
    except InvalidSignatureError:
        logger.warning(
            "stripe signature validation failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=400, content="invalid signature")
    except InvalidPayloadError:
        logger.warning(
            "stripe payload invalid",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=400, content="invalid payload")

    # Log only safe metadata (no payload, no signature)
    logger.info(
        "stripe webhook received",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                event_id_prefix=_prefix(event.event_id),
                event_type=event.event_type,
            )
        },
    )

    try:
        result = await run_in_threadpool(handle_payment_event, lifecycle, event)
    except StoreUnavailableError:
        logger.exception(
            "stripe webhook processing failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=500, content="processing failed")

    return Response(status_code=200, content=result)
