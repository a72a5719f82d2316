"""Thin wrapper around Stripe SDK for PaymentIntents.

Purpose:
- Encapsulate Stripe API calls so domain code doesn't import stripe.* directly.
- Accept idempotency_key for safe retries by the caller (the SDK never retries).
- Map SDK failures to GatewayError / PaymentDeclinedError.
- Never log full Stripe payloads or client secrets (only IDs + correlation metadata).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import stripe

from travelmate.domain.errors import GatewayError, PaymentDeclinedError

logger = logging.getLogger(__name__)

_SECRET_SEPARATOR = "_secret_"
_SUCCEEDED = "succeeded"


def payment_intent_id_from_client_secret(client_secret: str) -> str:
    """Extract the PaymentIntent ID from its client secret.

    Client secrets look like ``pi_123_secret_abc``.

    Raises:
        ValueError: If the secret does not have that shape.
    """
    intent_id, sep, _ = client_secret.partition(_SECRET_SEPARATOR)
    if not sep or not intent_id.startswith("pi_"):
        raise ValueError("Malformed payment intent client secret")
    return intent_id


class StripeClient:
    """Wrapper for Stripe PaymentIntent operations.

    Usage:
        client = StripeClient()  # reads STRIPE_SECRET_KEY from env
        intent = client.create_payment_intent(
            amount_cents=40000,
            currency="eur",
            idempotency_key="reservation:abc123:payment_intent",
        )
        print(intent["payment_intent_id"], intent["status"])
    """

    def __init__(self, api_key: str | None = None, *, timeout: int = 30) -> None:
        """Initialize the Stripe client.

        Args:
            api_key: Stripe secret key. Defaults to STRIPE_SECRET_KEY env var.
            timeout: Network timeout in seconds for every call.

        Raises:
            RuntimeError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("STRIPE_SECRET_KEY")
        if not self._api_key:
            raise RuntimeError(
                "Stripe API key not provided. "
                "Set STRIPE_SECRET_KEY or pass api_key parameter."
            )
        self._timeout = timeout

    def _client(self) -> stripe.StripeClient:
        return stripe.StripeClient(
            self._api_key,
            http_client=stripe.RequestsClient(timeout=self._timeout),
            max_network_retries=0,
        )

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a PaymentIntent.

        Args:
            amount_cents: Amount in minor currency units.
            currency: Currency code (e.g., 'eur', 'usd').
            idempotency_key: Idempotency key for safe retries.
            metadata: Optional metadata to attach to the intent.
            correlation_id: Optional correlation ID for logging.

        Returns:
            Dict with payment_intent_id, client_secret and status.

        Raises:
            GatewayError: On API failure, non-positive amount or malformed response.
        """
        if amount_cents <= 0:
            raise GatewayError("Payment amount must be positive")

        params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency.lower(),
            "payment_method_types": ["card"],
        }
        if metadata:
            params["metadata"] = metadata

        try:
            intent = self._client().v1.payment_intents.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            logger.error(
                "stripe_payment_intent_create_failed",
                extra={"extra_fields": {"correlation_id": correlation_id, "error": type(e).__name__}},
            )
            raise GatewayError(f"Payment intent creation failed: {e.user_message or e}") from e

        if not getattr(intent, "id", None) or not getattr(intent, "client_secret", None):
            raise GatewayError("Payment intent response missing id or client secret")

        # Log only IDs, never the client secret
        logger.info(
            "stripe_payment_intent_created",
            extra={
                "extra_fields": {
                    "payment_intent_id": intent.id,
                    "correlation_id": correlation_id,
                }
            },
        )

        return {
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "status": intent.status,
        }

    def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Retrieve an existing PaymentIntent (id, status and metadata).

        Raises:
            GatewayError: On API failure.
        """
        try:
            intent = self._client().v1.payment_intents.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            raise GatewayError(f"Payment intent retrieval failed: {e.user_message or e}") from e

        logger.info(
            "stripe_payment_intent_retrieved",
            extra={
                "extra_fields": {
                    "payment_intent_id": intent.id,
                    "status": intent.status,
                    "correlation_id": correlation_id,
                }
            },
        )

        return {
            "payment_intent_id": intent.id,
            "status": intent.status,
            "metadata": dict(getattr(intent, "metadata", None) or {}),
        }

    def confirm_payment(
        self,
        client_secret: str,
        payment_method_id: str,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Confirm a PaymentIntent with a payment method, in a single round trip.

        An intent that already succeeded is returned as-is and never
        re-submitted.

        Args:
            client_secret: Client secret returned at intent creation.
            payment_method_id: Stripe PaymentMethod ID (pm_...).
            correlation_id: Optional correlation ID for logging.

        Returns:
            Dict with payment_intent_id and status.

        Raises:
            PaymentDeclinedError: If the card was declined.
            GatewayError: On any other failure.
        """
        try:
            intent_id = payment_intent_id_from_client_secret(client_secret)
        except ValueError as e:
            raise GatewayError(str(e)) from e

        current = self.retrieve_payment_intent(intent_id, correlation_id=correlation_id)
        if current["status"] == _SUCCEEDED:
            return current

        try:
            intent = self._client().v1.payment_intents.confirm(
                intent_id,
                params={"payment_method": payment_method_id},
                options={"idempotency_key": f"payment_intent:{intent_id}:confirm:{payment_method_id}"},
            )
        except stripe.CardError as e:
            logger.info(
                "stripe_payment_declined",
                extra={
                    "extra_fields": {
                        "payment_intent_id": intent_id,
                        "code": e.code,
                        "correlation_id": correlation_id,
                    }
                },
            )
            raise PaymentDeclinedError(e.user_message or "Card declined", decline_code=e.code) from e
        except stripe.StripeError as e:
            raise GatewayError(f"Payment confirmation failed: {e.user_message or e}") from e

        logger.info(
            "stripe_payment_intent_confirmed",
            extra={
                "extra_fields": {
                    "payment_intent_id": intent.id,
                    "status": intent.status,
                    "correlation_id": correlation_id,
                }
            },
        )

        if intent.status == "requires_payment_method":
            last_error = getattr(intent, "last_payment_error", None)
            reason = getattr(last_error, "message", None) or "Payment method rejected"
            raise PaymentDeclinedError(reason, decline_code=getattr(last_error, "code", None))

        return {"payment_intent_id": intent.id, "status": intent.status}
