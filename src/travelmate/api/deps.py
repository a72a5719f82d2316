"""Dependency wiring for the booking API.

Each accessor builds its collaborator from environment settings on first
use and caches it; tests replace them via app.dependency_overrides.
"""

from __future__ import annotations

from datetime import timedelta

from travelmate.domain.availability import AvailabilityPolicy
from travelmate.domain.lifecycle import ReservationLifecycle
from travelmate.infra.config import Settings, load_settings
from travelmate.infra.repositories.reservations_repository import ReservationsRepository
from travelmate.infra.store import create_store
from travelmate.stripe.client import StripeClient

_settings: Settings | None = None
_gateway: StripeClient | None = None
_lifecycle: ReservationLifecycle | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_gateway() -> StripeClient:
    """Stripe gateway built from STRIPE_SECRET_KEY."""
    global _gateway
    if _gateway is None:
        settings = get_settings()
        _gateway = StripeClient(
            settings.stripe_secret_key,
            timeout=settings.http_timeout_seconds,
        )
    return _gateway


def get_policy() -> AvailabilityPolicy:
    return AvailabilityPolicy(cancelled_blocks=get_settings().cancelled_blocks_availability)


def build_lifecycle(settings: Settings, gateway: StripeClient) -> ReservationLifecycle:
    return ReservationLifecycle(
        ReservationsRepository(create_store(settings)),
        gateway,
        currency=settings.payment_currency,
        policy=AvailabilityPolicy(cancelled_blocks=settings.cancelled_blocks_availability),
        pending_ttl=timedelta(minutes=settings.pending_ttl_minutes),
    )


def get_lifecycle() -> ReservationLifecycle:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = build_lifecycle(get_settings(), get_gateway())
    return _lifecycle
