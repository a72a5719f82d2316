"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

StoreBackend = Literal["rest", "postgres"]

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Booking service configuration.

    Attributes:
        store_backend: "rest" (hosted PostgREST) or "postgres" (direct DSN).
        database_url: psycopg2 DSN, used by the postgres backend.
        supabase_url: Base URL of the hosted backend (e.g. https://x.supabase.co).
        supabase_service_key: API key sent as apikey/Bearer to the REST backend.
        supabase_jwt_secret: HS256 secret used to verify user access tokens.
        supabase_jwt_audience: Expected "aud" claim of user access tokens.
        stripe_secret_key: Stripe API secret key.
        stripe_webhook_secret: Stripe webhook endpoint secret.
        payment_currency: ISO currency code for payment intents.
        http_timeout_seconds: Timeout for every store/gateway network call.
        pending_ttl_minutes: Age after which an unpaid pending reservation expires.
        cancelled_blocks_availability: Whether cancelled reservations block dates.
            When true, reservations cancelled by expire_abandoned keep their
            days blocked too; expiry then only tidies unpaid rows.
    """

    store_backend: StoreBackend = "rest"
    database_url: str | None = None
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_jwt_secret: str | None = None
    supabase_jwt_audience: str = "authenticated"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    payment_currency: str = "eur"
    http_timeout_seconds: int = 30
    pending_ttl_minutes: int = 30
    cancelled_blocks_availability: bool = True


def load_settings() -> Settings:
    """Load settings from the environment.

    Raises:
        RuntimeError: If STORE_BACKEND or a numeric variable is invalid.
    """
    backend = os.environ.get("STORE_BACKEND", "rest").strip().lower()
    if backend not in ("rest", "postgres"):
        raise RuntimeError(f"Unknown STORE_BACKEND: {backend}")

    return Settings(
        store_backend=backend,  # type: ignore[arg-type]
        database_url=os.environ.get("DATABASE_URL"),
        supabase_url=os.environ.get("SUPABASE_URL"),
        supabase_service_key=os.environ.get("SUPABASE_SERVICE_KEY"),
        supabase_jwt_secret=os.environ.get("SUPABASE_JWT_SECRET"),
        supabase_jwt_audience=os.environ.get("SUPABASE_JWT_AUDIENCE") or "authenticated",
        stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET"),
        payment_currency=os.environ.get("PAYMENT_CURRENCY", "eur").lower(),
        http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
        pending_ttl_minutes=_env_int("PENDING_RESERVATION_TTL_MINUTES", 30),
        cancelled_blocks_availability=_env_bool("CANCELLED_BLOCKS_AVAILABILITY", True),
    )
