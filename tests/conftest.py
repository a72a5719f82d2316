"""Shared pytest fixtures for booking kernel tests.

The fakes here stand in for the remote table store and the payment gateway
so domain and API tests run without Postgres, PostgREST or Stripe.
"""
import sys
sys.dont_write_bytecode = True

import copy  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from travelmate.domain.errors import GatewayError  # noqa: E402

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeStore:
    """In-memory TableStore.

    Mirrors what the hosted table does on write: assigns id and created_at,
    fills unset nullable columns, and echoes stored rows back as copies.
    Set ``fail_on[op] = exc`` to make the next call to ``op`` raise.
    """

    def __init__(self, start: datetime = FIXED_NOW - timedelta(hours=1)) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.fail_on: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1
        self._clock = start

    def _maybe_fail(self, op: str) -> None:
        exc = self.fail_on.pop(op, None)
        if exc is not None:
            raise exc

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
        return all(row.get(k) == v for k, v in filters.items())

    def seed(self, table: str, row: dict[str, Any]) -> None:
        """Store a raw row as-is (no defaults), e.g. a malformed one."""
        self.tables.setdefault(table, []).append(dict(row))

    def query(self, table, filters, order=None):
        self.calls.append(("query", table))
        self._maybe_fail("query")
        rows = [copy.deepcopy(r) for r in self.tables.get(table, []) if self._matches(r, filters)]
        for column, desc in reversed(list(order or [])):
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        return rows

    def insert(self, table, row):
        self.calls.append(("insert", table))
        self._maybe_fail("insert")
        stored = {"stripe_payment_intent_id": None, **row}
        stored["id"] = f"res-{self._next_id}"
        stored["created_at"] = self._clock.isoformat()
        self._next_id += 1
        self._clock += timedelta(seconds=1)
        self.tables.setdefault(table, []).append(stored)
        return copy.deepcopy(stored)

    def update(self, table, filters, patch):
        self.calls.append(("update", table))
        self._maybe_fail("update")
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(patch)
                updated.append(copy.deepcopy(row))
        return updated


class FakeGateway:
    """Payment gateway double with Stripe-shaped ids and secrets."""

    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []
        self.confirmed: list[tuple[str, str]] = []
        self.intents: dict[str, dict[str, Any]] = {}
        self.create_error: Exception | None = None
        self.confirm_error: Exception | None = None
        self.confirm_status = "succeeded"
        self.on_confirm = None

    def create_payment_intent(
        self,
        *,
        amount_cents,
        currency,
        idempotency_key,
        metadata=None,
        correlation_id=None,
    ):
        if self.create_error is not None:
            raise self.create_error
        intent_id = f"pi_test_{len(self.created) + 1}"
        self.created.append(
            {
                "amount_cents": amount_cents,
                "currency": currency,
                "idempotency_key": idempotency_key,
                "metadata": metadata,
            }
        )
        self.intents[intent_id] = {
            "payment_intent_id": intent_id,
            "status": "requires_payment_method",
            "metadata": dict(metadata or {}),
        }
        return {
            "payment_intent_id": intent_id,
            "client_secret": f"{intent_id}_secret_abc",
            "status": "requires_payment_method",
        }

    def retrieve_payment_intent(self, payment_intent_id, *, correlation_id=None):
        if payment_intent_id not in self.intents:
            raise GatewayError(f"No such payment_intent: {payment_intent_id}")
        return dict(self.intents[payment_intent_id])

    def confirm_payment(self, client_secret, payment_method_id, *, correlation_id=None):
        self.confirmed.append((client_secret, payment_method_id))
        if self.on_confirm is not None:
            self.on_confirm()
        if self.confirm_error is not None:
            raise self.confirm_error
        intent_id = client_secret.split("_secret_")[0]
        if intent_id in self.intents:
            self.intents[intent_id]["status"] = self.confirm_status
        return {"payment_intent_id": intent_id, "status": self.confirm_status}


@pytest.fixture
def now():
    """The lifecycle clock; fake store rows are created an hour earlier."""
    return FIXED_NOW


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def repo(store):
    from travelmate.infra.repositories.reservations_repository import (
        ReservationsRepository,
    )

    return ReservationsRepository(store)


@pytest.fixture
def lifecycle(repo, gateway):
    from travelmate.domain.lifecycle import ReservationLifecycle

    return ReservationLifecycle(repo, gateway, clock=lambda: FIXED_NOW)


@pytest.fixture
def gateway_down(gateway):
    gateway.create_error = GatewayError("Payment intent creation failed: timeout")
    return gateway


@pytest.fixture
def app(lifecycle):
    """App with auth and lifecycle dependencies overridden (user-1 signed in)."""
    from travelmate.api.auth import CurrentUser, get_current_user
    from travelmate.api.deps import get_lifecycle
    from travelmate.api.factory import create_app

    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        id="user-1", email="user1@example.com", role="authenticated"
    )
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    return app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture(autouse=True)
def _reset_dependency_cache():
    """Drop cached settings/gateway/lifecycle between tests.

    deps keeps module-level singletons built from the environment; a value
    cached under one test's monkeypatched env must not leak into the next.
    """
    import travelmate.api.deps as deps

    deps._settings = None
    deps._gateway = None
    deps._lifecycle = None
    yield
    deps._settings = None
    deps._gateway = None
    deps._lifecycle = None
