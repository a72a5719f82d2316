"""Tests for the app factory: health, routers and correlation IDs."""

from fastapi.testclient import TestClient

from travelmate.api.factory import create_app
from travelmate.observability.correlation import CORRELATION_ID_HEADER


class TestHealth:
    def test_health_available(self):
        client = TestClient(create_app())
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestRouting:
    def test_booking_routes_mounted(self):
        paths = {route.path for route in create_app().routes}
        assert "/reservations" in paths
        assert "/reservations/{reservation_id}/actions/cancel" in paths
        assert "/destinations/{destination_id}/availability" in paths
        assert "/destinations/{destination_id}/reserved-days" in paths
        assert "/webhooks/stripe" in paths

    def test_docs_disabled(self):
        client = TestClient(create_app())
        assert client.get("/docs").status_code == 404


class TestCorrelationId:
    def test_generated_when_absent(self):
        client = TestClient(create_app())
        response = client.get("/health")
        assert response.headers[CORRELATION_ID_HEADER]

    def test_echoed_when_present(self):
        client = TestClient(create_app())
        response = client.get("/health", headers={CORRELATION_ID_HEADER: "cid-abc"})
        assert response.headers[CORRELATION_ID_HEADER] == "cid-abc"
