"""Tests for the PostgREST table store (requests.Session mocked)."""

from unittest.mock import MagicMock

import pytest
import requests

from travelmate.domain.errors import StoreUnavailableError
from travelmate.infra.rest_store import RestStore
from travelmate.infra.store import ExclusionViolationError, InvalidFilterValueError


def _response(status_code=200, body=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def rest(session):
    return RestStore("https://proj.supabase.co/", "service-key", timeout=30, session=session)


class TestConfiguration:
    def test_missing_url_raises(self):
        with pytest.raises(RuntimeError, match="SUPABASE_URL"):
            RestStore(None, "key")

    def test_auth_headers_set(self, rest, session):
        assert session.headers["apikey"] == "service-key"
        assert session.headers["Authorization"] == "Bearer service-key"


class TestQuery:
    def test_filters_and_order(self, rest, session):
        session.request.return_value = _response(body=[{"id": "r1"}])

        rows = rest.query("reservations", {"user_id": "u1"}, [("created_at", True)])

        assert rows == [{"id": "r1"}]
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert url == "https://proj.supabase.co/rest/v1/reservations"
        assert kwargs["params"] == {
            "select": "*",
            "user_id": "eq.u1",
            "order": "created_at.desc",
        }
        assert kwargs["timeout"] == 30

    def test_null_filter(self, rest, session):
        session.request.return_value = _response(body=[])

        rest.query("reservations", {"stripe_payment_intent_id": None})

        params = session.request.call_args.kwargs["params"]
        assert params["stripe_payment_intent_id"] == "is.null"

    def test_network_error_is_store_unavailable(self, rest, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(StoreUnavailableError):
            rest.query("reservations", {"user_id": "u1"})

    def test_timeout_is_store_unavailable(self, rest, session):
        session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(StoreUnavailableError):
            rest.query("reservations", {"user_id": "u1"})

    def test_http_error_is_store_unavailable(self, rest, session):
        session.request.return_value = _response(500, {"message": "boom"})

        with pytest.raises(StoreUnavailableError):
            rest.query("reservations", {"user_id": "u1"})

    def test_malformed_body_is_store_unavailable(self, rest, session):
        session.request.return_value = _response(json_error=True)

        with pytest.raises(StoreUnavailableError):
            rest.query("reservations", {"user_id": "u1"})

    def test_non_list_body_is_store_unavailable(self, rest, session):
        session.request.return_value = _response(body={"id": "r1"})

        with pytest.raises(StoreUnavailableError):
            rest.query("reservations", {"user_id": "u1"})


class TestWrites:
    def test_insert_returns_representation(self, rest, session):
        session.request.return_value = _response(201, [{"id": "r1", "status": "pending"}])

        row = rest.insert("reservations", {"status": "pending"})

        assert row == {"id": "r1", "status": "pending"}
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "POST"
        assert kwargs["json"] == {"status": "pending"}
        assert kwargs["headers"] == {"Prefer": "return=representation"}

    def test_insert_exclusion_violation(self, rest, session):
        session.request.return_value = _response(
            409, {"code": "23P01", "message": "conflicting key value violates exclusion constraint"}
        )

        with pytest.raises(ExclusionViolationError):
            rest.insert("reservations", {"status": "pending"})

    def test_malformed_filter_value(self, rest, session):
        session.request.return_value = _response(
            400, {"code": "22P02", "message": "invalid input syntax for type uuid: \"abc\""}
        )

        with pytest.raises(InvalidFilterValueError):
            rest.query("reservations", {"id": "abc"})

    def test_insert_empty_echo_is_store_unavailable(self, rest, session):
        session.request.return_value = _response(201, [])

        with pytest.raises(StoreUnavailableError):
            rest.insert("reservations", {"status": "pending"})

    def test_update_uses_filters_as_params(self, rest, session):
        session.request.return_value = _response(200, [{"id": "r1", "status": "cancelled"}])

        rows = rest.update(
            "reservations",
            {"id": "r1", "status": "pending"},
            {"status": "cancelled", "stripe_payment_intent_id": None},
        )

        assert rows == [{"id": "r1", "status": "cancelled"}]
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "PATCH"
        assert kwargs["params"] == {"id": "eq.r1", "status": "eq.pending"}

    def test_update_without_filters_refused(self, rest, session):
        with pytest.raises(ValueError):
            rest.update("reservations", {}, {"status": "cancelled"})
        session.request.assert_not_called()
