"""Tests for observability utilities."""

import json
import logging
from datetime import date
from decimal import Decimal

from travelmate.observability.correlation import correlation_scope, get_correlation_id
from travelmate.observability.logging import JsonFormatter
from travelmate.observability.redaction import (
    redact_string,
    redact_value,
    safe_log_context,
)


class TestRedaction:
    """Tests for redaction helpers."""

    def test_redact_client_secret(self):
        result = redact_string("secret=pi_3Nabc_secret_XyZ123 ok")
        assert "pi_3Nabc_secret_XyZ123" not in result
        assert "[REDACTED]" in result

    def test_payment_intent_id_kept(self):
        assert redact_string("pi_3Nabc") == "pi_3Nabc"

    def test_redact_card_number(self):
        result = redact_string("card 4242 4242 4242 4242 used")
        assert "4242 4242" not in result

    def test_redact_phone_number(self):
        result = redact_string("Call me at +55 11 99999-8888")
        assert "99999" not in result
        assert "[REDACTED]" in result

    def test_redact_email(self):
        result = redact_string("Email: user@example.com")
        assert "user@example.com" not in result

    def test_redact_value_dict_only_keys(self):
        result = redact_value({"client_secret": "pi_1_secret_2", "user": "john"})
        assert "pi_1_secret_2" not in result
        assert "john" not in result
        assert "client_secret" in result

    def test_redact_value_list_only_len(self):
        result = redact_value(["a", "b", "c"])
        assert "len=3" in result

    def test_days_and_prices_kept(self):
        ctx = safe_log_context(start=date(2024, 6, 1), price=Decimal("400.00"))
        assert ctx == {"start": "2024-06-01", "price": "400.00"}

    def test_safe_log_context(self):
        ctx = safe_log_context(email="a@b.com", count=42, flag=True, missing=None)
        assert ctx == {
            "email": "[REDACTED]",
            "count": "42",
            "flag": "true",
            "missing": "null",
        }


class TestCorrelationScope:
    def test_sets_and_restores(self):
        before = get_correlation_id()
        with correlation_scope("cid-1") as cid:
            assert cid == "cid-1"
            assert get_correlation_id() == "cid-1"
        assert get_correlation_id() == before

    def test_generates_when_missing(self):
        with correlation_scope() as cid:
            assert cid
            assert get_correlation_id() == cid


class TestJsonFormatter:
    def _record(self, **extra):
        record = logging.LogRecord("travelmate.test", logging.INFO, __file__, 1, "hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_json_with_extra_fields(self):
        record = self._record(extra_fields={"reservation_id": "res-1"})

        with correlation_scope("cid-xyz"):
            payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["correlationId"] == "cid-xyz"
        assert payload["reservation_id"] == "res-1"

    def test_no_correlation_id_outside_scope(self):
        payload = json.loads(JsonFormatter().format(self._record()))
        assert "correlationId" not in payload
