"""Redaction helpers for safe logging. External values pass through these."""

import re
from datetime import date
from decimal import Decimal
from typing import Any

# Never logged: Stripe client secrets, card numbers, phones, emails
_CLIENT_SECRET_PATTERN = re.compile(r"\b(pi|seti)_[A-Za-z0-9]+_secret_[A-Za-z0-9]+\b")
_CARD_PATTERN = re.compile(r"\b(?:\d[ -]?){13,19}\b")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

_PATTERNS = (_CLIENT_SECRET_PATTERN, _CARD_PATTERN, _PHONE_PATTERN, _EMAIL_PATTERN)


def redact_string(value: str) -> str:
    """Redact payment secrets, card numbers and contact details from a string."""
    for pattern in _PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def redact_value(value: Any) -> str:
    """Render any value for logging with sensitive content removed."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    # Stay days and timestamps are not PII (and would trip the phone pattern)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
