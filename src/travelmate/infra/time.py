"""Time utilities for consistent timestamp and calendar-day handling."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return the current calendar day in UTC (reservation days are UTC days)."""
    return utc_now().date()
