"""Tests for time utilities."""

from datetime import date, datetime, timezone


class TestUtcNow:
    """Tests for utc_now()."""

    def test_returns_utc_datetime(self):
        from travelmate.infra.time import utc_now

        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_returns_current_time(self):
        from travelmate.infra.time import utc_now

        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after


class TestUtcToday:
    def test_is_a_plain_date(self):
        from travelmate.infra.time import utc_today

        today = utc_today()
        assert type(today) is date
        assert today == datetime.now(timezone.utc).date()
