"""Tests for time utilities."""

from datetime import datetime, timezone

from wabridge.infra.time import from_unix, process_uptime, utc_now


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after


class TestFromUnix:
    def test_converts_seconds(self):
        assert from_unix(1714564800) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_missing_is_now(self):
        before = utc_now()
        assert from_unix(None) >= before


def test_process_uptime_non_negative():
    assert process_uptime() >= 0
