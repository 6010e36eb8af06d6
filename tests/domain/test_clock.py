"""Tests for the clock abstraction."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from khata_kernel.domain.clock import DeterministicClock, SystemClock, ensure_aware
from tests.conftest import TEST_NOW


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        clock = DeterministicClock(TEST_NOW)

        assert clock.now() == clock.now() == TEST_NOW

    def test_tick(self):
        clock = DeterministicClock(TEST_NOW)

        assert clock.tick() == TEST_NOW + timedelta(seconds=1)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock(TEST_NOW)
        clock.advance_days(3)
        later = datetime(2025, 1, 1, tzinfo=timezone.utc)

        clock.set_time(later)

        assert clock.now() == later

    def test_today_in_timezone(self):
        """20:00 UTC on the 14th is already the 15th in Kolkata."""
        clock = DeterministicClock(datetime(2024, 3, 14, 20, 0, tzinfo=timezone.utc))

        assert clock.today() == date(2024, 3, 14)
        assert clock.today(ZoneInfo("Asia/Kolkata")) == date(2024, 3, 15)


class TestSystemClock:
    def test_aware_utc(self):
        now = SystemClock().now_utc()

        assert now.utcoffset() == timedelta(0)


class TestEnsureAware:
    def test_naive_becomes_utc(self):
        assert ensure_aware(datetime(2024, 3, 15, 10)).tzinfo is timezone.utc

    def test_aware_untouched(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2024, 3, 15, 10, tzinfo=ist)

        assert ensure_aware(value) is value
