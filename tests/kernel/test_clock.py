"""Tests for stock_kernel.domain.clock."""

from datetime import datetime, timedelta, timezone

from stock_kernel.domain.clock import DeterministicClock, SystemClock, as_utc


class TestAsUtc:
    def test_none_passthrough(self):
        assert as_utc(None) is None

    def test_naive_is_treated_as_utc(self):
        value = as_utc(datetime(2024, 1, 1, 8, 30))
        assert value == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = as_utc(datetime(2024, 1, 1, 10, 0, tzinfo=plus_two))
        assert value == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc


class TestDeterministicClock:
    def test_now_is_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance(self):
        start = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        assert clock.advance(hours=25) == start + timedelta(hours=25)
        assert clock.advance(minutes=9) == start + timedelta(hours=25, minutes=9)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(days=3)
        target = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
