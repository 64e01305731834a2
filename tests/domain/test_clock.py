"""Tests for the injectable clock and UTC normalization."""

from datetime import datetime, timedelta, timezone

from progress_kernel.domain.clock import DeterministicClock, SystemClock, to_utc


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_advance_and_tick(self):
        clock = DeterministicClock()
        start = clock.now()
        clock.advance(30)
        assert clock.now() == start + timedelta(seconds=30)
        assert clock.tick() == start + timedelta(seconds=31)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now_utc() == target


class TestSystemClock:
    def test_aware_utc(self):
        now = SystemClock().now_utc()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestToUtc:
    def test_naive_read_as_utc(self):
        naive = datetime(2024, 1, 1, 12, 0, 0)
        assert to_utc(naive) == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_offset_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2024, 1, 1, 14, 0, 0, tzinfo=plus_two)
        result = to_utc(value)
        assert result.hour == 12
        assert result.tzinfo == timezone.utc
