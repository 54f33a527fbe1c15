"""Tests for the settable clock."""

from datetime import UTC, datetime, timedelta, timezone

from subscribe.core.clock import Clock, get_clock


class TestClock:
    def test_live_time_by_default(self):
        clock = Clock()
        before = datetime.now(UTC)
        now = clock.now()
        after = datetime.now(UTC)
        assert before <= now <= after
        assert clock.is_frozen is False

    def test_frozen_at_construction(self):
        fixed = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        clock = Clock(fixed)
        assert clock.now() == fixed
        assert clock.now() == fixed
        assert clock.is_frozen is True

    def test_set_now_moves_time(self):
        clock = Clock(datetime(2024, 3, 1, tzinfo=UTC))
        clock.set_now(datetime(2024, 4, 1, tzinfo=UTC))
        assert clock.now() == datetime(2024, 4, 1, tzinfo=UTC)

    def test_naive_datetime_is_utc(self):
        clock = Clock()
        clock.set_now(datetime(2024, 3, 1, 8, 30))
        assert clock.now() == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)
        assert clock.now().tzinfo is UTC

    def test_aware_datetime_keeps_its_offset(self):
        offset = timezone(timedelta(hours=2))
        clock = Clock(datetime(2024, 3, 1, 10, 0, tzinfo=offset))
        assert clock.now() == datetime(2024, 3, 1, 8, 0, tzinfo=UTC)

    def test_reset_returns_to_live_time(self):
        clock = Clock(datetime(2000, 1, 1, tzinfo=UTC))
        clock.reset()
        assert clock.is_frozen is False
        assert clock.now().year >= 2024

    def test_get_clock_is_process_wide(self):
        assert get_clock() is get_clock()
