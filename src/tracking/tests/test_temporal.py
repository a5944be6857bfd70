"""Tests for reference-zone clocks and calendar arithmetic."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from src.tracking.temporal import (
    FixedClock,
    add_days,
    days_between,
    round_half_up,
    same_iso_week,
    today_in_reference_zone,
    week_start,
    weekday_key,
)


class TestClocks:
    def test_fixed_clock_from_date(self) -> None:
        clock = FixedClock(date(2024, 3, 15))
        assert clock.today() == date(2024, 3, 15)
        assert today_in_reference_zone(clock) == date(2024, 3, 15)

    def test_utc_evening_is_next_day_in_kolkata(self) -> None:
        """20:00 UTC is 01:30 the following day in Asia/Kolkata."""
        clock = FixedClock(datetime(2024, 3, 14, 20, 0, tzinfo=timezone.utc))
        assert clock.today() == date(2024, 3, 15)

    def test_naive_datetime_is_read_in_clock_zone(self) -> None:
        clock = FixedClock(datetime(2024, 3, 14, 23, 0), tz=ZoneInfo("UTC"))
        assert clock.today() == date(2024, 3, 14)


class TestDayArithmetic:
    def test_days_between_ignores_time_of_day(self) -> None:
        assert days_between(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 1)) == 1
        assert days_between(datetime(2024, 1, 1, 0, 1), datetime(2024, 1, 1, 23, 59)) == 0

    def test_days_between_is_signed(self) -> None:
        assert days_between(date(2024, 1, 31), date(2024, 1, 1)) == -30

    def test_days_between_across_leap_day(self) -> None:
        assert days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2

    def test_add_days(self) -> None:
        assert add_days(date(2024, 1, 1), 30) == date(2024, 1, 31)
        assert add_days(date(2024, 1, 31), -14) == date(2024, 1, 17)


class TestWeeks:
    def test_week_starts_on_monday(self) -> None:
        # Sunday 2024-03-17 belongs to the week of Monday 2024-03-11
        assert week_start(date(2024, 3, 17)) == date(2024, 3, 11)
        assert week_start(date(2024, 3, 11)) == date(2024, 3, 11)

    def test_same_iso_week(self) -> None:
        assert same_iso_week(date(2024, 3, 11), date(2024, 3, 17))
        assert not same_iso_week(date(2024, 3, 17), date(2024, 3, 18))

    def test_weekday_keys(self) -> None:
        assert weekday_key(date(2024, 3, 11)) == "mon"
        assert weekday_key(date(2024, 3, 13)) == "wed"
        assert weekday_key(date(2024, 3, 17)) == "sun"


class TestRounding:
    def test_halves_round_up(self) -> None:
        assert round_half_up(28.5) == 29
        assert round_half_up(27.5) == 28

    def test_non_halves(self) -> None:
        assert round_half_up(28.49) == 28
        assert round_half_up(28.51) == 29
        assert round_half_up(30.0) == 30
