"""Tests for the daily sign-in streak state machine."""

from __future__ import annotations

from datetime import date

from src.tracking.streak import (
    StreakRecord,
    WeekdayStatus,
    advance_streak,
    default_week,
    normalize_week,
)
from src.tracking.tests.conftest import TEST_OWNER_ID

MON = date(2024, 3, 11)
TUE = date(2024, 3, 12)
WED = date(2024, 3, 13)
SUN = date(2024, 3, 17)
NEXT_MON = date(2024, 3, 18)


def done_days(record: StreakRecord) -> set[str]:
    return {k for k, v in record.weekly_status.items() if v == WeekdayStatus.done}


def week_with(*days: str) -> dict[str, WeekdayStatus]:
    week = default_week()
    for d in days:
        week[d] = WeekdayStatus.done
    return week


class TestAdvanceStreak:
    def test_first_sign_in(self) -> None:
        after = advance_streak(StreakRecord(owner_id=TEST_OWNER_ID), WED)
        assert after.current_streak == 1
        assert after.longest_streak == 1
        assert after.last_login_date == WED
        assert done_days(after) == {"wed"}

    def test_same_day_is_idempotent(self) -> None:
        before = StreakRecord(current_streak=3, longest_streak=4, last_login_date=WED, weekly_status=week_with("mon", "tue", "wed"))
        after = advance_streak(before, WED)
        assert after.current_streak == 3
        assert after.longest_streak == 4
        assert done_days(after) == {"mon", "tue", "wed"}

    def test_consecutive_day_continues(self) -> None:
        before = StreakRecord(current_streak=3, longest_streak=5, last_login_date=TUE, weekly_status=week_with("mon", "tue"))
        after = advance_streak(before, WED)
        assert after.current_streak == 4
        assert after.longest_streak == 5
        assert done_days(after) == {"mon", "tue", "wed"}

    def test_continuation_into_new_week_resets_map(self) -> None:
        before = StreakRecord(
            current_streak=7,
            longest_streak=7,
            last_login_date=SUN,
            weekly_status=week_with("mon", "tue", "wed", "thu", "fri", "sat", "sun"),
        )
        after = advance_streak(before, NEXT_MON)
        assert after.current_streak == 8
        assert after.longest_streak == 8
        assert done_days(after) == {"mon"}

    def test_gap_restarts_streak(self) -> None:
        before = StreakRecord(current_streak=6, longest_streak=6, last_login_date=MON, weekly_status=week_with("mon"))
        after = advance_streak(before, WED)
        assert after.current_streak == 1
        assert after.longest_streak == 6
        # Same ISO week: Monday stays marked
        assert done_days(after) == {"mon", "wed"}

    def test_gap_across_weeks_resets_map(self) -> None:
        before = StreakRecord(current_streak=2, longest_streak=2, last_login_date=date(2024, 3, 8), weekly_status=week_with("thu", "fri"))
        after = advance_streak(before, WED)
        assert after.current_streak == 1
        assert done_days(after) == {"wed"}

    def test_input_is_not_modified(self) -> None:
        before = StreakRecord(current_streak=1, longest_streak=1, last_login_date=TUE, weekly_status=week_with("tue"))
        advance_streak(before, WED)
        assert before.current_streak == 1
        assert done_days(before) == {"tue"}


class TestWeeklyStatus:
    def test_normalize_fills_missing_and_drops_unknown(self) -> None:
        week = normalize_week({"mon": "done", "funday": "done", "tue": "skipped"})
        assert set(week) == {"mon", "tue", "wed", "thu", "fri", "sat", "sun"}
        assert week["mon"] == WeekdayStatus.done
        assert week["tue"] == WeekdayStatus.pending

    def test_normalize_none(self) -> None:
        assert normalize_week(None) == default_week()

    def test_json_form_uses_plain_strings(self) -> None:
        record = StreakRecord(weekly_status=week_with("fri"))
        payload = record.weekly_status_json()
        assert payload["fri"] == "done"
        assert payload["mon"] == "pending"
        assert all(type(v) is str for v in payload.values())
