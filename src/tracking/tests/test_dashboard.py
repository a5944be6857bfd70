"""Tests for the dashboard and insights projections."""

from __future__ import annotations

from datetime import date, timedelta

from src.tracking.aggregates import Regularity, summarize
from src.tracking.config_loader import TrackingConfig
from src.tracking.dashboard import build_insights, project_dashboard
from src.tracking.tests.conftest import make_entry


def two_cycles(previous_end: date | None = None) -> list:
    return [
        make_entry(date(2024, 1, 1), cycle_length=30, period_length=5, end=previous_end),
        make_entry(date(2024, 1, 31), period_length=4),
    ]


class TestDashboard:
    def test_empty_history_uses_defaults(self, tracking_config: TrackingConfig) -> None:
        dash = project_dashboard([], summarize([], tracking_config), date(2024, 2, 10))
        assert dash.next_period_days == 0
        assert dash.next_period_date is None
        assert dash.current_cycle_day == 0
        assert dash.current_cycle is None
        assert dash.avg_cycle_length == 28
        assert dash.avg_period_length == 5
        assert dash.insights.previous_cycle_length is None

    def test_countdown_and_cycle_day(self, tracking_config: TrackingConfig) -> None:
        entries = two_cycles()
        dash = project_dashboard(entries, summarize(entries, tracking_config), date(2024, 2, 10))
        assert dash.current_cycle.period_start_date == date(2024, 1, 31)
        assert dash.current_cycle_day == 11
        # Newest entry has no length yet, so the 30-day average applies
        assert dash.next_period_date == date(2024, 3, 1)
        assert dash.next_period_days == 20
        assert dash.avg_cycle_length == 30
        assert dash.avg_period_length == 5  # 4.5 rounds up

    def test_insights_come_from_completed_cycle(self, tracking_config: TrackingConfig) -> None:
        entries = two_cycles()
        dash = project_dashboard(entries, summarize(entries, tracking_config), date(2024, 2, 10))
        assert dash.insights.previous_cycle_length == 30
        assert dash.insights.previous_period_length == 5

    def test_overdue_period_countdown_is_zero(self, tracking_config: TrackingConfig) -> None:
        entries = two_cycles()
        dash = project_dashboard(entries, summarize(entries, tracking_config), date(2024, 3, 20))
        assert dash.next_period_days == 0
        assert dash.current_cycle_day == 50

    def test_period_logged_today_is_day_one(self, tracking_config: TrackingConfig) -> None:
        entries = [make_entry(date(2024, 2, 10))]
        dash = project_dashboard(entries, summarize(entries, tracking_config), date(2024, 2, 10))
        assert dash.current_cycle_day == 1
        assert dash.next_period_days == 28


class TestInsights:
    def test_empty_history(self, tracking_config: TrackingConfig) -> None:
        insights = build_insights([], summarize([], tracking_config), date(2024, 2, 10), tracking_config)
        assert insights.previous_cycle_length is None
        assert insights.previous_period_length is None
        assert insights.avg_cycle_length is None
        assert insights.total_cycles == 0
        assert insights.regularity == Regularity.normal

    def test_previous_cycle_uses_stored_length(self, tracking_config: TrackingConfig) -> None:
        entries = two_cycles(previous_end=date(2024, 1, 5))
        insights = build_insights(entries, summarize(entries, tracking_config), date(2024, 2, 10), tracking_config)
        assert insights.previous_cycle_length == 30
        assert insights.previous_period_length == 5
        assert insights.avg_cycle_length == 30
        assert insights.total_cycles == 2

    def test_open_previous_period_is_implausible(self, tracking_config: TrackingConfig) -> None:
        # No end date: counted up to today (41 days), which is out of range
        entries = two_cycles()
        insights = build_insights(entries, summarize(entries, tracking_config), date(2024, 2, 10), tracking_config)
        assert insights.previous_period_length is None

    def test_gap_used_when_previous_length_missing(self, tracking_config: TrackingConfig) -> None:
        entries = [make_entry(date(2024, 1, 1)), make_entry(date(2024, 1, 27))]
        insights = build_insights(entries, summarize(entries, tracking_config), date(2024, 2, 10), tracking_config)
        assert insights.previous_cycle_length == 26

    def test_single_entry_reports_days_elapsed(self, tracking_config: TrackingConfig) -> None:
        entries = [make_entry(date(2024, 2, 1), end=date(2024, 2, 4))]
        insights = build_insights(entries, summarize(entries, tracking_config), date(2024, 2, 10), tracking_config)
        assert insights.previous_cycle_length == 10
        assert insights.previous_period_length == 4

    def test_recent_cycles_are_limited_and_newest_first(self, tracking_config: TrackingConfig) -> None:
        start = date(2023, 6, 1)
        entries = [make_entry(start + timedelta(days=28 * i), cycle_length=28) for i in range(7)]
        insights = build_insights(entries, summarize(entries, tracking_config), date(2024, 2, 10), tracking_config)
        assert len(insights.recent_cycles) == 5
        starts = [e.period_start_date for e in insights.recent_cycles]
        assert starts == sorted(starts, reverse=True)
        assert insights.regularity == Regularity.regular
