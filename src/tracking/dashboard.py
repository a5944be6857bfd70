"""Read-only projections for the cycle dashboard and insights screens.

Nothing here is persisted.  The dashboard re-derives the next period date
from the newest entry on every read instead of reading back the stored
prediction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from src.tracking.aggregates import CycleStatistics, Regularity, regularity
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.cycle_inference import CycleEntry
from src.tracking.prediction import cycle_length_to_use, project_next_period
from src.tracking.temporal import days_between, round_half_up


def _newest_first(entries: list[CycleEntry]) -> list[CycleEntry]:
    return sorted(entries, key=lambda e: e.period_start_date, reverse=True)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass
class CompletedCycleInsight:
    """Figures from the newest cycle whose length is already known."""

    previous_cycle_length: int | None = None
    previous_period_length: int | None = None


@dataclass
class Dashboard:
    """Countdown and current-cycle figures for the home screen.

    Attributes:
        next_period_days:  Days until the projected next period (>= 0).
        next_period_date:  Projected next period start, None without history.
        current_cycle_day: 1-based day of the current cycle, 0 without history.
        current_cycle:     Newest logged entry.
        avg_cycle_length:  Rounded average, 28 when unknown.
        avg_period_length: Rounded average, 5 when unknown.
        insights:          Completed-cycle figures only.
    """

    next_period_days: int = 0
    next_period_date: date | None = None
    current_cycle_day: int = 0
    current_cycle: CycleEntry | None = None
    avg_cycle_length: int = 28
    avg_period_length: int = 5
    insights: CompletedCycleInsight = field(default_factory=CompletedCycleInsight)


def project_dashboard(
    entries: list[CycleEntry],
    stats: CycleStatistics,
    today: date,
) -> Dashboard:
    """Combine the newest entry, the aggregates and today.

    Args:
        entries: The user's full history, any order.
        stats:   Aggregates computed over ``entries``.
        today:   Current date in the reference calendar.
    """
    dashboard = Dashboard(
        avg_cycle_length=round_half_up(stats.cycle_length_or_default()),
        avg_period_length=round_half_up(stats.period_length_or_default()),
    )
    ordered = _newest_first(entries)
    if not ordered:
        return dashboard

    latest = ordered[0]
    dashboard.current_cycle = latest
    dashboard.current_cycle_day = max(1, days_between(latest.period_start_date, today) + 1)

    next_period = project_next_period(
        latest.period_start_date, cycle_length_to_use(latest, stats)
    )
    dashboard.next_period_date = next_period
    dashboard.next_period_days = max(0, days_between(today, next_period))

    # In-progress cycles have no length yet and are excluded
    completed = [e for e in ordered if e.has_known_cycle_length]
    if completed:
        dashboard.insights = CompletedCycleInsight(
            previous_cycle_length=completed[0].cycle_length,
            previous_period_length=completed[0].period_length or None,
        )
    return dashboard


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@dataclass
class CycleInsights:
    avg_cycle_length: int | None
    avg_period_length: int | None
    previous_cycle_length: int | None
    previous_period_length: int | None
    total_cycles: int
    regularity: Regularity
    recent_cycles: list[CycleEntry] = field(default_factory=list)


def _previous_cycle_length(
    current: CycleEntry, previous: CycleEntry, has_two: bool, today: date
) -> int:
    if previous.has_known_cycle_length:
        return previous.cycle_length  # type: ignore[return-value]
    if has_two:
        gap = days_between(previous.period_start_date, current.period_start_date)
        if gap > 0:
            return gap
    # Only one usable entry: report how far into it we are
    return max(1, days_between(previous.period_start_date, today) + 1)


def _previous_period_length(
    previous: CycleEntry, today: date, config: TrackingConfig
) -> int | None:
    # Open periods count the days so far
    end = previous.period_end_date or today
    length = max(1, days_between(previous.period_start_date, end) + 1)
    return length if config.is_plausible_period_length(length) else None


def build_insights(
    entries: list[CycleEntry],
    stats: CycleStatistics,
    today: date,
    config: TrackingConfig | None = None,
) -> CycleInsights:
    """Summary figures for the insights screen.

    Always yields a meaningful ``previous_cycle_length`` once at least one
    entry exists: the stored length of the second-newest entry, else the gap
    between the two newest starts, else days elapsed since the only entry.
    ``previous_period_length`` is omitted when outside the plausible range.
    """
    cfg = config or get_tracking_config()
    ordered = _newest_first(entries)

    insights = CycleInsights(
        avg_cycle_length=round_half_up(stats.avg_cycle_length) if stats.avg_cycle_length else None,
        avg_period_length=round_half_up(stats.avg_period_length) if stats.avg_period_length else None,
        previous_cycle_length=None,
        previous_period_length=None,
        total_cycles=stats.total_cycles,
        regularity=regularity(ordered, cfg.regularity),
        recent_cycles=ordered[: cfg.cycle.recent_cycles_limit],
    )
    if not ordered:
        return insights

    current = ordered[0]
    previous = ordered[1] if len(ordered) > 1 else ordered[0]
    insights.previous_cycle_length = _previous_cycle_length(
        current, previous, len(ordered) > 1, today
    )
    insights.previous_period_length = _previous_period_length(previous, today, cfg)
    return insights
