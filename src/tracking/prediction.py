"""Next-period prediction engine.

Projects the next period start from the most recent logged entry:

- cycle length: the entry's own ``cycle_length`` when positive, else the
  user's average, else the configured default (28 days)
- ovulation: a fixed luteal phase (14 days) before the next period
- fertile window: ovulation -2 .. +2 days, inclusive

``confidence_score`` is a constant placeholder carried in the data model,
not a statistical estimate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from src.tracking.aggregates import CycleStatistics
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.cycle_inference import CycleEntry
from src.tracking.temporal import add_days, days_between, round_half_up


@dataclass
class CyclePrediction:
    """The single current prediction persisted per user.

    Attributes:
        next_period_date:     Projected first day of the next period.
        ovulation_date:       next_period_date minus the luteal phase.
        fertile_window_start: First fertile day (inclusive).
        fertile_window_end:   Last fertile day (inclusive).
        cycle_length_used:    Whole-day cycle length the projection used.
        confidence_score:     Fixed placeholder (0.98).
    """

    next_period_date: date
    ovulation_date: date
    fertile_window_start: date
    fertile_window_end: date
    cycle_length_used: int
    confidence_score: float

    def days_until_next_period(self, today: date) -> int:
        """Countdown to the next period, never negative."""
        return max(0, days_between(today, self.next_period_date))


def cycle_length_to_use(entry: CycleEntry, stats: CycleStatistics) -> float:
    """Entry's own positive cycle length, else the average, else the default."""
    if entry.has_known_cycle_length:
        return float(entry.cycle_length)  # type: ignore[arg-type]
    return stats.cycle_length_or_default()


def project_next_period(anchor: date, cycle_length: float) -> date:
    return add_days(anchor, round_half_up(cycle_length))


def _build(anchor: date, cycle_length: float, config: TrackingConfig) -> CyclePrediction:
    pc = config.prediction
    whole_days = round_half_up(cycle_length)
    next_period = add_days(anchor, whole_days)
    ovulation = add_days(next_period, -pc.luteal_phase_days)
    return CyclePrediction(
        next_period_date=next_period,
        ovulation_date=ovulation,
        fertile_window_start=add_days(ovulation, -pc.days_before_ovulation),
        fertile_window_end=add_days(ovulation, pc.days_after_ovulation),
        cycle_length_used=whole_days,
        confidence_score=pc.confidence_score,
    )


def predict_from_entry(
    entry: CycleEntry,
    stats: CycleStatistics,
    config: TrackingConfig | None = None,
) -> CyclePrediction:
    """Predict from the user's most recent logged entry.

    Args:
        entry: Newest entry by period start date.
        stats: Aggregates over the user's whole history.

    Returns:
        CyclePrediction anchored on ``entry.period_start_date``.
    """
    cfg = config or get_tracking_config()
    return _build(entry.period_start_date, cycle_length_to_use(entry, stats), cfg)


def predict_from_date(
    last_period_date: date,
    stats: CycleStatistics,
    config: TrackingConfig | None = None,
) -> CyclePrediction:
    """Predict from an arbitrary date with no backing entry.

    Only the rounded average cycle length (or the default) is used, since
    there is no entry whose own ``cycle_length`` could override it.
    """
    cfg = config or get_tracking_config()
    if stats.avg_cycle_length:
        length = float(round_half_up(stats.avg_cycle_length))
    else:
        length = float(cfg.cycle.default_cycle_length_days)
    return _build(last_period_date, length, cfg)
