"""Aggregate figures over a user's cycle history.

Averages ignore null and non-positive values.  Regularity is a fixed-threshold
heuristic on the population standard deviation of cycle lengths, not a
calibrated model.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from enum import Enum

from src.tracking.config_loader import RegularityConfig, TrackingConfig, get_tracking_config
from src.tracking.cycle_inference import CycleEntry


class Regularity(str, Enum):
    regular = "Regular"
    normal = "Normal"
    irregular = "Irregular"


@dataclass
class CycleStatistics:
    """Aggregates over every entry a user has logged.

    ``avg_cycle_length`` / ``avg_period_length`` are None when no entry has a
    positive value; use the ``*_or_default`` helpers for display figures.
    """

    avg_cycle_length: float | None
    avg_period_length: float | None
    total_cycles: int
    default_cycle_length: int = 28
    default_period_length: int = 5

    def cycle_length_or_default(self) -> float:
        return self.avg_cycle_length or self.default_cycle_length

    def period_length_or_default(self) -> float:
        return self.avg_period_length or self.default_period_length


def _positive_mean(values: list[int | None]) -> float | None:
    positive = [v for v in values if v is not None and v > 0]
    if not positive:
        return None
    return statistics.fmean(positive)


def summarize(
    entries: list[CycleEntry], config: TrackingConfig | None = None
) -> CycleStatistics:
    cfg = config or get_tracking_config()
    return CycleStatistics(
        avg_cycle_length=_positive_mean([e.cycle_length for e in entries]),
        avg_period_length=_positive_mean([e.period_length for e in entries]),
        total_cycles=len(entries),
        default_cycle_length=cfg.cycle.default_cycle_length_days,
        default_period_length=cfg.cycle.default_period_length_days,
    )


def regularity(
    entries: list[CycleEntry], config: RegularityConfig | None = None
) -> Regularity:
    """Classify cycle-length variability.

    Args:
        entries: Every entry for the user; entries without a cycle length
                 are skipped.
        config:  Breakpoints (defaults: < 3 Regular, < 7 Normal).

    Returns:
        Regularity.normal when fewer than ``min_cycles`` lengths are known.
    """
    rc = config or get_tracking_config().regularity
    lengths = [e.cycle_length for e in entries if e.cycle_length is not None]
    if len(lengths) < rc.min_cycles or len(lengths) < 2:
        return Regularity.normal

    stddev = statistics.pstdev(lengths)
    if stddev < rc.regular_below_stddev:
        return Regularity.regular
    if stddev < rc.normal_below_stddev:
        return Regularity.normal
    return Regularity.irregular
