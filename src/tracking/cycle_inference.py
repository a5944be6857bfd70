"""Derived fields of logged periods.

A cycle's length is only known once the *next* period is logged, so each new
entry back-fills the ``cycle_length`` of the entry before it.  Out-of-order
logging (a start date on or before the newest existing start) is ignored
rather than treated as an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from src.tracking.temporal import days_between

logger = logging.getLogger("fitfare.tracking.cycle_inference")


@dataclass
class CycleEntry:
    """One logged menstrual period.

    Attributes:
        cycle_id:          Database identifier (None before insert).
        owner_id:          Owning user.
        period_start_date: First day of bleeding; anchors every derived field.
        period_end_date:   Last day of bleeding, set when the period is closed.
        period_length:     Inclusive day count start..end, None while open.
        cycle_length:      Days from this start to the next entry's start.
                           Written retroactively when the next entry arrives.
    """

    cycle_id: UUID | None
    owner_id: UUID | None
    period_start_date: date
    period_end_date: date | None = None
    period_length: int | None = None
    cycle_length: int | None = None
    flow_intensity: str | None = None
    fluid_type: str | None = None
    notes: str | None = None

    @property
    def has_known_cycle_length(self) -> bool:
        return self.cycle_length is not None and self.cycle_length > 0

    @classmethod
    def from_row(cls, row: dict) -> CycleEntry:
        return cls(
            cycle_id=row.get("cycle_id"),
            owner_id=row.get("owner_id"),
            period_start_date=row["period_start_date"],
            period_end_date=row.get("period_end_date"),
            period_length=row.get("period_length"),
            cycle_length=row.get("cycle_length"),
            flow_intensity=row.get("flow_intensity"),
            fluid_type=row.get("fluid_type"),
            notes=row.get("notes"),
        )


@dataclass(frozen=True)
class BackfillDecision:
    """Outcome of comparing a new start date with the newest prior entry.

    Attributes:
        gap_days:        ``new_start - prior.start`` (None without a prior).
        backfill_length: Value to persist on the prior entry, or None when
                         nothing should be written.
    """

    gap_days: int | None
    backfill_length: int | None

    @property
    def should_backfill(self) -> bool:
        return self.backfill_length is not None


def inclusive_period_length(start: date, end: date | None) -> int | None:
    """Period length counting both ends: D..D+3 is 4 days."""
    if end is None:
        return None
    return days_between(start, end) + 1


def infer_cycle_gap(prior: CycleEntry | None, new_start: date) -> BackfillDecision:
    """Decide what, if anything, a new entry writes onto its predecessor.

    Args:
        prior:     Most recent existing entry by start date (excluding the new one).
        new_start: Start date of the entry being logged.

    Returns:
        BackfillDecision.  ``backfill_length`` is set only for a positive gap
        when the prior entry has no stored ``cycle_length`` yet.
    """
    if prior is None:
        return BackfillDecision(gap_days=None, backfill_length=None)

    gap = days_between(prior.period_start_date, new_start)
    if gap <= 0:
        logger.debug(
            "Ignoring out-of-order period start %s (newest existing start %s, gap %d)",
            new_start,
            prior.period_start_date,
            gap,
        )
        return BackfillDecision(gap_days=gap, backfill_length=None)

    if prior.cycle_length:
        return BackfillDecision(gap_days=gap, backfill_length=None)

    return BackfillDecision(gap_days=gap, backfill_length=gap)


def newest_entry(entries: list[CycleEntry]) -> CycleEntry | None:
    """Entry with the latest start date, or None for an empty history."""
    if not entries:
        return None
    return max(entries, key=lambda e: e.period_start_date)
