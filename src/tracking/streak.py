"""Daily sign-in streak state machine.

One transition fires per sign-in (or equivalent activity event):

- same day as the last sign-in: counters unchanged, today's bubble marked
- the day after: streak continues (+1)
- any longer gap, or first ever sign-in: streak restarts at 1

The weekly map tracks the current ISO week only and is reset to all
``pending`` whenever the sign-in falls in a different week from the last one.
``longest_streak`` is the running maximum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from src.tracking.temporal import WEEKDAY_KEYS, add_days, same_iso_week, weekday_key

logger = logging.getLogger("fitfare.tracking.streak")


class WeekdayStatus(str, Enum):
    pending = "pending"
    done = "done"


def default_week() -> dict[str, WeekdayStatus]:
    return {key: WeekdayStatus.pending for key in WEEKDAY_KEYS}


def normalize_week(raw: Mapping[str, Any] | None) -> dict[str, WeekdayStatus]:
    """Return a map with exactly the seven weekday keys.

    Missing keys default to ``pending``; unknown keys and unrecognised values
    are dropped.
    """
    week = default_week()
    for key, value in (raw or {}).items():
        if key not in week:
            continue
        try:
            week[key] = WeekdayStatus(value)
        except ValueError:
            logger.debug("Ignoring unknown weekday status %r for %s", value, key)
    return week


@dataclass
class StreakRecord:
    """Per-user streak state.  Exactly one row per user."""

    owner_id: UUID | None = None
    current_streak: int = 0
    longest_streak: int = 0
    last_login_date: date | None = None
    weekly_status: dict[str, WeekdayStatus] = field(default_factory=default_week)

    def weekly_status_json(self) -> dict[str, str]:
        return {key: status.value for key, status in normalize_week(self.weekly_status).items()}


def advance_streak(record: StreakRecord, today: date) -> StreakRecord:
    """Apply one sign-in on ``today`` and return the new state.

    Args:
        record: State before the sign-in (a freshly created row has
                ``current_streak=0`` and no ``last_login_date``).
        today:  Sign-in date in the reference calendar.

    Returns:
        A new StreakRecord; the input is not modified.
    """
    last = record.last_login_date
    week = normalize_week(record.weekly_status)
    current = record.current_streak

    if last == today:
        pass
    elif last == add_days(today, -1):
        current += 1
        if not same_iso_week(last, today):
            week = default_week()
    else:
        current = 1
        if last is None or not same_iso_week(last, today):
            week = default_week()

    week[weekday_key(today)] = WeekdayStatus.done

    return replace(
        record,
        current_streak=current,
        longest_streak=max(record.longest_streak, current),
        last_login_date=today,
        weekly_status=week,
    )
