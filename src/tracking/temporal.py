"""Calendar arithmetic in the fixed reference civil calendar.

Every "today" in the cycle and streak engines is read from a clock anchored
to one reference timezone (``Asia/Kolkata`` unless configured otherwise),
regardless of where the request came from.  The clock is injected so tests
can pin "now".

Usage::

    clock = ReferenceClock(ZoneInfo("Asia/Kolkata"))
    today = today_in_reference_zone(clock)
    days_between(date(2024, 1, 1), today)
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

WEEKDAY_KEYS: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DEFAULT_REFERENCE_ZONE = ZoneInfo("Asia/Kolkata")


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------


class ReferenceClock:
    """Wall clock read in the reference timezone."""

    def __init__(self, tz: tzinfo = DEFAULT_REFERENCE_ZONE) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(ReferenceClock):
    """Clock pinned to a single instant.  Used by tests and backfills."""

    def __init__(self, instant: datetime | date, tz: tzinfo = DEFAULT_REFERENCE_ZONE) -> None:
        super().__init__(tz)
        if not isinstance(instant, datetime):
            instant = datetime(instant.year, instant.month, instant.day, 12, 0, tzinfo=tz)
        elif instant.tzinfo is None:
            instant = instant.replace(tzinfo=tz)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant.astimezone(self.tz)


# ---------------------------------------------------------------------------
# Pure date helpers
# ---------------------------------------------------------------------------


def _as_date(value: date | datetime) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def today_in_reference_zone(clock: ReferenceClock | None = None) -> date:
    """Return the current calendar date in the reference timezone."""
    return (clock or ReferenceClock()).today()


def days_between(a: date | datetime, b: date | datetime) -> int:
    """Signed whole-day count ``b - a``.

    Both inputs are truncated to midnight first, so time-of-day never
    perturbs the result.
    """
    return (_as_date(b) - _as_date(a)).days


def add_days(d: date, days: int) -> date:
    return _as_date(d) + timedelta(days=days)


def week_start(d: date | datetime) -> date:
    """Monday of the ISO week containing ``d``."""
    day = _as_date(d)
    return day - timedelta(days=day.weekday())


def same_iso_week(a: date | datetime, b: date | datetime) -> bool:
    return week_start(a) == week_start(b)


def weekday_key(d: date | datetime) -> str:
    """Monday-indexed weekday key: ``mon`` .. ``sun``."""
    return WEEKDAY_KEYS[_as_date(d).weekday()]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (28.5 -> 29).

    Python's ``round`` uses banker's rounding, which would turn an average
    cycle of 28.5 days into 28.
    """
    return math.floor(value + 0.5)
