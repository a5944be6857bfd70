"""Pydantic models for the daily sign-in streak."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import Field

from src.models.base import FitFareBase, TimestampMixin
from src.tracking.streak import WeekdayStatus, default_week


class StreakRead(FitFareBase, TimestampMixin):
    owner_id: uuid.UUID
    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    last_login_date: date | None = None
    weekly_status: dict[str, WeekdayStatus] = Field(default_factory=default_week)
