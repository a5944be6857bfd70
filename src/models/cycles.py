"""Pydantic models for the period tracker: cycles, symptoms, predictions,
preferences, statistics, insights and the dashboard."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Annotated

from pydantic import Field, model_validator

from src.models.base import FitFareBase, TimestampMixin
from src.tracking.aggregates import Regularity

SymptomTag = Annotated[str, Field(min_length=1, max_length=64)]


# ---------- Enums ----------

class SymptomSeverity(str, Enum):
    mild = "mild"
    moderate = "moderate"
    severe = "severe"


# ---------- Symptoms ----------

class SymptomCreate(FitFareBase):
    cycle_id: uuid.UUID
    symptom_type: SymptomTag
    severity: SymptomSeverity = SymptomSeverity.mild
    symptom_date: date | None = None
    notes: str | None = None


class SymptomRead(FitFareBase):
    symptom_id: uuid.UUID
    cycle_id: uuid.UUID | None = None
    owner_id: uuid.UUID
    symptom_type: str
    severity: SymptomSeverity
    symptom_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None


class SymptomBatchCreate(FitFareBase):
    """Symptoms logged against a calendar day rather than a cycle."""

    selected_symptoms: list[SymptomTag] = Field(alias="selectedSymptoms", max_length=50)
    selected_date: date | None = Field(default=None, alias="selectedDate")


class SymptomStatistic(FitFareBase):
    symptom_type: str
    occurrence_count: int
    avg_severity: float


class CommonSymptom(FitFareBase):
    symptom_type: str
    count: int


# ---------- Cycles ----------

class CycleCreate(FitFareBase):
    period_start_date: date
    period_end_date: date | None = None
    flow_intensity: str | None = Field(default=None, max_length=32)
    fluid_type: str | None = Field(default=None, max_length=32)
    notes: str | None = None
    symptoms: list[SymptomTag] = Field(default_factory=list, max_length=50)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> CycleCreate:
        if self.period_end_date and self.period_end_date < self.period_start_date:
            raise ValueError("period_end_date must not be before period_start_date")
        return self


class PeriodStartCreate(FitFareBase):
    """Quick "my period started" log from the calendar picker."""

    selected_date: date = Field(alias="selectedDate")


class CycleUpdate(FitFareBase):
    period_end_date: date | None = None
    flow_intensity: str | None = Field(default=None, max_length=32)
    fluid_type: str | None = Field(default=None, max_length=32)
    notes: str | None = None


class CycleSummary(FitFareBase):
    cycle_id: uuid.UUID | None = None
    owner_id: uuid.UUID | None = None
    period_start_date: date
    period_end_date: date | None = None
    period_length: int | None = None
    cycle_length: int | None = None
    flow_intensity: str | None = None
    fluid_type: str | None = None
    notes: str | None = None


class CycleRead(CycleSummary, TimestampMixin):
    cycle_id: uuid.UUID
    owner_id: uuid.UUID
    symptoms: list[SymptomRead] = Field(default_factory=list)


# ---------- Preferences ----------

class CyclePreferencesUpdate(FitFareBase):
    cycle_length: int | None = Field(default=None, ge=1, le=120)
    period_length: int | None = Field(default=None, ge=1, le=31)


class CyclePreferencesRead(FitFareBase, TimestampMixin):
    owner_id: uuid.UUID
    cycle_length: int | None = None
    period_length: int | None = None


# ---------- Predictions ----------

class PredictionRead(FitFareBase):
    prediction_id: uuid.UUID | None = None
    next_period_date: date
    ovulation_date: date
    fertile_window_start: date
    fertile_window_end: date
    confidence_score: float
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CycleLogRead(CycleRead):
    """A freshly logged cycle plus the prediction it refreshed, if any."""

    prediction: PredictionRead | None = None


class NextPeriodRequest(FitFareBase):
    last_period_date: date = Field(alias="lastPeriodDate")


class NextPeriodResponse(FitFareBase):
    predicted_days: int
    predicted_date: date
    predicted_date_display: str
    cycle_length: int
    confidence: str
    ovulation_date: date
    fertile_window_start: date
    fertile_window_end: date


# ---------- Aggregates ----------

class CycleStatisticsRead(FitFareBase):
    avg_cycle_length: float | None = None
    avg_period_length: float | None = None
    total_cycles: int
    common_symptoms: list[CommonSymptom] = Field(default_factory=list)


class CycleInsightsRead(FitFareBase):
    avg_cycle_length: int | None = None
    avg_period_length: int | None = None
    previous_cycle_length: int | None = None
    previous_period_length: int | None = None
    total_cycles: int
    regularity: Regularity
    most_common_symptoms: list[SymptomStatistic] = Field(default_factory=list)
    recent_cycles: list[CycleSummary] = Field(default_factory=list)


class CompletedCycleInsightRead(FitFareBase):
    previous_cycle_length: int | None = None
    previous_period_length: int | None = None


class DashboardRead(FitFareBase):
    next_period_days: int
    next_period_date: date | None = None
    current_cycle_day: int
    current_cycle: CycleSummary | None = None
    avg_cycle_length: int
    avg_period_length: int
    insights: CompletedCycleInsightRead
