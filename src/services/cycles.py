"""Cycle logging, prediction and read projections.

Logging a cycle happens in two steps with separate failure domains:

1. the primary write (lock owner → read newest prior entry → insert →
   back-fill the prior entry's ``cycle_length`` → attach symptoms), all in
   one transaction;
2. a best-effort refresh of the stored prediction in its own transaction.
   A failure there is logged and reported as ``prediction = None``; the
   cycle stays logged.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.models.cycles import (
    CycleCreate,
    CyclePreferencesUpdate,
    CycleUpdate,
    SymptomBatchCreate,
    SymptomCreate,
)
from src.services.cycle_store import CycleRepository, CycleRepositoryFactory, cycle_repository
from src.tracking.aggregates import summarize
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.cycle_inference import (
    CycleEntry,
    inclusive_period_length,
    infer_cycle_gap,
    newest_entry,
)
from src.tracking.dashboard import CycleInsights, Dashboard, build_insights, project_dashboard
from src.tracking.prediction import CyclePrediction, predict_from_date, predict_from_entry
from src.tracking.temporal import ReferenceClock

logger = logging.getLogger("fitfare.services.cycles")


class InvalidCycleUpdate(ValueError):
    """Raised when a PATCH would leave a cycle with inconsistent dates."""


@dataclass
class CycleLogResult:
    cycle: dict[str, Any]
    symptoms: list[dict[str, Any]] = field(default_factory=list)
    prediction: dict[str, Any] | None = None


@dataclass
class NextPeriodResult:
    prediction: CyclePrediction
    today: date

    @property
    def predicted_days(self) -> int:
        return self.prediction.days_until_next_period(self.today)


class CycleService:
    """Orchestrates the tracking engine against the cycle store."""

    def __init__(
        self,
        repositories: CycleRepositoryFactory = cycle_repository,
        clock: ReferenceClock | None = None,
        config: TrackingConfig | None = None,
    ) -> None:
        self._config = config or get_tracking_config()
        self._repositories = repositories
        self._clock = clock or ReferenceClock(self._config.reference_timezone)

    def today(self) -> date:
        return self._clock.today()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def log_cycle(self, owner_id: uuid.UUID, body: CycleCreate) -> CycleLogResult:
        """Log one period and refresh the user's prediction."""
        async with self._repositories(owner_id) as repo:
            await repo.lock_owner(owner_id)

            prior_row = await repo.latest_for_owner(owner_id)
            prior = CycleEntry.from_row(prior_row) if prior_row else None
            decision = infer_cycle_gap(prior, body.period_start_date)

            row = await repo.insert(
                owner_id,
                period_start_date=body.period_start_date,
                period_end_date=body.period_end_date,
                period_length=inclusive_period_length(body.period_start_date, body.period_end_date),
                flow_intensity=body.flow_intensity,
                fluid_type=body.fluid_type,
                notes=body.notes,
            )

            if decision.should_backfill and prior is not None and prior.cycle_id is not None:
                await repo.set_cycle_length(prior.cycle_id, decision.backfill_length)  # type: ignore[arg-type]
                logger.info(
                    "Back-filled cycle_length=%d on cycle=%s for owner=%s",
                    decision.backfill_length,
                    prior.cycle_id,
                    owner_id,
                )

            symptoms = [
                await repo.add_symptom(
                    owner_id,
                    row["cycle_id"],
                    tag,
                    self._config.symptoms.default_severity,
                    body.period_start_date,
                )
                for tag in body.symptoms
            ]

        logger.info(
            "Logged cycle=%s start=%s for owner=%s",
            row["cycle_id"],
            body.period_start_date,
            owner_id,
        )
        prediction = await self._refresh_prediction_best_effort(owner_id)
        return CycleLogResult(cycle=row, symptoms=symptoms, prediction=prediction)

    async def update_cycle(
        self, owner_id: uuid.UUID, cycle_id: uuid.UUID, body: CycleUpdate
    ) -> dict[str, Any] | None:
        """Apply a partial update.  Absent or null fields are left as they are.

        A new end date recomputes ``period_length``; ``cycle_length`` is never
        re-inferred here.

        Raises:
            InvalidCycleUpdate: If the new end date precedes the start date.
        """
        updates = body.model_dump(exclude_unset=True, exclude_none=True)
        async with self._repositories(owner_id) as repo:
            existing = await repo.get(cycle_id, owner_id)
            if existing is None:
                return None
            if not updates:
                return await self._with_symptoms(repo, existing, owner_id)

            end = updates.get("period_end_date")
            if end is not None:
                start = existing["period_start_date"]
                if end < start:
                    raise InvalidCycleUpdate(
                        "period_end_date must not be before period_start_date"
                    )
                updates["period_length"] = inclusive_period_length(start, end)

            row = await repo.update(cycle_id, owner_id, updates)
            if row is None:
                return None
            return await self._with_symptoms(repo, row, owner_id)

    async def delete_cycle(self, owner_id: uuid.UUID, cycle_id: uuid.UUID) -> bool:
        # Neighbouring cycle lengths are left as logged
        async with self._repositories(owner_id) as repo:
            deleted = await repo.delete(cycle_id, owner_id)
        if deleted:
            logger.info("Deleted cycle=%s for owner=%s", cycle_id, owner_id)
        return deleted

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    async def refresh_prediction(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        """Recompute and upsert the prediction from the newest entry."""
        async with self._repositories(owner_id) as repo:
            entries = await self._entries(repo, owner_id)
            latest = newest_entry(entries)
            if latest is None:
                return None
            prediction = predict_from_entry(latest, summarize(entries, self._config), self._config)
            return await repo.upsert_prediction(owner_id, prediction)

    async def _refresh_prediction_best_effort(
        self, owner_id: uuid.UUID
    ) -> dict[str, Any] | None:
        try:
            return await self.refresh_prediction(owner_id)
        except Exception:
            logger.exception("Prediction refresh failed for owner=%s; cycle log kept", owner_id)
            return None

    async def predict_next_period(
        self, owner_id: uuid.UUID, last_period_date: date
    ) -> NextPeriodResult:
        """Predict from a user-supplied date outside the logged history."""
        async with self._repositories(owner_id) as repo:
            entries = await self._entries(repo, owner_id)
            prediction = predict_from_date(
                last_period_date, summarize(entries, self._config), self._config
            )
            await repo.upsert_prediction(owner_id, prediction)
        logger.info(
            "Explicit prediction for owner=%s: next period %s (cycle %d days)",
            owner_id,
            prediction.next_period_date,
            prediction.cycle_length_used,
        )
        return NextPeriodResult(prediction=prediction, today=self.today())

    async def current_prediction(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        async with self._repositories(owner_id) as repo:
            return await repo.current_prediction(owner_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_cycles(self, owner_id: uuid.UUID, limit: int = 50) -> list[dict[str, Any]]:
        async with self._repositories(owner_id) as repo:
            rows = await repo.list_for_owner(owner_id, limit=limit)
            symptoms = await repo.symptoms_for_cycles([r["cycle_id"] for r in rows], owner_id)
        return [{**r, "symptoms": symptoms.get(r["cycle_id"], [])} for r in rows]

    async def get_cycle(self, owner_id: uuid.UUID, cycle_id: uuid.UUID) -> dict[str, Any] | None:
        async with self._repositories(owner_id) as repo:
            row = await repo.get(cycle_id, owner_id)
            if row is None:
                return None
            return await self._with_symptoms(repo, row, owner_id)

    async def statistics(self, owner_id: uuid.UUID) -> dict[str, Any]:
        async with self._repositories(owner_id) as repo:
            stats = summarize(await self._entries(repo, owner_id), self._config)
            common = await repo.most_common_symptoms(
                owner_id, self._config.symptoms.common_symptoms_limit
            )
        return {
            "avg_cycle_length": stats.avg_cycle_length,
            "avg_period_length": stats.avg_period_length,
            "total_cycles": stats.total_cycles,
            "common_symptoms": common,
        }

    async def insights(self, owner_id: uuid.UUID) -> tuple[CycleInsights, list[dict[str, Any]]]:
        async with self._repositories(owner_id) as repo:
            entries = await self._entries(repo, owner_id)
            symptom_stats = await repo.symptom_statistics(owner_id)
        stats = summarize(entries, self._config)
        return build_insights(entries, stats, self.today(), self._config), symptom_stats

    async def dashboard(self, owner_id: uuid.UUID) -> Dashboard:
        async with self._repositories(owner_id) as repo:
            entries = await self._entries(repo, owner_id)
        return project_dashboard(entries, summarize(entries, self._config), self.today())

    # ------------------------------------------------------------------
    # Symptoms
    # ------------------------------------------------------------------

    async def add_symptom(
        self, owner_id: uuid.UUID, body: SymptomCreate
    ) -> dict[str, Any] | None:
        async with self._repositories(owner_id) as repo:
            cycle = await repo.get(body.cycle_id, owner_id)
            if cycle is None:
                return None
            return await repo.add_symptom(
                owner_id,
                body.cycle_id,
                body.symptom_type,
                body.severity.value,
                body.symptom_date or cycle["period_start_date"],
                body.notes,
            )

    async def symptoms_for_cycle(
        self, owner_id: uuid.UUID, cycle_id: uuid.UUID
    ) -> list[dict[str, Any]] | None:
        async with self._repositories(owner_id) as repo:
            if await repo.get(cycle_id, owner_id) is None:
                return None
            grouped = await repo.symptoms_for_cycles([cycle_id], owner_id)
        return grouped.get(cycle_id, [])

    async def symptom_statistics(self, owner_id: uuid.UUID) -> list[dict[str, Any]]:
        async with self._repositories(owner_id) as repo:
            return await repo.symptom_statistics(owner_id)

    async def delete_symptom(self, owner_id: uuid.UUID, symptom_id: uuid.UUID) -> bool:
        async with self._repositories(owner_id) as repo:
            return await repo.delete_symptom(symptom_id, owner_id)

    async def save_symptoms(
        self, owner_id: uuid.UUID, body: SymptomBatchCreate
    ) -> list[dict[str, Any]]:
        """Log symptoms for a calendar day, today when no date is given."""
        symptom_date = body.selected_date or self.today()
        async with self._repositories(owner_id) as repo:
            rows = [
                await repo.add_symptom(
                    owner_id, None, tag, self._config.symptoms.default_severity, symptom_date
                )
                for tag in body.selected_symptoms
            ]
        logger.info("Saved %d symptoms on %s for owner=%s", len(rows), symptom_date, owner_id)
        return rows

    async def list_symptoms(self, owner_id: uuid.UUID) -> list[dict[str, Any]]:
        async with self._repositories(owner_id) as repo:
            return await repo.list_symptoms(owner_id)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        async with self._repositories(owner_id) as repo:
            return await repo.get_preferences(owner_id)

    async def save_preferences(
        self, owner_id: uuid.UUID, body: CyclePreferencesUpdate
    ) -> dict[str, Any]:
        async with self._repositories(owner_id) as repo:
            row = await repo.upsert_preferences(owner_id, body.cycle_length, body.period_length)
        logger.info(
            "Saved preferences cycle_length=%s period_length=%s for owner=%s",
            row["cycle_length"],
            row["period_length"],
            owner_id,
        )
        return row

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _entries(repo: CycleRepository, owner_id: uuid.UUID) -> list[CycleEntry]:
        return [CycleEntry.from_row(r) for r in await repo.list_for_owner(owner_id)]

    @staticmethod
    async def _with_symptoms(
        repo: CycleRepository, row: dict[str, Any], owner_id: uuid.UUID
    ) -> dict[str, Any]:
        grouped = await repo.symptoms_for_cycles([row["cycle_id"]], owner_id)
        return {**row, "symptoms": grouped.get(row["cycle_id"], [])}
