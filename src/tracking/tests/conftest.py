"""Shared fixtures and in-memory repositories for tracking engine, service
and router tests."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any, AsyncGenerator
from uuid import UUID

import pytest

from src.services.cycles import CycleService
from src.services.streaks import StreakService
from src.tracking.config_loader import TrackingConfig, load_tracking_config
from src.tracking.cycle_inference import CycleEntry
from src.tracking.prediction import CyclePrediction
from src.tracking.streak import StreakRecord, default_week
from src.tracking.temporal import FixedClock

# Canonical test users
TEST_OWNER_ID = UUID("12345678-1234-5678-1234-567812345678")
OTHER_OWNER_ID = UUID("87654321-4321-8765-4321-876543218765")
TEST_CLERK_USER_ID = "user_2testFitFare"

# Friday
TEST_DATE = date(2024, 3, 15)

_SEVERITY_SCORES = {"mild": 1, "moderate": 2, "severe": 3}


def make_entry(
    start: date,
    cycle_length: int | None = None,
    period_length: int | None = None,
    end: date | None = None,
) -> CycleEntry:
    return CycleEntry(
        cycle_id=uuid.uuid4(),
        owner_id=TEST_OWNER_ID,
        period_start_date=start,
        period_end_date=end,
        period_length=period_length,
        cycle_length=cycle_length,
    )


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Tables as plain dicts, shared by every fake repository of one test."""

    def __init__(self) -> None:
        self.cycles: dict[UUID, dict[str, Any]] = {}
        self.symptoms: dict[UUID, dict[str, Any]] = {}
        self.predictions: dict[UUID, dict[str, Any]] = {}
        self.preferences: dict[UUID, dict[str, Any]] = {}
        self.streaks: dict[UUID, dict[str, Any]] = {}
        self.users: dict[str, UUID] = {}
        self.fail_prediction_writes = False
        self.locked_owners: list[UUID] = []
        self._seq = 0

    def next_timestamp(self) -> datetime:
        self._seq += 1
        return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._seq)

    def seed_cycle(self, owner_id: UUID = TEST_OWNER_ID, **fields: Any) -> dict[str, Any]:
        now = self.next_timestamp()
        row = {
            "cycle_id": uuid.uuid4(),
            "owner_id": owner_id,
            "period_end_date": None,
            "period_length": None,
            "cycle_length": None,
            "flow_intensity": None,
            "fluid_type": None,
            "notes": None,
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        self.cycles[row["cycle_id"]] = row
        return row


class FakeCycleRepository:
    """Mirrors ``CycleRepository`` over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def lock_owner(self, owner_id: UUID) -> None:
        self.store.locked_owners.append(owner_id)

    async def list_for_owner(self, owner_id: UUID, limit: int | None = None) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self.store.cycles.values() if r["owner_id"] == owner_id]
        rows.sort(key=lambda r: (r["period_start_date"], r["created_at"]), reverse=True)
        return rows[:limit] if limit is not None else rows

    async def latest_for_owner(self, owner_id: UUID) -> dict[str, Any] | None:
        rows = await self.list_for_owner(owner_id, limit=1)
        return rows[0] if rows else None

    async def get(self, cycle_id: UUID, owner_id: UUID) -> dict[str, Any] | None:
        row = self.store.cycles.get(cycle_id)
        if row is None or row["owner_id"] != owner_id:
            return None
        return dict(row)

    async def insert(self, owner_id: UUID, **fields: Any) -> dict[str, Any]:
        return dict(self.store.seed_cycle(owner_id, **fields))

    async def set_cycle_length(self, cycle_id: UUID, cycle_length: int) -> None:
        row = self.store.cycles[cycle_id]
        if row["cycle_length"] is None:
            row["cycle_length"] = cycle_length

    async def update(
        self, cycle_id: UUID, owner_id: UUID, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        row = self.store.cycles.get(cycle_id)
        if row is None or row["owner_id"] != owner_id:
            return None
        row.update(updates)
        row["updated_at"] = self.store.next_timestamp()
        return dict(row)

    async def delete(self, cycle_id: UUID, owner_id: UUID) -> bool:
        row = self.store.cycles.get(cycle_id)
        if row is None or row["owner_id"] != owner_id:
            return False
        del self.store.cycles[cycle_id]
        for sid in [s for s, r in self.store.symptoms.items() if r["cycle_id"] == cycle_id]:
            del self.store.symptoms[sid]
        return True

    async def add_symptom(
        self,
        owner_id: UUID,
        cycle_id: UUID | None,
        symptom_type: str,
        severity: str,
        symptom_date: date | None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        row = {
            "symptom_id": uuid.uuid4(),
            "owner_id": owner_id,
            "cycle_id": cycle_id,
            "symptom_type": symptom_type,
            "severity": severity,
            "symptom_date": symptom_date,
            "notes": notes,
            "created_at": self.store.next_timestamp(),
        }
        self.store.symptoms[row["symptom_id"]] = row
        return dict(row)

    async def symptoms_for_cycles(
        self, cycle_ids: list[UUID], owner_id: UUID
    ) -> dict[UUID, list[dict[str, Any]]]:
        grouped: dict[UUID, list[dict[str, Any]]] = {cid: [] for cid in cycle_ids}
        for r in self.store.symptoms.values():
            if r["cycle_id"] in grouped and r["owner_id"] == owner_id:
                grouped[r["cycle_id"]].append(dict(r))
        return grouped

    def _owned_symptoms(self, owner_id: UUID) -> list[dict[str, Any]]:
        return [r for r in self.store.symptoms.values() if r["owner_id"] == owner_id]

    async def symptom_statistics(self, owner_id: UUID) -> list[dict[str, Any]]:
        by_type: dict[str, list[int]] = {}
        for r in self._owned_symptoms(owner_id):
            by_type.setdefault(r["symptom_type"], []).append(_SEVERITY_SCORES.get(r["severity"], 0))
        stats = [
            {
                "symptom_type": name,
                "occurrence_count": len(scores),
                "avg_severity": round(sum(scores) / len(scores), 2),
            }
            for name, scores in by_type.items()
        ]
        stats.sort(key=lambda s: (-s["occurrence_count"], s["symptom_type"]))
        return stats

    async def most_common_symptoms(self, owner_id: UUID, limit: int) -> list[dict[str, Any]]:
        stats = await self.symptom_statistics(owner_id)
        return [{"symptom_type": s["symptom_type"], "count": s["occurrence_count"]} for s in stats[:limit]]

    async def delete_symptom(self, symptom_id: UUID, owner_id: UUID) -> bool:
        row = self.store.symptoms.get(symptom_id)
        if row is None or row["owner_id"] != owner_id:
            return False
        del self.store.symptoms[symptom_id]
        return True

    async def list_symptoms(self, owner_id: UUID) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self.store.symptoms.values() if r["owner_id"] == owner_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def get_preferences(self, owner_id: UUID) -> dict[str, Any] | None:
        row = self.store.preferences.get(owner_id)
        return dict(row) if row else None

    async def upsert_preferences(
        self, owner_id: UUID, cycle_length: int | None, period_length: int | None
    ) -> dict[str, Any]:
        now = self.store.next_timestamp()
        row = self.store.preferences.setdefault(
            owner_id,
            {"owner_id": owner_id, "cycle_length": None, "period_length": None, "created_at": now},
        )
        if cycle_length is not None:
            row["cycle_length"] = cycle_length
        if period_length is not None:
            row["period_length"] = period_length
        row["updated_at"] = now
        return dict(row)

    async def current_prediction(self, owner_id: UUID) -> dict[str, Any] | None:
        row = self.store.predictions.get(owner_id)
        return dict(row) if row else None

    async def upsert_prediction(self, owner_id: UUID, prediction: CyclePrediction) -> dict[str, Any]:
        if self.store.fail_prediction_writes:
            raise ConnectionError("prediction table unavailable")
        now = self.store.next_timestamp()
        existing = self.store.predictions.get(owner_id)
        row = {
            "prediction_id": existing["prediction_id"] if existing else uuid.uuid4(),
            "owner_id": owner_id,
            "next_period_date": prediction.next_period_date,
            "ovulation_date": prediction.ovulation_date,
            "fertile_window_start": prediction.fertile_window_start,
            "fertile_window_end": prediction.fertile_window_end,
            "confidence_score": prediction.confidence_score,
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        self.store.predictions[owner_id] = row
        return dict(row)


class FakeStreakRepository:
    """Mirrors ``StreakRepository`` over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def ensure(self, owner_id: UUID) -> None:
        if owner_id not in self.store.streaks:
            now = self.store.next_timestamp()
            self.store.streaks[owner_id] = {
                "owner_id": owner_id,
                "current_streak": 0,
                "longest_streak": 0,
                "last_login_date": None,
                "weekly_status": {k: v.value for k, v in default_week().items()},
                "created_at": now,
                "updated_at": now,
            }

    async def get(self, owner_id: UUID, for_update: bool = False) -> dict[str, Any] | None:
        row = self.store.streaks.get(owner_id)
        return dict(row) if row else None

    async def save(self, record: StreakRecord) -> dict[str, Any]:
        row = self.store.streaks[record.owner_id]
        row.update(
            current_streak=record.current_streak,
            longest_streak=record.longest_streak,
            last_login_date=record.last_login_date,
            weekly_status=record.weekly_status_json(),
            updated_at=self.store.next_timestamp(),
        )
        return dict(row)

    async def owner_for_clerk_user(self, clerk_user_id: str) -> UUID | None:
        return self.store.users.get(clerk_user_id)


class InMemoryRepositories:
    """Repository factories with the same call shape as the asyncpg ones."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    @asynccontextmanager
    async def cycles(self, owner_id: UUID | None) -> AsyncGenerator[FakeCycleRepository, None]:
        yield FakeCycleRepository(self.store)

    @asynccontextmanager
    async def streaks(self, owner_id: UUID | None) -> AsyncGenerator[FakeStreakRepository, None]:
        yield FakeStreakRepository(self.store)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tracking_config() -> TrackingConfig:
    """Load the real tracking config for tests."""
    return load_tracking_config()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TEST_DATE)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.users[TEST_CLERK_USER_ID] = TEST_OWNER_ID
    return s


@pytest.fixture
def cycle_service(
    store: InMemoryStore, clock: FixedClock, tracking_config: TrackingConfig
) -> CycleService:
    return CycleService(
        repositories=InMemoryRepositories(store).cycles, clock=clock, config=tracking_config
    )


@pytest.fixture
def streak_service(
    store: InMemoryStore, clock: FixedClock, tracking_config: TrackingConfig
) -> StreakService:
    return StreakService(
        repositories=InMemoryRepositories(store).streaks, clock=clock, config=tracking_config
    )
