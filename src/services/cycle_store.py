"""asyncpg repositories for cycles, symptoms, predictions and streaks.

Each repository wraps one connection that is already inside a transaction
(see ``src.services.database.get_connection``), so every call made through
the same repository instance commits or rolls back together.

Usage::

    async with cycle_repository(owner_id) as repo:
        await repo.lock_owner(owner_id)
        prior = await repo.latest_for_owner(owner_id)
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncContextManager, AsyncGenerator, Callable

import asyncpg

from src.services.database import get_connection
from src.tracking.prediction import CyclePrediction
from src.tracking.streak import StreakRecord

# Columns a cycle PATCH may touch
UPDATABLE_CYCLE_COLUMNS = frozenset(
    {"period_end_date", "period_length", "flow_intensity", "fluid_type", "notes"}
)


class CycleRepository:
    """Cycle entries, their symptoms, and the current prediction."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    # ---------- Cycles ----------

    async def lock_owner(self, owner_id: uuid.UUID) -> None:
        """Serialize cycle writes for one owner until the transaction ends."""
        await self._conn.execute(
            "SELECT pg_advisory_xact_lock(hashtext($1))", f"cycles:{owner_id}"
        )

    async def list_for_owner(
        self, owner_id: uuid.UUID, limit: int | None = None
    ) -> list[dict[str, Any]]:
        rows = await self._conn.fetch(
            """
            SELECT * FROM cycles
            WHERE owner_id = $1
            ORDER BY period_start_date DESC, created_at DESC
            LIMIT $2
            """,
            owner_id, limit,
        )
        return [dict(r) for r in rows]

    async def latest_for_owner(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        rows = await self.list_for_owner(owner_id, limit=1)
        return rows[0] if rows else None

    async def get(self, cycle_id: uuid.UUID, owner_id: uuid.UUID) -> dict[str, Any] | None:
        row = await self._conn.fetchrow(
            "SELECT * FROM cycles WHERE cycle_id = $1 AND owner_id = $2",
            cycle_id, owner_id,
        )
        return dict(row) if row else None

    async def insert(
        self,
        owner_id: uuid.UUID,
        *,
        period_start_date: date,
        period_end_date: date | None,
        period_length: int | None,
        flow_intensity: str | None,
        fluid_type: str | None,
        notes: str | None,
    ) -> dict[str, Any]:
        row = await self._conn.fetchrow(
            """
            INSERT INTO cycles (
                cycle_id, owner_id, period_start_date, period_end_date,
                period_length, cycle_length, flow_intensity, fluid_type, notes
            ) VALUES (gen_random_uuid(), $1, $2, $3, $4, NULL, $5, $6, $7)
            RETURNING *
            """,
            owner_id, period_start_date, period_end_date, period_length,
            flow_intensity, fluid_type, notes,
        )
        return dict(row)

    async def set_cycle_length(self, cycle_id: uuid.UUID, cycle_length: int) -> None:
        """Back-fill a cycle length; an already stored value is never overwritten."""
        await self._conn.execute(
            """
            UPDATE cycles SET cycle_length = $2, updated_at = NOW()
            WHERE cycle_id = $1 AND cycle_length IS NULL
            """,
            cycle_id, cycle_length,
        )

    async def update(
        self, cycle_id: uuid.UUID, owner_id: uuid.UUID, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        unknown = set(updates) - UPDATABLE_CYCLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update cycle columns: {sorted(unknown)}")

        set_clauses = []
        params: list[Any] = [cycle_id, owner_id]
        for i, (key, value) in enumerate(updates.items(), start=3):
            set_clauses.append(f"{key} = ${i}")
            params.append(value)
        set_clauses.append("updated_at = NOW()")

        row = await self._conn.fetchrow(
            f"""
            UPDATE cycles SET {', '.join(set_clauses)}
            WHERE cycle_id = $1 AND owner_id = $2
            RETURNING *
            """,
            *params,
        )
        return dict(row) if row else None

    async def delete(self, cycle_id: uuid.UUID, owner_id: uuid.UUID) -> bool:
        result = await self._conn.execute(
            "DELETE FROM cycles WHERE cycle_id = $1 AND owner_id = $2",
            cycle_id, owner_id,
        )
        return result != "DELETE 0"

    # ---------- Symptoms ----------

    async def add_symptom(
        self,
        owner_id: uuid.UUID,
        cycle_id: uuid.UUID | None,
        symptom_type: str,
        severity: str,
        symptom_date: date | None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        row = await self._conn.fetchrow(
            """
            INSERT INTO symptoms (
                symptom_id, owner_id, cycle_id, symptom_type, severity, symptom_date, notes
            ) VALUES (gen_random_uuid(), $1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            owner_id, cycle_id, symptom_type, severity, symptom_date, notes,
        )
        return dict(row)

    async def symptoms_for_cycles(
        self, cycle_ids: list[uuid.UUID], owner_id: uuid.UUID
    ) -> dict[uuid.UUID, list[dict[str, Any]]]:
        grouped: dict[uuid.UUID, list[dict[str, Any]]] = {cid: [] for cid in cycle_ids}
        if not cycle_ids:
            return grouped
        rows = await self._conn.fetch(
            """
            SELECT * FROM symptoms
            WHERE cycle_id = ANY($1::uuid[]) AND owner_id = $2
            ORDER BY symptom_date DESC NULLS LAST, created_at DESC
            """,
            cycle_ids, owner_id,
        )
        for r in rows:
            grouped.setdefault(r["cycle_id"], []).append(dict(r))
        return grouped

    async def symptom_statistics(self, owner_id: uuid.UUID) -> list[dict[str, Any]]:
        rows = await self._conn.fetch(
            """
            SELECT
                symptom_type,
                COUNT(*) AS occurrence_count,
                ROUND(AVG(
                    CASE severity
                        WHEN 'mild' THEN 1
                        WHEN 'moderate' THEN 2
                        WHEN 'severe' THEN 3
                        ELSE 0
                    END
                ), 2)::float8 AS avg_severity
            FROM symptoms
            WHERE owner_id = $1
            GROUP BY symptom_type
            ORDER BY occurrence_count DESC, symptom_type
            """,
            owner_id,
        )
        return [dict(r) for r in rows]

    async def most_common_symptoms(
        self, owner_id: uuid.UUID, limit: int
    ) -> list[dict[str, Any]]:
        rows = await self._conn.fetch(
            """
            SELECT symptom_type, COUNT(*) AS count
            FROM symptoms
            WHERE owner_id = $1
            GROUP BY symptom_type
            ORDER BY count DESC, symptom_type
            LIMIT $2
            """,
            owner_id, limit,
        )
        return [dict(r) for r in rows]

    async def delete_symptom(self, symptom_id: uuid.UUID, owner_id: uuid.UUID) -> bool:
        result = await self._conn.execute(
            "DELETE FROM symptoms WHERE symptom_id = $1 AND owner_id = $2",
            symptom_id, owner_id,
        )
        return result != "DELETE 0"

    async def list_symptoms(self, owner_id: uuid.UUID) -> list[dict[str, Any]]:
        rows = await self._conn.fetch(
            "SELECT * FROM symptoms WHERE owner_id = $1 ORDER BY created_at DESC",
            owner_id,
        )
        return [dict(r) for r in rows]

    # ---------- Preferences ----------

    async def get_preferences(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        row = await self._conn.fetchrow(
            "SELECT * FROM user_cycle_preferences WHERE owner_id = $1",
            owner_id,
        )
        return dict(row) if row else None

    async def upsert_preferences(
        self,
        owner_id: uuid.UUID,
        cycle_length: int | None,
        period_length: int | None,
    ) -> dict[str, Any]:
        """Insert or update the owner's preferences; a None leaves the stored value."""
        row = await self._conn.fetchrow(
            """
            INSERT INTO user_cycle_preferences (owner_id, cycle_length, period_length)
            VALUES ($1, $2, $3)
            ON CONFLICT (owner_id) DO UPDATE SET
                cycle_length = COALESCE(EXCLUDED.cycle_length, user_cycle_preferences.cycle_length),
                period_length = COALESCE(EXCLUDED.period_length, user_cycle_preferences.period_length),
                updated_at = NOW()
            RETURNING *
            """,
            owner_id, cycle_length, period_length,
        )
        return dict(row)

    # ---------- Predictions ----------

    async def current_prediction(self, owner_id: uuid.UUID) -> dict[str, Any] | None:
        row = await self._conn.fetchrow(
            """
            SELECT * FROM cycle_predictions
            WHERE owner_id = $1
            ORDER BY created_at DESC
            LIMIT 1
            """,
            owner_id,
        )
        return dict(row) if row else None

    async def upsert_prediction(
        self, owner_id: uuid.UUID, prediction: CyclePrediction
    ) -> dict[str, Any]:
        """Overwrite the newest prediction row, or insert the first one."""
        existing = await self.current_prediction(owner_id)
        values = (
            prediction.next_period_date,
            prediction.ovulation_date,
            prediction.fertile_window_start,
            prediction.fertile_window_end,
            prediction.confidence_score,
        )
        if existing:
            row = await self._conn.fetchrow(
                """
                UPDATE cycle_predictions SET
                    next_period_date = $2,
                    ovulation_date = $3,
                    fertile_window_start = $4,
                    fertile_window_end = $5,
                    confidence_score = $6,
                    updated_at = NOW()
                WHERE prediction_id = $1
                RETURNING *
                """,
                existing["prediction_id"], *values,
            )
        else:
            row = await self._conn.fetchrow(
                """
                INSERT INTO cycle_predictions (
                    prediction_id, owner_id, next_period_date, ovulation_date,
                    fertile_window_start, fertile_window_end, confidence_score
                ) VALUES (gen_random_uuid(), $1, $2, $3, $4, $5, $6)
                RETURNING *
                """,
                owner_id, *values,
            )
        return dict(row)


class StreakRepository:
    """The single ``user_streaks`` row per owner."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def ensure(self, owner_id: uuid.UUID) -> None:
        await self._conn.execute(
            "INSERT INTO user_streaks (owner_id) VALUES ($1) ON CONFLICT (owner_id) DO NOTHING",
            owner_id,
        )

    async def get(self, owner_id: uuid.UUID, for_update: bool = False) -> dict[str, Any] | None:
        query = "SELECT * FROM user_streaks WHERE owner_id = $1"
        if for_update:
            query += " FOR UPDATE"
        row = await self._conn.fetchrow(query, owner_id)
        return dict(row) if row else None

    async def save(self, record: StreakRecord) -> dict[str, Any]:
        row = await self._conn.fetchrow(
            """
            UPDATE user_streaks SET
                current_streak = $2,
                longest_streak = $3,
                last_login_date = $4,
                weekly_status = $5,
                updated_at = NOW()
            WHERE owner_id = $1
            RETURNING *
            """,
            record.owner_id,
            record.current_streak,
            record.longest_streak,
            record.last_login_date,
            record.weekly_status_json(),
        )
        return dict(row)

    async def owner_for_clerk_user(self, clerk_user_id: str) -> uuid.UUID | None:
        return await self._conn.fetchval(
            "SELECT user_id FROM users WHERE clerk_user_id = $1 AND deleted_at IS NULL",
            clerk_user_id,
        )


# ---------------------------------------------------------------------------
# Transaction-scoped factories
# ---------------------------------------------------------------------------

CycleRepositoryFactory = Callable[[uuid.UUID | None], AsyncContextManager[CycleRepository]]
StreakRepositoryFactory = Callable[[uuid.UUID | None], AsyncContextManager[StreakRepository]]


@asynccontextmanager
async def cycle_repository(owner_id: uuid.UUID | None) -> AsyncGenerator[CycleRepository, None]:
    async with get_connection(user_id=owner_id) as conn:
        yield CycleRepository(conn)


@asynccontextmanager
async def streak_repository(owner_id: uuid.UUID | None) -> AsyncGenerator[StreakRepository, None]:
    async with get_connection(user_id=owner_id) as conn:
        yield StreakRepository(conn)
