"""Daily sign-in streak persistence.

``record_sign_in`` runs ensure-row → lock row → transition → write in one
transaction, so two near-simultaneous sign-ins for the same user are applied
one after the other.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from src.services.cycle_store import StreakRepositoryFactory, streak_repository
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.streak import StreakRecord, advance_streak, normalize_week
from src.tracking.temporal import ReferenceClock

logger = logging.getLogger("fitfare.services.streaks")


def record_from_row(row: dict[str, Any]) -> StreakRecord:
    return StreakRecord(
        owner_id=row["owner_id"],
        current_streak=int(row.get("current_streak") or 0),
        longest_streak=int(row.get("longest_streak") or 0),
        last_login_date=row.get("last_login_date"),
        weekly_status=normalize_week(row.get("weekly_status")),
    )


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    return {**row, "weekly_status": normalize_week(row.get("weekly_status"))}


class StreakService:
    def __init__(
        self,
        repositories: StreakRepositoryFactory = streak_repository,
        clock: ReferenceClock | None = None,
        config: TrackingConfig | None = None,
    ) -> None:
        cfg = config or get_tracking_config()
        self._repositories = repositories
        self._clock = clock or ReferenceClock(cfg.reference_timezone)

    async def get_streak(self, owner_id: uuid.UUID) -> dict[str, Any]:
        """Return the owner's streak row, creating the default row if needed."""
        async with self._repositories(owner_id) as repo:
            await repo.ensure(owner_id)
            row = await repo.get(owner_id)
        if row is None:
            raise RuntimeError(f"Streak row missing after ensure for owner={owner_id}")
        return _serialize(row)

    async def record_sign_in(self, owner_id: uuid.UUID) -> dict[str, Any]:
        """Advance the streak for one successful sign-in today."""
        today = self._clock.today()
        async with self._repositories(owner_id) as repo:
            await repo.ensure(owner_id)
            row = await repo.get(owner_id, for_update=True)
            if row is None:
                raise RuntimeError(f"Streak row missing after ensure for owner={owner_id}")
            before = record_from_row(row)
            after = advance_streak(before, today)
            saved = await repo.save(after)

        logger.info(
            "Streak for owner=%s: %d → %d (longest %d) on %s",
            owner_id,
            before.current_streak,
            after.current_streak,
            after.longest_streak,
            today,
        )
        return _serialize(saved)

    async def record_sign_in_for_clerk_user(self, clerk_user_id: str) -> dict[str, Any] | None:
        """Resolve a Clerk user to an owner and record a sign-in.

        Returns None when the Clerk user has not been provisioned yet.
        """
        async with self._repositories(None) as repo:
            owner_id = await repo.owner_for_clerk_user(clerk_user_id)
        if owner_id is None:
            logger.warning("No FitFare user for clerk_user_id=%s; streak not updated", clerk_user_id)
            return None
        return await self.record_sign_in(owner_id)
