"""Daily sign-in streak endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from src.dependencies import CurrentUser, StreakServiceDep
from src.models.streaks import StreakRead

router = APIRouter(prefix="/streak", tags=["streak"])


@router.get("", response_model=StreakRead)
async def get_streak(user: CurrentUser, service: StreakServiceDep) -> Any:
    return await service.get_streak(user.owner_id)


@router.post("/check-in", response_model=StreakRead)
async def check_in(user: CurrentUser, service: StreakServiceDep) -> Any:
    """Record today's activity for a client that is already signed in."""
    return await service.record_sign_in(user.owner_id)
