"""Per-user cycle and period length preferences."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import CurrentUser, CycleServiceDep
from src.models.cycles import CyclePreferencesRead, CyclePreferencesUpdate

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=CyclePreferencesRead | None)
async def get_preferences(user: CurrentUser, service: CycleServiceDep) -> Any:
    return await service.get_preferences(user.owner_id)


@router.post("", response_model=CyclePreferencesRead)
async def save_preferences(
    user: CurrentUser, body: CyclePreferencesUpdate, service: CycleServiceDep
) -> Any:
    if not body.model_dump(exclude_none=True):
        raise HTTPException(status_code=400, detail="No preferences provided")
    return await service.save_preferences(user.owner_id, body)
