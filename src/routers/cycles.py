"""Period tracker endpoints: log, edit, and read cycles plus derived figures."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import CurrentUser, CycleServiceDep
from src.models.cycles import (
    CycleCreate,
    CycleInsightsRead,
    CycleLogRead,
    CycleRead,
    CycleStatisticsRead,
    CycleUpdate,
    DashboardRead,
    PeriodStartCreate,
    SymptomStatistic,
)
from src.services.cycles import CycleLogResult, InvalidCycleUpdate

router = APIRouter(prefix="/cycles", tags=["cycles"])


def _log_response(result: CycleLogResult) -> dict[str, Any]:
    return {**result.cycle, "symptoms": result.symptoms, "prediction": result.prediction}


@router.post("", response_model=CycleLogRead, status_code=201)
async def log_cycle(user: CurrentUser, body: CycleCreate, service: CycleServiceDep) -> Any:
    """Log a period; back-fills the previous cycle's length and refreshes the prediction."""
    result = await service.log_cycle(user.owner_id, body)
    return _log_response(result)


@router.post("/period-start", response_model=CycleLogRead, status_code=201)
async def log_period_start(
    user: CurrentUser, body: PeriodStartCreate, service: CycleServiceDep
) -> Any:
    """Shortcut for logging only a start date from the calendar picker."""
    result = await service.log_cycle(
        user.owner_id, CycleCreate(period_start_date=body.selected_date)
    )
    return _log_response(result)


@router.get("", response_model=list[CycleRead])
async def list_cycles(
    user: CurrentUser,
    service: CycleServiceDep,
    limit: int = Query(default=50, ge=1, le=365),
) -> Any:
    return await service.list_cycles(user.owner_id, limit=limit)


# Fixed paths are registered before /{cycle_id}

@router.get("/statistics", response_model=CycleStatisticsRead)
async def get_statistics(user: CurrentUser, service: CycleServiceDep) -> Any:
    return await service.statistics(user.owner_id)


@router.get("/insights", response_model=CycleInsightsRead)
async def get_insights(user: CurrentUser, service: CycleServiceDep) -> Any:
    insights, symptom_stats = await service.insights(user.owner_id)
    payload = CycleInsightsRead.model_validate(insights)
    payload.most_common_symptoms = [SymptomStatistic.model_validate(s) for s in symptom_stats]
    return payload


@router.get("/dashboard", response_model=DashboardRead)
async def get_dashboard(user: CurrentUser, service: CycleServiceDep) -> Any:
    return DashboardRead.model_validate(await service.dashboard(user.owner_id))


@router.get("/{cycle_id}", response_model=CycleRead)
async def get_cycle(cycle_id: uuid.UUID, user: CurrentUser, service: CycleServiceDep) -> Any:
    row = await service.get_cycle(user.owner_id, cycle_id)
    if not row:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return row


@router.patch("/{cycle_id}", response_model=CycleRead)
async def update_cycle(
    cycle_id: uuid.UUID, user: CurrentUser, body: CycleUpdate, service: CycleServiceDep
) -> Any:
    if not body.model_dump(exclude_unset=True, exclude_none=True):
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        row = await service.update_cycle(user.owner_id, cycle_id, body)
    except InvalidCycleUpdate as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not row:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return row


@router.delete("/{cycle_id}", status_code=204)
async def delete_cycle(cycle_id: uuid.UUID, user: CurrentUser, service: CycleServiceDep) -> None:
    if not await service.delete_cycle(user.owner_id, cycle_id):
        raise HTTPException(status_code=404, detail="Cycle not found")
