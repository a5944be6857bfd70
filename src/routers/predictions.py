"""Next-period prediction endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import CurrentUser, CycleServiceDep
from src.models.cycles import NextPeriodRequest, NextPeriodResponse, PredictionRead

router = APIRouter(prefix="/predictions", tags=["predictions"])


@router.get("/current", response_model=PredictionRead)
async def get_current_prediction(user: CurrentUser, service: CycleServiceDep) -> Any:
    row = await service.current_prediction(user.owner_id)
    if not row:
        raise HTTPException(status_code=404, detail="No prediction yet")
    return row


@router.post("/next-period", response_model=NextPeriodResponse)
async def predict_next_period(
    user: CurrentUser, body: NextPeriodRequest, service: CycleServiceDep
) -> Any:
    """Predict from a user-supplied last period date using the average cycle length."""
    result = await service.predict_next_period(user.owner_id, body.last_period_date)
    p = result.prediction
    return {
        "predicted_days": result.predicted_days,
        "predicted_date": p.next_period_date,
        "predicted_date_display": f"{p.next_period_date:%B} {p.next_period_date.day}, {p.next_period_date.year}",
        "cycle_length": p.cycle_length_used,
        "confidence": f"{round(p.confidence_score * 100)}%",
        "ovulation_date": p.ovulation_date,
        "fertile_window_start": p.fertile_window_start,
        "fertile_window_end": p.fertile_window_end,
    }
