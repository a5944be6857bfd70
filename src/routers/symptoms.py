"""Symptom tags, attached to logged cycles or to a calendar day."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import CurrentUser, CycleServiceDep
from src.models.cycles import SymptomBatchCreate, SymptomCreate, SymptomRead, SymptomStatistic

router = APIRouter(prefix="/symptoms", tags=["symptoms"])


@router.post("", response_model=SymptomRead, status_code=201)
async def create_symptom(user: CurrentUser, body: SymptomCreate, service: CycleServiceDep) -> Any:
    row = await service.add_symptom(user.owner_id, body)
    if not row:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return row


@router.post("/save", response_model=list[SymptomRead], status_code=201)
async def save_symptoms(
    user: CurrentUser, body: SymptomBatchCreate, service: CycleServiceDep
) -> Any:
    return await service.save_symptoms(user.owner_id, body)


@router.get("/list", response_model=list[SymptomRead])
async def list_symptoms(user: CurrentUser, service: CycleServiceDep) -> Any:
    return await service.list_symptoms(user.owner_id)


@router.get("/statistics", response_model=list[SymptomStatistic])
async def get_symptom_statistics(user: CurrentUser, service: CycleServiceDep) -> Any:
    return await service.symptom_statistics(user.owner_id)


@router.get("/cycle/{cycle_id}", response_model=list[SymptomRead])
async def list_cycle_symptoms(
    cycle_id: uuid.UUID, user: CurrentUser, service: CycleServiceDep
) -> Any:
    rows = await service.symptoms_for_cycle(user.owner_id, cycle_id)
    if rows is None:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return rows


@router.delete("/{symptom_id}", status_code=204)
async def delete_symptom(symptom_id: uuid.UUID, user: CurrentUser, service: CycleServiceDep) -> None:
    if not await service.delete_symptom(user.owner_id, symptom_id):
        raise HTTPException(status_code=404, detail="Symptom not found")
