"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.services.cycles import CycleService
from src.services.streaks import StreakService
from src.tracking.config_loader import TrackingConfig, get_tracking_config
from src.tracking.temporal import ReferenceClock


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context extracted from the Clerk JWT."""

    user_id: str  # Clerk user ID (e.g. "user_2x...")
    owner_id: uuid.UUID | None = None  # Our internal UUID, from the fitfare_user_id claim
    email: str | None = None
    session_id: str | None = None


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    The Clerk auth middleware sets ``request.state.auth`` before routes run.
    Tokens without an internal user id cannot own any data.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if auth.owner_id is None:
        raise HTTPException(status_code=403, detail="User is not provisioned")
    return auth


def get_clock(
    config: Annotated[TrackingConfig, Depends(get_tracking_config)],
) -> ReferenceClock:
    return ReferenceClock(config.reference_timezone)


AppClock = Annotated[ReferenceClock, Depends(get_clock)]


def get_cycle_service(
    clock: AppClock,
    config: Annotated[TrackingConfig, Depends(get_tracking_config)],
) -> CycleService:
    return CycleService(clock=clock, config=config)


def get_streak_service(
    clock: AppClock,
    config: Annotated[TrackingConfig, Depends(get_tracking_config)],
) -> StreakService:
    return StreakService(clock=clock, config=config)


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
CycleServiceDep = Annotated[CycleService, Depends(get_cycle_service)]
StreakServiceDep = Annotated[StreakService, Depends(get_streak_service)]
