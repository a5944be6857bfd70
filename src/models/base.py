"""Shared Pydantic base models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class FitFareBase(BaseModel):
    """Base model with shared config for all FitFare schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class TimestampMixin(BaseModel):
    created_at: datetime | None = None
    updated_at: datetime | None = None
