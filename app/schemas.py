"""Pydantic schemas for aggregate records and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class SafetyStatus(str, Enum):
    """Safety classification assigned to an aggregate window."""

    safe = "Safe"
    caution = "Caution"
    unsafe = "Unsafe"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AggregateRecord(_CamelModel):
    """One time-windowed summary of sensor telemetry for one location."""

    model_config = ConfigDict(extra="ignore")

    location: str = Field(..., min_length=1)
    window_end: datetime
    avg_ice_thickness: float
    min_ice_thickness: float
    max_ice_thickness: float
    avg_surface_temperature: float
    min_surface_temperature: float
    max_surface_temperature: float
    max_snow_accumulation: float = Field(..., ge=0)
    avg_external_temperature: float
    reading_count: int = Field(..., ge=1)
    safety_status: str = Field(
        ..., description="Status as persisted by ingestion; validated on read."
    )

    @field_validator("window_end")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_ranges(self) -> "AggregateRecord":
        if not (
            self.min_ice_thickness <= self.avg_ice_thickness <= self.max_ice_thickness
        ):
            raise ValueError("ice thickness must satisfy min <= avg <= max")
        if not (
            self.min_surface_temperature
            <= self.avg_surface_temperature
            <= self.max_surface_temperature
        ):
            raise ValueError("surface temperature must satisfy min <= avg <= max")
        return self


class StatusBreakdown(_CamelModel):
    safe: int = Field(..., ge=0)
    caution: int = Field(..., ge=0)
    unsafe: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class LatestResponse(_CamelModel):
    success: bool = True
    timestamp: datetime
    data: List[AggregateRecord] = Field(default_factory=list)


class HistoryResponse(_CamelModel):
    success: bool = True
    location: str
    data_points: int = Field(..., ge=0)
    limit: int = Field(..., ge=1, description="Window count actually requested from the store.")
    data: List[AggregateRecord] = Field(default_factory=list)


class StatusResponse(_CamelModel):
    success: bool = True
    timestamp: datetime
    overall_status: SafetyStatus
    breakdown: StatusBreakdown


class HealthResponse(_CamelModel):
    success: bool = True
    status: str = "healthy"
    timestamp: datetime


class ErrorResponse(_CamelModel):
    """Failure envelope shared by every API route."""

    success: bool = False
    error: str
    message: str
