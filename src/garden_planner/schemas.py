"""
Domain models for garden planner.

Pydantic models for plans, cached climate rows and fit scoring.
These define the canonical schema - datasources normalize API responses to these.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from garden_planner.datasources.climate.normalize import denormalize_temperature

# =============================================================================
# Plans
# =============================================================================


class Hemisphere(StrEnum):
    """Hemisphere of a plan, used to place the growing season."""

    NORTHERN = "northern"
    SOUTHERN = "southern"

    @classmethod
    def from_latitude(cls, lat: float) -> Hemisphere:
        """Equator and above count as northern."""
        return cls.NORTHERN if lat >= 0 else cls.SOUTHERN


class Plan(BaseModel):
    """The slice of a garden plan the climate pipeline needs."""

    model_config = {"str_strip_whitespace": True}

    plan_id: str = Field(..., min_length=1, description="Unique plan identifier")
    name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    hemisphere: Hemisphere = Hemisphere.NORTHERN

    @model_validator(mode="before")
    @classmethod
    def _infer_hemisphere(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("hemisphere") is None:
            lat = data.get("latitude")
            if lat is not None:
                data = {**data, "hemisphere": Hemisphere.from_latitude(float(lat))}
        return data

    @property
    def has_location(self) -> bool:
        """Whether both coordinates are set."""
        return self.latitude is not None and self.longitude is not None


# =============================================================================
# Climate cache
# =============================================================================

Score = int | None


class MonthlyClimateRecord(BaseModel):
    """One cached month of normalized climate scores for a plan."""

    plan_id: str
    year: int = Field(..., ge=1900, le=2200)
    month: int = Field(..., ge=1, le=12)
    sunlight: Score = Field(default=None, ge=0, le=100)
    humidity: Score = Field(default=None, ge=0, le=100)
    precipitation: Score = Field(default=None, ge=0, le=100)
    temperature: Score = Field(default=None, ge=0, le=100)
    precipitation_mm: float | None = Field(default=None, ge=0)
    precipitation_exceeded: bool = False
    temperature_c: float | None = None
    last_refreshed_at: datetime

    @property
    def key(self) -> tuple[int, int]:
        """(year, month) key, unique within a plan."""
        return (self.year, self.month)


class RefreshResult(BaseModel):
    """Outcome of ``ClimateCacheManager.ensure_fresh``."""

    refreshed: bool
    months: int = Field(..., ge=0)


class CacheStatus(BaseModel):
    """Freshness of a plan's cached months, for "refresh recommended" hints."""

    plan_id: str
    months: int
    last_refreshed_at: datetime | None = None
    stale: bool

    @property
    def refresh_recommended(self) -> bool:
        """Cached rows are usable but a refresh should be offered."""
        return self.stale

    def age(self, now: datetime) -> timedelta | None:
        """Time since the newest refresh, or None if never refreshed."""
        if self.last_refreshed_at is None:
            return None
        return now - self.last_refreshed_at


# =============================================================================
# Seasonal profile and fit scoring
# =============================================================================


class WeightedSeasonalProfile(BaseModel):
    """Growing-season weighted means of a plan's normalized climate scores."""

    sunlight: float | None = None
    humidity: float | None = None
    precipitation: float | None = None
    temperature: float | None = None

    @property
    def temperature_c(self) -> float | None:
        """Weighted temperature mapped back to degrees Celsius."""
        if self.temperature is None:
            return None
        return denormalize_temperature(self.temperature)

    def is_empty(self) -> bool:
        """True when no parameter has any valid month."""
        return all(
            v is None for v in (self.sunlight, self.humidity, self.precipitation, self.temperature)
        )


class FitQuery(BaseModel):
    """Everything the scoring provider receives for one plant."""

    plant_name: str = Field(..., min_length=1, max_length=200)
    profile: WeightedSeasonalProfile
    hemisphere: Hemisphere


FitScore = int | None


class FitResult(BaseModel):
    """Per-parameter and overall plant fit, each 1-5 or None."""

    sunlight_score: FitScore = Field(default=None, ge=1, le=5)
    humidity_score: FitScore = Field(default=None, ge=1, le=5)
    precip_score: FitScore = Field(default=None, ge=1, le=5)
    temperature_score: FitScore = Field(default=None, ge=1, le=5)
    overall_score: FitScore = Field(default=None, ge=1, le=5)

    def sub_scores(self) -> list[int]:
        """The four non-null parameter scores."""
        values = (
            self.sunlight_score,
            self.humidity_score,
            self.precip_score,
            self.temperature_score,
        )
        return [v for v in values if v is not None]
