"""Pure normalization of monthly climate aggregates onto a 0-100 scale (no I/O).

Every function clamps to [0, 100] and never raises on out-of-range input:

    sunlight       sunshine hours / daylight hours * 100
    humidity       mean relative humidity (already a percentage)
    precipitation  monthly sum / PRECIP_CEILING_MM * 100
    temperature    linear map of TEMP_MIN_C..TEMP_MAX_C onto 0..100
"""

from __future__ import annotations

import math
from dataclasses import dataclass

SCORE_MIN = 0
SCORE_MAX = 100

#: Day length used when the provider reports no daylight for a month.
REFERENCE_DAYLIGHT_HOURS = 16.0

#: Monthly precipitation that maps to a score of 100.
PRECIP_CEILING_MM = 100.0

#: Temperature anchors: TEMP_MIN_C -> 0, TEMP_MAX_C -> 100.
TEMP_MIN_C = -30.0
TEMP_MAX_C = 50.0

#: Worst-case round-trip error of normalize/denormalize (half a score step).
TEMPERATURE_TOLERANCE_C = (TEMP_MAX_C - TEMP_MIN_C) / (SCORE_MAX - SCORE_MIN) / 2


@dataclass(frozen=True)
class PrecipitationScore:
    """Normalized precipitation plus the raw sum kept for display."""

    score: int
    raw_mm: float
    exceeded: bool


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    """Round half-up and clamp to the [0, 100] score range."""
    if math.isnan(value):
        return SCORE_MIN
    return _round_half_up(max(SCORE_MIN, min(SCORE_MAX, value)))


def normalize_sunlight(
    sunshine_hours: float,
    daylight_hours: float = REFERENCE_DAYLIGHT_HOURS,
) -> int:
    """Score the sunny fraction of daylight.

    Args:
        sunshine_hours: Mean daily sunshine duration in hours.
        daylight_hours: Mean daily daylight duration in hours. Non-positive
            values fall back to ``REFERENCE_DAYLIGHT_HOURS``.

    Returns:
        Integer score in [0, 100].
    """
    if daylight_hours <= 0:
        daylight_hours = REFERENCE_DAYLIGHT_HOURS
    return clamp_score(max(sunshine_hours, 0.0) / daylight_hours * 100)


def normalize_humidity(percent: float) -> int:
    """Clamp a mean relative humidity percentage."""
    return clamp_score(percent)


def normalize_precipitation(
    total_mm: float,
    ceiling_mm: float = PRECIP_CEILING_MM,
) -> PrecipitationScore:
    """Score a monthly precipitation sum against ``ceiling_mm``.

    Sums above the ceiling clamp at 100 and set ``exceeded``; the raw
    millimetre value is kept either way (negative sums are stored as 0).
    """
    if ceiling_mm <= 0:
        msg = f"ceiling_mm must be positive, got {ceiling_mm}"
        raise ValueError(msg)
    raw = max(total_mm, 0.0)
    return PrecipitationScore(
        score=clamp_score(raw / ceiling_mm * 100),
        raw_mm=raw,
        exceeded=raw > ceiling_mm,
    )


def normalize_temperature(celsius: float) -> int:
    """Map a mean temperature in Celsius onto [0, 100] using the fixed anchors."""
    span = TEMP_MAX_C - TEMP_MIN_C
    return clamp_score((celsius - TEMP_MIN_C) / span * (SCORE_MAX - SCORE_MIN))


def denormalize_temperature(score: float) -> float:
    """Inverse of ``normalize_temperature`` for scores in [0, 100]."""
    span = TEMP_MAX_C - TEMP_MIN_C
    return score / (SCORE_MAX - SCORE_MIN) * span + TEMP_MIN_C
