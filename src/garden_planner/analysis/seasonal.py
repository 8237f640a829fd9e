"""Growing-season weighted climate profile for a plan.

Growing-season months count double when averaging a plan's 12 cached months:

    northern hemisphere   April - September
    southern hemisphere   October - March

Per parameter, the weighted mean only covers months that have a value for
that parameter; months without one are left out of both the numerator and
the denominator rather than counted as zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from garden_planner.schemas import Hemisphere, WeightedSeasonalProfile

if TYPE_CHECKING:
    from collections.abc import Sequence

    from garden_planner.schemas import MonthlyClimateRecord

GROWING_SEASON_WEIGHT = 2
OFF_SEASON_WEIGHT = 1

_NORTHERN_GROWING = frozenset(range(4, 10))
_SOUTHERN_GROWING = frozenset(range(1, 13)) - _NORTHERN_GROWING

PARAMETERS = ("sunlight", "humidity", "precipitation", "temperature")


def growing_season_months(hemisphere: Hemisphere) -> frozenset[int]:
    """Calendar months (1-12) of the growing season."""
    return _NORTHERN_GROWING if hemisphere == Hemisphere.NORTHERN else _SOUTHERN_GROWING


def month_weight(month: int, hemisphere: Hemisphere) -> int:
    """Weight of a calendar month in the seasonal average."""
    if month in growing_season_months(hemisphere):
        return GROWING_SEASON_WEIGHT
    return OFF_SEASON_WEIGHT


def weighted_mean(values: Sequence[tuple[float | None, int]]) -> float | None:
    """Weighted mean of (value, weight) pairs, skipping None values."""
    total = 0.0
    weight_sum = 0
    for value, weight in values:
        if value is None:
            continue
        total += value * weight
        weight_sum += weight
    if weight_sum == 0:
        return None
    return total / weight_sum


def compute_weighted_profile(
    records: Sequence[MonthlyClimateRecord],
    hemisphere: Hemisphere,
) -> WeightedSeasonalProfile:
    """Weight a plan's cached months by growing-season relevance.

    Args:
        records: Up to 12 monthly rows for one plan.
        hemisphere: Hemisphere of the plan.

    Returns:
        Profile with one weighted mean per parameter (None where no month
        has a value).
    """
    if len(records) > 12:
        msg = f"expected at most 12 monthly records, got {len(records)}"
        raise ValueError(msg)

    weights = [month_weight(r.month, hemisphere) for r in records]
    means = {
        name: weighted_mean([(getattr(r, name), w) for r, w in zip(records, weights, strict=True)])
        for name in PARAMETERS
    }
    return WeightedSeasonalProfile(**means)
