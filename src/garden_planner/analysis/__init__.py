"""Pure domain logic over cached climate data.

Dependency rule: analysis/ works on models already loaded from the store.
It never fetches data, writes to the store, or touches HTTP.

Modules:
  - seasonal: 12 cached months + hemisphere -> weighted seasonal profile
"""

from garden_planner.analysis.seasonal import (
    GROWING_SEASON_WEIGHT,
    OFF_SEASON_WEIGHT,
    compute_weighted_profile,
    growing_season_months,
    month_weight,
)

__all__ = [
    "GROWING_SEASON_WEIGHT",
    "OFF_SEASON_WEIGHT",
    "compute_weighted_profile",
    "growing_season_months",
    "month_weight",
]
