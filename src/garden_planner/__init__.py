"""Garden Planner - climate intelligence for garden plots.

Architecture::

    datasources/   External APIs (Open-Meteo archive, AI fit scoring)
    store.py       Plan store with per-plan monthly climate rows
    cache.py       Freshness-aware climate cache (refresh, normalize, upsert)
    analysis/      Cross-datasource logic (growing-season weighting)
    plant_fit.py   Fit scoring orchestration and retry/manual-entry attempts
    flows/         Prefect orchestration (batch refresh of plan caches)
    services/      Shared utilities (HTTP session, request deadlines)

Data flow: archive -> normalize -> store (cache) -> seasonal profile -> fit scoring
"""

__version__ = "0.1.0"

from garden_planner.config import Settings
from garden_planner.schemas import FitResult, MonthlyClimateRecord, Plan

__all__ = ["FitResult", "MonthlyClimateRecord", "Plan", "Settings", "__version__"]
