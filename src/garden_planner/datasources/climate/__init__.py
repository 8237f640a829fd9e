"""Open-Meteo climate archive data source.

Fetches 12 months of daily climate history and normalizes monthly aggregates.

Public API:
  - archive: ClimateDataClient.fetch_archive (bounded-timeout archive request)
  - validation: validate_archive (tagged shape check)
  - normalize: pure 0-100 score conversions
  - models: ClimateWindow, RawArchiveResponse
  - client: API URL, requested variables, errors
"""

from garden_planner.datasources.climate.archive import ClimateDataClient
from garden_planner.datasources.climate.client import (
    ARCHIVE_API,
    ClimateDataError,
    ClimateTimeoutError,
    ClimateUpstreamError,
)
from garden_planner.datasources.climate.models import ClimateWindow, RawArchiveResponse

__all__ = [
    "ARCHIVE_API",
    "ClimateDataClient",
    "ClimateDataError",
    "ClimateTimeoutError",
    "ClimateUpstreamError",
    "ClimateWindow",
    "RawArchiveResponse",
]
