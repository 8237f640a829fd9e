"""Open-Meteo archive API constants and climate datasource errors.

API docs: https://open-meteo.com/en/docs/historical-weather-api
"""

from __future__ import annotations

ARCHIVE_API = "https://archive-api.open-meteo.com/v1/archive"

DEFAULT_TIMEOUT_MS = 1200

#: Days the archive lags behind real time.
DEFAULT_EMBARGO_DAYS = 5

# Daily variables we request from the archive, mapped to the field names
# used in RawArchiveResponse.
DAILY_VARS = {
    "sunshine_duration": "sunshine_s",
    "daylight_duration": "daylight_s",
    "relative_humidity_2m_mean": "humidity_pct",
    "precipitation_sum": "precipitation_mm",
    "temperature_2m_mean": "temperature_c",
}

ERROR_EXCERPT_CHARS = 200


class ClimateDataError(Exception):
    """Base class for climate archive failures."""


class ClimateUpstreamError(ClimateDataError):
    """The archive answered with a bad status or shape, or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_excerpt: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_excerpt = body_excerpt
        self.field = field


class ClimateTimeoutError(ClimateDataError):
    """The archive did not answer within the request budget."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Climate archive request timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms
