"""Daily climate history from the Open-Meteo Archive API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from garden_planner.datasources.climate.client import (
    ARCHIVE_API,
    DAILY_VARS,
    DEFAULT_TIMEOUT_MS,
    ERROR_EXCERPT_CHARS,
    ClimateTimeoutError,
    ClimateUpstreamError,
)
from garden_planner.datasources.climate.validation import ArchiveShapeError, validate_archive
from garden_planner.services.http import (
    NO_RETRY,
    DeadlineExceeded,
    RequestDeadline,
    create_session,
    excerpt,
    read_body,
    read_json,
)

if TYPE_CHECKING:
    from garden_planner.datasources.climate.models import ClimateWindow, RawArchiveResponse

logger = logging.getLogger(__name__)


class ClimateDataClient:
    """Bounded-timeout client for the climate archive provider."""

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = ARCHIVE_API,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.session = session if session is not None else create_session(retry=NO_RETRY)
        self.base_url = base_url
        self.timeout_ms = timeout_ms

    def fetch_archive(
        self,
        lat: float,
        lon: float,
        window: ClimateWindow,
        timeout_ms: int | None = None,
        deadline: RequestDeadline | None = None,
    ) -> RawArchiveResponse:
        """
        Fetch daily climate values for ``window`` at (lat, lon).

        Args:
            lat: Latitude.
            lon: Longitude.
            window: Half-open date window; its last day is sent as ``end_date``.
            timeout_ms: Hard budget for the whole call (default: client setting).
            deadline: Pre-built deadline, for callers that want to ``cancel()``.

        Returns:
            Parsed response with parallel daily arrays.

        Raises:
            ClimateTimeoutError: The budget ran out.
            ClimateUpstreamError: Bad status, bad shape, or any other failure.
        """
        budget_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        params: dict[str, Any] = {
            "latitude": lat,
            "longitude": lon,
            "start_date": window.start.isoformat(),
            "end_date": window.last_day.isoformat(),
            "daily": ",".join(DAILY_VARS),
            "timezone": "auto",
        }

        with deadline or RequestDeadline(budget_ms / 1000) as dl:
            try:
                resp = self.session.get(
                    self.base_url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=dl.request_timeout(),
                    stream=True,
                )
                dl.attach(resp)
                if not resp.ok:
                    body = read_body(resp, dl).decode("utf-8", errors="replace")
                    snippet = excerpt(body, ERROR_EXCERPT_CHARS)
                    msg = f"Climate archive returned {resp.status_code}: {snippet}"
                    raise ClimateUpstreamError(
                        msg, status_code=resp.status_code, body_excerpt=snippet
                    )
                payload = read_json(resp, dl)
            except ClimateUpstreamError:
                raise
            except (DeadlineExceeded, requests.Timeout) as e:
                raise ClimateTimeoutError(budget_ms) from e
            except Exception as e:  # network, decode, or a read aborted by the deadline
                if dl.expired:
                    raise ClimateTimeoutError(budget_ms) from e
                msg = f"Failed to fetch climate archive: {e}"
                raise ClimateUpstreamError(msg) from e

        shape = validate_archive(payload)
        if isinstance(shape, ArchiveShapeError):
            logger.warning("Archive response rejected for (%s, %s): %s", lat, lon, shape.message)
            raise ClimateUpstreamError(shape.message, field=shape.field)
        logger.debug("Fetched %d archive days for (%s, %s)", len(shape.value), lat, lon)
        return shape.value
