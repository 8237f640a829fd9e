"""Shared fixtures: canned HTTP responses, archive payloads and plans."""

from __future__ import annotations

import calendar
import json
from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest
import requests

from garden_planner.schemas import Plan

#: Fixed "now" for cache tests; the trailing window is Mar 2024 - Feb 2025.
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)

WARSAW = Plan(plan_id="warsaw", name="Warsaw allotment", latitude=52.23, longitude=21.01)


def make_response(
    status: int = 200,
    json_body: Any = None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """A real ``requests.Response`` with an already-loaded body."""
    resp = requests.Response()
    resp.status_code = status
    if text is not None:
        resp._content = text.encode()
    else:
        resp._content = json.dumps(json_body).encode()
    resp._content_consumed = True
    resp.headers.update(headers or {})
    resp.url = "https://example.test/"
    return resp


def archive_payload(
    start: date,
    end: date,
    *,
    sunshine_h: float = 8.0,
    daylight_h: float = 12.0,
    humidity: float = 70.0,
    monthly_precip_mm: float = 50.0,
    temperature_c: float = 15.0,
) -> dict[str, Any]:
    """Open-Meteo archive payload with constant daily values over [start, end)."""
    days: list[date] = []
    cursor = start
    while cursor < end:
        days.append(cursor)
        cursor += timedelta(days=1)

    def per_day_precip(d: date) -> float:
        return monthly_precip_mm / calendar.monthrange(d.year, d.month)[1]

    return {
        "latitude": 52.25,
        "longitude": 21.0,
        "timezone": "Europe/Warsaw",
        "daily": {
            "time": [d.isoformat() for d in days],
            "sunshine_duration": [sunshine_h * 3600 for _ in days],
            "daylight_duration": [daylight_h * 3600 for _ in days],
            "relative_humidity_2m_mean": [humidity for _ in days],
            "precipitation_sum": [per_day_precip(d) for d in days],
            "temperature_2m_mean": [temperature_c for _ in days],
        },
    }


@pytest.fixture
def warsaw_payload() -> dict[str, Any]:
    """Warsaw archive payload for the window trailing ``NOW``."""
    return archive_payload(date(2024, 3, 1), date(2025, 3, 1))


@pytest.fixture(scope="session")
def prefect_harness() -> Iterator[None]:
    """Run flows against a temporary local Prefect backend."""
    from prefect.testing.utilities import prefect_test_harness

    with prefect_test_harness():
        yield
