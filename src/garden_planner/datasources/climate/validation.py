"""Shape validation for archive responses.

``validate_archive`` never raises: it returns either ``ArchiveShapeOk`` with
the parsed response or ``ArchiveShapeError`` naming the first offending field.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from garden_planner.datasources.climate.client import DAILY_VARS
from garden_planner.datasources.climate.models import RawArchiveResponse


@dataclass(frozen=True)
class ArchiveShapeOk:
    value: RawArchiveResponse


@dataclass(frozen=True)
class ArchiveShapeError:
    field: str
    reason: str

    @property
    def message(self) -> str:
        return f"Invalid archive response field '{self.field}': {self.reason}"


ArchiveShape = ArchiveShapeOk | ArchiveShapeError


def _as_number(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(type(value).__name__)
    return float(value)


def _as_float_or_none(value: Any) -> float | None:
    return float(value) if isinstance(value, int | float) and not isinstance(value, bool) else None


def validate_archive(payload: Any) -> ArchiveShape:
    """Check that ``payload`` carries equal-length daily arrays for every variable."""
    if not isinstance(payload, dict):
        return ArchiveShapeError("<root>", f"expected object, got {type(payload).__name__}")

    daily = payload.get("daily")
    if not isinstance(daily, dict):
        return ArchiveShapeError("daily", "missing or not an object")

    raw_time = daily.get("time")
    if not isinstance(raw_time, list):
        return ArchiveShapeError("daily.time", "missing or not an array")

    try:
        time = [date.fromisoformat(t) for t in raw_time]
    except (TypeError, ValueError) as e:
        return ArchiveShapeError("daily.time", f"unparseable date ({e})")

    columns: dict[str, list[float | None]] = {}
    for api_name, attr in DAILY_VARS.items():
        values = daily.get(api_name)
        name = f"daily.{api_name}"
        if not isinstance(values, list):
            return ArchiveShapeError(name, "missing or not an array")
        if len(values) != len(time):
            return ArchiveShapeError(name, f"length {len(values)} != {len(time)} dates")
        try:
            columns[attr] = [_as_number(v) for v in values]
        except TypeError as e:
            return ArchiveShapeError(name, f"non-numeric value of type {e}")

    return ArchiveShapeOk(
        RawArchiveResponse(
            latitude=_as_float_or_none(payload.get("latitude")),
            longitude=_as_float_or_none(payload.get("longitude")),
            timezone=payload.get("timezone") if isinstance(payload.get("timezone"), str) else None,
            time=time,
            **columns,
        )
    )
