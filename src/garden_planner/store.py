"""Plan store with per-plan monthly climate rows.

The climate pipeline only needs three things from plan persistence, captured
by the ``PlanStore`` protocol: point reads of a plan, point reads of its
cached months, and a batched upsert of at most 12 monthly rows.

``JsonPlanStore`` implements it on the local filesystem::

    plans/{plan_id}/plan.json             plan coordinates and hemisphere
    plans/{plan_id}/climate_monthly.json  cached MonthlyClimateRecord rows

Every JSON file is wrapped in a metadata envelope (``source``, ``written_at``)
and written atomically (temp file + rename), so readers never observe a
partially written month set.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - used at runtime, not just annotations
from typing import Any, Protocol

from garden_planner.schemas import MonthlyClimateRecord, Plan

MAX_MONTHLY_ROWS = 12

PLANS_DIR = Path("plans")
PLAN_FILE = "plan.json"
CLIMATE_FILE = "climate_monthly.json"


class PlanError(Exception):
    """Base class for plan lookup problems."""


class PlanNotFoundError(PlanError, LookupError):
    """No plan with this id exists."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Plan with ID {plan_id} not found")
        self.plan_id = plan_id


class PlanMissingLocationError(PlanError, ValueError):
    """The plan has no coordinates, so climate data can't be fetched."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(
            f"Plan {plan_id} must have latitude/longitude set before climate data can be fetched"
        )
        self.plan_id = plan_id


class PlanStore(Protocol):
    """What the climate pipeline consumes from plan persistence."""

    def get_plan(self, plan_id: str) -> Plan | None: ...

    def get_monthly_records(self, plan_id: str) -> list[MonthlyClimateRecord]: ...

    def upsert_monthly_records(
        self, plan_id: str, records: list[MonthlyClimateRecord]
    ) -> int: ...


class JsonPlanStore:
    """Filesystem-backed plan store with atomic JSON envelopes."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.plans = base_dir / PLANS_DIR
        self._lock = threading.Lock()

    # -- plans ---------------------------------------------------------------

    def get_plan(self, plan_id: str) -> Plan | None:
        """Return the plan, or None if it doesn't exist."""
        data = self._read(self._plan_dir(plan_id) / PLAN_FILE)
        return Plan.model_validate(data) if data is not None else None

    def save_plan(self, plan: Plan) -> Path:
        """Create or replace a plan."""
        return self._write(
            self._plan_dir(plan.plan_id) / PLAN_FILE,
            plan.model_dump(mode="json"),
            source="garden-planner",
        )

    def list_plans(self) -> list[Plan]:
        """All stored plans, ordered by id."""
        if not self.plans.exists():
            return []
        plans: list[Plan] = []
        for plan_file in sorted(self.plans.glob(f"*/{PLAN_FILE}")):
            data = self._read(plan_file)
            if data is not None:
                plans.append(Plan.model_validate(data))
        return plans

    # -- monthly climate rows -------------------------------------------------

    def get_monthly_records(self, plan_id: str) -> list[MonthlyClimateRecord]:
        """Cached months for a plan in chronological order (at most 12)."""
        data = self._read(self._plan_dir(plan_id) / CLIMATE_FILE)
        if not data:
            return []
        records = [MonthlyClimateRecord.model_validate(row) for row in data.get("months", [])]
        return sorted(records, key=lambda r: r.key)[-MAX_MONTHLY_ROWS:]

    def upsert_monthly_records(self, plan_id: str, records: list[MonthlyClimateRecord]) -> int:
        """Replace a plan's window with ``records`` in one atomic write.

        Rows are keyed by (year, month): a key in the batch overwrites the
        stored row, and stored rows outside the batch are dropped, so the plan
        never holds more than the current window.

        Returns:
            Number of rows written.
        """
        if len(records) > MAX_MONTHLY_ROWS:
            msg = f"at most {MAX_MONTHLY_ROWS} monthly rows per upsert, got {len(records)}"
            raise ValueError(msg)
        by_key: dict[tuple[int, int], MonthlyClimateRecord] = {}
        for record in records:
            if record.plan_id != plan_id:
                msg = f"record for plan {record.plan_id} in batch for plan {plan_id}"
                raise ValueError(msg)
            by_key[record.key] = record

        rows = [by_key[k].model_dump(mode="json") for k in sorted(by_key)]
        self._write(
            self._plan_dir(plan_id) / CLIMATE_FILE,
            {"months": rows},
            source="open-meteo.com (archive)",
            plan_id=plan_id,
        )
        return len(rows)

    # -- envelope I/O ------------------------------------------------------------

    def _plan_dir(self, plan_id: str) -> Path:
        return self._resolve(PLANS_DIR / plan_id)

    def _read(self, full: Path) -> dict[str, Any] | None:
        if not full.exists():
            return None
        with full.open() as f:
            envelope: dict[str, Any] = json.load(f)
        return envelope.get("data", envelope)

    def _write(self, full: Path, data: Any, source: str, **params: Any) -> Path:
        full.parent.mkdir(parents=True, exist_ok=True)
        meta: dict[str, Any] = {
            "source": source,
            "written_at": datetime.now(UTC).isoformat(),
        }
        if params:
            meta.update(params)
        envelope = {"meta": meta, "data": data}

        with self._lock:
            fd, tmp_name = tempfile.mkstemp(dir=full.parent, prefix=f".{full.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(envelope, f, indent=2)
                os.replace(tmp_name, full)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        return full

    def _resolve(self, path: Path) -> Path:
        full = self.base / path
        try:
            full.resolve().relative_to(self.plans.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        if full.resolve() == self.plans.resolve():
            msg = f"Invalid plan id in path: {path}"
            raise ValueError(msg)
        return full
