"""
Prefect flow that keeps plans' monthly climate windows fresh.

Each plan goes through ``ClimateCacheManager.ensure_fresh``, so plans whose
cache is still fresh cost no upstream call.  One plan failing does not stop
the others; the failure is reported in the returned summary.

Run locally:
    python -m garden_planner.flows.refresh

Run with Prefect dashboard:
    prefect server start &
    python -m garden_planner.flows.refresh
"""

from __future__ import annotations

from typing import Any

from prefect import flow, task

from garden_planner.cache import ClimateCacheManager
from garden_planner.config import get_settings
from garden_planner.datasources.climate.client import ClimateDataError
from garden_planner.schemas import Plan, RefreshResult
from garden_planner.store import JsonPlanStore, PlanError, PlanNotFoundError

settings = get_settings()

# Plan store and cache manager shared by every task run
store = JsonPlanStore(settings.data_dir)
manager = ClimateCacheManager.from_settings(settings, store=store)


@task(name="ensure-fresh", retries=1, retry_delay_seconds=5)
def ensure_fresh(plan: Plan, force: bool = False) -> RefreshResult:
    """Refresh one plan's climate window if it is stale."""
    return manager.ensure_fresh(plan, force=force)


def _select_plans(plan_ids: list[str] | None) -> tuple[list[Plan], dict[str, dict[str, Any]]]:
    if plan_ids is None:
        return store.list_plans(), {}

    plans: list[Plan] = []
    missing: dict[str, dict[str, Any]] = {}
    for plan_id in plan_ids:
        plan = store.get_plan(plan_id)
        if plan is None:
            missing[plan_id] = {"status": "failed", "error": str(PlanNotFoundError(plan_id))}
        else:
            plans.append(plan)
    return plans, missing


@flow(name="refresh-climate", log_prints=True)
def refresh_plans(plan_ids: list[str] | None = None, force: bool = False) -> dict[str, Any]:
    """
    Ensure fresh climate for the given plans (default: every stored plan).

    Returns:
        Per-plan summary keyed by plan id.  Each entry has ``status``
        ("refreshed", "fresh" or "failed") plus ``months`` or ``error``.
    """
    plans, summary = _select_plans(plan_ids)
    for plan_id, entry in summary.items():
        print(f"Plan {plan_id}: {entry['error']}")

    for plan in plans:
        try:
            result = ensure_fresh(plan, force=force)
        except (ClimateDataError, PlanError) as e:
            print(f"Plan {plan.plan_id}: refresh failed ({e})")
            summary[plan.plan_id] = {"status": "failed", "error": str(e)}
            continue

        if result.refreshed:
            print(f"Plan {plan.plan_id}: refreshed {result.months} months")
            summary[plan.plan_id] = {"status": "refreshed", "months": result.months}
        else:
            print(f"Plan {plan.plan_id}: climate is fresh, skipped")
            summary[plan.plan_id] = {"status": "fresh", "months": 0}

    return summary


if __name__ == "__main__":
    result = refresh_plans()
    print(f"Flow complete: {result}")
