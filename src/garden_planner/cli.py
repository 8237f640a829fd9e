"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime
from typing import assert_never

from garden_planner import __version__
from garden_planner.cache import ClimateCacheManager
from garden_planner.config import get_settings
from garden_planner.datasources.scoring.models import ScoringError, ScoringErrorKind
from garden_planner.flows.refresh import refresh_plans
from garden_planner.logging_config import configure_logging
from garden_planner.plant_fit import FitScoringOrchestrator
from garden_planner.schemas import FitResult, Plan
from garden_planner.store import JsonPlanStore, PlanError

EXIT_SCORING_FAILED = 2

HEADER = f"{'month':<8} {'sun':>4} {'hum':>4} {'rain':>4} {'temp':>4} {'rain mm':>8} {'temp C':>7}"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="garden-planner",
        description="Monthly climate cache and AI plant fit scoring for garden plots",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    # 'add-plan' command - register a plot location
    add_parser = subparsers.add_parser("add-plan", help="Create or update a plan")
    add_parser.add_argument("plan_id", help="Plan identifier")
    add_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    add_parser.add_argument("--lon", type=float, required=True, help="Longitude")
    add_parser.add_argument("--name", type=str, default=None, help="Display name")

    # 'refresh' command - ensure fresh climate for plans
    refresh_parser = subparsers.add_parser("refresh", help="Refresh cached climate")
    refresh_parser.add_argument("plan_ids", nargs="*", metavar="PLAN_ID", help="Plans to refresh")
    refresh_parser.add_argument("--all", action="store_true", help="Refresh every stored plan")
    refresh_parser.add_argument(
        "--force", action="store_true", help="Refresh even if the cache is fresh"
    )

    # 'months' command - show cached months
    months_parser = subparsers.add_parser("months", help="Show a plan's cached climate")
    months_parser.add_argument("plan_id", help="Plan identifier")

    # 'fit' command - score a plant against a plan's climate
    fit_parser = subparsers.add_parser("fit", help="Score how well a plant suits a plan")
    fit_parser.add_argument("plan_id", help="Plan identifier")
    fit_parser.add_argument("plant", help="Plant name")
    fit_parser.add_argument(
        "--retry",
        action="store_true",
        help="Retry retryable failures (up to scoring_max_attempts)",
    )
    fit_parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Scoring timeout in milliseconds (default: scoring_timeout_ms from settings)",
    )

    return parser


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"Data dir: {settings.data_dir}")
    print(f"Scoring model: {settings.scoring_model}")
    has_key = bool(settings.scoring_api_key.get_secret_value())
    print(f"Scoring API key: {'set' if has_key else 'missing'}")
    return 0


def cmd_add_plan(args: argparse.Namespace) -> int:
    """Handle the 'add-plan' command."""
    store = JsonPlanStore(get_settings().data_dir)
    try:
        plan = Plan(plan_id=args.plan_id, name=args.name, latitude=args.lat, longitude=args.lon)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    path = store.save_plan(plan)
    print(f"Saved plan {plan.plan_id} ({plan.hemisphere} hemisphere) to {path}")
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    """Handle the 'refresh' command: run the refresh flow."""
    if not args.all and not args.plan_ids:
        print("Give one or more plan ids, or --all.", file=sys.stderr)
        return 1

    summary = refresh_plans(plan_ids=None if args.all else args.plan_ids, force=args.force)
    failed = [plan_id for plan_id, entry in summary.items() if entry["status"] == "failed"]
    print(f"Done: {len(summary) - len(failed)} ok, {len(failed)} failed.")
    return 1 if failed else 0


def cmd_months(args: argparse.Namespace) -> int:
    """Handle the 'months' command: print the cached climate table."""
    manager = ClimateCacheManager.from_settings(get_settings())
    records = manager.get_monthly_records(args.plan_id)
    if not records:
        print(f"No cached climate for plan {args.plan_id}. Run 'garden-planner refresh' first.")
        return 1

    print(HEADER)
    for r in records:
        rain_mm = f"{r.precipitation_mm:.1f}" if r.precipitation_mm is not None else "-"
        if r.precipitation_exceeded:
            rain_mm += "+"
        temp_c = f"{r.temperature_c:.1f}" if r.temperature_c is not None else "-"
        print(
            f"{r.year}-{r.month:02d}  {_cell(r.sunlight)} {_cell(r.humidity)} "
            f"{_cell(r.precipitation)} {_cell(r.temperature)} {rain_mm:>8} {temp_c:>7}"
        )

    status = manager.status(args.plan_id)
    if status.refresh_recommended:
        age = status.age(datetime.now(UTC))
        days = f"{age.days} days old" if age is not None else "incomplete"
        print(f"Refresh recommended ({status.months} months cached, {days}).")
    return 0


def _cell(score: int | None) -> str:
    return f"{score:>4}" if score is not None else f"{'-':>4}"


def _failure_hint(error: ScoringError) -> str:
    match error.kind:
        case ScoringErrorKind.TIMEOUT:
            hint = "The provider did not answer in time; try again."
        case ScoringErrorKind.NETWORK:
            hint = "Check your connection and try again."
        case ScoringErrorKind.RATE_LIMIT:
            hint = f"Rate limited; try again in {error.retry_after} seconds."
        case ScoringErrorKind.BAD_JSON:
            hint = "The provider's answer was unusable; enter the scores manually."
        case ScoringErrorKind.UNKNOWN:
            hint = "Try again later." if error.can_retry else "Enter the scores manually."
        case _:
            assert_never(error.kind)
    return hint


def _print_scores(plant: str, result: FitResult) -> None:
    print(f"Fit for {plant}:")
    print(f"  sunlight:      {result.sunlight_score}/5")
    print(f"  humidity:      {result.humidity_score}/5")
    print(f"  precipitation: {result.precip_score}/5")
    print(f"  temperature:   {result.temperature_score}/5")
    print(f"  overall:       {result.overall_score}/5")


def cmd_fit(args: argparse.Namespace) -> int:
    """Handle the 'fit' command: score a plant, optionally retrying."""
    settings = get_settings()
    if not settings.scoring_api_key.get_secret_value():
        print("Set GARDEN_PLANNER_SCORING_API_KEY to score plants.", file=sys.stderr)
        return 1

    cache = ClimateCacheManager.from_settings(settings)
    orchestrator = FitScoringOrchestrator.from_settings(settings, cache)
    try:
        attempt = orchestrator.start_attempt(args.plant, args.plan_id, args.timeout_ms)
    except (PlanError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    status = cache.status(args.plan_id)
    if status.refresh_recommended:
        print(f"Note: cached climate for {args.plan_id} is stale; consider 'refresh'.")

    send = attempt.run
    while True:
        try:
            result = send()
            break
        except ScoringError as e:
            error = e
        # Rate limits ask for a pause the CLI does not wait out
        if args.retry and attempt.can_retry and error.kind != ScoringErrorKind.RATE_LIMIT:
            print(f"Attempt {attempt.attempts} failed ({error.kind}), retrying...")
            send = attempt.retry
            continue
        print(f"Scoring failed ({error.kind}): {error.message}", file=sys.stderr)
        print(_failure_hint(error), file=sys.stderr)
        return EXIT_SCORING_FAILED

    _print_scores(args.plant, result)
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    configure_logging(debug=args.debug or get_settings().debug)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "add-plan": cmd_add_plan,
        "refresh": cmd_refresh,
        "months": cmd_months,
        "fit": cmd_fit,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
