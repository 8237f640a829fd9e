"""
Tests for CLI functionality.

These tests verify the command-line interface logic.
"""

from __future__ import annotations

import argparse
from collections.abc import Iterator
from datetime import UTC, datetime
from io import StringIO
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from conftest import WARSAW
from pydantic import SecretStr

from garden_planner.cli import (
    EXIT_SCORING_FAILED,
    cmd_add_plan,
    cmd_fit,
    cmd_info,
    cmd_months,
    cmd_refresh,
    create_parser,
    main,
)
from garden_planner.config import Settings
from garden_planner.datasources.scoring import (
    FitScoringClient,
    ScoringBadJsonError,
    ScoringRateLimitError,
    ScoringTimeoutError,
)
from garden_planner.schemas import FitResult, MonthlyClimateRecord
from garden_planner.store import JsonPlanStore

RESULT = FitResult(
    sunlight_score=4, humidity_score=3, precip_score=4, temperature_score=5, overall_score=4
)


@pytest.fixture
def settings(tmp_path: Path) -> Iterator[Settings]:
    """Settings pointing at a temporary data dir, patched into the CLI."""
    settings = Settings(data_dir=tmp_path, scoring_api_key="sk-test")
    with patch("garden_planner.cli.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def store(settings: Settings) -> JsonPlanStore:
    store = JsonPlanStore(settings.data_dir)
    store.save_plan(WARSAW)
    return store


def _seed(store: JsonPlanStore, refreshed: datetime, months: int = 12) -> None:
    rows = [
        MonthlyClimateRecord(
            plan_id="warsaw",
            year=2024 if m >= 3 else 2025,
            month=m,
            sunlight=67,
            humidity=70,
            precipitation=100 if m == 7 else 50,
            precipitation_mm=131.5 if m == 7 else 50.0,
            precipitation_exceeded=m == 7,
            temperature=56,
            temperature_c=15.0,
            last_refreshed_at=refreshed,
        )
        for m in range(1, months + 1)
    ]
    store.upsert_monthly_records("warsaw", rows)


class TestCreateParser:
    """Tests for create_parser function."""

    def test_creates_parser(self) -> None:
        """Parser is created successfully."""
        parser = create_parser()
        assert isinstance(parser, argparse.ArgumentParser)
        assert parser.prog == "garden-planner"

    def test_parser_has_version(self) -> None:
        """Parser has version argument."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])

    def test_parser_has_debug_flag(self) -> None:
        """Parser accepts --debug flag."""
        args = create_parser().parse_args(["--debug", "info"])
        assert args.debug is True

    def test_parser_refresh_command(self) -> None:
        """Refresh accepts plan ids and flags."""
        args = create_parser().parse_args(["refresh", "a", "b", "--force"])
        assert args.command == "refresh"
        assert args.plan_ids == ["a", "b"]
        assert args.force is True
        assert args.all is False

    def test_parser_add_plan_requires_coordinates(self) -> None:
        """add-plan needs --lat and --lon."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["add-plan", "x"])

    def test_parser_fit_command(self) -> None:
        """Fit takes a plan id and a plant name."""
        args = create_parser().parse_args(["fit", "warsaw", "Tomato", "--retry"])
        assert args.plan_id == "warsaw"
        assert args.plant == "Tomato"
        assert args.retry is True
        assert args.timeout_ms is None


class TestCmdInfo:
    """Tests for cmd_info function."""

    def test_prints_app_info(self, settings: Settings) -> None:
        """Info command prints application information."""
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            exit_code = cmd_info(argparse.Namespace())
            output = mock_stdout.getvalue()
        assert exit_code == 0
        assert "Application: garden-planner" in output
        assert "Scoring API key: set" in output
        assert "sk-test" not in output


class TestCmdAddPlan:
    """Tests for cmd_add_plan function."""

    def test_saves_plan(self, settings: Settings) -> None:
        """A plan with coordinates is stored with its hemisphere."""
        args = argparse.Namespace(plan_id="sydney", name="Balcony", lat=-33.9, lon=151.2)
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_add_plan(args) == 0
            assert "southern" in mock_stdout.getvalue()

        plan = JsonPlanStore(settings.data_dir).get_plan("sydney")
        assert plan is not None
        assert plan.name == "Balcony"

    def test_invalid_latitude(self, settings: Settings) -> None:
        """Out-of-range coordinates are rejected."""
        args = argparse.Namespace(plan_id="x", name=None, lat=123.0, lon=0.0)
        with patch("sys.stderr", new=StringIO()):
            assert cmd_add_plan(args) == 1
        assert JsonPlanStore(settings.data_dir).get_plan("x") is None


class TestCmdRefresh:
    """Tests for cmd_refresh function."""

    def test_requires_plans_or_all(self) -> None:
        """No plan ids and no --all is an error."""
        args = argparse.Namespace(plan_ids=[], all=False, force=False)
        with patch("sys.stderr", new=StringIO()):
            assert cmd_refresh(args) == 1

    def test_runs_flow_for_selected_plans(self) -> None:
        """Selected plan ids are passed to the flow."""
        args = argparse.Namespace(plan_ids=["warsaw"], all=False, force=True)
        with (
            patch("garden_planner.cli.refresh_plans") as mock_flow,
            patch("sys.stdout", new=StringIO()),
        ):
            mock_flow.return_value = {"warsaw": {"status": "refreshed", "months": 12}}
            assert cmd_refresh(args) == 0
            mock_flow.assert_called_once_with(plan_ids=["warsaw"], force=True)

    def test_all_plans(self) -> None:
        """--all passes no plan filter."""
        args = argparse.Namespace(plan_ids=[], all=True, force=False)
        with (
            patch("garden_planner.cli.refresh_plans") as mock_flow,
            patch("sys.stdout", new=StringIO()),
        ):
            mock_flow.return_value = {}
            cmd_refresh(args)
            mock_flow.assert_called_once_with(plan_ids=None, force=False)

    def test_failures_return_one(self) -> None:
        """Any failed plan makes the command fail."""
        args = argparse.Namespace(plan_ids=["a", "b"], all=False, force=False)
        with (
            patch("garden_planner.cli.refresh_plans") as mock_flow,
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            mock_flow.return_value = {
                "a": {"status": "fresh", "months": 0},
                "b": {"status": "failed", "error": "boom"},
            }
            assert cmd_refresh(args) == 1
            assert "1 ok, 1 failed" in mock_stdout.getvalue()


class TestCmdMonths:
    """Tests for cmd_months function."""

    def test_no_cache(self, store: JsonPlanStore) -> None:
        """A plan without cached months returns 1."""
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_months(argparse.Namespace(plan_id="warsaw")) == 1
            assert "No cached climate" in mock_stdout.getvalue()

    def test_prints_table(self, store: JsonPlanStore) -> None:
        """Each cached month is printed, exceeded rain is marked."""
        _seed(store, datetime.now(UTC))
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_months(argparse.Namespace(plan_id="warsaw")) == 0
            output = mock_stdout.getvalue()
        assert "2024-07" in output
        assert "131.5+" in output
        assert "Refresh recommended" not in output

    def test_stale_cache_recommends_refresh(self, store: JsonPlanStore) -> None:
        """Old rows are shown with a refresh hint."""
        _seed(store, datetime(2020, 1, 1, tzinfo=UTC))
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_months(argparse.Namespace(plan_id="warsaw")) == 0
            assert "Refresh recommended" in mock_stdout.getvalue()


class TestCmdFit:
    """Tests for cmd_fit function."""

    @staticmethod
    def _args(retry: bool = False) -> argparse.Namespace:
        return argparse.Namespace(plan_id="warsaw", plant="Tomato", retry=retry, timeout_ms=None)

    def test_prints_scores(self, store: JsonPlanStore) -> None:
        """Successful scoring prints all five scores."""
        _seed(store, datetime.now(UTC))
        with (
            patch.object(FitScoringClient, "score", return_value=RESULT),
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            assert cmd_fit(self._args()) == 0
            output = mock_stdout.getvalue()
        assert "Fit for Tomato" in output
        assert "overall:       4/5" in output

    def test_missing_api_key(self, settings: Settings) -> None:
        """Scoring needs an API key."""
        settings.scoring_api_key = SecretStr("")
        with patch("sys.stderr", new=StringIO()) as mock_stderr:
            assert cmd_fit(self._args()) == 1
            assert "SCORING_API_KEY" in mock_stderr.getvalue()

    def test_unknown_plan(self, settings: Settings) -> None:
        """A missing plan is reported before any request."""
        with (
            patch.object(FitScoringClient, "score") as mock_score,
            patch("sys.stderr", new=StringIO()),
        ):
            assert cmd_fit(self._args()) == 1
            mock_score.assert_not_called()

    def test_bad_json_hints_manual_entry(self, store: JsonPlanStore) -> None:
        """Unusable answers exit 2 with a manual-entry hint."""
        with (
            patch.object(FitScoringClient, "score", side_effect=ScoringBadJsonError()),
            patch("sys.stdout", new=StringIO()),
            patch("sys.stderr", new=StringIO()) as mock_stderr,
        ):
            assert cmd_fit(self._args(retry=True)) == EXIT_SCORING_FAILED
            assert "manually" in mock_stderr.getvalue()

    def test_rate_limit_hint(self, store: JsonPlanStore) -> None:
        """Rate limits are not retried and report the wait."""
        with (
            patch.object(
                FitScoringClient, "score", side_effect=ScoringRateLimitError(retry_after=30)
            ) as mock_score,
            patch("sys.stdout", new=StringIO()),
            patch("sys.stderr", new=StringIO()) as mock_stderr,
        ):
            assert cmd_fit(self._args(retry=True)) == EXIT_SCORING_FAILED
            assert "30 seconds" in mock_stderr.getvalue()
            assert mock_score.call_count == 1

    def test_retry_until_success(self, store: JsonPlanStore) -> None:
        """--retry resends after a timeout."""
        with (
            patch.object(
                FitScoringClient, "score", side_effect=[ScoringTimeoutError(), RESULT]
            ) as mock_score,
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            assert cmd_fit(self._args(retry=True)) == 0
            assert mock_score.call_count == 2
            assert "retrying" in mock_stdout.getvalue()

    def test_retry_stops_at_cap(self, store: JsonPlanStore) -> None:
        """Retries stop after scoring_max_attempts."""
        with (
            patch.object(
                FitScoringClient, "score", side_effect=ScoringTimeoutError()
            ) as mock_score,
            patch("sys.stdout", new=StringIO()),
            patch("sys.stderr", new=StringIO()),
        ):
            assert cmd_fit(self._args(retry=True)) == EXIT_SCORING_FAILED
            assert mock_score.call_count == 3

    def test_no_retry_without_flag(self, store: JsonPlanStore) -> None:
        """Without --retry a timeout fails immediately with a retry hint."""
        with (
            patch.object(
                FitScoringClient, "score", side_effect=ScoringTimeoutError()
            ) as mock_score,
            patch("sys.stdout", new=StringIO()),
            patch("sys.stderr", new=StringIO()) as mock_stderr,
        ):
            assert cmd_fit(self._args()) == EXIT_SCORING_FAILED
            assert "try again" in mock_stderr.getvalue()
            assert mock_score.call_count == 1


class TestMain:
    """Tests for main function."""

    @pytest.fixture(autouse=True)
    def _no_logging_setup(self) -> Iterator[Mock]:
        with patch("garden_planner.cli.configure_logging") as mock_logging:
            yield mock_logging

    def test_no_command_shows_help(self) -> None:
        """No command shows help and exits 0."""
        with patch("sys.argv", ["garden-planner"]), patch("sys.stdout", new=StringIO()):
            assert main() == 0

    @pytest.mark.parametrize(
        ("argv", "handler"),
        [
            (["info"], "cmd_info"),
            (["add-plan", "x", "--lat", "1", "--lon", "2"], "cmd_add_plan"),
            (["refresh", "--all"], "cmd_refresh"),
            (["months", "warsaw"], "cmd_months"),
            (["fit", "warsaw", "Tomato"], "cmd_fit"),
        ],
    )
    def test_dispatches_command(self, argv: list[str], handler: str) -> None:
        """Each command reaches its handler."""
        with (
            patch("sys.argv", ["garden-planner", *argv]),
            patch(f"garden_planner.cli.{handler}") as mock_cmd,
        ):
            mock_cmd.return_value = 0
            assert main() == 0
            mock_cmd.assert_called_once()

    def test_debug_flag_configures_logging(self, _no_logging_setup: Mock) -> None:
        """--debug turns on debug logging."""
        with (
            patch("sys.argv", ["garden-planner", "--debug", "info"]),
            patch("garden_planner.cli.cmd_info", return_value=0),
        ):
            main()
        _no_logging_setup.assert_called_once_with(debug=True)
