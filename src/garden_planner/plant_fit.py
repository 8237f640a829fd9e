"""Plant fit scoring for a plan.

``FitScoringOrchestrator.score_plant_fit`` loads a plan's cached climate
months, weights them by growing season, and asks the scoring provider to
rate the plant.  Every failure comes out as exactly one ``ScoringError``
kind, so callers can branch deterministically.

``ScoringAttempt`` tracks one caller-visible attempt::

    IDLE -> REQUESTING -> SUCCEEDED
                       -> FAILED --retry()--> REQUESTING   (can_retry only)
                                 --enter_manually()--> MANUAL

A failure with ``can_retry=False`` (or one that used up ``max_attempts``) is
terminal; the caller should offer manual entry instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING

from garden_planner.analysis.seasonal import compute_weighted_profile
from garden_planner.datasources.scoring.fit import FitScoringClient
from garden_planner.datasources.scoring.models import ScoringError, to_scoring_error
from garden_planner.datasources.scoring.prompts import sanitize_plant_name
from garden_planner.schemas import FitQuery, FitResult
from garden_planner.store import PlanNotFoundError

if TYPE_CHECKING:
    from garden_planner.cache import ClimateCacheManager
    from garden_planner.config import Settings
    from garden_planner.store import PlanStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class AttemptState(StrEnum):
    """Lifecycle of one scoring attempt."""

    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    MANUAL = "manual"


class InvalidTransitionError(RuntimeError):
    """The attempt is not in a state that allows this action."""


class ScoringAttempt:
    """Caller-driven state machine around a scoring request."""

    def __init__(
        self,
        request: Callable[[], FitResult],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {max_attempts}"
            raise ValueError(msg)
        self._request = request
        self.max_attempts = max_attempts
        self.state = AttemptState.IDLE
        self.attempts = 0
        self.result: FitResult | None = None
        self.error: ScoringError | None = None

    @property
    def can_retry(self) -> bool:
        return (
            self.state == AttemptState.FAILED
            and self.error is not None
            and self.error.can_retry
            and self.attempts < self.max_attempts
        )

    @property
    def needs_manual_entry(self) -> bool:
        """Failed for good: offer the manual-entry fallback."""
        return self.state == AttemptState.FAILED and not self.can_retry

    def run(self) -> FitResult:
        """Send the first request."""
        if self.state != AttemptState.IDLE:
            msg = f"cannot run an attempt in state {self.state}"
            raise InvalidTransitionError(msg)
        return self._send()

    def retry(self) -> FitResult:
        """Send the request again after a retryable failure."""
        if not self.can_retry:
            msg = f"cannot retry an attempt in state {self.state}"
            if self.error is not None:
                msg += f" after {self.error.kind} (can_retry={self.error.can_retry})"
            raise InvalidTransitionError(msg)
        return self._send()

    def enter_manually(self, result: FitResult) -> FitResult:
        """Record scores typed in by the user after a failure."""
        if self.state != AttemptState.FAILED:
            msg = f"manual entry is only offered after a failure, not in state {self.state}"
            raise InvalidTransitionError(msg)
        self.state = AttemptState.MANUAL
        self.result = result
        return result

    def _send(self) -> FitResult:
        self.state = AttemptState.REQUESTING
        self.attempts += 1
        try:
            result = self._request()
        except Exception as e:
            self.error = to_scoring_error(e)
            self.state = AttemptState.FAILED
            logger.info(
                "Scoring attempt %d/%d failed: %s",
                self.attempts,
                self.max_attempts,
                self.error.kind,
            )
            if self.error is e:
                raise
            raise self.error from e
        self.error = None
        self.result = result
        self.state = AttemptState.SUCCEEDED
        return result


class FitScoringOrchestrator:
    """Combines a plan's cached climate with a plant name and scores the fit."""

    def __init__(
        self,
        store: PlanStore,
        cache: ClimateCacheManager,
        client: FitScoringClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.store = store
        self.cache = cache
        self.client = client
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(
        cls, settings: Settings, cache: ClimateCacheManager
    ) -> FitScoringOrchestrator:
        """Wire an orchestrator sharing the cache manager's plan store."""
        client = FitScoringClient(
            settings.scoring_api_key.get_secret_value(),
            base_url=settings.scoring_api_url,
            model=settings.scoring_model,
            timeout_ms=settings.scoring_timeout_ms,
            default_retry_after=settings.scoring_retry_after_default,
            app_name=settings.app_name,
        )
        return cls(cache.store, cache, client, max_attempts=settings.scoring_max_attempts)

    def build_query(self, plant_name: str, plan_id: str) -> FitQuery:
        """Load the plan and its cached months into a FitQuery.

        Raises:
            ValueError: The plant name is empty after sanitizing.
            PlanNotFoundError: No such plan.
        """
        name = sanitize_plant_name(plant_name)
        if not name:
            msg = "plant name must not be empty"
            raise ValueError(msg)

        plan = self.store.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)

        records = self.cache.get_monthly_records(plan_id)
        profile = compute_weighted_profile(records, plan.hemisphere)
        if profile.is_empty():
            logger.warning("Plan %s has no cached climate; scoring %r without it", plan_id, name)
        return FitQuery(plant_name=name, profile=profile, hemisphere=plan.hemisphere)

    def score_plant_fit(
        self,
        plant_name: str,
        plan_id: str,
        timeout_ms: int | None = None,
    ) -> FitResult:
        """
        Rate how well ``plant_name`` suits the plan's climate.

        Raises:
            ScoringError: Exactly one kind per failure.
            ValueError / PlanNotFoundError: Bad input, before any request.
        """
        query = self.build_query(plant_name, plan_id)
        try:
            return self.client.score(query, timeout_ms=timeout_ms)
        except ScoringError:
            raise
        except Exception as e:
            raise to_scoring_error(e) from e

    def start_attempt(
        self,
        plant_name: str,
        plan_id: str,
        timeout_ms: int | None = None,
    ) -> ScoringAttempt:
        """Prepare a retryable attempt; call ``run()`` on it to send the request."""
        query = self.build_query(plant_name, plan_id)

        def request() -> FitResult:
            return self.client.score(query, timeout_ms=timeout_ms)

        return ScoringAttempt(request, max_attempts=self.max_attempts)
