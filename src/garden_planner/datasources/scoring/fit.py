"""Plant fit scoring over an OpenAI-compatible chat completions API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

import requests

from garden_planner.datasources.scoring.client import (
    COMPLETIONS_PATH,
    DEFAULT_MODEL,
    DEFAULT_RETRY_AFTER,
    DEFAULT_TIMEOUT_MS,
    ERROR_EXCERPT_CHARS,
    NON_RETRYABLE_STATUSES,
    OPENROUTER_API,
)
from garden_planner.datasources.scoring.models import (
    ScoringBadJsonError,
    ScoringError,
    ScoringNetworkError,
    ScoringRateLimitError,
    ScoringTimeoutError,
    ScoringUnknownError,
)
from garden_planner.datasources.scoring.prompts import build_request
from garden_planner.datasources.scoring.validation import (
    check_overall_consistency,
    extract_content,
    parse_fit_scores,
)
from garden_planner.services.http import (
    NO_RETRY,
    DeadlineExceeded,
    RequestCancelled,
    RequestDeadline,
    create_session,
    excerpt,
    read_body,
    read_json,
)

if TYPE_CHECKING:
    from garden_planner.schemas import FitQuery, FitResult

logger = logging.getLogger(__name__)


def parse_retry_after(value: str | None, default: int = DEFAULT_RETRY_AFTER) -> int:
    """Seconds from a Retry-After header (delta-seconds or HTTP date)."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0, int((when - datetime.now(UTC)).total_seconds()))


class FitScoringClient:
    """Bounded-timeout client for the AI scoring provider."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = OPENROUTER_API,
        model: str = DEFAULT_MODEL,
        session: requests.Session | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        default_retry_after: int = DEFAULT_RETRY_AFTER,
        app_name: str = "garden-planner",
    ) -> None:
        if not api_key:
            msg = "api_key must not be empty"
            raise ValueError(msg)
        if timeout_ms <= 0:
            msg = f"timeout_ms must be positive, got {timeout_ms}"
            raise ValueError(msg)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.session = session if session is not None else create_session(retry=NO_RETRY)
        self.timeout_ms = timeout_ms
        self.default_retry_after = default_retry_after
        self.app_name = app_name

    @property
    def url(self) -> str:
        return self.base_url + COMPLETIONS_PATH

    def score(
        self,
        query: FitQuery,
        timeout_ms: int | None = None,
        deadline: RequestDeadline | None = None,
    ) -> FitResult:
        """
        Ask the provider to rate ``query`` and validate the answer.

        Args:
            query: Plant name, weighted profile and hemisphere.
            timeout_ms: Hard budget for the whole call (default: client setting).
            deadline: Pre-built deadline, for callers that want to ``cancel()``.

        Returns:
            FitResult with all five scores set.

        Raises:
            ScoringError: Exactly one subclass per failure kind.
        """
        budget_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        envelope = self._post(build_request(query, self.model), budget_ms, deadline)
        result = parse_fit_scores(extract_content(envelope))
        check_overall_consistency(result)
        return result

    def _post(
        self, body: dict[str, Any], budget_ms: int, deadline: RequestDeadline | None
    ) -> Any:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.app_name,
        }
        with deadline or RequestDeadline(budget_ms / 1000) as dl:
            try:
                resp = self.session.post(
                    self.url,
                    json=body,
                    headers=headers,
                    timeout=dl.request_timeout(),
                    stream=True,
                )
                dl.attach(resp)
                if resp.status_code == 429:
                    retry_after = parse_retry_after(
                        resp.headers.get("Retry-After"), self.default_retry_after
                    )
                    raise ScoringRateLimitError(retry_after=retry_after)
                if not resp.ok:
                    raise self._status_error(resp, dl)
                try:
                    envelope = read_json(resp, dl)
                except ValueError as e:
                    if dl.expired:
                        raise ScoringTimeoutError(details=str(e)) from e
                    msg = "Scoring provider returned a non-JSON body"
                    raise ScoringBadJsonError(msg, details=str(e)) from e
            except ScoringError as e:
                logger.warning("Scoring request failed: %r", e)
                raise
            except (DeadlineExceeded, requests.Timeout) as e:
                logger.warning("Scoring request timed out after %dms", budget_ms)
                raise ScoringTimeoutError(details=str(e)) from e
            except requests.ConnectionError as e:
                if dl.expired:
                    raise ScoringTimeoutError(details=str(e)) from e
                logger.warning("Scoring provider unreachable: %s", e)
                raise ScoringNetworkError(details=str(e)) from e
            except RequestCancelled as e:
                raise ScoringUnknownError("Scoring request was cancelled", details=str(e)) from e
            except Exception as e:  # anything else, including reads aborted by the deadline
                if dl.expired:
                    raise ScoringTimeoutError(details=str(e)) from e
                logger.exception("Unexpected scoring failure")
                raise ScoringUnknownError(details=f"{type(e).__name__}: {e}") from e

        self._raise_embedded_error(envelope)
        return envelope

    def _status_error(self, resp: requests.Response, dl: RequestDeadline) -> ScoringError:
        try:
            text = read_body(resp, dl).decode("utf-8", errors="replace")
        except (DeadlineExceeded, requests.RequestException):
            text = ""
        snippet = excerpt(text, ERROR_EXCERPT_CHARS)
        msg = f"Scoring provider returned {resp.status_code}"
        return ScoringUnknownError(
            f"{msg}: {snippet}" if snippet else msg,
            can_retry=resp.status_code not in NON_RETRYABLE_STATUSES,
            details=snippet or None,
        )

    def _raise_embedded_error(self, envelope: Any) -> None:
        """Some providers report upstream failures inside a 200 body."""
        if not isinstance(envelope, dict) or "choices" in envelope:
            return
        error = envelope.get("error")
        if not isinstance(error, dict):
            return
        message = str(error.get("message") or "provider error")
        if error.get("code") == 429:
            raise ScoringRateLimitError(message, retry_after=self.default_retry_after)
        raise ScoringUnknownError(message, payload=envelope)
