"""Scoring error taxonomy.

``ScoringError`` is a closed family: one subclass per ``ScoringErrorKind``.
Callers branch on ``error.kind`` (exhaustively, with ``match``) or on the
subclass, and on ``error.can_retry`` to decide between offering a retry and
falling back to manual entry.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

import requests

from garden_planner.services.http import DeadlineExceeded


class ScoringErrorKind(StrEnum):
    """Every way a scoring call can fail."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    BAD_JSON = "bad_json"
    UNKNOWN = "unknown"


class ScoringError(Exception):
    """Base class; never raised directly."""

    kind: ScoringErrorKind
    default_message: str = "Scoring request failed"
    retryable: bool = True

    def __init__(
        self,
        message: str | None = None,
        *,
        retry_after: int | None = None,
        can_retry: bool | None = None,
        payload: Any = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.retry_after = retry_after
        self.can_retry = self.retryable if can_retry is None else can_retry
        self.payload = payload
        self.details = details

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, "
            f"can_retry={self.can_retry}, retry_after={self.retry_after})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for API responses and logs."""
        return {
            "type": self.kind.value,
            "message": self.message,
            "can_retry": self.can_retry,
            "retry_after": self.retry_after,
            "details": self.details,
        }


class ScoringTimeoutError(ScoringError):
    kind = ScoringErrorKind.TIMEOUT
    default_message = "The scoring provider did not answer in time"


class ScoringNetworkError(ScoringError):
    kind = ScoringErrorKind.NETWORK
    default_message = "Could not reach the scoring provider"


class ScoringRateLimitError(ScoringError):
    kind = ScoringErrorKind.RATE_LIMIT
    default_message = "Too many scoring requests; try again shortly"


class ScoringBadJsonError(ScoringError):
    kind = ScoringErrorKind.BAD_JSON
    default_message = "The scoring provider returned an invalid response"
    retryable = False


class ScoringUnknownError(ScoringError):
    kind = ScoringErrorKind.UNKNOWN
    default_message = "Unexpected error while scoring"


ERROR_TYPES: dict[ScoringErrorKind, type[ScoringError]] = {
    ScoringErrorKind.TIMEOUT: ScoringTimeoutError,
    ScoringErrorKind.NETWORK: ScoringNetworkError,
    ScoringErrorKind.RATE_LIMIT: ScoringRateLimitError,
    ScoringErrorKind.BAD_JSON: ScoringBadJsonError,
    ScoringErrorKind.UNKNOWN: ScoringUnknownError,
}


def to_scoring_error(error: BaseException) -> ScoringError:
    """Classify any exception into exactly one scoring error kind."""
    if isinstance(error, ScoringError):
        return error
    if isinstance(error, DeadlineExceeded | requests.Timeout | TimeoutError):
        return ScoringTimeoutError(details=str(error))
    if isinstance(error, requests.ConnectionError | ConnectionError):
        return ScoringNetworkError(details=str(error))
    return ScoringUnknownError(details=f"{type(error).__name__}: {error}")
