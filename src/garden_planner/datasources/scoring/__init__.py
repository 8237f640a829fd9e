"""AI plant fit scoring data source.

Sends a plant name plus a weighted climate profile to an OpenAI-compatible
chat completions API and validates the five 1-5 scores it returns.

Public API:
  - fit: FitScoringClient.score (bounded-timeout scoring call)
  - models: ScoringError family and ScoringErrorKind
  - validation: response contract and overall-score soft check
  - prompts: request body construction, plant name sanitizing
"""

from garden_planner.datasources.scoring.fit import FitScoringClient
from garden_planner.datasources.scoring.models import (
    ScoringBadJsonError,
    ScoringError,
    ScoringErrorKind,
    ScoringNetworkError,
    ScoringRateLimitError,
    ScoringTimeoutError,
    ScoringUnknownError,
    to_scoring_error,
)

__all__ = [
    "FitScoringClient",
    "ScoringBadJsonError",
    "ScoringError",
    "ScoringErrorKind",
    "ScoringNetworkError",
    "ScoringRateLimitError",
    "ScoringTimeoutError",
    "ScoringUnknownError",
    "to_scoring_error",
]
