"""Response contract for fit scoring.

A completion is accepted only if its message content is a JSON object with
all five score fields, each a true integer (not a float, bool or string) in
1..5.  Anything else raises ``ScoringBadJsonError`` carrying the payload.
"""

from __future__ import annotations

import json
import logging
import statistics
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from garden_planner.datasources.scoring.client import OVERALL_TOLERANCE
from garden_planner.datasources.scoring.models import ScoringBadJsonError
from garden_planner.schemas import FitResult

logger = logging.getLogger(__name__)


class FitScores(BaseModel):
    """The five integer scores the provider must return."""

    model_config = ConfigDict(strict=True, extra="ignore")

    sunlight_score: int = Field(..., ge=1, le=5)
    humidity_score: int = Field(..., ge=1, le=5)
    precip_score: int = Field(..., ge=1, le=5)
    temperature_score: int = Field(..., ge=1, le=5)
    overall_score: int = Field(..., ge=1, le=5)


def extract_content(envelope: Any) -> Any:
    """Pull the message content out of a chat completion envelope."""
    try:
        content = envelope["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        msg = "Completion has no message content"
        raise ScoringBadJsonError(msg, payload=envelope, details=repr(e)) from e

    if isinstance(content, str):
        try:
            return json.loads(content)
        except ValueError as e:
            msg = "Completion content is not valid JSON"
            raise ScoringBadJsonError(msg, payload=content, details=str(e)) from e
    return content


def parse_fit_scores(data: Any) -> FitResult:
    """Validate decoded content against the five-score contract."""
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise ScoringBadJsonError(msg, payload=data)
    try:
        scores = FitScores.model_validate(data)
    except ValidationError as e:
        issues = ", ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ScoringBadJsonError(f"Invalid scores: {issues}", payload=data, details=issues) from e
    return FitResult(**scores.model_dump())


def check_overall_consistency(result: FitResult, tolerance: float = OVERALL_TOLERANCE) -> bool:
    """Soft check that overall_score is close to the mean of the sub-scores.

    A mismatch is logged, never rejected.
    """
    subs = result.sub_scores()
    if result.overall_score is None or not subs:
        return True
    mean = statistics.fmean(subs)
    if abs(result.overall_score - mean) > tolerance:
        logger.warning(
            "overall_score %d deviates from sub-score mean %.2f by more than %.1f",
            result.overall_score,
            mean,
            tolerance,
        )
        return False
    return True
