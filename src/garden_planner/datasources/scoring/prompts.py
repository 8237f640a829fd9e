"""Request bodies for plant fit scoring."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from garden_planner.datasources.scoring.client import MAX_TOKENS, SCORE_FIELDS, TEMPERATURE

if TYPE_CHECKING:
    from garden_planner.schemas import FitQuery

MAX_PLANT_NAME_CHARS = 200

SYSTEM_PROMPT = """\
You are a horticulture expert rating how well a plant suits the climate of a garden plot.

You receive the plot's growing-season weighted climate profile. Every value
is on a 0-100 scale:
- sunlight: share of daylight with direct sunshine (100 = always sunny)
- humidity: mean relative humidity in percent
- precipitation: monthly rainfall, 100 = 100 mm per month or more
- temperature: mean air temperature, 0 = -30 C and 100 = +50 C (the value in C is also given)

Growing-season months (April-September in the northern hemisphere,
October-March in the southern) were weighted twice as heavily as the rest.

Rate each parameter from 1 (unsuitable) to 5 (ideal):
- 5: ideal, >= 90% match with the plant's needs
- 4: good, 80-89%
- 3: fair, 70-79%, the plant survives but underperforms
- 2: poor, 60-69%, needs intensive care
- 1: bad, < 60%, the plant will likely fail

overall_score summarizes the four parameter scores.

Respond with JSON only, using exactly these integer fields:
sunlight_score, humidity_score, precip_score, temperature_score, overall_score."""

RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "plant_fit_response",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                name: {"type": "integer", "minimum": 1, "maximum": 5} for name in SCORE_FIELDS
            },
            "required": list(SCORE_FIELDS),
            "additionalProperties": False,
        },
    },
}

_ANGLE_BRACKETS = re.compile(r"[<>]")
_NEWLINES = re.compile(r"[\r\n]+")


def sanitize_plant_name(name: str) -> str:
    """Trim, cap length, and strip characters that could break the prompt."""
    cleaned = _NEWLINES.sub(" ", _ANGLE_BRACKETS.sub("", name))
    return cleaned.strip()[:MAX_PLANT_NAME_CHARS].strip()


def _fmt(value: float | None, suffix: str = "/100") -> str:
    return "no data" if value is None else f"{value:.0f}{suffix}"


def build_user_prompt(query: FitQuery) -> str:
    """Describe the plant and the weighted climate profile."""
    profile = query.profile
    temperature_c = profile.temperature_c
    temperature = _fmt(profile.temperature)
    if temperature_c is not None:
        temperature += f" (about {temperature_c:.1f} C)"

    return (
        f'Rate how well the plant "{query.plant_name}" fits this plot.\n\n'
        f"Hemisphere: {query.hemisphere.value}\n"
        f"Weighted climate profile (last 12 months):\n"
        f"- sunlight: {_fmt(profile.sunlight)}\n"
        f"- humidity: {_fmt(profile.humidity)}\n"
        f"- precipitation: {_fmt(profile.precipitation)}\n"
        f"- temperature: {temperature}\n"
    )


def build_request(query: FitQuery, model: str) -> dict[str, Any]:
    """Chat completion body demanding the five-score JSON response."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(query)},
        ],
        "response_format": RESPONSE_FORMAT,
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
    }
