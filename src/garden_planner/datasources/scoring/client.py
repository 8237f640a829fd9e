"""AI scoring provider constants.

The provider speaks the OpenAI-compatible chat completions API; OpenRouter
is the default endpoint: https://openrouter.ai/docs/api-reference
"""

from __future__ import annotations

OPENROUTER_API = "https://openrouter.ai/api/v1"
COMPLETIONS_PATH = "/chat/completions"

DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_TIMEOUT_MS = 10_000

#: Seconds to wait after a 429 that carries no usable Retry-After header.
DEFAULT_RETRY_AFTER = 60

#: Sampling parameters for fit requests.
TEMPERATURE = 0.2
MAX_TOKENS = 300

#: Allowed gap between overall_score and the mean of the four sub-scores.
OVERALL_TOLERANCE = 1.0

SCORE_FIELDS = (
    "sunlight_score",
    "humidity_score",
    "precip_score",
    "temperature_score",
    "overall_score",
)

#: Statuses that will not succeed on retry (bad key, no credits, forbidden).
NON_RETRYABLE_STATUSES = frozenset({401, 402, 403})

ERROR_EXCERPT_CHARS = 200
