"""Centralized configuration for the generation engine.

All magic numbers, thresholds, and default limits are documented here.
Each constant includes:
- What it controls
- What changing it affects

None of these are read implicitly at call time: they only seed the defaults
of BudgetConfig (pydantic_models/content_models.py), which every run receives
explicitly.
"""

import os
from typing import Final


# =============================================================================
# LLM Provider Configuration
# =============================================================================
#
# To switch providers, set the LLM_PROVIDER environment variable:
#   - "openai" (default): Uses the OpenAI API directly
#   - "openrouter": Uses OpenRouter API gateway
#   - "azure": Uses Azure OpenAI Service
#
# For Azure, also set:
#   - AZURE_API_KEY: Your Azure OpenAI API key
#   - AZURE_API_BASE: Your Azure endpoint (e.g., https://your-resource.openai.azure.com/)
#   - AZURE_API_VERSION: API version (e.g., 2024-02-15-preview)
#   - AZURE_DEPLOYMENT: Deployment name (default: gpt-4o-mini)
#
# =============================================================================

LLM_PROVIDER: Final[str] = os.environ.get("LLM_PROVIDER", "openai")
"""LLM provider to use. Set via LLM_PROVIDER env var."""

API_KEY_ENV_VARS: Final[dict[str, str]] = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "azure": "AZURE_API_KEY",
}

API_KEY_ENV_VAR: Final[str] = API_KEY_ENV_VARS.get(LLM_PROVIDER, "OPENAI_API_KEY")
"""Environment variable name for the LLM API key (provider-dependent)."""


def _get_model_name(base_model: str) -> str:
    """Convert a base model name to provider-specific format.

    Args:
        base_model: Base model name (e.g., "gpt-4o", "gpt-4o-mini")

    Returns:
        Provider-specific model identifier.
    """
    if LLM_PROVIDER == "azure":
        return f"azure/{os.environ.get('AZURE_DEPLOYMENT', base_model)}"
    if LLM_PROVIDER == "openrouter":
        return f"openrouter/openai/{base_model}"
    return base_model


DEFAULT_MODEL: Final[str] = _get_model_name("gpt-4o-mini")
"""Model used for every completion call unless overridden with --model."""


# Budget Configuration

class BudgetDefaults:
    """Default capacity limits, in capacity units (~tokens).

    A capacity unit is CHARS_PER_UNIT characters of text. The numbers mirror
    the limits the interview product used against 128k-context models.
    """

    CHARS_PER_UNIT: Final[int] = 4
    """Approximate characters per capacity unit.

    Conservative for English prose. Used by: catalog.py:estimate_size()
    """

    CAPACITY: Final[int] = 120_000
    """Total units one completion call may carry (instructions + content)."""

    RESERVED_OVERHEAD: Final[int] = 2_000
    """Safety margin on top of the measured size of fixed instructions.

    Covers chat-message framing and section headers added by render_items().
    """

    PER_CALL_CAPACITY: Final[int] = 110_000
    """Content units available to a single chunk call.

    Kept below CAPACITY - RESERVED_OVERHEAD so the carried summary and the
    simplify instruction always fit next to a full chunk.
    """

    SEQUENTIAL_CEILING: Final[int] = 480_000
    """Above this total content size, the hierarchical strategy is used.

    Roughly four full sequential calls. Past that point a rolling summary loses
    too much early context, so items are digested first instead.
    """

    CARRIED_SUMMARY_CAPACITY: Final[int] = 2_000
    """Maximum units of prior-chunk output embedded in the next request."""

    DIGEST_CAPACITY: Final[int] = 150
    """Maximum units per item digest produced by the hierarchical pass 1."""

    REFINE_TOP_ITEMS: Final[int] = 5
    """Top-priority items re-expanded in hierarchical pass 3 (0 disables)."""


# Chunking Configuration

class ChunkingConfig:
    """Configuration for positional batching of large workloads.

    Trade-offs:
    - Larger batches: fewer calls, but responses get long and truncate
    - Smaller batches: more calls, more repeated shared context per call
    """

    BATCH_SIZE: Final[int] = 30
    """Items per chunk when partitioning an assignable workload.

    30 questions per call keeps the assignment response well inside the
    completion limit even when every stakeholder receives every question.
    """

    MAX_CONCURRENCY: Final[int] = 5
    """Max independent chunk calls in flight at once."""


# Retry Configuration

class RetryConfig:
    """Configuration for transient-failure retries.

    Exponential backoff: wait = min(MAX_WAIT, MIN_WAIT * 2**attempt), so
    4s, 8s, 16s, ... capped at 60s.
    """

    MAX_ATTEMPTS: Final[int] = 3
    """Retries after the first attempt before a chunk is marked failed."""

    MIN_WAIT_SECONDS: Final[float] = 4.0
    """Initial wait time before the first retry."""

    MAX_WAIT_SECONDS: Final[float] = 60.0
    """Maximum wait time between retries (caps exponential growth)."""

    PARSE_RETRIES: Final[int] = 1
    """Re-issues with a simplify instruction after an unrecoverable parse."""


class TimeoutConfig:
    """Time bounds for external calls."""

    PER_CALL_SECONDS: Final[float] = 120.0
    """Upper bound for a single completion call."""

    OPERATION_DEADLINE_SECONDS: Final[float] = 600.0
    """Upper bound for a whole generate() run, retries included."""


# LLM Call Configuration

class LLMConfig:
    """Default parameters for LLM API calls."""

    TEMPERATURE: Final[float] = 0.0
    """Sampling temperature for all calls.

    0.0 keeps assignment runs reproducible across retries.
    """

    RESPONSE_FORMAT: Final[dict[str, str]] = {"type": "json_object"}
    """Response format requesting JSON output."""


# Prompt limits

class PromptLimits:
    """Limits applied while rendering prompts and diagnostics."""

    RAW_RESPONSE_PREVIEW: Final[int] = 500
    """Characters of a failed raw response kept in error records."""

    RATIONALE_SEPARATOR: Final[str] = " | "
    """Joins rationales of the same entity coming from different chunks."""

    TRUNCATION_MARKER: Final[str] = "\n\n... [Content truncated to fit context limit] ..."
    """Appended by smart_truncate() when lines had to be cut."""
