"""LiteLLM Router configuration.

The router is used purely as a provider switch: retries, backoff and
timeouts belong to the chunk controller (core/retry_controller.py), so the
router is built with num_retries=0 and no fallbacks. A silent fallback model
would also change the capacity the budget was computed for.

Supports multiple LLM providers:
- OpenAI (default): Uses OPENAI_API_KEY
- OpenRouter: Uses OPENROUTER_API_KEY
- Azure OpenAI: Uses AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION
"""

import os

from litellm import Router

from interview_engine.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    DEFAULT_MODEL,
    _get_model_name,
)


def _model_entry(model: str) -> dict:
    """Router deployment entry for one model name."""
    if LLM_PROVIDER == "azure":
        return {
            "model_name": model,
            "litellm_params": {
                "model": model,
                "api_key": os.environ.get("AZURE_API_KEY", ""),
                "api_base": os.environ.get("AZURE_API_BASE", ""),
                "api_version": os.environ.get("AZURE_API_VERSION", "2024-02-15-preview"),
            },
        }
    return {
        "model_name": model,
        "litellm_params": {
            "model": model,
            "api_key": f"os.environ/{API_KEY_ENV_VAR}",
        },
    }


def build_router(models: list[str] | None = None) -> Router:
    """Build the LLM Router for the given models.

    Args:
        models: Provider-specific model identifiers. Defaults to
                DEFAULT_MODEL and the larger gpt-4o.
    """
    if models is None:
        models = [DEFAULT_MODEL, _get_model_name("gpt-4o")]
    model_list = [_model_entry(m) for m in dict.fromkeys(models)]

    return Router(
        model_list=model_list,
        num_retries=0,
    )


router = build_router()
