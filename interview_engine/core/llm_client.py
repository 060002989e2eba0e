"""Completion client backed by the litellm Router.

LiteLLMCompletionClient is the production CompletionClient: it turns a
RequestEnvelope into chat messages, makes exactly one call, records token
usage, and translates litellm's exception classes into the engine's two
failure kinds:

- ChunkTransientError: rate limits, timeouts, unavailable or overloaded
  service. The chunk controller retries these.
- ServiceFatalError: authentication and malformed requests. Retrying cannot
  help, so the whole run aborts.

Parsing is not done here. The raw text goes back to the controller, which
runs it through the repair pipeline so every repair is accounted for.
"""

import logging

import litellm
from litellm import Router

from interview_engine.core.config import DEFAULT_MODEL, LLMConfig
from interview_engine.core.cost_tracker import CostTracker
from interview_engine.core.errors import (
    ChunkTransientError,
    FatalKind,
    ServiceFatalError,
    TransientKind,
)
from interview_engine.core.llm_router import router as default_router
from interview_engine.core.retry_controller import CompletionClient
from interview_engine.pydantic_models.request_models import RequestEnvelope

logger = logging.getLogger(__name__)

# Suppress LiteLLM debug noise (done once at module load)
logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("LiteLLM").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)


# Checked in order: litellm.Timeout subclasses APIConnectionError
_TRANSIENT_ERRORS: list[tuple[type[Exception], TransientKind]] = [
    (litellm.RateLimitError, TransientKind.RATE_LIMITED),
    (litellm.Timeout, TransientKind.TIMEOUT),
    (litellm.ServiceUnavailableError, TransientKind.SERVICE_UNAVAILABLE),
    (litellm.InternalServerError, TransientKind.SERVICE_UNAVAILABLE),
    (litellm.APIConnectionError, TransientKind.SERVICE_UNAVAILABLE),
]

_FATAL_ERRORS: list[tuple[type[Exception], FatalKind]] = [
    (litellm.AuthenticationError, FatalKind.AUTHENTICATION),
    (litellm.PermissionDeniedError, FatalKind.AUTHENTICATION),
    (litellm.BadRequestError, FatalKind.MALFORMED_REQUEST),
    (litellm.NotFoundError, FatalKind.MALFORMED_REQUEST),
    (litellm.UnprocessableEntityError, FatalKind.MALFORMED_REQUEST),
]


def classify_error(error: Exception) -> ChunkTransientError | ServiceFatalError | None:
    """Map a litellm exception to the engine's error kinds (None if unknown)."""
    for error_type, kind in _TRANSIENT_ERRORS:
        if isinstance(error, error_type):
            return ChunkTransientError(kind, str(error))
    for error_type, kind in _FATAL_ERRORS:
        if isinstance(error, error_type):
            return ServiceFatalError(kind, str(error))
    if isinstance(error, litellm.APIError):
        return ChunkTransientError(TransientKind.SERVICE_UNAVAILABLE, str(error))
    return None


class LiteLLMCompletionClient:
    """CompletionClient that calls the litellm Router once per send().

    Usage:
        client = LiteLLMCompletionClient(cost_tracker=tracker)
        raw = await client.send(envelope)
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        cost_tracker: CostTracker | None = None,
        router: Router | None = None,
        temperature: float | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            model: Model identifier known to the router.
            cost_tracker: Optional tracker; every call's usage is recorded.
            router: Router to call. Defaults to the module-level router.
            temperature: Sampling temperature. Defaults to LLMConfig.TEMPERATURE.
        """
        self.model = model
        self.cost_tracker = cost_tracker
        self._router = router
        self.temperature = LLMConfig.TEMPERATURE if temperature is None else temperature

    @property
    def router(self) -> Router:
        return self._router if self._router is not None else default_router

    async def send(self, envelope: RequestEnvelope) -> str:
        """Make one completion call and return the raw response text.

        Raises:
            ChunkTransientError: Retryable service failure.
            ServiceFatalError: Authentication or malformed request.
        """
        try:
            response = await self.router.acompletion(
                model=self.model,
                messages=envelope.to_messages(),
                response_format=LLMConfig.RESPONSE_FORMAT,
                temperature=self.temperature,
            )
        except Exception as e:
            mapped = classify_error(e)
            if mapped is None:
                raise
            logger.debug(f"Completion call failed for chunk {envelope.chunk_index}: {type(e).__name__}")
            raise mapped from e

        if self.cost_tracker:
            self.cost_tracker.record(
                self.model, response.usage, stage=envelope.stage, chunk_index=envelope.chunk_index,
            )

        choice = response.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            logger.debug(f"Response for chunk {envelope.chunk_index} hit the output length limit")
        return choice.message.content or ""


__all__ = ["CompletionClient", "LiteLLMCompletionClient", "classify_error"]
