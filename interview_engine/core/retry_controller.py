"""Per-chunk retry, re-issue, timeout, and cancellation control.

For each chunk the controller:
- checks cancellation before every dispatch and again when a response
  arrives (a late result is discarded, never merged)
- bounds every call by min(per-call timeout, time left before the operation
  deadline); running out of time counts as a transient timeout
- retries transient failures up to retry_count times with exponential
  backoff, giving up early when the next wait would cross the deadline
- re-issues once with a simplified request when the response cannot be
  parsed, then fails the chunk
- lets ServiceFatalError through untouched so the whole run aborts

The completion client itself never retries.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from interview_engine.core.config import RetryConfig
from interview_engine.core.errors import (
    ChunkParseError,
    ChunkTransientError,
    OperationCancelled,
    RunErrors,
    TransientKind,
    llm_api_error,
    llm_parse_error,
    timeout_error,
)
from interview_engine.core.pipeline_logger import RunDiagnostics
from interview_engine.pydantic_models.content_models import BudgetConfig
from interview_engine.pydantic_models.request_models import RequestEnvelope


class CompletionClient(Protocol):
    """Boundary to the text-completion service.

    send() returns the raw response text, or raises ChunkTransientError /
    ServiceFatalError. Implementations must not retry.
    """

    async def send(self, envelope: RequestEnvelope) -> str:
        ...


ParseFn = Callable[[str, int], tuple[Any, list[str]]]


class CancellationToken:
    """Cooperative cancellation flag shared by the caller and a run."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ChunkOutcome:
    """What happened to one chunk.

    Exactly one of: result set (success), cancelled True, or error set.
    """

    chunk_index: int
    result: Any = None
    attempts: int = 0
    repairs_applied: list[str] = field(default_factory=list)
    error: Exception | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None and not self.cancelled


class ChunkController:
    """Runs chunks against a completion client under one operation deadline.

    Args:
        client: Completion client.
        config: Run configuration (retry_count, timeouts, backoff).
        diagnostics: Where retries, repairs and failures are recorded.
        errors: Structured error records of the run.
        cancel_token: Cooperative cancellation flag.
        sleep: Awaitable sleep (injected in tests).
        clock: Monotonic clock (injected in tests).
    """

    def __init__(
        self,
        client: CompletionClient,
        config: BudgetConfig,
        diagnostics: RunDiagnostics | None = None,
        errors: RunErrors | None = None,
        cancel_token: CancellationToken | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.config = config
        self.diagnostics = diagnostics if diagnostics is not None else RunDiagnostics()
        self.errors = errors if errors is not None else RunErrors()
        self.cancel_token = cancel_token
        self._sleep = sleep
        self._clock = clock
        self._deadline: float | None = None

    def start(self) -> None:
        """Fix the operation deadline. Called once per run."""
        self._deadline = self._clock() + self.config.operation_deadline_seconds

    @property
    def cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled

    def remaining(self) -> float:
        """Seconds left before the operation deadline."""
        if self._deadline is None:
            self.start()
        return self._deadline - self._clock()

    def backoff(self, failures: int) -> float:
        """Wait before the retry that follows the given number of failures (0-based)."""
        return min(
            self.config.backoff_max_seconds,
            self.config.backoff_base_seconds * (2 ** failures),
        )

    async def run_chunk(
        self,
        chunk_index: int,
        envelope: RequestEnvelope,
        parse: ParseFn,
        phase: str = "generate",
    ) -> ChunkOutcome:
        """Drive one chunk to a result, a failure, or cancellation.

        Raises:
            ServiceFatalError: Propagated from the client unchanged.
        """
        outcome = ChunkOutcome(chunk_index=chunk_index)
        request = envelope
        transient_failures = 0
        parse_reissues = 0

        while True:
            if self.cancelled:
                return self._cancel(outcome, phase)

            remaining = self.remaining()
            if remaining <= 0:
                error = ChunkTransientError(TransientKind.TIMEOUT, "operation deadline reached")
                self.errors.add(timeout_error(phase, chunk_index, self.config.operation_deadline_seconds, transient_failures))
                return self._fail(outcome, error, phase, transient_failures)

            outcome.attempts += 1
            call_timeout = min(self.config.per_call_timeout_seconds, remaining)
            try:
                raw = await asyncio.wait_for(self.client.send(request), timeout=call_timeout)
            except asyncio.TimeoutError:
                error = ChunkTransientError(TransientKind.TIMEOUT, f"no response within {call_timeout:.1f}s")
            except ChunkTransientError as e:
                error = e
            else:
                if self.cancelled:
                    return self._cancel(outcome, phase)
                try:
                    result, repairs = parse(raw, chunk_index)
                except ChunkParseError as e:
                    if parse_reissues < RetryConfig.PARSE_RETRIES:
                        parse_reissues += 1
                        request = request.simplified_copy()
                        self.diagnostics.record(
                            "parse_reissue", phase, chunk_index, reason=str(e), offset=e.offset,
                        )
                        continue
                    self.errors.add(llm_parse_error(str(e), phase, chunk_index, e.raw_text, e.offset))
                    return self._fail(outcome, e, phase, transient_failures)

                outcome.result = result
                outcome.repairs_applied = list(repairs)
                if repairs:
                    self.diagnostics.record("response_repaired", phase, chunk_index, steps=list(repairs))
                self.diagnostics.record("chunk_succeeded", phase, chunk_index, attempts=outcome.attempts)
                return outcome

            if transient_failures >= self.config.retry_count:
                self._record_transient(error, phase, chunk_index, transient_failures)
                return self._fail(outcome, error, phase, transient_failures)

            delay = self.backoff(transient_failures)
            transient_failures += 1
            if delay >= self.remaining():
                self._record_transient(error, phase, chunk_index, transient_failures)
                return self._fail(outcome, error, phase, transient_failures, reason="backoff would cross the deadline")

            self.diagnostics.record(
                "chunk_retry", phase, chunk_index,
                kind=error.kind.value, attempt=outcome.attempts, wait_seconds=delay,
            )
            await self._sleep(delay)

    async def run_many(
        self,
        jobs: Sequence[tuple[int, RequestEnvelope]],
        parse: ParseFn,
        semaphore: asyncio.Semaphore,
        phase: str = "generate",
    ) -> list[ChunkOutcome]:
        """Run independent chunks concurrently, bounded by the semaphore.

        If any chunk raises (ServiceFatalError, outer cancellation), every
        other pending chunk is cancelled before the exception propagates.
        """

        async def guarded(chunk_index: int, envelope: RequestEnvelope) -> ChunkOutcome:
            async with semaphore:
                return await self.run_chunk(chunk_index, envelope, parse, phase)

        tasks = [asyncio.ensure_future(guarded(index, envelope)) for index, envelope in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # -- Recording helpers --

    def _record_transient(self, error: ChunkTransientError, phase: str, chunk_index: int, retries: int) -> None:
        if error.kind is TransientKind.TIMEOUT:
            self.errors.add(timeout_error(phase, chunk_index, self.config.per_call_timeout_seconds, retries))
        else:
            self.errors.add(llm_api_error(str(error), phase, chunk_index, original=error, retry_count=retries))

    def _fail(
        self,
        outcome: ChunkOutcome,
        error: Exception,
        phase: str,
        retries: int,
        reason: str = "",
    ) -> ChunkOutcome:
        outcome.error = error
        data = {"error": str(error), "attempts": outcome.attempts, "retries": retries}
        if reason:
            data["reason"] = reason
        self.diagnostics.record("chunk_failed", phase, outcome.chunk_index, **data)
        return outcome

    def _cancel(self, outcome: ChunkOutcome, phase: str) -> ChunkOutcome:
        outcome.cancelled = True
        outcome.error = OperationCancelled()
        self.diagnostics.record("cancelled", phase, outcome.chunk_index)
        return outcome
