"""Error types for the generation engine.

Two layers:
- Exception classes for the conditions a run can hit. Some are raised
  (ChunkTransientError, ChunkParseError, ServiceFatalError), some are only
  ever returned as values on the GenerationResult (the *Warning classes and
  OperationCancelled) so the caller decides what to do with them.
- Structured error records (RunError / RunErrors) that accumulate everything
  that went wrong during one run, for reporting and JSON output.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from interview_engine.core.config import PromptLimits


# =============================================================================
# Exception taxonomy
# =============================================================================


class TransientKind(Enum):
    """Failure kinds worth retrying."""
    RATE_LIMITED = "rate-limited"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service-unavailable"


class FatalKind(Enum):
    """Failure kinds that make the whole channel unusable."""
    AUTHENTICATION = "authentication"
    MALFORMED_REQUEST = "malformed-request"


class EngineError(Exception):
    """Base class for engine errors."""


class EngineWarning(UserWarning):
    """Base class for recoverable conditions returned alongside a result."""


class BudgetExceededWarning(EngineWarning):
    """Some items did not fit the capacity budget and were dropped."""

    def __init__(self, dropped_ids: list[str], message: str | None = None):
        self.dropped_ids = list(dropped_ids)
        super().__init__(message or f"{len(self.dropped_ids)} item(s) dropped to fit the capacity budget")


class CoverageGapWarning(EngineWarning):
    """Exhaustive coverage was requested but some item ids were never assigned."""

    def __init__(self, uncovered_ids: list[str], required_count: int):
        self.uncovered_ids = list(uncovered_ids)
        self.required_count = required_count
        covered = required_count - len(self.uncovered_ids)
        super().__init__(f"Coverage gap: {covered}/{required_count} covered, {len(self.uncovered_ids)} uncovered")


class ChunkTransientError(EngineError):
    """A retryable failure of one completion call."""

    def __init__(self, kind: TransientKind, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)


class ServiceFatalError(EngineError):
    """The completion service rejected us in a way retries cannot fix."""

    def __init__(self, kind: FatalKind, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)


class ChunkParseError(EngineError):
    """A response could not be turned into a valid structured result.

    Terminal for its chunk only. Carries the untouched raw text and the
    offset where parsing finally failed (None for schema failures).
    """

    def __init__(self, message: str, raw_text: str, offset: int | None = None):
        self.raw_text = raw_text
        self.offset = offset
        super().__init__(message)


class OperationCancelled(EngineError):
    """The caller cancelled the run; a partial result is still returned."""

    def __init__(self, completed_chunks: int = 0, message: str = "Operation cancelled by caller"):
        self.completed_chunks = completed_chunks
        super().__init__(message)


# =============================================================================
# Structured error records
# =============================================================================


class ErrorSeverity(Enum):
    """Severity levels for run errors."""
    WARNING = "warning"   # Non-fatal, run continued
    ERROR = "error"       # Fatal for this chunk, run continued
    CRITICAL = "critical" # Run halted


class ErrorCategory(Enum):
    """Categories of run errors."""
    LLM_API = "llm_api"           # Completion service errors
    LLM_PARSE = "llm_parse"       # Unrecoverable response parsing
    VALIDATION = "validation"     # Foreign ids, unknown entities
    TIMEOUT = "timeout"           # Call or deadline timeout
    BUDGET = "budget"             # Items dropped for capacity
    CANCELLED = "cancelled"       # Caller cancellation
    UNKNOWN = "unknown"           # Unclassified errors


@dataclass
class RunError:
    """Structured run error with context."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    phase: str                      # Phase where the error occurred
    chunk_index: int | None = None
    item_ids: list[str] = field(default_factory=list)
    original_error: Exception | None = None
    retry_count: int = 0
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.chunk_index is not None:
            parts.append(f"chunk={self.chunk_index}")
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.retry_count > 0:
            parts.append(f"retries={self.retry_count}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "phase": self.phase,
            "chunk_index": self.chunk_index,
            "item_ids": self.item_ids,
            "retry_count": self.retry_count,
            "context": self.context,
        }


@dataclass
class RunErrors:
    """Aggregate errors across one generation run."""

    errors: list[RunError] = field(default_factory=list)
    warnings: list[RunError] = field(default_factory=list)
    failed_chunks: list[int] = field(default_factory=list)

    def add(self, error: RunError):
        """Add an error or warning."""
        if error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)
        else:
            self.errors.append(error)
            if error.chunk_index is not None and error.chunk_index not in self.failed_chunks:
                self.failed_chunks.append(error.chunk_index)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> dict:
        """Get summary statistics."""
        by_category = {}
        for error in self.errors:
            cat = error.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "total_errors": self.error_count,
            "total_warnings": self.warning_count,
            "failed_chunks": len(self.failed_chunks),
            "errors_by_category": by_category,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "failed_chunks": self.failed_chunks,
            "summary": self.summary(),
        }


# Factory functions for common error types

def llm_api_error(
    message: str,
    phase: str,
    chunk_index: int | None = None,
    original: Exception | None = None,
    retry_count: int = 0,
) -> RunError:
    """Create a completion-service error (retries exhausted)."""
    return RunError(
        category=ErrorCategory.LLM_API,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase=phase,
        chunk_index=chunk_index,
        original_error=original,
        retry_count=retry_count,
    )


def llm_parse_error(
    message: str,
    phase: str,
    chunk_index: int | None = None,
    raw_response: str | None = None,
    offset: int | None = None,
) -> RunError:
    """Create a parse error."""
    preview = raw_response[:PromptLimits.RAW_RESPONSE_PREVIEW] if raw_response else None
    return RunError(
        category=ErrorCategory.LLM_PARSE,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase=phase,
        chunk_index=chunk_index,
        context={"raw_response": preview, "offset": offset},
    )


def validation_error(
    message: str,
    phase: str,
    chunk_index: int | None = None,
    item_ids: list[str] | None = None,
) -> RunError:
    """Create a validation warning (rejected foreign ids)."""
    return RunError(
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message=message,
        phase=phase,
        chunk_index=chunk_index,
        item_ids=item_ids or [],
    )


def timeout_error(
    phase: str,
    chunk_index: int | None = None,
    timeout_seconds: float | None = None,
    retry_count: int = 0,
) -> RunError:
    """Create a timeout error."""
    return RunError(
        category=ErrorCategory.TIMEOUT,
        severity=ErrorSeverity.ERROR,
        message=f"Call timed out after {timeout_seconds}s" if timeout_seconds else "Call timed out",
        phase=phase,
        chunk_index=chunk_index,
        retry_count=retry_count,
    )


def budget_error(
    dropped_ids: list[str],
    phase: str,
) -> RunError:
    """Create a budget warning listing dropped items."""
    return RunError(
        category=ErrorCategory.BUDGET,
        severity=ErrorSeverity.WARNING,
        message=f"{len(dropped_ids)} item(s) dropped to fit capacity",
        phase=phase,
        item_ids=list(dropped_ids),
    )


def cancelled_error(
    phase: str,
    chunk_index: int | None = None,
) -> RunError:
    """Create a cancellation warning for a chunk that was skipped or discarded."""
    return RunError(
        category=ErrorCategory.CANCELLED,
        severity=ErrorSeverity.WARNING,
        message="Chunk skipped or discarded after cancellation",
        phase=phase,
        chunk_index=chunk_index,
    )
