"""Core utilities for the generation engine.

Only the dependency-free modules are re-exported here. Import the algorithm
modules (catalog, budget_assembler, chunk_splitter, response_repair,
response_parser, merge, retry_controller, llm_client) from their own paths;
they depend on interview_engine.pydantic_models, which depends on this
package.
"""

from interview_engine.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    API_KEY_ENV_VARS,
    DEFAULT_MODEL,
    BudgetDefaults,
    ChunkingConfig,
    RetryConfig,
    TimeoutConfig,
    LLMConfig,
    PromptLimits,
)
from interview_engine.core.sizing import estimate_size, smart_truncate
from interview_engine.core.pipeline_logger import (
    PipelineLogger,
    RunDiagnostics,
    DiagnosticRecord,
    get_logger,
    reset_logger,
)
from interview_engine.core.errors import (
    TransientKind,
    FatalKind,
    EngineError,
    EngineWarning,
    BudgetExceededWarning,
    CoverageGapWarning,
    ChunkTransientError,
    ServiceFatalError,
    ChunkParseError,
    OperationCancelled,
    ErrorSeverity,
    ErrorCategory,
    RunError,
    RunErrors,
    llm_api_error,
    llm_parse_error,
    validation_error,
    timeout_error,
    budget_error,
    cancelled_error,
)
from interview_engine.core.cost_tracker import CostTracker, CallUsage

__all__ = [
    # Config
    "LLM_PROVIDER",
    "API_KEY_ENV_VAR",
    "API_KEY_ENV_VARS",
    "DEFAULT_MODEL",
    "BudgetDefaults",
    "ChunkingConfig",
    "RetryConfig",
    "TimeoutConfig",
    "LLMConfig",
    "PromptLimits",
    # Sizing
    "estimate_size",
    "smart_truncate",
    # Logging
    "PipelineLogger",
    "RunDiagnostics",
    "DiagnosticRecord",
    "get_logger",
    "reset_logger",
    # Errors
    "TransientKind",
    "FatalKind",
    "EngineError",
    "EngineWarning",
    "BudgetExceededWarning",
    "CoverageGapWarning",
    "ChunkTransientError",
    "ServiceFatalError",
    "ChunkParseError",
    "OperationCancelled",
    "ErrorSeverity",
    "ErrorCategory",
    "RunError",
    "RunErrors",
    "llm_api_error",
    "llm_parse_error",
    "validation_error",
    "timeout_error",
    "budget_error",
    "cancelled_error",
    # Cost
    "CostTracker",
    "CallUsage",
]
