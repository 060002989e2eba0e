"""Bounded context assembly and multi-call generation engine.

Fits heterogeneous interview content (project summaries, Q&A, file
extractions, question lists) into the capacity of a text-completion service,
splits oversized workloads into bounded calls, repairs the structured
responses, and merges them into one coverage-checked result.

Architecture:
    core/             - catalog, budgeting, chunking, repair, merge, retries,
                        completion client, logging, errors, config
    prompts/          - prompt templates
    pydantic_models/  - content, request and result schemas
    phases/           - phase runners (assignment, compose, digest, refine)

Usage:
    from interview_engine import generate, BudgetConfig, GenerationMode

    result = await generate(items, BudgetConfig(), GenerationMode.ASSIGNMENT,
                            client=client, entities=stakeholders)

CLI:
    interview-engine run round.json --mode assignment
"""

from interview_engine.orchestrator import GenerationOrchestrator, GenerationResult, generate
from interview_engine.core.catalog import ContentCatalog, items_from_sections
from interview_engine.core.budget_assembler import Strategy
from interview_engine.core.retry_controller import CancellationToken, CompletionClient
from interview_engine.core.errors import (
    BudgetExceededWarning,
    ChunkParseError,
    ChunkTransientError,
    CoverageGapWarning,
    OperationCancelled,
    ServiceFatalError,
)
from interview_engine.pydantic_models import (
    BudgetConfig,
    ContentCategory,
    ContentItem,
    GenerationMode,
    AssignmentMerge,
    TextMerge,
    CoverageReport,
)

__all__ = [
    # Main entry point
    "generate",
    "GenerationOrchestrator",
    "GenerationResult",
    # Content
    "ContentCatalog",
    "items_from_sections",
    "ContentCategory",
    "ContentItem",
    "BudgetConfig",
    "GenerationMode",
    "Strategy",
    # Client boundary
    "CompletionClient",
    "CancellationToken",
    # Results
    "AssignmentMerge",
    "TextMerge",
    "CoverageReport",
    # Errors
    "BudgetExceededWarning",
    "ChunkParseError",
    "ChunkTransientError",
    "CoverageGapWarning",
    "OperationCancelled",
    "ServiceFatalError",
]
