"""Pydantic models for the generation engine.

Modules:
- content_models: ContentItem, ContentCategory, GenerationMode, BudgetConfig
- request_models: RequestEnvelope (one request to the completion service)
- result_models: response payloads, per-chunk results, merged output, coverage
"""

from interview_engine.pydantic_models.content_models import (
    CATEGORY_PRIORITY,
    BudgetConfig,
    ContentCategory,
    ContentItem,
    GenerationMode,
)
from interview_engine.pydantic_models.request_models import RequestEnvelope
from interview_engine.pydantic_models.result_models import (
    GAP_MARKER_TEMPLATE,
    # Payloads
    AssignmentEntry,
    AssignmentPayload,
    TextPayload,
    DigestEntry,
    DigestPayload,
    # Chunk results
    EntityAssignment,
    AssignmentResult,
    TextResult,
    ChunkResult,
    DigestResult,
    # Merged output
    AssignmentMerge,
    TextSegment,
    TextMerge,
    CoverageReport,
)

__all__ = [
    "CATEGORY_PRIORITY",
    "BudgetConfig",
    "ContentCategory",
    "ContentItem",
    "GenerationMode",
    "RequestEnvelope",
    "GAP_MARKER_TEMPLATE",
    "AssignmentEntry",
    "AssignmentPayload",
    "TextPayload",
    "DigestEntry",
    "DigestPayload",
    "EntityAssignment",
    "AssignmentResult",
    "TextResult",
    "ChunkResult",
    "DigestResult",
    "AssignmentMerge",
    "TextSegment",
    "TextMerge",
    "CoverageReport",
]
