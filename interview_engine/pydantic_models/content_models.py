"""Pydantic schemas for the content that goes into a generation run.

ContentItem is what upstream producers (project metadata, stakeholder
profiles, interview Q&A, file extractions, question catalogs) hand to the
engine. BudgetConfig is the explicit capacity and retry configuration a run
receives; nothing else configures a run.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from interview_engine.core.config import (
    BudgetDefaults,
    ChunkingConfig,
    RetryConfig,
    TimeoutConfig,
)
from interview_engine.core.sizing import estimate_size


class ContentCategory(str, Enum):
    """Kinds of content the engine assembles."""

    SUMMARY = "summary"
    INSTRUCTIONS = "instructions"
    QA_PAIR = "qa-pair"
    PROFILE = "profile"
    FILE_EXCERPT = "file-excerpt"
    ITEM_LIST = "item-list"
    METADATA = "metadata"

    def __str__(self) -> str:
        return self.value

    @property
    def default_priority(self) -> int:
        """Priority tier used when a producer does not set one (lower = keep first)."""
        return CATEGORY_PRIORITY[self]

    @property
    def heading(self) -> str:
        """Section heading used when rendering items into a prompt."""
        return self.value.replace("-", " ").upper()


CATEGORY_PRIORITY: dict[ContentCategory, int] = {
    ContentCategory.SUMMARY: 0,
    ContentCategory.INSTRUCTIONS: 1,
    ContentCategory.QA_PAIR: 2,
    ContentCategory.PROFILE: 3,
    ContentCategory.FILE_EXCERPT: 4,
    ContentCategory.ITEM_LIST: 5,
    ContentCategory.METADATA: 6,
}


class GenerationMode(str, Enum):
    """Shape of the result a run produces. Exactly one per run."""

    ASSIGNMENT = "assignment"
    TEXT = "text"

    def __str__(self) -> str:
        return self.value


class ContentItem(BaseModel):
    """A unit of text content with a stable id, priority, and size estimate.

    Attributes:
        id: Stable id, unique within a run (question id, stakeholder id, ...)
        category: Kind of content
        priority_tier: Lower = more important; kept first under pressure
        text: The content itself
        size_estimate: Approximate capacity units the text consumes
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Stable id, unique within a run")
    category: ContentCategory
    priority_tier: int = Field(ge=0, description="Lower = more important")
    text: str
    size_estimate: int = Field(ge=0, description="Approximate capacity units")

    @classmethod
    def from_text(
        cls,
        id: str,
        category: ContentCategory | str,
        text: str,
        priority_tier: int | None = None,
    ) -> "ContentItem":
        """Build an item, estimating its size and defaulting its tier from the category."""
        category = ContentCategory(category)
        return cls(
            id=id,
            category=category,
            priority_tier=category.default_priority if priority_tier is None else priority_tier,
            text=text,
            size_estimate=estimate_size(text),
        )


class BudgetConfig(BaseModel):
    """Capacity, chunking, and retry configuration for one run.

    All sizes are in capacity units (see core/sizing.py). Defaults come from
    core/config.py.
    """

    model_config = ConfigDict(frozen=True)

    capacity: int = Field(default=BudgetDefaults.CAPACITY, gt=0)
    reserved_overhead: int = Field(default=BudgetDefaults.RESERVED_OVERHEAD, ge=0)
    per_call_capacity: int = Field(default=BudgetDefaults.PER_CALL_CAPACITY, gt=0)
    chunk_batch_size: int = Field(default=ChunkingConfig.BATCH_SIZE, ge=1)
    sequential_ceiling: int = Field(default=BudgetDefaults.SEQUENTIAL_CEILING, gt=0)
    retry_count: int = Field(default=RetryConfig.MAX_ATTEMPTS, ge=0)
    require_exhaustive_coverage: bool = False

    carried_summary_capacity: int = Field(default=BudgetDefaults.CARRIED_SUMMARY_CAPACITY, ge=0)
    digest_capacity: int = Field(default=BudgetDefaults.DIGEST_CAPACITY, gt=0)
    refine_top_items: int = Field(default=BudgetDefaults.REFINE_TOP_ITEMS, ge=0)
    allow_multi_call: bool = True
    max_concurrency: int = Field(default=ChunkingConfig.MAX_CONCURRENCY, ge=1)
    per_call_timeout_seconds: float = Field(default=TimeoutConfig.PER_CALL_SECONDS, gt=0)
    operation_deadline_seconds: float = Field(default=TimeoutConfig.OPERATION_DEADLINE_SECONDS, gt=0)
    backoff_base_seconds: float = Field(default=RetryConfig.MIN_WAIT_SECONDS, ge=0)
    backoff_max_seconds: float = Field(default=RetryConfig.MAX_WAIT_SECONDS, ge=0)

    @model_validator(mode="after")
    def _check_limits(self) -> "BudgetConfig":
        if self.reserved_overhead >= self.capacity:
            raise ValueError(
                f"reserved_overhead ({self.reserved_overhead}) must be below capacity ({self.capacity})"
            )
        single_pass = self.capacity - self.reserved_overhead
        if self.sequential_ceiling < single_pass:
            raise ValueError(
                f"sequential_ceiling ({self.sequential_ceiling}) must be at least "
                f"capacity - reserved_overhead ({single_pass})"
            )
        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_base_seconds")
        return self
