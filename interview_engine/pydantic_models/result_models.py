"""Pydantic schemas for completion responses, chunk results, and merged output.

Three layers:
- *Payload models validate the JSON the service returns. They accept the key
  names the interview product used historically (stakeholderId,
  assignedQuestions, reasoning) next to the canonical ones.
- ChunkResult is the tagged union of what one chunk contributes after
  validation: AssignmentResult or TextResult. DigestResult is the internal
  result of the hierarchical condensing pass.
- AssignmentMerge / TextMerge / CoverageReport describe the merged output.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from interview_engine.core.config import PromptLimits


GAP_MARKER_TEMPLATE = "[... part {index} could not be generated ...]"


def _as_id(value: Any) -> str:
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value).strip()
    raise ValueError(f"id must be a string or integer, got {type(value).__name__}")


# =============================================================================
# Response payloads
# =============================================================================


class AssignmentEntry(BaseModel):
    """One entity's assignments as returned by the service."""

    entity_id: str = Field(
        validation_alias=AliasChoices("entity_id", "stakeholderId", "stakeholder_id", "entity"),
        description="Entity key, e.g. stakeholder id",
    )
    item_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("item_ids", "assignedQuestions", "question_ids", "items"),
        description="Assigned item ids",
    )
    rationale: str = Field(
        default="",
        validation_alias=AliasChoices("rationale", "reasoning"),
    )

    @field_validator("entity_id", mode="before")
    @classmethod
    def _coerce_entity_id(cls, value: Any) -> str:
        return _as_id(value)

    @field_validator("item_ids", mode="before")
    @classmethod
    def _coerce_item_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("item_ids must be a list")
        return [_as_id(v) for v in value]

    @field_validator("rationale", mode="before")
    @classmethod
    def _coerce_rationale(cls, value: Any) -> str:
        return "" if value is None else str(value)


class AssignmentPayload(BaseModel):
    """Top-level assignment response."""

    assignments: list[AssignmentEntry]


class TextPayload(BaseModel):
    """Top-level text response."""

    text: str = Field(validation_alias=AliasChoices("text", "content", "document"))
    carry_forward: str = Field(
        default="",
        validation_alias=AliasChoices("carry_forward", "summary"),
    )


class DigestEntry(BaseModel):
    id: str
    digest: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _as_id(value)


class DigestPayload(BaseModel):
    """Top-level digest response (hierarchical pass 1)."""

    digests: list[DigestEntry]


# =============================================================================
# Chunk results
# =============================================================================


class EntityAssignment(BaseModel):
    """Items assigned to one entity, with the rationale given for them."""

    item_ids: list[str] = Field(default_factory=list)
    rationale: str = ""


class AssignmentResult(BaseModel):
    """Validated assignment output of one chunk."""

    kind: Literal["assignment"] = "assignment"
    chunk_index: int
    assignments: dict[str, EntityAssignment] = Field(default_factory=dict)

    @property
    def item_ids(self) -> set[str]:
        return {i for a in self.assignments.values() for i in a.item_ids}


class TextResult(BaseModel):
    """Validated text output of one chunk."""

    kind: Literal["text"] = "text"
    chunk_index: int
    text: str
    carry_forward: str = ""


ChunkResult = Annotated[Union[AssignmentResult, TextResult], Field(discriminator="kind")]


class DigestResult(BaseModel):
    """Validated digests of one chunk, keyed by item id."""

    kind: Literal["digest"] = "digest"
    chunk_index: int
    digests: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Merged output
# =============================================================================


class AssignmentMerge(BaseModel):
    """Entity-keyed union of all merged AssignmentResults."""

    kind: Literal["assignment"] = "assignment"
    assignments: dict[str, EntityAssignment] = Field(default_factory=dict)
    merged_chunks: list[int] = Field(default_factory=list)

    def covered_ids(self) -> set[str]:
        return {i for a in self.assignments.values() for i in a.item_ids}

    def rationales(self, entity_id: str) -> list[str]:
        entry = self.assignments.get(entity_id)
        if not entry or not entry.rationale:
            return []
        return entry.rationale.split(PromptLimits.RATIONALE_SEPARATOR)


class TextSegment(BaseModel):
    chunk_index: int
    text: str


class TextMerge(BaseModel):
    """Ordered concatenation of TextResults; failed chunks are explicit gaps."""

    kind: Literal["text"] = "text"
    segments: list[TextSegment] = Field(default_factory=list)
    gaps: list[int] = Field(default_factory=list)

    def render(self, include_gap_markers: bool = True, separator: str = "\n\n") -> str:
        """Full text in chunk order, with a marker where a chunk failed."""
        by_index: dict[int, str] = {s.chunk_index: s.text for s in self.segments}
        if include_gap_markers:
            for index in self.gaps:
                by_index.setdefault(index, GAP_MARKER_TEMPLATE.format(index=index))
        return separator.join(by_index[i] for i in sorted(by_index))

    @property
    def text(self) -> str:
        return self.render()


class CoverageReport(BaseModel):
    """Which required item ids made it into the merged result."""

    required_ids: list[str]
    covered_ids: list[str]
    uncovered_ids: list[str]

    @property
    def is_complete(self) -> bool:
        return not self.uncovered_ids

    @property
    def ratio(self) -> float:
        if not self.required_ids:
            return 1.0
        return len(self.covered_ids) / len(self.required_ids)
