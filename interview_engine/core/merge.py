"""Combine per-chunk results into one output and check coverage.

- AssignmentAccumulator: entity-keyed union of AssignmentResults. Item ids
  the returning chunk was never shown, and unknown entity keys, are rejected
  as anomalies instead of merged. Merging the same chunk twice is a no-op.
- TextAccumulator: text segments in chunk order, with failed chunks kept as
  explicit gaps.
- verify_coverage / coverage_gap: which required ids were covered, and the
  warning raised when exhaustive coverage was requested but not reached.

Accumulators are written from the event loop only, after a chunk result has
been validated, so there is a single writer.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from interview_engine.core.config import PromptLimits
from interview_engine.core.errors import CoverageGapWarning
from interview_engine.pydantic_models.result_models import (
    AssignmentMerge,
    AssignmentResult,
    CoverageReport,
    EntityAssignment,
    TextMerge,
    TextResult,
    TextSegment,
)


@dataclass(frozen=True)
class Anomaly:
    """Something in a chunk result that does not belong to the run."""

    kind: str                       # "foreign_item" or "unknown_entity"
    chunk_index: int
    entity_id: str
    item_ids: tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.kind == "unknown_entity":
            return f"chunk {self.chunk_index}: unknown entity {self.entity_id!r}"
        return f"chunk {self.chunk_index}: foreign item id(s) {list(self.item_ids)} for {self.entity_id!r}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "chunk_index": self.chunk_index,
            "entity_id": self.entity_id,
            "item_ids": list(self.item_ids),
        }


class AssignmentAccumulator:
    """Entity-keyed union of assignment results.

    Args:
        known_item_ids: Every item id the run may legitimately assign.
        known_entity_ids: Every entity key the run showed the service.
        chunk_item_ids: Item ids shown to each chunk. When given, a chunk may
            only assign its own items; an id shown to another chunk is foreign.
    """

    def __init__(
        self,
        known_item_ids: Iterable[str],
        known_entity_ids: Iterable[str],
        chunk_item_ids: Mapping[int, Iterable[str]] | None = None,
    ):
        self._known_items = frozenset(known_item_ids)
        self._chunk_items = (
            {index: frozenset(ids) & self._known_items for index, ids in chunk_item_ids.items()}
            if chunk_item_ids is not None else None
        )
        self._known_entities = frozenset(known_entity_ids)
        self._item_ids: dict[str, list[str]] = {}
        self._rationales: dict[str, list[str]] = {}
        self._merged_chunks: list[int] = []
        self.anomalies: list[Anomaly] = []

    def merge(self, result: AssignmentResult) -> list[Anomaly]:
        """Fold one chunk result in; returns the anomalies it contained."""
        if result.chunk_index in self._merged_chunks:
            return []

        allowed = self._allowed_items(result.chunk_index)
        found: list[Anomaly] = []
        for entity_id, entry in result.assignments.items():
            if entity_id not in self._known_entities:
                found.append(Anomaly("unknown_entity", result.chunk_index, entity_id, tuple(entry.item_ids)))
                continue

            foreign = tuple(i for i in entry.item_ids if i not in allowed)
            if foreign:
                found.append(Anomaly("foreign_item", result.chunk_index, entity_id, foreign))

            items = self._item_ids.setdefault(entity_id, [])
            for item_id in entry.item_ids:
                if item_id in allowed and item_id not in items:
                    items.append(item_id)

            rationales = self._rationales.setdefault(entity_id, [])
            for part in entry.rationale.split(PromptLimits.RATIONALE_SEPARATOR):
                part = part.strip()
                if part and part not in rationales:
                    rationales.append(part)

        self._merged_chunks.append(result.chunk_index)
        self.anomalies.extend(found)
        return found

    def _allowed_items(self, chunk_index: int) -> frozenset[str]:
        if self._chunk_items is None:
            return self._known_items
        return self._chunk_items.get(chunk_index, frozenset())

    @property
    def merged_chunks(self) -> list[int]:
        return sorted(self._merged_chunks)

    @property
    def covered_ids(self) -> set[str]:
        return {i for items in self._item_ids.values() for i in items}

    def merged(self) -> AssignmentMerge:
        return AssignmentMerge(
            assignments={
                entity_id: EntityAssignment(
                    item_ids=list(items),
                    rationale=PromptLimits.RATIONALE_SEPARATOR.join(self._rationales.get(entity_id, [])),
                )
                for entity_id, items in self._item_ids.items()
            },
            merged_chunks=self.merged_chunks,
        )


class TextAccumulator:
    """Text segments keyed by chunk index, rendered in index order."""

    def __init__(self):
        self._segments: dict[int, str] = {}
        self._gaps: set[int] = set()

    def add(self, result: TextResult) -> bool:
        """Store a chunk's text. Returns False if that chunk was already stored."""
        if result.chunk_index in self._segments:
            return False
        self._segments[result.chunk_index] = result.text
        self._gaps.discard(result.chunk_index)
        return True

    def record_gap(self, chunk_index: int) -> None:
        if chunk_index not in self._segments:
            self._gaps.add(chunk_index)

    @property
    def merged_chunks(self) -> list[int]:
        return sorted(self._segments)

    def merged(self) -> TextMerge:
        return TextMerge(
            segments=[TextSegment(chunk_index=i, text=self._segments[i]) for i in sorted(self._segments)],
            gaps=sorted(self._gaps),
        )


def verify_coverage(
    required_ids: Sequence[str],
    merged: AssignmentMerge | Iterable[str],
) -> CoverageReport:
    """Compare the required ids against what the merged result covers.

    Lists keep the order of required_ids.
    """
    covered = merged.covered_ids() if isinstance(merged, AssignmentMerge) else set(merged)
    required = list(dict.fromkeys(required_ids))
    return CoverageReport(
        required_ids=required,
        covered_ids=[i for i in required if i in covered],
        uncovered_ids=[i for i in required if i not in covered],
    )


def coverage_gap(report: CoverageReport, require_exhaustive: bool) -> CoverageGapWarning | None:
    """Warning for a run that asked for exhaustive coverage and missed ids."""
    if not require_exhaustive or report.is_complete:
        return None
    return CoverageGapWarning(report.uncovered_ids, len(report.required_ids))
