"""Tests for interview_engine.core.merge module.

Tests:
- AssignmentAccumulator: union, anomaly rejection, idempotent merging
- TextAccumulator: ordering and gaps
- verify_coverage() / coverage_gap()
"""

from interview_engine.core.merge import (
    AssignmentAccumulator,
    TextAccumulator,
    coverage_gap,
    verify_coverage,
)
from interview_engine.pydantic_models.result_models import (
    AssignmentResult,
    EntityAssignment,
    GAP_MARKER_TEMPLATE,
    TextResult,
)


def assignment(chunk_index: int, **entities: tuple[list[str], str]) -> AssignmentResult:
    return AssignmentResult(
        chunk_index=chunk_index,
        assignments={
            entity_id: EntityAssignment(item_ids=ids, rationale=rationale)
            for entity_id, (ids, rationale) in entities.items()
        },
    )


# =============================================================================
# AssignmentAccumulator tests
# =============================================================================


class TestAssignmentAccumulator:
    """Tests for AssignmentAccumulator."""

    def test_union_across_chunks(self):
        acc = AssignmentAccumulator(["q1", "q2", "q3"], ["s1", "s2"])
        acc.merge(assignment(1, s1=(["q1"], "ops")))
        acc.merge(assignment(2, s1=(["q2"], "process"), s2=(["q3"], "tech")))
        merged = acc.merged()
        assert merged.assignments["s1"].item_ids == ["q1", "q2"]
        assert merged.assignments["s2"].item_ids == ["q3"]
        assert merged.rationales("s1") == ["ops", "process"]
        assert merged.merged_chunks == [1, 2]

    def test_same_rationale_not_repeated(self):
        acc = AssignmentAccumulator(["q1", "q2"], ["s1"])
        acc.merge(assignment(1, s1=(["q1"], "ops")))
        acc.merge(assignment(2, s1=(["q2"], "ops")))
        assert acc.merged().assignments["s1"].rationale == "ops"

    def test_foreign_item_rejected(self):
        acc = AssignmentAccumulator(["q1"], ["s1"])
        anomalies = acc.merge(assignment(1, s1=(["q1", "q99"], "")))
        assert acc.covered_ids == {"q1"}
        assert len(anomalies) == 1
        assert anomalies[0].kind == "foreign_item"
        assert anomalies[0].item_ids == ("q99",)

    def test_item_of_another_chunk_rejected(self):
        acc = AssignmentAccumulator(
            ["q1", "q2", "q3"], ["s1"], chunk_item_ids={1: ["q1", "q2"], 2: ["q3"]},
        )
        anomalies = acc.merge(assignment(1, s1=(["q1", "q3"], "")))
        assert acc.covered_ids == {"q1"}
        assert [(a.kind, a.item_ids) for a in anomalies] == [("foreign_item", ("q3",))]

    def test_unplanned_chunk_assigns_nothing(self):
        acc = AssignmentAccumulator(["q1"], ["s1"], chunk_item_ids={1: ["q1"]})
        anomalies = acc.merge(assignment(5, s1=(["q1"], "")))
        assert acc.covered_ids == set()
        assert anomalies[0].item_ids == ("q1",)

    def test_unknown_entity_rejected(self):
        acc = AssignmentAccumulator(["q1"], ["s1"])
        anomalies = acc.merge(assignment(1, ghost=(["q1"], "")))
        assert [a.kind for a in anomalies] == ["unknown_entity"]
        assert acc.merged().assignments == {}
        assert "ghost" in str(anomalies[0])

    def test_merging_a_chunk_twice_is_noop(self):
        acc = AssignmentAccumulator(["q1", "q2"], ["s1"])
        result = assignment(1, s1=(["q1"], "ops"))
        acc.merge(result)
        first = acc.merged()
        assert acc.merge(result) == []
        assert acc.merged() == first

    def test_merge_order_does_not_change_coverage(self):
        results = [assignment(1, s1=(["q1"], "")), assignment(2, s2=(["q2"], "")), assignment(3, s1=(["q3"], ""))]
        forward = AssignmentAccumulator(["q1", "q2", "q3"], ["s1", "s2"])
        backward = AssignmentAccumulator(["q1", "q2", "q3"], ["s1", "s2"])
        for r in results:
            forward.merge(r)
        for r in reversed(results):
            backward.merge(r)
        assert forward.covered_ids == backward.covered_ids
        assert forward.merged_chunks == backward.merged_chunks == [1, 2, 3]


# =============================================================================
# TextAccumulator tests
# =============================================================================


class TestTextAccumulator:
    """Tests for TextAccumulator."""

    def test_segments_in_chunk_order(self):
        acc = TextAccumulator()
        acc.add(TextResult(chunk_index=2, text="second"))
        acc.add(TextResult(chunk_index=1, text="first"))
        assert acc.merged().render() == "first\n\nsecond"

    def test_gap_marker_for_failed_chunk(self):
        acc = TextAccumulator()
        acc.add(TextResult(chunk_index=1, text="first"))
        acc.record_gap(2)
        acc.add(TextResult(chunk_index=3, text="third"))
        merged = acc.merged()
        assert merged.gaps == [2]
        assert merged.render() == "\n\n".join(["first", GAP_MARKER_TEMPLATE.format(index=2), "third"])
        assert merged.render(include_gap_markers=False) == "first\n\nthird"

    def test_duplicate_chunk_ignored(self):
        acc = TextAccumulator()
        assert acc.add(TextResult(chunk_index=1, text="first")) is True
        assert acc.add(TextResult(chunk_index=1, text="again")) is False
        assert acc.merged().text == "first"


# =============================================================================
# Coverage tests
# =============================================================================


class TestCoverage:
    """Tests for verify_coverage() and coverage_gap()."""

    def test_complete_coverage(self):
        acc = AssignmentAccumulator(["q1", "q2"], ["s1"])
        acc.merge(assignment(1, s1=(["q2", "q1"], "")))
        report = verify_coverage(["q1", "q2"], acc.merged())
        assert report.is_complete
        assert report.ratio == 1.0
        assert coverage_gap(report, require_exhaustive=True) is None

    def test_uncovered_in_required_order(self):
        report = verify_coverage(["q3", "q1", "q2"], ["q1"])
        assert report.covered_ids == ["q1"]
        assert report.uncovered_ids == ["q3", "q2"]

    def test_gap_only_when_exhaustive_requested(self):
        report = verify_coverage(["q1", "q2"], ["q1"])
        assert coverage_gap(report, require_exhaustive=False) is None
        gap = coverage_gap(report, require_exhaustive=True)
        assert gap.uncovered_ids == ["q2"]
        assert gap.required_count == 2

    def test_empty_requirement_is_complete(self):
        report = verify_coverage([], [])
        assert report.is_complete
        assert report.ratio == 1.0
