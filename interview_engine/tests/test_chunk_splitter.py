"""Tests for interview_engine.core.chunk_splitter module."""

import pytest

from interview_engine.core.chunk_splitter import Chunk, split_by_capacity, split_into_batches
from interview_engine.pydantic_models.content_models import ContentCategory, ContentItem


def sized(item_id: str, units: int) -> ContentItem:
    return ContentItem.from_text(item_id, ContentCategory.ITEM_LIST, "x" * (units * 4))


# =============================================================================
# Chunk tests
# =============================================================================


class TestChunk:
    """Tests for the Chunk dataclass."""

    def test_empty_chunk_rejected(self):
        with pytest.raises(ValueError):
            Chunk(index=1, total=1, items=())

    def test_index_is_one_based(self):
        with pytest.raises(ValueError):
            Chunk(index=0, total=1, items=(sized("a", 1),))
        with pytest.raises(ValueError):
            Chunk(index=3, total=2, items=(sized("a", 1),))

    def test_size_and_ids(self):
        chunk = Chunk(index=1, total=1, items=(sized("a", 2), sized("b", 3)))
        assert chunk.total_size == 5
        assert chunk.item_ids == ["a", "b"]


# =============================================================================
# split_into_batches tests
# =============================================================================


class TestSplitIntoBatches:
    """Tests for positional batching."""

    def test_75_items_in_batches_of_30(self, questions):
        chunks = split_into_batches(questions, 30)
        assert [len(c.items) for c in chunks] == [30, 30, 15]
        assert [c.index for c in chunks] == [1, 2, 3]
        assert all(c.total == 3 for c in chunks)

    def test_concatenation_reproduces_input(self, questions):
        chunks = split_into_batches(questions, 7)
        assert [i for c in chunks for i in c.item_ids] == [q.id for q in questions]

    def test_batch_size_one(self, questions):
        chunks = split_into_batches(questions[:3], 1)
        assert [c.item_ids for c in chunks] == [["q1"], ["q2"], ["q3"]]

    def test_empty_input(self):
        assert split_into_batches([], 30) == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            split_into_batches([sized("a", 1)], 0)


# =============================================================================
# split_by_capacity tests
# =============================================================================


class TestSplitByCapacity:
    """Tests for capacity-bounded packing."""

    def test_packs_until_capacity(self):
        items = [sized("a", 4), sized("b", 4), sized("c", 4), sized("d", 1)]
        chunks, oversized = split_by_capacity(items, capacity=8)
        assert [c.item_ids for c in chunks] == [["a", "b"], ["c", "d"]]
        assert oversized == []

    def test_every_chunk_within_capacity(self):
        items = [sized(f"i{n}", n % 5 + 1) for n in range(40)]
        chunks, _ = split_by_capacity(items, capacity=9)
        assert all(c.total_size <= 9 for c in chunks)

    def test_item_count_bound(self):
        items = [sized(f"i{n}", 1) for n in range(7)]
        chunks, _ = split_by_capacity(items, capacity=100, max_items=3)
        assert [len(c.items) for c in chunks] == [3, 3, 1]

    def test_oversized_items_returned_separately(self):
        items = [sized("a", 2), sized("huge", 50), sized("b", 2)]
        chunks, oversized = split_by_capacity(items, capacity=10)
        assert [c.item_ids for c in chunks] == [["a", "b"]]
        assert [i.id for i in oversized] == ["huge"]

    def test_order_preserved(self):
        items = [sized(f"i{n}", 3) for n in range(10)]
        chunks, _ = split_by_capacity(items, capacity=7)
        assert [i for c in chunks for i in c.item_ids] == [f"i{n}" for n in range(10)]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            split_by_capacity([sized("a", 1)], capacity=0)
