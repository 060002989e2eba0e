"""Partition an ordered item sequence into bounded chunks.

Two splitters:
- split_into_batches: purely positional, fixed item count per chunk
- split_by_capacity: greedy positional packing bounded by both a capacity and
  an item count

Planning uses split_into_batches whenever every batch fits the per-call
capacity (fixed-size assignment batches, e.g. 75 questions -> 30, 30, 15)
and falls back to split_by_capacity for content of uneven size.

Both preserve order: concatenating the chunks in index order reproduces the
input (minus oversized items for split_by_capacity). Chunk indices are 1-based.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from interview_engine.pydantic_models.content_models import ContentItem


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of items sent in one completion call.

    Attributes:
        index: 1-based position of the chunk in its run
        total: Number of chunks in the run
        items: The items, never empty
    """

    index: int
    total: int
    items: tuple[ContentItem, ...]

    def __post_init__(self):
        if not self.items:
            raise ValueError("Chunk must contain at least one item")
        if not 1 <= self.index <= self.total:
            raise ValueError(f"Chunk index {self.index} outside 1..{self.total}")

    @property
    def total_size(self) -> int:
        return sum(item.size_estimate for item in self.items)

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]


def _number(groups: list[list[ContentItem]]) -> list[Chunk]:
    total = len(groups)
    return [Chunk(index=i, total=total, items=tuple(group)) for i, group in enumerate(groups, start=1)]


def split_into_batches(items: Sequence[ContentItem], batch_size: int) -> list[Chunk]:
    """Split items into consecutive batches of batch_size.

    N items yield ceil(N / batch_size) chunks, every chunk full except
    possibly the last. Empty input yields no chunks.

    Example:
        75 items, batch_size 30 -> chunks of 30, 30, 15
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    groups = [list(items[start:start + batch_size]) for start in range(0, len(items), batch_size)]
    return _number(groups)


def split_by_capacity(
    items: Sequence[ContentItem],
    capacity: int,
    max_items: int | None = None,
) -> tuple[list[Chunk], list[ContentItem]]:
    """Greedily pack items into chunks bounded by capacity and item count.

    A new chunk starts when the next item would push the current chunk over
    capacity or past max_items. Items larger than capacity can never be
    placed and are returned separately.

    Args:
        items: Items in catalog order.
        capacity: Maximum summed size_estimate per chunk.
        max_items: Maximum items per chunk (None = unbounded).

    Returns:
        (chunks, oversized)
    """
    if capacity < 1:
        raise ValueError("capacity must be >= 1")
    if max_items is not None and max_items < 1:
        raise ValueError("max_items must be >= 1")

    groups: list[list[ContentItem]] = []
    oversized: list[ContentItem] = []
    current: list[ContentItem] = []
    current_size = 0

    for item in items:
        if item.size_estimate > capacity:
            oversized.append(item)
            continue
        full = max_items is not None and len(current) >= max_items
        if current and (full or current_size + item.size_estimate > capacity):
            groups.append(current)
            current, current_size = [], 0
        current.append(item)
        current_size += item.size_estimate

    if current:
        groups.append(current)

    return _number(groups), oversized
