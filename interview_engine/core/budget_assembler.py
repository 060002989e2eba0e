"""Fit content into the completion service's capacity and plan the calls.

Strategy selection by total content size S and single-pass capacity C
(capacity minus reserved overhead):
- S <= C: single pass, one call with everything
- C < S <= sequential_ceiling: sequential, ordered chunks with a carried
  summary from one chunk to the next
- S > sequential_ceiling: hierarchical, condense every item into a digest
  first, then compose from digests

Fitting is a deterministic priority-ordered prefix: items are taken in
catalog order until the first one that does not fit. Whatever is left out is
always returned to the caller as dropped, never silently discarded.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from interview_engine.core.catalog import ContentCatalog
from interview_engine.core.chunk_splitter import Chunk, split_by_capacity, split_into_batches
from interview_engine.core.sizing import estimate_size
from interview_engine.pydantic_models.content_models import BudgetConfig, ContentItem


class Strategy(str, Enum):
    """How a run spends its calls."""

    SINGLE_PASS = "single-pass"
    SEQUENTIAL = "sequential"
    HIERARCHICAL = "hierarchical"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Budget:
    """Capacity limits of one request, computed once per run.

    Attributes:
        capacity: Hard limit of one call, in capacity units
        reserved_overhead: Units taken by instructions and fixed prompt text
        per_call_capacity: Units available for content in one chunked call
    """

    capacity: int
    reserved_overhead: int
    per_call_capacity: int

    @property
    def single_pass_capacity(self) -> int:
        return self.capacity - self.reserved_overhead

    @classmethod
    def from_config(cls, config: BudgetConfig, fixed_text: str = "") -> "Budget":
        """Derive the budget of a run from its config and its fixed prompt text.

        Raises:
            ValueError: If the fixed text alone leaves no room for content.
        """
        overhead = config.reserved_overhead + estimate_size(fixed_text)
        if overhead >= config.capacity:
            raise ValueError(
                f"Instructions and fixed prompt text ({overhead} units) leave no room "
                f"within capacity {config.capacity}"
            )
        return cls(
            capacity=config.capacity,
            reserved_overhead=overhead,
            per_call_capacity=min(config.per_call_capacity, config.capacity - overhead),
        )


def select_strategy(total_size: int, budget: Budget, sequential_ceiling: int) -> Strategy:
    """Pick the strategy for a workload of total_size units."""
    if total_size <= budget.single_pass_capacity:
        return Strategy.SINGLE_PASS
    if total_size <= sequential_ceiling:
        return Strategy.SEQUENTIAL
    return Strategy.HIERARCHICAL


@dataclass
class FitResult:
    """Outcome of fitting items into one capacity."""

    included: list[ContentItem] = field(default_factory=list)
    dropped: list[ContentItem] = field(default_factory=list)

    @property
    def used_size(self) -> int:
        return sum(item.size_estimate for item in self.included)

    @property
    def dropped_ids(self) -> list[str]:
        return [item.id for item in self.dropped]


def fit_to_capacity(items: Sequence[ContentItem], capacity: int) -> FitResult:
    """Take the longest prefix of items whose summed size fits capacity.

    Items must already be in priority order. The first item that does not
    fit ends the prefix; it and everything after it are dropped.
    """
    used = 0
    for position, item in enumerate(items):
        if used + item.size_estimate > capacity:
            return FitResult(included=list(items[:position]), dropped=list(items[position:]))
        used += item.size_estimate
    return FitResult(included=list(items))


def render_items(items: Sequence[ContentItem]) -> str:
    """Render items as framed sections, one per item."""
    return "\n\n".join(
        f"=== {item.category.heading} [id: {item.id}] ===\n{item.text}" for item in items
    )


@dataclass
class AssemblyPlan:
    """Which items go into which call.

    Attributes:
        strategy: Strategy selected for the workload
        chunks: Calls to make, 1-based and in order
        included: Items placed in some chunk, catalog order
        dropped: Items left out (capacity or oversized), catalog order
        shared: Items repeated in every chunk (entities, shared context)
        dropped_shared: Shared items that did not fit alongside the chunks
    """

    strategy: Strategy
    chunks: list[Chunk] = field(default_factory=list)
    included: list[ContentItem] = field(default_factory=list)
    dropped: list[ContentItem] = field(default_factory=list)
    shared: list[ContentItem] = field(default_factory=list)
    dropped_shared: list[ContentItem] = field(default_factory=list)

    @property
    def dropped_ids(self) -> list[str]:
        return [item.id for item in self.dropped + self.dropped_shared]

    @property
    def included_ids(self) -> list[str]:
        return [item.id for item in self.included]


def _single_chunk_plan(strategy: Strategy, ordered: list[ContentItem], capacity: int) -> AssemblyPlan:
    fit = fit_to_capacity(ordered, capacity)
    chunks = [Chunk(index=1, total=1, items=tuple(fit.included))] if fit.included else []
    return AssemblyPlan(strategy=strategy, chunks=chunks, included=fit.included, dropped=fit.dropped)


def _packed_plan(
    strategy: Strategy,
    ordered: list[ContentItem],
    capacity: int,
    max_items: int,
) -> AssemblyPlan:
    capacity = max(1, capacity)
    batches = split_into_batches(ordered, max_items)
    if all(batch.total_size <= capacity for batch in batches):
        return AssemblyPlan(strategy=strategy, chunks=batches, included=list(ordered), dropped=[])
    chunks, oversized = split_by_capacity(ordered, capacity, max_items)
    placed = [item for chunk in chunks for item in chunk.items]
    return AssemblyPlan(strategy=strategy, chunks=chunks, included=placed, dropped=oversized)


def plan_assembly(catalog: ContentCatalog, budget: Budget, config: BudgetConfig) -> AssemblyPlan:
    """Plan a text run: select the strategy and lay out its chunks.

    - single-pass: one chunk with every item
    - sequential: capacity-packed chunks leaving room for the carried summary
    - hierarchical: capacity-packed chunks for the digest pass
    With allow_multi_call disabled the single-pass fit is always used and
    the remainder dropped.
    """
    ordered = catalog.ordered()
    strategy = select_strategy(catalog.total_size, budget, config.sequential_ceiling)

    if strategy is Strategy.SINGLE_PASS or not config.allow_multi_call:
        return _single_chunk_plan(strategy, ordered, budget.single_pass_capacity)

    if strategy is Strategy.SEQUENTIAL:
        return plan_sequential(catalog, budget, config)

    return _packed_plan(strategy, ordered, budget.per_call_capacity, config.chunk_batch_size)


def plan_sequential(catalog: ContentCatalog, budget: Budget, config: BudgetConfig) -> AssemblyPlan:
    """Sequential chunks sized to leave room for the carried summary."""
    capacity = budget.per_call_capacity - config.carried_summary_capacity
    return _packed_plan(Strategy.SEQUENTIAL, catalog.ordered(), capacity, config.chunk_batch_size)


def plan_partitioned(
    items: ContentCatalog,
    entities: ContentCatalog,
    shared_context: ContentCatalog,
    budget: Budget,
    config: BudgetConfig,
) -> AssemblyPlan:
    """Plan an assignment run: every chunk repeats the shared items.

    Entities are fitted first, then shared context in the room left after
    reserving space for the largest assignable item. The assignable items
    are then packed into chunks of at most chunk_batch_size items in the
    remaining capacity. The strategy is recorded for diagnostics only; the
    partition is always the same.
    """
    total = items.total_size + entities.total_size + shared_context.total_size
    strategy = select_strategy(total, budget, config.sequential_ceiling)
    capacity = budget.per_call_capacity if config.allow_multi_call else budget.single_pass_capacity

    entity_fit = fit_to_capacity(entities.ordered(), capacity)
    remaining = capacity - entity_fit.used_size
    largest_item = max((item.size_estimate for item in items), default=0)
    context_fit = fit_to_capacity(shared_context.ordered(), max(0, remaining - largest_item))
    remaining -= context_fit.used_size

    shared = entity_fit.included + context_fit.included
    dropped_shared = entity_fit.dropped + context_fit.dropped

    ordered = items.ordered()
    if not entity_fit.included or remaining < 1:
        return AssemblyPlan(
            strategy=strategy, dropped=ordered, shared=shared, dropped_shared=dropped_shared,
        )

    if config.allow_multi_call:
        plan = _packed_plan(strategy, ordered, remaining, config.chunk_batch_size)
    else:
        plan = _single_chunk_plan(strategy, ordered, remaining)
    plan.shared = shared
    plan.dropped_shared = dropped_shared
    return plan
