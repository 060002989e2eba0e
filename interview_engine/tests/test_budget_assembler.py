"""Tests for interview_engine.core.budget_assembler module.

Tests:
- Budget derivation from config and fixed prompt text
- Strategy selection thresholds
- Priority-ordered fitting
- Text run planning (single-pass, sequential, hierarchical)
- Assignment run planning (shared entities and context)
"""

import pytest

from interview_engine.core.budget_assembler import (
    Budget,
    Strategy,
    fit_to_capacity,
    plan_assembly,
    plan_partitioned,
    plan_sequential,
    render_items,
    select_strategy,
)
from interview_engine.core.catalog import ContentCatalog
from interview_engine.core.chunk_splitter import split_into_batches
from interview_engine.pydantic_models.content_models import BudgetConfig, ContentCategory, ContentItem


def sized(item_id: str, units: int, tier: int = 2, category=ContentCategory.QA_PAIR) -> ContentItem:
    return ContentItem.from_text(item_id, category, "x" * (units * 4), priority_tier=tier)


@pytest.fixture
def config():
    return BudgetConfig(
        capacity=100,
        reserved_overhead=10,
        per_call_capacity=50,
        chunk_batch_size=30,
        sequential_ceiling=200,
        carried_summary_capacity=10,
    )


@pytest.fixture
def budget(config):
    return Budget.from_config(config)


# =============================================================================
# Budget tests
# =============================================================================


class TestBudget:
    """Tests for Budget.from_config()."""

    def test_overhead_includes_fixed_text(self, config):
        budget = Budget.from_config(config, "y" * 40)
        assert budget.reserved_overhead == 20
        assert budget.single_pass_capacity == 80

    def test_per_call_never_exceeds_remaining_capacity(self, config):
        budget = Budget.from_config(config, "y" * 240)
        assert budget.per_call_capacity == 30

    def test_fixed_text_filling_capacity_is_rejected(self, config):
        with pytest.raises(ValueError, match="no room"):
            Budget.from_config(config, "y" * 400)


# =============================================================================
# Strategy selection tests
# =============================================================================


class TestSelectStrategy:
    """Tests for select_strategy()."""

    def test_thresholds(self, budget):
        assert select_strategy(90, budget, 200) is Strategy.SINGLE_PASS
        assert select_strategy(91, budget, 200) is Strategy.SEQUENTIAL
        assert select_strategy(200, budget, 200) is Strategy.SEQUENTIAL
        assert select_strategy(201, budget, 200) is Strategy.HIERARCHICAL

    def test_strategy_values(self):
        assert str(Strategy.SINGLE_PASS) == "single-pass"


# =============================================================================
# Fitting tests
# =============================================================================


class TestFitToCapacity:
    """Tests for fit_to_capacity()."""

    def test_everything_fits(self):
        fit = fit_to_capacity([sized("a", 3), sized("b", 3)], 10)
        assert [i.id for i in fit.included] == ["a", "b"]
        assert fit.dropped == []
        assert fit.used_size == 6

    def test_prefix_stops_at_first_misfit(self):
        items = [sized("a", 5), sized("big", 8), sized("small", 1)]
        fit = fit_to_capacity(items, 10)
        assert [i.id for i in fit.included] == ["a"]
        assert fit.dropped_ids == ["big", "small"]

    def test_nothing_lost(self):
        items = [sized(f"i{n}", n + 1) for n in range(8)]
        fit = fit_to_capacity(items, 12)
        assert fit.included + fit.dropped == items

    def test_zero_capacity_drops_all(self):
        fit = fit_to_capacity([sized("a", 1)], 0)
        assert fit.dropped_ids == ["a"]


class TestRenderItems:
    """Tests for render_items()."""

    def test_frames_each_item_with_id(self):
        items = [
            ContentItem.from_text("q1", ContentCategory.ITEM_LIST, "What is the scope?"),
            ContentItem.from_text("s1", ContentCategory.PROFILE, "Head of IT"),
        ]
        text = render_items(items)
        assert "=== ITEM LIST [id: q1] ===\nWhat is the scope?" in text
        assert "=== PROFILE [id: s1] ===\nHead of IT" in text


# =============================================================================
# Text planning tests
# =============================================================================


class TestPlanAssembly:
    """Tests for plan_assembly()."""

    def test_single_pass(self, budget, config):
        catalog = ContentCatalog([sized("a", 40), sized("b", 40)])
        plan = plan_assembly(catalog, budget, config)
        assert plan.strategy is Strategy.SINGLE_PASS
        assert len(plan.chunks) == 1
        assert plan.included_ids == ["a", "b"]
        assert plan.dropped_ids == []

    def test_sequential_leaves_room_for_summary(self, budget, config):
        catalog = ContentCatalog([sized(f"i{n}", 20) for n in range(6)])
        plan = plan_assembly(catalog, budget, config)
        assert plan.strategy is Strategy.SEQUENTIAL
        # per-call 50 minus 10 for the carried summary
        assert all(c.total_size <= 40 for c in plan.chunks)
        assert [c.item_ids for c in plan.chunks] == [["i0", "i1"], ["i2", "i3"], ["i4", "i5"]]

    def test_hierarchical(self, budget, config):
        catalog = ContentCatalog([sized(f"i{n}", 25) for n in range(10)])
        plan = plan_assembly(catalog, budget, config)
        assert plan.strategy is Strategy.HIERARCHICAL
        assert all(c.total_size <= 50 for c in plan.chunks)
        assert plan.included_ids == catalog.ids

    def test_oversized_item_dropped(self, budget, config):
        catalog = ContentCatalog([sized(f"i{n}", 20) for n in range(5)] + [sized("huge", 60)])
        plan = plan_assembly(catalog, budget, config)
        assert plan.strategy is Strategy.SEQUENTIAL
        assert plan.dropped_ids == ["huge"]
        assert "huge" not in plan.included_ids

    def test_single_call_only_drops_lowest_priority(self, budget):
        config = BudgetConfig(
            capacity=100, reserved_overhead=10, per_call_capacity=50,
            sequential_ceiling=200, allow_multi_call=False,
        )
        catalog = ContentCatalog([
            sized("meta", 30, tier=6),
            sized("summary", 40, tier=0),
            sized("qa", 40, tier=2),
        ])
        plan = plan_assembly(catalog, budget, config)
        assert len(plan.chunks) == 1
        assert plan.included_ids == ["summary", "qa"]
        assert plan.dropped_ids == ["meta"]

    def test_plan_sequential_batches(self, budget):
        config = BudgetConfig(
            capacity=100, reserved_overhead=10, per_call_capacity=50,
            sequential_ceiling=200, chunk_batch_size=2, carried_summary_capacity=0,
        )
        catalog = ContentCatalog([sized(f"i{n}", 1) for n in range(5)])
        plan = plan_sequential(catalog, budget, config)
        assert [len(c.items) for c in plan.chunks] == [2, 2, 1]

    def test_empty_catalog(self, budget, config):
        plan = plan_assembly(ContentCatalog(), budget, config)
        assert plan.chunks == []
        assert plan.dropped_ids == []


# =============================================================================
# Assignment planning tests
# =============================================================================


class TestPlanPartitioned:
    """Tests for plan_partitioned()."""

    def test_questions_batched_with_shared_entities(self, questions, stakeholders):
        config = BudgetConfig()
        budget = Budget.from_config(config)
        plan = plan_partitioned(
            ContentCatalog(questions), ContentCatalog(stakeholders), ContentCatalog(), budget, config,
        )
        assert [len(c.items) for c in plan.chunks] == [30, 30, 15]
        assert [s.id for s in plan.shared] == ["s1", "s2", "s3"]
        assert plan.dropped_ids == []

    def test_shared_items_reduce_room(self, config):
        budget = Budget.from_config(config)
        items = ContentCatalog([sized(f"q{n}", 5, category=ContentCategory.ITEM_LIST) for n in range(6)])
        entities = ContentCatalog([sized("s1", 20, category=ContentCategory.PROFILE)])
        plan = plan_partitioned(items, entities, ContentCatalog(), budget, config)
        # 50 per call - 20 of entities leaves room for 6 questions of 5
        assert [c.item_ids for c in plan.chunks] == [[f"q{n}" for n in range(6)]]
        plan_small = plan_partitioned(
            items, entities, ContentCatalog([sized("ctx", 15, tier=0, category=ContentCategory.SUMMARY)]),
            budget, config,
        )
        assert [len(c.items) for c in plan_small.chunks] == [3, 3]

    def test_context_that_crowds_out_items_is_dropped(self, config):
        budget = Budget.from_config(config)
        items = ContentCatalog([sized("q1", 10, category=ContentCategory.ITEM_LIST)])
        entities = ContentCatalog([sized("s1", 20, category=ContentCategory.PROFILE)])
        context = ContentCatalog([sized("ctx", 25, tier=0, category=ContentCategory.SUMMARY)])
        plan = plan_partitioned(items, entities, context, budget, config)
        assert plan.dropped_ids == ["ctx"]
        assert plan.included_ids == ["q1"]

    def test_entities_that_do_not_fit_drop_everything(self, config):
        budget = Budget.from_config(config)
        items = ContentCatalog([sized("q1", 1, category=ContentCategory.ITEM_LIST)])
        entities = ContentCatalog([sized("s1", 60, category=ContentCategory.PROFILE)])
        plan = plan_partitioned(items, entities, ContentCatalog(), budget, config)
        assert plan.chunks == []
        assert set(plan.dropped_ids) == {"q1", "s1"}

    def test_fitting_batches_are_positional(self, questions, stakeholders):
        config = BudgetConfig()
        budget = Budget.from_config(config)
        plan = plan_partitioned(
            ContentCatalog(questions), ContentCatalog(stakeholders), ContentCatalog(), budget, config,
        )
        expected = split_into_batches(questions, config.chunk_batch_size)
        assert [c.item_ids for c in plan.chunks] == [c.item_ids for c in expected]
        assert [(c.index, c.total) for c in plan.chunks] == [(1, 3), (2, 3), (3, 3)]

    def test_uneven_sizes_fall_back_to_capacity_packing(self, config):
        budget = Budget.from_config(config)
        items = ContentCatalog(
            [sized("q1", 30, category=ContentCategory.ITEM_LIST)]
            + [sized(f"q{n}", 5, category=ContentCategory.ITEM_LIST) for n in range(2, 6)]
        )
        entities = ContentCatalog([sized("s1", 10, category=ContentCategory.PROFILE)])
        plan = plan_partitioned(items, entities, ContentCatalog(), budget, config)
        # 40 units left per call: q1 (30), q2 and q3 (5 each) fill the first chunk
        assert [c.item_ids for c in plan.chunks] == [["q1", "q2", "q3"], ["q4", "q5"]]
        assert all(c.total_size <= 40 for c in plan.chunks)
