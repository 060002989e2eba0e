"""Tests for interview_engine.core.config and the BudgetConfig model.

Tests the centralized configuration:
- BudgetDefaults: Capacity limits
- ChunkingConfig / RetryConfig / TimeoutConfig: Run limits
- BudgetConfig: Validation of the per-run configuration
- ContentItem: Size estimation and default priority
"""

import pytest
from pydantic import ValidationError

from interview_engine.core.config import (
    BudgetDefaults,
    ChunkingConfig,
    RetryConfig,
    TimeoutConfig,
    LLMConfig,
    PromptLimits,
)
from interview_engine.pydantic_models.content_models import (
    BudgetConfig,
    ContentCategory,
    ContentItem,
    GenerationMode,
)


# =============================================================================
# Constant tests
# =============================================================================


class TestBudgetDefaults:
    """Tests for BudgetDefaults."""

    def test_per_call_fits_inside_capacity(self):
        """A full chunk plus the reserved overhead fits one call."""
        assert BudgetDefaults.PER_CALL_CAPACITY <= BudgetDefaults.CAPACITY - BudgetDefaults.RESERVED_OVERHEAD

    def test_sequential_ceiling_above_single_pass(self):
        assert BudgetDefaults.SEQUENTIAL_CEILING > BudgetDefaults.CAPACITY

    def test_carried_summary_is_small(self):
        assert BudgetDefaults.CARRIED_SUMMARY_CAPACITY < BudgetDefaults.PER_CALL_CAPACITY // 10


class TestRunLimits:
    """Tests for chunking, retry and timeout constants."""

    def test_batch_size_matches_assignment_batches(self):
        assert ChunkingConfig.BATCH_SIZE == 30

    def test_backoff_is_bounded(self):
        assert RetryConfig.MIN_WAIT_SECONDS < RetryConfig.MAX_WAIT_SECONDS

    def test_single_parse_reissue(self):
        assert RetryConfig.PARSE_RETRIES == 1

    def test_deadline_allows_several_calls(self):
        assert TimeoutConfig.OPERATION_DEADLINE_SECONDS >= 2 * TimeoutConfig.PER_CALL_SECONDS

    def test_llm_requests_json(self):
        assert LLMConfig.RESPONSE_FORMAT == {"type": "json_object"}
        assert LLMConfig.TEMPERATURE == 0.0

    def test_rationale_separator_is_not_blank(self):
        assert PromptLimits.RATIONALE_SEPARATOR.strip()


# =============================================================================
# BudgetConfig tests
# =============================================================================


class TestBudgetConfig:
    """Tests for BudgetConfig validation."""

    def test_defaults_come_from_config(self):
        config = BudgetConfig()
        assert config.capacity == BudgetDefaults.CAPACITY
        assert config.chunk_batch_size == ChunkingConfig.BATCH_SIZE
        assert config.retry_count == RetryConfig.MAX_ATTEMPTS
        assert config.require_exhaustive_coverage is False

    def test_overhead_must_be_below_capacity(self):
        with pytest.raises(ValidationError):
            BudgetConfig(capacity=1_000, reserved_overhead=1_000, sequential_ceiling=5_000)

    def test_sequential_ceiling_must_cover_single_pass(self):
        with pytest.raises(ValidationError):
            BudgetConfig(capacity=10_000, reserved_overhead=100, sequential_ceiling=5_000)

    def test_backoff_max_must_cover_base(self):
        with pytest.raises(ValidationError):
            BudgetConfig(backoff_base_seconds=10, backoff_max_seconds=1)

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            BudgetConfig(chunk_batch_size=0)

    def test_config_is_frozen(self):
        config = BudgetConfig()
        with pytest.raises(ValidationError):
            config.capacity = 5

    def test_loads_from_json(self):
        config = BudgetConfig.model_validate_json('{"chunk_batch_size": 10, "require_exhaustive_coverage": true}')
        assert config.chunk_batch_size == 10
        assert config.require_exhaustive_coverage is True


# =============================================================================
# ContentItem tests
# =============================================================================


class TestContentItem:
    """Tests for ContentItem construction."""

    def test_from_text_estimates_size(self):
        item = ContentItem.from_text("q1", "item-list", "abcde")
        assert item.size_estimate == 2

    def test_from_text_defaults_tier_from_category(self):
        summary = ContentItem.from_text("p", ContentCategory.SUMMARY, "x")
        metadata = ContentItem.from_text("m", ContentCategory.METADATA, "x")
        assert summary.priority_tier < metadata.priority_tier

    def test_explicit_tier_wins(self):
        item = ContentItem.from_text("m", ContentCategory.METADATA, "x", priority_tier=0)
        assert item.priority_tier == 0

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            ContentItem.from_text("", ContentCategory.SUMMARY, "x")

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            ContentItem.from_text("x", "poem", "x")

    def test_category_heading(self):
        assert ContentCategory.QA_PAIR.heading == "QA PAIR"

    def test_generation_mode_from_string(self):
        assert GenerationMode("text") is GenerationMode.TEXT
