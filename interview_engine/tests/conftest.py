"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- Content items (questions, stakeholders, document material)
- A scripted completion client that answers from the ids it is shown
- Budget configurations small enough to force multi-call strategies
"""

import json
import re
from collections.abc import Callable

import pytest

from interview_engine.core.pipeline_logger import reset_logger
from interview_engine.prompts.assignment_prompt import ITEMS_HEADER
from interview_engine.pydantic_models.content_models import BudgetConfig, ContentCategory, ContentItem
from interview_engine.pydantic_models.request_models import RequestEnvelope


_ID_PATTERN = re.compile(r"\[id: ([^\]]+)\] ===")


def ids_in(text: str) -> list[str]:
    """Item ids rendered into a block of prompt content."""
    return _ID_PATTERN.findall(text)


def assignable_ids(envelope: RequestEnvelope) -> list[str]:
    """Ids listed under the questions header of an assignment request."""
    return ids_in(envelope.content.split(ITEMS_HEADER, 1)[1])


# =============================================================================
# Scripted completion client
# =============================================================================


class FakeCompletionClient:
    """CompletionClient that answers every request with a handler.

    The handler receives the envelope and returns raw response text or an
    exception instance to raise. Every envelope sent is kept in `calls`.
    """

    def __init__(self, handler: Callable[[RequestEnvelope], "str | Exception"]):
        self.handler = handler
        self.calls: list[RequestEnvelope] = []

    async def send(self, envelope: RequestEnvelope) -> str:
        self.calls.append(envelope)
        response = self.handler(envelope)
        if isinstance(response, Exception):
            raise response
        return response

    def calls_for(self, stage: str) -> list[RequestEnvelope]:
        return [c for c in self.calls if c.stage == stage]

    def chunk_attempts(self, chunk_index: int, stage: str | None = None) -> int:
        return sum(
            1 for c in self.calls
            if c.chunk_index == chunk_index and (stage is None or c.stage == stage)
        )


def assign_all_to_first(envelope: RequestEnvelope, entity_id: str = "s1") -> str:
    """Assignment response giving every shown question to one stakeholder."""
    return json.dumps({
        "assignments": [
            {"entity_id": entity_id, "item_ids": assignable_ids(envelope), "rationale": f"chunk {envelope.chunk_index}"},
        ]
    })


def default_handler(envelope: RequestEnvelope) -> str:
    """Well-formed answer for every stage."""
    if envelope.stage == "assignment":
        return assign_all_to_first(envelope)
    if envelope.stage == "digest":
        return json.dumps({
            "digests": [{"id": i, "digest": f"digest of {i}"} for i in ids_in(envelope.content)]
        })
    if envelope.stage == "refine":
        return json.dumps({"text": "Refined document.", "carry_forward": ""})
    shown = ids_in(envelope.content)
    return json.dumps({
        "text": f"Section {envelope.chunk_index} covering {', '.join(shown)}.",
        "carry_forward": f"summary of part {envelope.chunk_index}",
    })


@pytest.fixture
def fake_client():
    """Factory for scripted completion clients (default: always answers well)."""
    def _create(handler: Callable[[RequestEnvelope], "str | Exception"] = default_handler):
        return FakeCompletionClient(handler)
    return _create


# =============================================================================
# Content items
# =============================================================================


@pytest.fixture
def questions():
    """75 short interview questions q1..q75."""
    return [
        ContentItem.from_text(f"q{i}", ContentCategory.ITEM_LIST, f"Question {i}: how does process {i} work today?")
        for i in range(1, 76)
    ]


@pytest.fixture
def stakeholders():
    """Three stakeholder profiles."""
    return [
        ContentItem.from_text("s1", ContentCategory.PROFILE, "Alex Doe, Head of Operations, 12 years"),
        ContentItem.from_text("s2", ContentCategory.PROFILE, "Sam Roe, IT Architect, 6 years"),
        ContentItem.from_text("s3", ContentCategory.PROFILE, "Kim Poe, Finance Controller, 9 years"),
    ]


@pytest.fixture
def project_context():
    return [ContentItem.from_text("project_summary", ContentCategory.SUMMARY, "ERP migration for a mid-size retailer.")]


@pytest.fixture
def large_items():
    """Six items of 400 units each (1600 characters)."""
    return [
        ContentItem.from_text(f"doc{i}", ContentCategory.QA_PAIR, f"{i}" * 1600)
        for i in range(1, 7)
    ]


@pytest.fixture
def small_budget():
    """Budget that puts large_items in the sequential range, two items per call."""
    return BudgetConfig(
        capacity=2_000,
        reserved_overhead=100,
        per_call_capacity=1_500,
        chunk_batch_size=2,
        sequential_ceiling=10_000,
        carried_summary_capacity=200,
        backoff_base_seconds=0,
        backoff_max_seconds=0,
    )


@pytest.fixture
def fast_config():
    """Default limits without backoff waits."""
    return BudgetConfig(backoff_base_seconds=0, backoff_max_seconds=0)


@pytest.fixture(autouse=True)
def fresh_logger():
    """Reset the global logger before and after each test."""
    reset_logger()
    yield
    reset_logger()
