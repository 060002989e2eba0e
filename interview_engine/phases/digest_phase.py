"""Digest phase: condense every item into a short per-item digest.

First pass of the hierarchical strategy, used when the content exceeds even
the sequential ceiling. Digest chunks are independent and run concurrently.
Each digest is capped at digest_capacity units.

Items of a failed digest chunk are dropped from the run and reported. An
item the service skipped inside a successful chunk falls back to its own
text truncated to digest_capacity, so nothing is made up for it.
"""

from dataclasses import dataclass, field

from interview_engine.core.budget_assembler import AssemblyPlan, render_items
from interview_engine.core.errors import validation_error
from interview_engine.core.response_parser import parse_digest_response
from interview_engine.core.sizing import smart_truncate
from interview_engine.phases.phase_base import PhaseContext, PhaseRunner
from interview_engine.prompts.document_prompt import (
    DIGEST_SHAPE_HINT,
    DIGEST_SYSTEM_PROMPT,
    digest_size_instruction,
)
from interview_engine.pydantic_models.content_models import ContentItem
from interview_engine.pydantic_models.request_models import RequestEnvelope


@dataclass
class DigestOutput:
    """Digest items in catalog order, plus what could not be digested."""

    digests: list[ContentItem] = field(default_factory=list)
    failed_item_ids: list[str] = field(default_factory=list)
    fallback_item_ids: list[str] = field(default_factory=list)


def digest_instructions(base_instructions: str, digest_capacity: int) -> str:
    return f"{base_instructions}\n\n{digest_size_instruction(digest_capacity)}"


class DigestPhase(PhaseRunner[DigestOutput]):
    """Condense the items of a hierarchical plan into digest items."""

    name = "digest"

    def __init__(self, context: PhaseContext, plan: AssemblyPlan):
        super().__init__(context)
        self.plan = plan

    async def run(self) -> DigestOutput:
        config = self.context.budget_config
        self.context.state.strategy = self.plan.strategy
        self.record_plan(self.plan)
        output = DigestOutput()
        if not self.plan.chunks:
            self.finish("0 chunks")
            return output

        self.start(len(self.plan.chunks))
        instructions = digest_instructions(self.system_prompt(DIGEST_SYSTEM_PROMPT), config.digest_capacity)
        jobs = [
            (chunk.index, RequestEnvelope(
                instructions=instructions,
                content=render_items(chunk.items),
                expected_shape_hint=DIGEST_SHAPE_HINT,
                chunk_index=chunk.index,
                chunk_count=chunk.total,
                stage=self.name,
            ))
            for chunk in self.plan.chunks
        ]
        outcomes = await self.context.controller.run_many(
            jobs, parse_digest_response, self.context.semaphore, phase=self.name,
        )
        by_index = {outcome.chunk_index: outcome for outcome in outcomes}

        for chunk in self.plan.chunks:
            outcome = by_index[chunk.index]
            # Digest failures drop items; only the final pass reports chunk indices
            if not self.accept(outcome, track_failures=False):
                output.failed_item_ids.extend(chunk.item_ids)
                continue

            digests = outcome.result.digests
            foreign = [item_id for item_id in digests if item_id not in chunk.item_ids]
            if foreign:
                self.context.diagnostics.record("anomaly_rejected", self.name, chunk.index, item_ids=foreign)
                self.context.errors.add(validation_error(
                    f"Digest for item(s) not in chunk {chunk.index}", self.name, chunk.index, foreign,
                ))

            for item in chunk.items:
                text = digests.get(item.id)
                if text is None:
                    output.fallback_item_ids.append(item.id)
                    text = item.text
                output.digests.append(ContentItem.from_text(
                    item.id, item.category,
                    smart_truncate(text, config.digest_capacity),
                    priority_tier=item.priority_tier,
                ))

        if output.fallback_item_ids:
            self.context.diagnostics.record("digest_missing", self.name, item_ids=output.fallback_item_ids)
        if output.failed_item_ids:
            self.context.state.add_dropped(output.failed_item_ids)
            self.context.diagnostics.record("items_dropped", self.name, item_ids=output.failed_item_ids)

        self.finish(
            f"{len(output.digests)} digests",
            failed_items=len(output.failed_item_ids),
            fallbacks=len(output.fallback_item_ids),
        )
        return output
