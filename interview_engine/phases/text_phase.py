"""Text composition phase: single-pass or sequential.

Chunks run strictly in index order. From the second chunk on, each request
carries a summary of what came before (the previous chunk's carry_forward,
or its text when none was given), truncated to carried_summary_capacity.
A failed chunk leaves an explicit gap and the last good summary is carried
past it. Cancellation stops the loop at the next chunk boundary.
"""

from interview_engine.core.budget_assembler import AssemblyPlan, Budget, render_items
from interview_engine.core.merge import TextAccumulator
from interview_engine.core.response_parser import parse_text_response
from interview_engine.core.sizing import smart_truncate
from interview_engine.phases.phase_base import PhaseContext, PhaseRunner
from interview_engine.prompts.common_prompt import fixed_prompt_text, with_extra_instructions
from interview_engine.prompts.document_prompt import COMPOSE_SYSTEM_PROMPT, TEXT_SHAPE_HINT
from interview_engine.pydantic_models.content_models import BudgetConfig
from interview_engine.pydantic_models.request_models import RequestEnvelope
from interview_engine.pydantic_models.result_models import TextMerge


def compose_instructions(extra: str = "") -> str:
    return with_extra_instructions(COMPOSE_SYSTEM_PROMPT, extra)


def compose_budget(config: BudgetConfig, extra_instructions: str = "") -> Budget:
    """Budget of a composition run with the given caller instructions."""
    return Budget.from_config(config, fixed_prompt_text(compose_instructions(extra_instructions), TEXT_SHAPE_HINT))


class TextPhase(PhaseRunner[TextMerge]):
    """Compose a document from the chunks of a plan, in order."""

    name = "compose"

    def __init__(self, context: PhaseContext, plan: AssemblyPlan, track_plan: bool = True):
        """
        Args:
            context: Shared run context.
            plan: Chunks to compose from.
            track_plan: Record the plan's strategy and dropped items on the
                run state. Off when composing from digests, whose plan the
                hierarchical run has already accounted for.
        """
        super().__init__(context)
        self.plan = plan
        self.track_plan = track_plan

    async def run(self) -> TextMerge:
        state = self.context.state
        config = self.context.budget_config
        if self.track_plan:
            state.strategy = self.plan.strategy
            self.record_plan(self.plan)

        accumulator = TextAccumulator()
        chunks = self.plan.chunks
        if not chunks:
            self.log("Nothing fits the capacity budget, no calls made", "warning")
            self.finish("0 chunks")
            return accumulator.merged()

        self.start(len(chunks))
        instructions = compose_instructions(self.context.instructions)
        carried: str | None = None

        for position, chunk in enumerate(chunks):
            if self.context.cancelled:
                for remaining in chunks[position:]:
                    self._mark_cancelled(remaining.index)
                break

            envelope = RequestEnvelope(
                instructions=instructions,
                content=render_items(chunk.items),
                expected_shape_hint=TEXT_SHAPE_HINT,
                chunk_index=chunk.index,
                chunk_count=chunk.total,
                carried_summary=carried,
                stage=self.name,
            )
            outcome = await self.context.controller.run_chunk(
                chunk.index, envelope, parse_text_response, phase=self.name,
            )
            if not self.accept(outcome):
                if outcome.cancelled or self.context.cancelled:
                    for remaining in chunks[position + 1:]:
                        self._mark_cancelled(remaining.index)
                    break
                accumulator.record_gap(chunk.index)
                continue

            accumulator.add(outcome.result)
            state.add_used(chunk.item_ids)
            summary = outcome.result.carry_forward or outcome.result.text
            if config.carried_summary_capacity > 0:
                carried = smart_truncate(summary, config.carried_summary_capacity)

        merged = accumulator.merged()
        self.finish(
            f"{len(merged.segments)}/{len(chunks)} chunks merged",
            gaps=len(merged.gaps),
        )
        return merged

    def _mark_cancelled(self, chunk_index: int) -> None:
        state = self.context.state
        if chunk_index not in state.cancelled_chunks:
            state.cancelled_chunks.append(chunk_index)
            self.context.diagnostics.record("cancelled", self.name, chunk_index, skipped=True)
