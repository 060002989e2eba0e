"""Assignment phase: distribute catalog items across entities.

Input: assignable items (questions), entity profiles (stakeholders), and
optional shared context. Every chunk shows the service all fitted entities
and the shared context, plus one batch of items. Chunks are independent, so
they run concurrently.

Output: AssignmentMerge with the entity-keyed union of every merged chunk.
Item ids or entity keys the service invents are rejected and logged.
"""

from interview_engine.core.budget_assembler import Budget, plan_partitioned, render_items
from interview_engine.core.catalog import ContentCatalog
from interview_engine.core.errors import validation_error
from interview_engine.core.merge import AssignmentAccumulator
from interview_engine.core.response_parser import parse_assignment_response
from interview_engine.phases.phase_base import PhaseContext, PhaseRunner
from interview_engine.prompts.assignment_prompt import (
    ASSIGNMENT_SHAPE_HINT,
    ASSIGNMENT_SYSTEM_PROMPT,
    CONTEXT_HEADER,
    ENTITIES_HEADER,
    ITEMS_HEADER,
    build_assignment_content,
)
from interview_engine.prompts.common_prompt import fixed_prompt_text
from interview_engine.pydantic_models.request_models import RequestEnvelope
from interview_engine.pydantic_models.result_models import AssignmentMerge


class AssignmentPhase(PhaseRunner[AssignmentMerge]):
    """Assign items to entities over one or more concurrent calls."""

    name = "assignment"

    def __init__(
        self,
        context: PhaseContext,
        items: ContentCatalog,
        entities: ContentCatalog,
        shared_context: ContentCatalog,
    ):
        super().__init__(context)
        self.items = items
        self.entities = entities
        self.shared_context = shared_context

    async def run(self) -> AssignmentMerge:
        state = self.context.state
        instructions = self.system_prompt(ASSIGNMENT_SYSTEM_PROMPT)
        fixed = "\n".join([
            fixed_prompt_text(instructions, ASSIGNMENT_SHAPE_HINT),
            CONTEXT_HEADER, ENTITIES_HEADER, ITEMS_HEADER,
        ])
        budget = Budget.from_config(self.context.budget_config, fixed)

        plan = plan_partitioned(self.items, self.entities, self.shared_context, budget, self.context.budget_config)
        state.strategy = plan.strategy
        state.required_ids = self.items.ids
        self.record_plan(plan)

        fitted_entities = [item for item in plan.shared if item.id in self.entities]
        fitted_context = [item for item in plan.shared if item.id not in self.entities]
        accumulator = AssignmentAccumulator(
            plan.included_ids,
            [e.id for e in fitted_entities],
            chunk_item_ids={chunk.index: chunk.item_ids for chunk in plan.chunks},
        )

        if not plan.chunks:
            self.log("Nothing fits the capacity budget, no calls made", "warning")
            self.finish("0 chunks", dropped=len(plan.dropped_ids))
            return accumulator.merged()

        self.start(len(plan.chunks))
        entities_block = render_items(fitted_entities)
        context_block = render_items(fitted_context)
        jobs = [
            (chunk.index, RequestEnvelope(
                instructions=instructions,
                content=build_assignment_content(entities_block, render_items(chunk.items), context_block),
                expected_shape_hint=ASSIGNMENT_SHAPE_HINT,
                chunk_index=chunk.index,
                chunk_count=chunk.total,
                stage=self.name,
            ))
            for chunk in plan.chunks
        ]
        outcomes = await self.context.controller.run_many(
            jobs, parse_assignment_response, self.context.semaphore, phase=self.name,
        )

        chunks_by_index = {chunk.index: chunk for chunk in plan.chunks}
        for outcome in sorted(outcomes, key=lambda o: o.chunk_index):
            if not self.accept(outcome):
                continue
            anomalies = accumulator.merge(outcome.result)
            for anomaly in anomalies:
                self.context.diagnostics.record(
                    "anomaly_rejected", self.name, anomaly.chunk_index,
                    kind=anomaly.kind, entity_id=anomaly.entity_id, item_ids=list(anomaly.item_ids),
                )
                self.context.errors.add(validation_error(
                    str(anomaly), self.name, anomaly.chunk_index, list(anomaly.item_ids),
                ))
            state.add_used(chunks_by_index[outcome.chunk_index].item_ids)

        merged = accumulator.merged()
        self.finish(
            f"{len(merged.merged_chunks)}/{len(plan.chunks)} chunks merged",
            entities=len(merged.assignments),
            covered=len(merged.covered_ids()),
            anomalies=len(accumulator.anomalies),
        )
        return merged
