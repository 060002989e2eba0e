"""Run orchestrator: the single entry point for one generation run.

A run takes content items, an explicit BudgetConfig and a generation mode,
and returns a GenerationResult that always states what was dropped, which
chunks failed or were cancelled, and whether coverage is complete. Only
ServiceFatalError escapes: an authentication or malformed-request failure
makes every partial result meaningless.

High-level flow:
  assignment: AssignmentPhase (concurrent chunks) -> coverage check
  text:       plan -> single-pass | sequential TextPhase
                   -> hierarchical: DigestPhase -> TextPhase -> RefinePhase
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from interview_engine.core.budget_assembler import Strategy, plan_assembly, plan_sequential
from interview_engine.core.catalog import ContentCatalog
from interview_engine.core.errors import (
    BudgetExceededWarning,
    CoverageGapWarning,
    OperationCancelled,
    RunErrors,
    ServiceFatalError,
)
from interview_engine.core.merge import coverage_gap, verify_coverage
from interview_engine.core.pipeline_logger import DiagnosticRecord, PipelineLogger, RunDiagnostics, get_logger
from interview_engine.core.retry_controller import CancellationToken, ChunkController, CompletionClient
from interview_engine.phases import (
    AssignmentPhase,
    DigestPhase,
    PhaseContext,
    RefinePhase,
    RunConfig,
    RunResources,
    RunState,
    TextPhase,
    compose_budget,
)
from interview_engine.pydantic_models.content_models import BudgetConfig, ContentItem, GenerationMode
from interview_engine.pydantic_models.result_models import (
    AssignmentMerge,
    CoverageReport,
    TextMerge,
    TextSegment,
)


@dataclass
class GenerationResult:
    """Everything a run produced, including what it could not do.

    Attributes:
        mode: Generation mode of the run
        strategy: Strategy the budget assembler selected
        result: AssignmentMerge or TextMerge
        used_item_ids: Items in at least one merged chunk, catalog order
        dropped_item_ids: Items left out (capacity, oversized, failed digests)
        failed_chunk_indices: Chunks that exhausted retries or stayed unparseable
        cancelled_chunk_indices: Chunks skipped or discarded after cancellation
        coverage: Coverage of the required ids
        coverage_gap: Set when exhaustive coverage was requested and missed
        budget_warning: Set when anything was dropped
        cancellation: Set when the caller cancelled the run
        diagnostics: Structured events of the run
        errors: Structured error records of the run
    """

    mode: GenerationMode
    strategy: Strategy
    result: AssignmentMerge | TextMerge
    used_item_ids: list[str] = field(default_factory=list)
    dropped_item_ids: list[str] = field(default_factory=list)
    failed_chunk_indices: list[int] = field(default_factory=list)
    cancelled_chunk_indices: list[int] = field(default_factory=list)
    coverage: CoverageReport | None = None
    coverage_gap: CoverageGapWarning | None = None
    budget_warning: BudgetExceededWarning | None = None
    cancellation: OperationCancelled | None = None
    diagnostics: list[DiagnosticRecord] = field(default_factory=list)
    errors: RunErrors = field(default_factory=RunErrors)

    @property
    def warnings(self) -> list[Warning]:
        """Every warning value attached to the result."""
        return [w for w in (self.budget_warning, self.coverage_gap) if w is not None]

    @property
    def text(self) -> str | None:
        return self.result.render() if isinstance(self.result, TextMerge) else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = self.result.model_dump()
        if isinstance(self.result, TextMerge):
            result["text"] = self.result.render()
        return {
            "mode": self.mode.value,
            "strategy": self.strategy.value,
            "result": result,
            "used_item_ids": self.used_item_ids,
            "dropped_item_ids": self.dropped_item_ids,
            "failed_chunk_indices": self.failed_chunk_indices,
            "cancelled_chunk_indices": self.cancelled_chunk_indices,
            "coverage": self.coverage.model_dump() if self.coverage else None,
            "coverage_gap": self.coverage_gap.uncovered_ids if self.coverage_gap else None,
            "budget_warning": str(self.budget_warning) if self.budget_warning else None,
            "cancelled": self.cancellation is not None,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "errors": self.errors.to_dict(),
        }


class GenerationOrchestrator:
    """Coordinates the phases of one generation run."""

    def __init__(
        self,
        items: Sequence[ContentItem],
        budget_config: BudgetConfig,
        mode: GenerationMode | str,
        client: CompletionClient,
        instructions: str = "",
        entities: Sequence[ContentItem] = (),
        shared_context: Sequence[ContentItem] = (),
        cancel_token: CancellationToken | None = None,
        logger: PipelineLogger | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the orchestrator.

        Args:
            items: Content to generate from. In assignment mode, the items to
                   assign; their ids are the required ids for coverage.
            budget_config: Capacity, chunking and retry configuration.
            mode: GenerationMode.ASSIGNMENT or GenerationMode.TEXT.
            client: Completion client.
            instructions: Extra caller instructions for every request.
            entities: Assignment mode only: entity profiles; entity key = item id.
            shared_context: Extra context. Repeated in every assignment chunk;
                            treated as ordinary content in text mode.
            cancel_token: Cooperative cancellation flag.
            logger: Run logger. Defaults to the global logger.
            sleep: Backoff sleep (injected in tests).
            clock: Monotonic clock for the deadline (injected in tests).

        Raises:
            ValueError: On duplicate ids, or an assignment run without entities.
        """
        self.mode = GenerationMode(mode)
        self.budget_config = budget_config
        self.items = ContentCatalog(items)
        self.entities = ContentCatalog(entities)
        self.shared_context = ContentCatalog(shared_context)
        # All ids of a run share one namespace
        self.catalog = ContentCatalog([*items, *entities, *shared_context])
        if self.mode is GenerationMode.ASSIGNMENT and not len(self.entities):
            raise ValueError("Assignment mode needs at least one entity")

        self.logger = logger or get_logger()
        diagnostics = RunDiagnostics(logger=self.logger)
        state = RunState()
        controller = ChunkController(
            client,
            budget_config,
            diagnostics=diagnostics,
            errors=state.errors,
            cancel_token=cancel_token,
            sleep=sleep,
            clock=clock,
        )
        resources = RunResources(
            client=client,
            controller=controller,
            semaphore=asyncio.Semaphore(budget_config.max_concurrency),
            logger=self.logger,
            diagnostics=diagnostics,
        )
        self.context = PhaseContext(
            resources=resources,
            config=RunConfig(budget_config=budget_config, mode=self.mode, instructions=instructions),
            state=state,
        )

    async def run(self) -> GenerationResult:
        """Run the generation.

        Raises:
            ServiceFatalError: Authentication or malformed request; no partial result.
        """
        self.logger.start_run(self.mode.value)
        self.context.controller.start()
        try:
            if self.mode is GenerationMode.ASSIGNMENT:
                merged = await AssignmentPhase(self.context, self.items, self.entities, self.shared_context).run()
                required = self.context.state.required_ids
            else:
                merged = await self._run_text()
                required = self.catalog.ids
        except ServiceFatalError as e:
            self.logger.error("Run aborted", exc=e)
            self.logger.end_run(success=False, stats=self.get_stats())
            raise

        result = self._build_result(merged, required)
        self.logger.end_run(success=True, stats=self.get_stats())
        return result

    async def _run_text(self) -> TextMerge:
        config = self.budget_config
        budget = compose_budget(config, self.context.instructions)
        plan = plan_assembly(self.catalog, budget, config)

        if plan.strategy is not Strategy.HIERARCHICAL or not config.allow_multi_call:
            return await TextPhase(self.context, plan).run()

        # Pass 1: digests
        digested = await DigestPhase(self.context, plan).run()

        # Pass 2: compose from digests
        digest_catalog = ContentCatalog(digested.digests)
        compose_plan = plan_assembly(digest_catalog, budget, config)
        if compose_plan.strategy is Strategy.HIERARCHICAL:
            compose_plan = plan_sequential(digest_catalog, budget, config)
        if compose_plan.dropped_ids:
            self.context.state.add_dropped(compose_plan.dropped_ids)
            self.context.diagnostics.record("items_dropped", "compose", item_ids=compose_plan.dropped_ids)
        draft = await TextPhase(self.context, compose_plan, track_plan=False).run()

        # Pass 3: refine against the originals of the top items
        if config.refine_top_items <= 0 or draft.gaps or not draft.segments or self.context.cancelled:
            return draft
        used = set(self.context.state.used_item_ids)
        candidates = [item for item in self.catalog.ordered() if item.id in used]
        refined = await RefinePhase(self.context, draft.render(), candidates).run()
        if refined is None:
            return draft
        return TextMerge(segments=[TextSegment(chunk_index=1, text=refined)])

    def _build_result(self, merged: AssignmentMerge | TextMerge, required: list[str]) -> GenerationResult:
        state = self.context.state
        config = self.budget_config
        diagnostics = self.context.diagnostics

        coverage = verify_coverage(
            required, merged if isinstance(merged, AssignmentMerge) else state.used_item_ids,
        )
        gap = coverage_gap(coverage, config.require_exhaustive_coverage)
        self.logger.milestone(
            "Coverage", covered=len(coverage.covered_ids), required=len(required),
            strategy=state.strategy.value if state.strategy else None,
        )
        if gap:
            diagnostics.record(
                "coverage_gap", self.mode.value,
                uncovered_ids=gap.uncovered_ids, required=gap.required_count,
            )

        dropped = self.catalog.sort_ids(state.dropped_ids)
        budget_warning = BudgetExceededWarning(dropped) if dropped else None

        cancellation = None
        if state.cancelled_chunks or self.context.cancelled:
            completed = len(merged.merged_chunks) if isinstance(merged, AssignmentMerge) else len(merged.segments)
            cancellation = OperationCancelled(completed_chunks=completed)

        return GenerationResult(
            mode=self.mode,
            strategy=state.strategy or Strategy.SINGLE_PASS,
            result=merged,
            used_item_ids=self.catalog.sort_ids(state.used_item_ids),
            dropped_item_ids=dropped,
            failed_chunk_indices=sorted(state.failed_chunks),
            cancelled_chunk_indices=sorted(state.cancelled_chunks),
            coverage=coverage,
            coverage_gap=gap,
            budget_warning=budget_warning,
            cancellation=cancellation,
            diagnostics=list(diagnostics.records),
            errors=state.errors,
        )

    def get_stats(self) -> dict:
        """Get run statistics."""
        state = self.context.state
        return {
            "mode": self.mode.value,
            "strategy": state.strategy.value if state.strategy else None,
            "items": len(self.items),
            "used": len(state.used_item_ids),
            "dropped": len(state.dropped_ids),
            "failed_chunks": sorted(state.failed_chunks),
            "cancelled_chunks": sorted(state.cancelled_chunks),
            "errors": state.errors.summary(),
        }


async def generate(
    items: Sequence[ContentItem],
    budget_config: BudgetConfig,
    mode: GenerationMode | str,
    *,
    client: CompletionClient,
    instructions: str = "",
    entities: Sequence[ContentItem] = (),
    shared_context: Sequence[ContentItem] = (),
    cancel_token: CancellationToken | None = None,
    logger: PipelineLogger | None = None,
) -> GenerationResult:
    """Run one generation and return its result.

    See GenerationOrchestrator for the arguments.

    Raises:
        ValueError: Invalid input (duplicate ids, missing entities).
        ServiceFatalError: The completion service rejected the run.
    """
    orchestrator = GenerationOrchestrator(
        items,
        budget_config,
        mode,
        client=client,
        instructions=instructions,
        entities=entities,
        shared_context=shared_context,
        cancel_token=cancel_token,
        logger=logger,
    )
    return await orchestrator.run()
