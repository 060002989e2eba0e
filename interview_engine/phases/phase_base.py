"""Base classes for run phases.

The context is split into three parts so responsibilities are clear:
- **RunResources** (frozen): collaborators created once per run, namely the
  completion client, chunk controller, concurrency semaphore, logger and
  diagnostics.
- **RunConfig** (frozen): the caller's choices that never change mid-run,
  namely the budget configuration, extra instructions and generation mode.
- **RunState** (mutable): what accumulates as phases run, namely dropped,
  used, failed and cancelled ids and the structured error log.

PhaseContext wraps all three and exposes convenience properties so phases can
write ``ctx.controller`` instead of ``ctx.resources.controller``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from interview_engine.core.budget_assembler import AssemblyPlan, Strategy
from interview_engine.core.errors import RunErrors, budget_error, cancelled_error
from interview_engine.core.pipeline_logger import PipelineLogger, RunDiagnostics
from interview_engine.core.retry_controller import ChunkController, ChunkOutcome, CompletionClient
from interview_engine.prompts.common_prompt import with_extra_instructions
from interview_engine.pydantic_models.content_models import BudgetConfig, GenerationMode


# Split Context Classes

@dataclass(frozen=True)
class RunResources:
    """Shared collaborators - created once, never replaced."""

    client: CompletionClient
    controller: ChunkController
    semaphore: asyncio.Semaphore
    logger: PipelineLogger
    diagnostics: RunDiagnostics


@dataclass(frozen=True)
class RunConfig:
    """Configuration - set at init, never modified."""

    budget_config: BudgetConfig
    mode: GenerationMode
    instructions: str = ""  # Caller instructions appended to every system prompt


@dataclass
class RunState:
    """Mutable state that accumulates during the run.

    - strategy: Written once the plan is made
    - required_ids: Ids the coverage check runs against (assignment mode)
    - dropped_ids: Items left out by budgeting, oversizing, or failed digests
    - used_item_ids: Items in at least one chunk whose result was merged
    - failed_chunks / cancelled_chunks: Chunk indices of the final pass
    - errors: Accumulated by all phases
    """

    strategy: Strategy | None = None
    required_ids: list[str] = field(default_factory=list)
    dropped_ids: list[str] = field(default_factory=list)
    used_item_ids: list[str] = field(default_factory=list)
    failed_chunks: list[int] = field(default_factory=list)
    cancelled_chunks: list[int] = field(default_factory=list)
    errors: RunErrors = field(default_factory=RunErrors)

    def add_dropped(self, ids: list[str]) -> None:
        for item_id in ids:
            if item_id not in self.dropped_ids:
                self.dropped_ids.append(item_id)

    def add_used(self, ids: list[str]) -> None:
        for item_id in ids:
            if item_id not in self.used_item_ids:
                self.used_item_ids.append(item_id)


class PhaseContext:
    """Slim context holding references to the three component contexts."""

    def __init__(self, resources: RunResources, config: RunConfig, state: RunState):
        self.resources = resources
        self.config = config
        self.state = state

    # -- Resource properties (read-only) --

    @property
    def client(self) -> CompletionClient:
        return self.resources.client

    @property
    def controller(self) -> ChunkController:
        return self.resources.controller

    @property
    def semaphore(self) -> asyncio.Semaphore:
        return self.resources.semaphore

    @property
    def logger(self) -> PipelineLogger:
        return self.resources.logger

    @property
    def diagnostics(self) -> RunDiagnostics:
        return self.resources.diagnostics

    # -- Config properties (read-only) --

    @property
    def budget_config(self) -> BudgetConfig:
        return self.config.budget_config

    @property
    def mode(self) -> GenerationMode:
        return self.config.mode

    @property
    def instructions(self) -> str:
        return self.config.instructions

    # -- State properties --

    @property
    def errors(self) -> RunErrors:
        return self.state.errors

    @property
    def cancelled(self) -> bool:
        return self.controller.cancelled


T = TypeVar("T")


class PhaseRunner(ABC, Generic[T]):
    """Base class for run phases.

    Each phase:
    - Has a name for logging, diagnostics and cost attribution
    - Takes a PhaseContext with shared state
    - Produces a typed result
    - Records chunk failures and cancellations instead of raising them
    """

    name: str = "unnamed"

    def __init__(self, context: PhaseContext):
        self.context = context
        self.logger = context.logger

    @abstractmethod
    async def run(self) -> T:
        """Execute the phase."""

    def log(self, message: str, level: str = "info", **data):
        """Log a message with phase context."""
        if level == "debug":
            self.logger.debug(f"[{self.name}] {message}", **data)
        elif level == "warning":
            self.logger.warning(f"[{self.name}] {message}", **data)
        elif level == "error":
            self.logger.error(f"[{self.name}] {message}", **data)
        else:
            self.logger.info(f"[{self.name}] {message}", **data)

    def start(self, total: int = 0):
        """Signal phase start."""
        self.logger.start_phase(self.name, total)

    def finish(self, result: str, **metrics):
        """Signal phase end."""
        self.logger.phase_result(self.name, result, **metrics)

    def system_prompt(self, base: str) -> str:
        """Base prompt of the phase followed by the caller's instructions."""
        return with_extra_instructions(base, self.context.instructions)

    def record_plan(self, plan: AssemblyPlan) -> None:
        """Record the strategy and any dropped items of a plan."""
        self.context.diagnostics.record(
            "strategy_selected", self.name,
            strategy=plan.strategy.value, chunks=len(plan.chunks), included=len(plan.included),
        )
        if plan.dropped_ids:
            self.context.state.add_dropped(plan.dropped_ids)
            self.context.errors.add(budget_error(plan.dropped_ids, self.name))
            self.context.diagnostics.record("items_dropped", self.name, item_ids=plan.dropped_ids)

    def accept(self, outcome: ChunkOutcome, track_failures: bool = True) -> bool:
        """Check an outcome right before merging it.

        Failed and cancelled chunks are recorded on the run state (when
        track_failures is set) and False is returned. A success that arrives
        after cancellation is discarded the same way.
        """
        state = self.context.state
        if outcome.cancelled or (outcome.ok and self.context.cancelled):
            if outcome.ok:
                self.context.diagnostics.record("cancelled", self.name, outcome.chunk_index, discarded=True)
            if track_failures and outcome.chunk_index not in state.cancelled_chunks:
                state.cancelled_chunks.append(outcome.chunk_index)
            self.context.errors.add(cancelled_error(self.name, outcome.chunk_index))
            return False
        if not outcome.ok:
            if track_failures and outcome.chunk_index not in state.failed_chunks:
                state.failed_chunks.append(outcome.chunk_index)
            return False
        self.logger.tick(f"chunk {outcome.chunk_index}")
        return True
