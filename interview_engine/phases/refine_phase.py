"""Refine phase: revise a digest-based draft against key original texts.

Last, optional pass of the hierarchical strategy. One call carries the
pass-2 draft plus the original text of the top-priority items that fit next
to it. Returns the refined text, or None when the pass is skipped or fails,
in which case the draft stands.
"""

from collections.abc import Sequence

from interview_engine.core.budget_assembler import Budget, fit_to_capacity, render_items
from interview_engine.core.response_parser import parse_text_response
from interview_engine.core.sizing import estimate_size
from interview_engine.phases.phase_base import PhaseContext, PhaseRunner
from interview_engine.prompts.common_prompt import fixed_prompt_text
from interview_engine.prompts.document_prompt import (
    COMPOSE_SYSTEM_PROMPT,
    DRAFT_HEADER,
    ORIGINALS_HEADER,
    REFINE_INSTRUCTION,
    TEXT_SHAPE_HINT,
    build_refine_content,
)
from interview_engine.pydantic_models.content_models import ContentItem
from interview_engine.pydantic_models.request_models import RequestEnvelope


class RefinePhase(PhaseRunner[str | None]):
    """Refine a draft with the originals of the most important items."""

    name = "refine"

    def __init__(self, context: PhaseContext, draft: str, candidates: Sequence[ContentItem]):
        """
        Args:
            context: Shared run context.
            draft: Text produced from digests.
            candidates: Original items in priority order; at most
                refine_top_items of them are re-expanded.
        """
        super().__init__(context)
        self.draft = draft
        self.candidates = list(candidates)

    async def run(self) -> str | None:
        config = self.context.budget_config
        top = self.candidates[:config.refine_top_items]
        if not top or not self.draft.strip():
            return None

        instructions = self.system_prompt(f"{COMPOSE_SYSTEM_PROMPT}\n\n{REFINE_INSTRUCTION}")
        fixed = "\n".join([fixed_prompt_text(instructions, TEXT_SHAPE_HINT), DRAFT_HEADER, ORIGINALS_HEADER])
        budget = Budget.from_config(config, fixed)

        room = budget.single_pass_capacity - estimate_size(self.draft)
        fit = fit_to_capacity(top, max(0, room))
        if not fit.included:
            self.context.diagnostics.record("refine_skipped", self.name, reason="draft leaves no room for originals")
            return None

        self.start(1)
        envelope = RequestEnvelope(
            instructions=instructions,
            content=build_refine_content(self.draft, render_items(fit.included)),
            expected_shape_hint=TEXT_SHAPE_HINT,
            stage=self.name,
        )
        outcome = await self.context.controller.run_chunk(1, envelope, parse_text_response, phase=self.name)
        if not self.accept(outcome, track_failures=False):
            self.context.diagnostics.record("refine_failed", self.name, reason=str(outcome.error))
            self.finish("draft kept")
            return None

        self.context.diagnostics.record("refine_applied", self.name, item_ids=[item.id for item in fit.included])
        self.finish("refined", originals=len(fit.included))
        return outcome.result.text
