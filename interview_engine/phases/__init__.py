"""Run phases.

- assignment_phase: concurrent item-to-entity assignment
- text_phase: single-pass or sequential composition
- digest_phase: hierarchical pass 1, per-item digests
- refine_phase: hierarchical pass 3, revise the draft against originals
"""

from interview_engine.phases.phase_base import (
    PhaseContext,
    PhaseRunner,
    RunConfig,
    RunResources,
    RunState,
)
from interview_engine.phases.assignment_phase import AssignmentPhase
from interview_engine.phases.text_phase import TextPhase, compose_budget, compose_instructions
from interview_engine.phases.digest_phase import DigestOutput, DigestPhase
from interview_engine.phases.refine_phase import RefinePhase

__all__ = [
    "PhaseContext",
    "PhaseRunner",
    "RunConfig",
    "RunResources",
    "RunState",
    "AssignmentPhase",
    "TextPhase",
    "compose_budget",
    "compose_instructions",
    "DigestOutput",
    "DigestPhase",
    "RefinePhase",
]
