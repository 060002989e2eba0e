"""Prompt templates for completion calls.

Each module contains the system prompts, expected-output hints, and content
builders for one kind of run.
"""

from interview_engine.prompts.common_prompt import (
    SIMPLIFY_INSTRUCTION,
    CARRIED_SUMMARY_HEADER,
    build_position_note,
    build_carried_summary_block,
    with_extra_instructions,
    fixed_prompt_text,
)
from interview_engine.prompts.assignment_prompt import (
    ASSIGNMENT_SYSTEM_PROMPT,
    ASSIGNMENT_SHAPE_HINT,
    build_assignment_content,
)
from interview_engine.prompts.document_prompt import (
    COMPOSE_SYSTEM_PROMPT,
    TEXT_SHAPE_HINT,
    DIGEST_SYSTEM_PROMPT,
    DIGEST_SHAPE_HINT,
    REFINE_INSTRUCTION,
    digest_size_instruction,
    build_refine_content,
)

__all__ = [
    # Shared
    "SIMPLIFY_INSTRUCTION",
    "CARRIED_SUMMARY_HEADER",
    "build_position_note",
    "build_carried_summary_block",
    "with_extra_instructions",
    "fixed_prompt_text",
    # Assignment
    "ASSIGNMENT_SYSTEM_PROMPT",
    "ASSIGNMENT_SHAPE_HINT",
    "build_assignment_content",
    # Documents
    "COMPOSE_SYSTEM_PROMPT",
    "TEXT_SHAPE_HINT",
    "DIGEST_SYSTEM_PROMPT",
    "DIGEST_SHAPE_HINT",
    "REFINE_INSTRUCTION",
    "digest_size_instruction",
    "build_refine_content",
]
