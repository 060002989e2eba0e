"""Prompt fragments shared by every request.

These are counted against the reserved overhead of a run, so keep them short.
"""

SIMPLIFY_INSTRUCTION = """IMPORTANT: Your previous answer could not be parsed.
Return a SHORTER and SIMPLER JSON object this time:
- Valid JSON only, no markdown fences, no comments, no trailing commas
- Keep every free-text field to one short sentence
- Never stop in the middle of the JSON object"""

CARRIED_SUMMARY_HEADER = "=== CONTEXT FROM PREVIOUS PARTS ==="

POSITION_NOTE_TEMPLATE = (
    "You are seeing part {index} of {count} of the material. "
    "Work only with what is shown here; other parts are processed separately."
)


def build_position_note(chunk_index: int, chunk_count: int) -> str:
    """Note telling the service it sees a partial view (empty for single calls)."""
    if chunk_count <= 1:
        return ""
    return POSITION_NOTE_TEMPLATE.format(index=chunk_index, count=chunk_count)


def build_carried_summary_block(summary: str) -> str:
    return f"{CARRIED_SUMMARY_HEADER}\n{summary}"


def fixed_prompt_text(instructions: str, shape_hint: str) -> str:
    """All fixed text that may accompany a chunk's content in one request.

    Used to size the reserved overhead of a run.
    """
    return "\n\n".join([
        instructions,
        shape_hint,
        POSITION_NOTE_TEMPLATE.format(index=999, count=999),
        SIMPLIFY_INSTRUCTION,
        CARRIED_SUMMARY_HEADER,
    ])


def with_extra_instructions(base: str, extra: str = "") -> str:
    """Base system prompt followed by the caller's own instructions, if any."""
    extra = extra.strip()
    if not extra:
        return base
    return f"{base}\n\nADDITIONAL INSTRUCTIONS:\n{extra}"
