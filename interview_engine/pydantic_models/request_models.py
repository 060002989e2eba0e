"""Pydantic schema for one request to the completion service."""

from pydantic import BaseModel, Field

from interview_engine.prompts.common_prompt import (
    SIMPLIFY_INSTRUCTION,
    build_carried_summary_block,
    build_position_note,
)


class RequestEnvelope(BaseModel):
    """Everything the completion service receives for one chunk.

    Attributes:
        instructions: Fixed task instructions (system prompt)
        content: Rendered chunk content
        expected_shape_hint: Description of the JSON the service must return
        chunk_index: 1-based position of this chunk
        chunk_count: Number of chunks in the run
        carried_summary: Output carried over from the previous chunk, if any
        simplified: True once the simplify instruction has been appended
        stage: Run stage the request belongs to (cost attribution only, never sent)
    """

    instructions: str
    content: str
    expected_shape_hint: str
    chunk_index: int = Field(default=1, ge=1)
    chunk_count: int = Field(default=1, ge=1)
    carried_summary: str | None = None
    simplified: bool = False
    stage: str = ""

    def simplified_copy(self) -> "RequestEnvelope":
        """Copy of this envelope asking for shorter, simpler structured output."""
        return self.model_copy(update={"simplified": True})

    def system_prompt(self) -> str:
        parts = [self.instructions.strip(), f"EXPECTED OUTPUT:\n{self.expected_shape_hint.strip()}"]
        note = build_position_note(self.chunk_index, self.chunk_count)
        if note:
            parts.append(note)
        if self.simplified:
            parts.append(SIMPLIFY_INSTRUCTION)
        return "\n\n".join(parts)

    def user_prompt(self) -> str:
        if self.carried_summary:
            return build_carried_summary_block(self.carried_summary) + "\n\n" + self.content
        return self.content

    def to_messages(self) -> list[dict[str, str]]:
        """Chat messages for the completion call."""
        return [
            {"role": "system", "content": self.system_prompt()},
            {"role": "user", "content": self.user_prompt()},
        ]
