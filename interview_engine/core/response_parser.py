"""Validate repaired responses into typed chunk results.

Each parser runs the repair pipeline, checks the JSON against a pydantic
payload model, and returns the chunk result together with the repair steps
that were needed. Any shape mismatch is a ChunkParseError, same as
unparseable text: the controller treats both alike.
"""

from typing import Any

from pydantic import BaseModel, ValidationError

from interview_engine.core.config import PromptLimits
from interview_engine.core.errors import ChunkParseError
from interview_engine.core.response_repair import repair_and_parse
from interview_engine.pydantic_models.result_models import (
    AssignmentPayload,
    AssignmentResult,
    DigestPayload,
    DigestResult,
    EntityAssignment,
    TextPayload,
    TextResult,
)


def _validate(model: type[BaseModel], data: Any, raw: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise ChunkParseError(
            f"Response does not match expected shape ({e.error_count()} error(s), first at {location}: {first['msg']})",
            raw,
        ) from e


def parse_assignment_response(raw: str, chunk_index: int) -> tuple[AssignmentResult, list[str]]:
    """Parse an assignment response.

    Accepts {"assignments": [...]} or a bare list of entries. Entries for
    the same entity within one response are combined.
    """
    outcome = repair_and_parse(raw)
    data = outcome.data
    if isinstance(data, list):
        data = {"assignments": data}
    payload: AssignmentPayload = _validate(AssignmentPayload, data, raw)

    assignments: dict[str, EntityAssignment] = {}
    for entry in payload.assignments:
        existing = assignments.get(entry.entity_id)
        if existing is None:
            assignments[entry.entity_id] = EntityAssignment(
                item_ids=list(dict.fromkeys(entry.item_ids)),
                rationale=entry.rationale.strip(),
            )
            continue
        item_ids = list(dict.fromkeys(existing.item_ids + entry.item_ids))
        rationale = existing.rationale
        if entry.rationale.strip() and entry.rationale.strip() != rationale:
            rationale = PromptLimits.RATIONALE_SEPARATOR.join(filter(None, [rationale, entry.rationale.strip()]))
        assignments[entry.entity_id] = EntityAssignment(item_ids=item_ids, rationale=rationale)

    return AssignmentResult(chunk_index=chunk_index, assignments=assignments), outcome.repairs_applied


def parse_text_response(raw: str, chunk_index: int) -> tuple[TextResult, list[str]]:
    """Parse a text response ({"text": ..., "carry_forward": ...})."""
    outcome = repair_and_parse(raw)
    data = outcome.data
    if isinstance(data, str):
        data = {"text": data}
    payload: TextPayload = _validate(TextPayload, data, raw)
    if not payload.text.strip():
        raise ChunkParseError("Response text is empty", raw)
    result = TextResult(
        chunk_index=chunk_index,
        text=payload.text.strip(),
        carry_forward=payload.carry_forward.strip(),
    )
    return result, outcome.repairs_applied


def parse_digest_response(raw: str, chunk_index: int) -> tuple[DigestResult, list[str]]:
    """Parse a digest response ({"digests": [{"id", "digest"}]})."""
    outcome = repair_and_parse(raw)
    data = outcome.data
    if isinstance(data, list):
        data = {"digests": data}
    payload: DigestPayload = _validate(DigestPayload, data, raw)

    digests: dict[str, str] = {}
    for entry in payload.digests:
        if entry.digest.strip():
            digests.setdefault(entry.id, entry.digest.strip())
    return DigestResult(chunk_index=chunk_index, digests=digests), outcome.repairs_applied
