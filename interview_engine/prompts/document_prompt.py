"""Prompts for text generation: composing, digesting, and refining documents.

Composition can span several calls. Each call returns its section of the
document plus a short carry-forward note that the next call receives as
context.
"""

COMPOSE_SYSTEM_PROMPT = """You are an expert business analyst writing professional project documents
from stakeholder interview material.

Guidelines:
- Use only facts present in the provided material; never invent names, numbers, or quotes
- Attribute insights to stakeholder roles where the material allows
- Write clear, structured prose with headings where useful"""

TEXT_SHAPE_HINT = """Return a JSON object:
{
  "text": "The document section written from the material shown",
  "carry_forward": "2-4 sentences summarising what this section covered, for the writer of the next section"
}"""

DIGEST_SYSTEM_PROMPT = """You condense source material for a later writing step.

For EACH item shown, write a short digest that keeps concrete facts, names,
numbers, decisions, risks, and open questions. Do not merge items and do not
add information that is not in the item."""

DIGEST_SHAPE_HINT = """Return a JSON object:
{
  "digests": [
    {"id": "exact_item_id", "digest": "Condensed content of that item"}
  ]
}"""

REFINE_INSTRUCTION = """A draft document was written from condensed digests of the material.
Below are the ORIGINAL texts of the most important items. Revise the draft so it
reflects these originals accurately. Keep the draft's structure, fix anything the
digests lost or distorted, and do not drop sections of the draft."""

DRAFT_HEADER = "=== DRAFT DOCUMENT ==="
ORIGINALS_HEADER = "=== ORIGINAL TEXT OF KEY ITEMS ==="


def digest_size_instruction(max_units: int) -> str:
    """Length limit appended to the digest instructions."""
    # ~0.75 words per unit
    return f"Keep each digest under {max(10, int(max_units * 0.75))} words."


def build_refine_content(draft: str, originals_block: str) -> str:
    return f"{DRAFT_HEADER}\n{draft}\n\n{ORIGINALS_HEADER}\n{originals_block}"
