"""Prompts for assigning catalog items (questions) to entities (stakeholders).

The service sees every entity profile in every chunk, but only one batch of
assignable items, and must answer with the exact ids it was shown.
"""

ASSIGNMENT_SYSTEM_PROMPT = """You are an expert business analyst planning stakeholder interviews.

For EACH stakeholder, decide which of the listed questions they should answer, based on:
1. Their role and department relative to the project
2. Their experience level and the question complexity
3. Whether the question targets their domain expertise

ASSIGNMENT RULES:
- Strategic/overview questions -> ask multiple stakeholders, especially leadership
- Technical questions -> ask ALL relevant technical roles
- Business process questions -> ask process owners and users
- Risk/compliance questions -> ask leadership, legal, and affected departments
- Budget/resource questions -> ask sponsors, department heads, finance
- Every question shown must be assigned to at least one stakeholder
- If a question MIGHT be relevant to a stakeholder, include it

CRITICAL: Use the EXACT ids shown after "id:". Do NOT invent ids or use numbers like "1", "2"."""

ASSIGNMENT_SHAPE_HINT = """Return a JSON object:
{
  "assignments": [
    {
      "entity_id": "exact_stakeholder_id",
      "item_ids": ["exact_question_id", "..."],
      "rationale": "Brief explanation of why these questions fit this stakeholder"
    }
  ]
}"""

ENTITIES_HEADER = "=== STAKEHOLDERS (USE THESE EXACT IDs) ==="
ITEMS_HEADER = "=== QUESTIONS TO ASSIGN (USE THESE EXACT IDs) ==="
CONTEXT_HEADER = "=== PROJECT CONTEXT ==="


def build_assignment_content(entities_block: str, items_block: str, context_block: str = "") -> str:
    """Assemble the user content for one assignment chunk.

    Args:
        entities_block: Rendered entity profiles (same in every chunk).
        items_block: Rendered assignable items of this chunk.
        context_block: Rendered shared context, may be empty.
    """
    parts = []
    if context_block:
        parts.append(f"{CONTEXT_HEADER}\n{context_block}")
    parts.append(f"{ENTITIES_HEADER}\n{entities_block}")
    parts.append(f"{ITEMS_HEADER}\n{items_block}")
    return "\n\n".join(parts)
