"""Capacity-unit estimation for text."""

import math

from interview_engine.core.config import BudgetDefaults, PromptLimits


def estimate_size(text: str, chars_per_unit: int = BudgetDefaults.CHARS_PER_UNIT) -> int:
    """Estimate the capacity units a piece of text consumes.

    Args:
        text: Text to measure.
        chars_per_unit: Characters per unit (default 4, ~1 token).

    Returns:
        ceil(len(text) / chars_per_unit); 0 for empty text.

    Examples:
        >>> estimate_size("")
        0
        >>> estimate_size("abcde")
        2
    """
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_unit)


def smart_truncate(text: str, max_units: int, preserve_structure: bool = True) -> str:
    """Cut text down to at most max_units capacity units.

    With preserve_structure, whole lines are kept and a truncation marker is
    appended where lines were cut; otherwise the text is cut mid-line and
    ends with "...". The marker counts against the limit, so the result
    always satisfies estimate_size(result) <= max_units.
    """
    max_length = max_units * BudgetDefaults.CHARS_PER_UNIT
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]

    if not preserve_structure:
        return text[: max_length - 3] + "..."

    marker = PromptLimits.TRUNCATION_MARKER
    budget = max_length - len(marker)
    if budget <= 0:
        return text[: max_length - 3] + "..."

    kept: list[str] = []
    length = 0
    for line in text.split("\n"):
        added = len(line) + (1 if kept else 0)
        if length + added > budget:
            break
        kept.append(line)
        length += added

    if not kept:
        # First line alone is too long: fall back to a hard cut
        return text[: max_length - 3] + "..."
    return "\n".join(kept) + marker
