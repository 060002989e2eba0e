"""Token and cost tracking for completion calls.

Every call is priced once, when it is recorded, and attributed to the run
stage (assignment, compose, digest, refine) and chunk that made it. Retried
and re-issued chunks show up as several calls for one chunk index.
Informational only: budgeting decisions use capacity units, never these
numbers.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# USD per 1M tokens (input, output) for models missing from litellm's price map
_FALLBACK_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4-turbo": (10.00, 30.00),
    "gpt-4": (30.00, 60.00),
}

_unpriced_models: set[str] = set()


def price_call(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Price one call in USD.

    Routing prefixes are ignored ('openrouter/openai/gpt-4o-mini' prices as
    'gpt-4o-mini'). Unknown models cost 0 and are logged once.
    """
    from litellm import cost_per_token

    base_model = model.rsplit("/", 1)[-1]
    try:
        prompt_cost, completion_cost = cost_per_token(
            model=base_model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )
        return prompt_cost + completion_cost
    except Exception:
        rates = _FALLBACK_PRICING.get(base_model)
        if rates:
            return (prompt_tokens * rates[0] + completion_tokens * rates[1]) / 1_000_000
        if model not in _unpriced_models:
            _unpriced_models.add(model)
            logger.warning(f"No pricing for model '{model}', its calls count as $0")
        return 0.0


@dataclass
class CallUsage:
    """One completion call."""

    model: str
    prompt_tokens: int
    completion_tokens: int
    stage: str = ""
    chunk_index: int | None = None
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class StageTotals:
    """Running totals for one stage."""

    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0

    def add(self, call: CallUsage) -> None:
        self.calls += 1
        self.prompt_tokens += call.prompt_tokens
        self.completion_tokens += call.completion_tokens
        self.cost += call.cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "cost": self.cost,
        }


@dataclass
class CostTracker:
    """Usage of every call of a run."""

    calls: list[CallUsage] = field(default_factory=list)

    def record(self, model: str, usage: Any, stage: str = "", chunk_index: int | None = None) -> CallUsage:
        """Record the usage block of a litellm response.

        A response without usage is returned as a zero-token call and not
        stored.
        """
        prompt_tokens = (getattr(usage, "prompt_tokens", 0) or 0) if usage is not None else 0
        completion_tokens = (getattr(usage, "completion_tokens", 0) or 0) if usage is not None else 0
        call = CallUsage(
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            stage=stage,
            chunk_index=chunk_index,
            cost=price_call(model, prompt_tokens, completion_tokens) if usage is not None else 0.0,
        )
        if usage is not None:
            self.calls.append(call)
        return call

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def total_prompt_tokens(self) -> int:
        return sum(c.prompt_tokens for c in self.calls)

    @property
    def total_completion_tokens(self) -> int:
        return sum(c.completion_tokens for c in self.calls)

    @property
    def total_tokens(self) -> int:
        return self.total_prompt_tokens + self.total_completion_tokens

    @property
    def total_cost(self) -> float:
        return sum(c.cost for c in self.calls)

    def by_stage(self) -> dict[str, dict[str, Any]]:
        """Totals per stage, as plain dicts."""
        totals: dict[str, StageTotals] = {}
        for call in self.calls:
            totals.setdefault(call.stage or "unknown", StageTotals()).add(call)
        return {stage: t.to_dict() for stage, t in totals.items()}

    def repeated_chunks(self) -> dict[str, list[int]]:
        """Chunk indices per stage that took more than one call."""
        counts = Counter((c.stage or "unknown", c.chunk_index) for c in self.calls if c.chunk_index is not None)
        repeated: dict[str, list[int]] = {}
        for (stage, index), n in sorted(counts.items()):
            if n > 1:
                repeated.setdefault(stage, []).append(index)
        return repeated

    def summary(self) -> str:
        """Printable usage report."""
        rule = "=" * 50
        lines = [
            rule,
            "COST SUMMARY",
            rule,
            f"Calls: {self.call_count}",
            f"Tokens: {self.total_tokens:,} "
            f"(prompt {self.total_prompt_tokens:,}, completion {self.total_completion_tokens:,})",
            f"Cost: ${self.total_cost:.4f}",
            "",
            "By stage:",
        ]
        repeated = self.repeated_chunks()
        for stage, stats in sorted(self.by_stage().items()):
            line = (
                f"  {stage}: {stats['calls']} calls, "
                f"{stats['prompt_tokens'] + stats['completion_tokens']:,} tokens, "
                f"${stats['cost']:.4f}"
            )
            if stage in repeated:
                line += f" (repeated chunks: {repeated[stage]})"
            lines.append(line)
        lines.append(rule)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "total_calls": self.call_count,
            "total_tokens": self.total_tokens,
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "by_stage": self.by_stage(),
            "repeated_chunks": self.repeated_chunks(),
        }
