"""Token and cost tracking for provider calls.

Tracks usage per provider and operation and prices it with litellm's model
pricing database. Cached responses are not recorded: they cost nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from reservation_extractor.pydantic_models import ProviderResponse

logger = logging.getLogger(__name__)

# Fallback pricing per 1M tokens (USD) when litellm lookup fails.
_FALLBACK_PRICING: dict[str, tuple[float, float]] = {
    # (input_cost_per_1M, output_cost_per_1M)
    "gemini-1.5-flash": (0.075, 0.30),
    "gemini-1.5-pro": (1.25, 5.00),
    "gemini-2.0-flash": (0.10, 0.40),
    "google/gemini-flash-1.5": (0.075, 0.30),
    "mistral-large-latest": (2.00, 6.00),
    "mistral-small-latest": (0.20, 0.60),
}

_warned_models: set[str] = set()


def _normalize_model_name(model: str) -> str:
    """Strip litellm routing prefixes for pricing lookup.

    "gemini/gemini-1.5-flash" -> "gemini-1.5-flash",
    "openrouter/google/gemini-flash-1.5" -> "google/gemini-flash-1.5".
    """
    for prefix in ("openrouter/", "gemini/", "mistral/"):
        if model.startswith(prefix):
            return model[len(prefix):]
    return model


def _fallback_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    normalized = _normalize_model_name(model)
    if normalized in _FALLBACK_PRICING:
        input_rate, output_rate = _FALLBACK_PRICING[normalized]
        return (prompt_tokens * input_rate + completion_tokens * output_rate) / 1_000_000
    return 0.0


@dataclass
class CallUsage:
    """Usage for a single provider call."""

    model: str
    prompt_tokens: int
    completion_tokens: int
    provider: str = ""
    operation: str = ""

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def cost(self) -> float:
        """Cost in USD from litellm's pricing database, else the fallback table."""
        try:
            from litellm import cost_per_token
            prompt_cost, completion_cost = cost_per_token(
                model=self.model,
                prompt_tokens=self.prompt_tokens,
                completion_tokens=self.completion_tokens,
            )
            return prompt_cost + completion_cost
        except Exception:
            fallback = _fallback_cost(self.model, self.prompt_tokens, self.completion_tokens)
            if fallback > 0:
                return fallback
            if self.model not in _warned_models:
                _warned_models.add(self.model)
                logger.warning(f"No pricing available for model '{self.model}', cost will show as $0")
            return 0.0


@dataclass
class CostTracker:
    """Accumulates token usage and costs across runs."""

    calls: list[CallUsage] = field(default_factory=list)

    def record(self, response: ProviderResponse) -> CallUsage | None:
        """Record usage from a provider response.

        Cached responses and responses without a model are skipped.

        Returns:
            The recorded CallUsage, or None when nothing was recorded.
        """
        if response.cached or not response.model:
            return None
        call = CallUsage(
            model=response.model,
            prompt_tokens=response.prompt_tokens,
            completion_tokens=response.completion_tokens,
            provider=response.provider,
            operation=response.operation.value,
        )
        self.calls.append(call)
        return call

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

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def by_provider(self) -> dict[str, dict[str, Any]]:
        """Breakdown by provider."""
        breakdown: dict[str, dict[str, Any]] = {}
        for call in self.calls:
            provider = call.provider or "unknown"
            if provider not in breakdown:
                breakdown[provider] = {"calls": 0, "prompt_tokens": 0, "completion_tokens": 0, "cost": 0.0}
            breakdown[provider]["calls"] += 1
            breakdown[provider]["prompt_tokens"] += call.prompt_tokens
            breakdown[provider]["completion_tokens"] += call.completion_tokens
            breakdown[provider]["cost"] += call.cost
        return breakdown

    def summary(self) -> str:
        """Formatted summary of usage and costs."""
        lines = [
            "=" * 50,
            "COST SUMMARY",
            "=" * 50,
            f"Total API calls: {self.call_count}",
            f"Total tokens: {self.total_tokens:,}",
            f"  - Prompt: {self.total_prompt_tokens:,}",
            f"  - Completion: {self.total_completion_tokens:,}",
            f"Total cost: ${self.total_cost:.4f}",
            "",
            "By provider:",
        ]
        for provider, stats in sorted(self.by_provider().items()):
            lines.append(
                f"  {provider}: {stats['calls']} calls, "
                f"{stats['prompt_tokens'] + stats['completion_tokens']:,} tokens, "
                f"${stats['cost']:.4f}"
            )
        lines.append("=" * 50)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Export as dict for JSON serialization."""
        return {
            "total_calls": self.call_count,
            "total_tokens": self.total_tokens,
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "by_provider": self.by_provider(),
        }
