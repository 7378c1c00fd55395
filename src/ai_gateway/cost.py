"""Token pricing table and per-model usage ledger."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ai_gateway.types import ModelRate, TokenUsage, UsageRecord

logger = logging.getLogger(__name__)


def _rates(provider: str, table: dict[str, tuple[float, ...]]) -> dict[str, ModelRate]:
    return {model: ModelRate(provider, model, *prices) for model, prices in table.items()}


# ── Pricing table (USD per 1 million tokens) ────────────────────
DEFAULT_RATES: dict[str, dict[str, ModelRate]] = {
    "openai": _rates(
        "openai",
        {
            "gpt-4o-mini": (0.15, 0.60),
            "gpt-4o": (2.50, 10.00),
            "o1-preview": (15.00, 60.00),
            "o1-mini": (3.00, 12.00),
            "text-embedding-3-small": (0.02, 0.0),
            "text-embedding-3-large": (0.13, 0.0),
        },
    ),
    "deepseek": _rates(
        "deepseek",
        {
            "deepseek-chat": (0.14, 0.28, 0.014),
            "deepseek-reasoner": (0.55, 2.19),
        },
    ),
    "anthropic": _rates(
        "anthropic",
        {
            "claude-3-haiku-20240307": (0.25, 1.25),
            "claude-3-5-sonnet-20241022": (3.00, 15.00),
            "claude-3-opus-20240229": (15.00, 75.00),
        },
    ),
}


def calculate_cost(
    rates: Mapping[str, Mapping[str, ModelRate]],
    provider: str,
    model: str,
    usage: TokenUsage,
) -> float:
    """Calculate estimated USD cost of *usage*.

    Returns:
        ``input * input_rate / 1e6 + output * output_rate / 1e6``, or 0.0 when
        the (provider, model) pair has no rate.
    """
    rate = rates.get(provider, {}).get(model)
    if rate is None:
        return 0.0
    input_cost = max(usage.input_tokens or 0, 0) * rate.input_price_per_million / 1_000_000
    output_cost = max(usage.output_tokens or 0, 0) * rate.output_price_per_million / 1_000_000
    return input_cost + output_cost


def provider_rates(provider: str) -> dict[str, ModelRate]:
    """Default rates for *provider*, keyed by model."""
    return dict(DEFAULT_RATES.get(provider, {}))


def usage_key(provider: str, model: str) -> str:
    return f"{provider}:{model}"


class UsageLedger:
    """Accumulates token usage and estimated cost per ``provider:model``.

    Records are created lazily on first use and only cleared by ``reset()``.
    Supports an optional warning threshold on cumulative cost.
    """

    def __init__(self, cost_warn_usd: float | None = None) -> None:
        self._cost_warn = cost_warn_usd
        self._records: dict[str, UsageRecord] = {}
        self._warned: bool = False

    def record(self, provider: str, model: str, usage: TokenUsage, cost_usd: float) -> UsageRecord:
        """Add one completed call to the ``provider:model`` record."""
        key = usage_key(provider, model)
        entry = self._records.get(key)
        if entry is None:
            entry = self._records[key] = UsageRecord()

        entry.requests += 1
        entry.input_tokens += usage.input_tokens or 0
        entry.output_tokens += usage.output_tokens or 0
        entry.total_tokens += usage.total_tokens or 0
        entry.estimated_cost_usd += cost_usd

        self._check_guardrails()
        return entry

    def _check_guardrails(self) -> None:
        if self._cost_warn is None or self._warned:
            return
        total = self.total_cost_usd
        if total >= self._cost_warn:
            self._warned = True
            logger.warning(
                "AI cost warning threshold reached: $%.4f >= $%.4f",
                total,
                self._cost_warn,
            )

    def snapshot(self) -> dict[str, UsageRecord]:
        """Return a copy of every record, keyed by ``provider:model``."""
        return {key: replace(entry) for key, entry in self._records.items()}

    @property
    def total_cost_usd(self) -> float:
        """Cumulative estimated cost in USD."""
        return sum(entry.estimated_cost_usd for entry in self._records.values())

    @property
    def total_tokens(self) -> int:
        """Cumulative total tokens."""
        return sum(entry.total_tokens for entry in self._records.values())

    @property
    def call_count(self) -> int:
        """Number of calls recorded."""
        return sum(entry.requests for entry in self._records.values())

    def summary(self) -> dict[str, Any]:
        """Return a totals dict suitable for logging or span attributes."""
        return {
            "total_input_tokens": sum(e.input_tokens for e in self._records.values()),
            "total_output_tokens": sum(e.output_tokens for e in self._records.values()),
            "total_tokens": self.total_tokens,
            "total_cost_usd": round(self.total_cost_usd, 6),
            "call_count": self.call_count,
        }

    def reset(self) -> None:
        """Drop every record."""
        self._records.clear()
        self._warned = False
