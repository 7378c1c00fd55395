"""Task-driven provider/model selection and cost calculation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ai_gateway.cost import DEFAULT_RATES, calculate_cost
from ai_gateway.exceptions import ConfigError
from ai_gateway.types import ModelRate, Recommendation, TokenUsage

# provider → task → quality tier → model
DEFAULT_MODEL_MAPPINGS: dict[str, dict[str, dict[str, str]]] = {
    "openai": {
        "chat": {"fast": "gpt-4o-mini", "balanced": "gpt-4o", "advanced": "gpt-4o"},
        "code": {"fast": "gpt-4o-mini", "balanced": "gpt-4o", "advanced": "gpt-4o"},
        "analysis": {"fast": "gpt-4o-mini", "balanced": "gpt-4o", "advanced": "o1-preview"},
        "reasoning": {"advanced": "o1-preview", "balanced": "o1-mini"},
        "embeddings": {"small": "text-embedding-3-small", "large": "text-embedding-3-large"},
    },
    "deepseek": {
        "chat": {"fast": "deepseek-chat", "balanced": "deepseek-chat", "advanced": "deepseek-reasoner"},
        "code": {"fast": "deepseek-chat", "balanced": "deepseek-chat", "advanced": "deepseek-reasoner"},
        "analysis": {
            "fast": "deepseek-chat",
            "balanced": "deepseek-reasoner",
            "advanced": "deepseek-reasoner",
        },
        "reasoning": {"balanced": "deepseek-reasoner", "advanced": "deepseek-reasoner"},
    },
    "anthropic": {
        "chat": {
            "fast": "claude-3-haiku-20240307",
            "balanced": "claude-3-5-sonnet-20241022",
            "advanced": "claude-3-5-sonnet-20241022",
        },
        "code": {
            "fast": "claude-3-haiku-20240307",
            "balanced": "claude-3-5-sonnet-20241022",
            "advanced": "claude-3-5-sonnet-20241022",
        },
        "analysis": {
            "fast": "claude-3-haiku-20240307",
            "balanced": "claude-3-5-sonnet-20241022",
            "advanced": "claude-3-opus-20240229",
        },
        "reasoning": {
            "balanced": "claude-3-5-sonnet-20241022",
            "advanced": "claude-3-opus-20240229",
        },
    },
}

OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"


@dataclass(frozen=True)
class ProviderChoice:
    provider: str
    model: str
    note: str = ""


@dataclass(frozen=True)
class TaskRecommendation:
    """Preferred provider for a task plus its ordered fallbacks."""

    primary: ProviderChoice
    fallbacks: tuple[ProviderChoice, ...] = ()


def _choices(*pairs: tuple[str, str]) -> tuple[ProviderChoice, ...]:
    return tuple(ProviderChoice(provider, model) for provider, model in pairs)


# Cost-sensitive tasks lead with DeepSeek; fallbacks keep stronger models.
DEFAULT_TASK_RECOMMENDATIONS: dict[str, TaskRecommendation] = {
    "chat": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-chat", "Cost-effective, fast"),
        _choices(
            ("openai", "gpt-4o-mini"),
            ("anthropic", "claude-3-haiku-20240307"),
            ("deepseek", "deepseek-chat"),
        ),
    ),
    "code": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-chat", "Optimized for code"),
        _choices(
            ("openai", "gpt-4o"),
            ("anthropic", "claude-3-5-sonnet-20241022"),
            ("deepseek", "deepseek-chat"),
        ),
    ),
    "reasoning": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-reasoner", "Advanced reasoning"),
        _choices(
            ("openai", "o1-preview"),
            ("anthropic", "claude-3-opus-20240229"),
            ("deepseek", "deepseek-chat"),
        ),
    ),
    "analysis": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-reasoner", "Advanced reasoning, cost-effective"),
        _choices(
            ("openai", "gpt-4o"),
            ("anthropic", "claude-3-5-sonnet-20241022"),
            ("deepseek", "deepseek-chat"),
        ),
    ),
    "documents": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-chat", "Primary provider available"),
        _choices(
            ("anthropic", "claude-3-5-sonnet-20241022"),
            ("openai", "gpt-4o"),
        ),
    ),
    "embeddings": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-chat", "No embedding models, uses chat"),
        _choices(
            ("openai", "text-embedding-3-small"),
            ("openai", "text-embedding-3-large"),
        ),
    ),
    "quick": TaskRecommendation(
        ProviderChoice("deepseek", "deepseek-chat", "Fast and cheap"),
        _choices(
            ("openai", "gpt-4o-mini"),
            ("anthropic", "claude-3-haiku-20240307"),
            ("deepseek", "deepseek-chat"),
        ),
    ),
}


def _freeze(value: Any) -> Any:
    """Recursively wrap dicts in read-only mapping proxies."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value


class SelectionPolicy:
    """Immutable model lookup, task recommendations and cost rates.

    Every table defaults to the built-in one; pass replacements to the
    constructor to customize. Tables are frozen after construction, so a
    single instance may be shared freely.
    """

    def __init__(
        self,
        model_mappings: Mapping[str, Mapping[str, Mapping[str, str]]] | None = None,
        rates: Mapping[str, Mapping[str, ModelRate]] | None = None,
        task_recommendations: Mapping[str, TaskRecommendation] | None = None,
    ) -> None:
        self._model_mappings = _freeze(model_mappings or DEFAULT_MODEL_MAPPINGS)
        self._rates = _freeze(rates or DEFAULT_RATES)
        self._task_recommendations = _freeze(
            task_recommendations or DEFAULT_TASK_RECOMMENDATIONS
        )

    @property
    def providers(self) -> tuple[str, ...]:
        """Providers with a model table."""
        return tuple(self._model_mappings)

    def get_model_for_task(
        self,
        provider: str,
        task: str = "chat",
        quality: str = "balanced",
    ) -> str:
        """Resolve a model for (provider, task, quality).

        Falls back to the ``balanced`` tier, then to the first tier defined
        for the task. Unknown tasks use the provider's ``chat`` table.

        Raises:
            ConfigError: If the provider has no model table.
        """
        provider_models = self._model_mappings.get(provider)
        if provider_models is None:
            msg = f"Unknown provider: {provider}"
            raise ConfigError(msg)

        task_models = provider_models.get(task) or provider_models.get("chat")
        if not task_models:
            msg = f"No models configured for provider '{provider}' task '{task}'"
            raise ConfigError(msg)

        return (
            task_models.get(quality)
            or task_models.get("balanced")
            or next(iter(task_models.values()))
        )

    def get_embedding_model(self, provider: str) -> str:
        """Return the embedding model for *provider*.

        Only OpenAI has a dedicated embedding model; every other provider
        degrades to its fastest chat model.
        """
        if provider == "openai":
            return OPENAI_EMBEDDING_MODEL
        return self.get_model_for_task(provider, "chat", "fast")

    def recommend_provider(
        self,
        task: str,
        available_providers: Sequence[str],
    ) -> Recommendation | None:
        """Pick the best available provider for *task*.

        Order: the task's primary provider, then its fallbacks in order, then
        ``deepseek`` or the first available provider. ``None`` only when
        nothing is available.
        """
        available = list(available_providers)
        rec = self._task_recommendations.get(task) or self._task_recommendations["chat"]

        if rec.primary.provider in available:
            return Recommendation(
                provider=rec.primary.provider,
                model=rec.primary.model,
                reason="primary",
                note=rec.primary.note,
            )

        for choice in rec.fallbacks:
            if choice.provider in available:
                return Recommendation(
                    provider=choice.provider,
                    model=choice.model,
                    reason="fallback",
                    note=choice.note,
                )

        if not available:
            return None

        provider = "deepseek" if "deepseek" in available else available[0]
        try:
            model = self.get_model_for_task(provider, task)
        except ConfigError:
            model = ""
        return Recommendation(provider=provider, model=model, reason="default available provider")

    def calculate_cost(self, provider: str, model: str, usage: TokenUsage) -> float:
        """Estimated USD cost of *usage*; 0.0 for unpriced models."""
        return calculate_cost(self._rates, provider, model, usage)

    def get_available_models(self, provider: str) -> list[str]:
        """All models named in *provider*'s table, in first-seen order."""
        seen: dict[str, None] = {}
        for task_models in self._model_mappings.get(provider, {}).values():
            for model in task_models.values():
                seen.setdefault(model, None)
        return list(seen)

    def get_cost_rates(self, provider: str) -> Mapping[str, ModelRate]:
        return self._rates.get(provider, MappingProxyType({}))

    def get_task_recommendations(self) -> Mapping[str, TaskRecommendation]:
        return self._task_recommendations
