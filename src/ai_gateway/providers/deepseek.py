"""DeepSeek provider — OpenAI-compatible API at api.deepseek.com."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from ai_gateway.config import GatewayConfig
from ai_gateway.cost import provider_rates
from ai_gateway.exceptions import CapabilityError
from ai_gateway.providers.openai import OpenAICompatibleAdapter
from ai_gateway.types import EmbeddingResult, ProviderCapabilities, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"


class DeepSeekAdapter(OpenAICompatibleAdapter):
    """DeepSeek chat and reasoner models.

    ``deepseek-reasoner`` returns its chain of thought in
    ``reasoning_content``; it surfaces as ``CompletionResult.reasoning`` and as
    ``ReasoningChunk``s when streaming. Usage carries prompt-cache hit/miss
    counts.
    """

    name: ClassVar[str] = "deepseek"
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset(
        {
            "temperature",
            "max_tokens",
            "top_p",
            "stop",
            "frequency_penalty",
            "presence_penalty",
            "response_format",
        }
    )
    CAPABILITIES: ClassVar[ProviderCapabilities] = ProviderCapabilities(
        provider="deepseek",
        supports_streaming=True,
        supports_tools=False,
        supports_embeddings=False,
        supports_vision=False,
        supports_json=True,
        supports_reasoning=True,
        models={"chat": ("deepseek-chat",), "reasoning": ("deepseek-reasoner",)},
        context_window_by_model={"deepseek-chat": 64_000, "deepseek-reasoner": 64_000},
        pricing_by_model=provider_rates("deepseek"),
    )

    def __init__(
        self,
        api_key: str,
        base_url: str | None = DEFAULT_BASE_URL,
        timeout_seconds: float = 60.0,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url or DEFAULT_BASE_URL,
            timeout_seconds=timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: GatewayConfig) -> DeepSeekAdapter:
        """Factory method for the provider registry."""
        return cls(
            api_key=config.get_api_key("deepseek"),
            base_url=config.deepseek_base_url,
            timeout_seconds=config.timeout_seconds,
        )

    async def create_embeddings(
        self,
        model: str,
        input: str | Sequence[str],
        dimensions: int | None = None,
    ) -> EmbeddingResult:
        raise CapabilityError(
            self.name,
            "embeddings",
            "Use the openai provider for embeddings.",
        )

    async def test_connection(self) -> bool:
        """Send a five-token completion as a liveness probe."""
        try:
            completion = await self._client.chat.completions.create(
                model="deepseek-chat",
                messages=[{"role": "user", "content": "test"}],
                max_tokens=5,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("deepseek connection test failed: %s", exc)
            return False
        return bool(completion.choices)

    def _map_usage(self, usage: Any) -> TokenUsage:
        base = super()._map_usage(usage)
        if usage is None:
            return base
        return TokenUsage(
            input_tokens=base.input_tokens,
            output_tokens=base.output_tokens,
            cache_hit_tokens=getattr(usage, "prompt_cache_hit_tokens", None),
            cache_miss_tokens=getattr(usage, "prompt_cache_miss_tokens", None),
            reasoning_tokens=base.reasoning_tokens,
        )
