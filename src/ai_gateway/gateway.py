"""GatewayService — the single object consumers construct and call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from ai_gateway.config import GatewayConfig
from ai_gateway.cost import UsageLedger
from ai_gateway.exceptions import ConfigError, NoProviderError
from ai_gateway.observability.logging import bind_call_context, configure_logging, unbind_call_context
from ai_gateway.observability.tracing import configure_tracing, traced_provider_call
from ai_gateway.policy import SelectionPolicy
from ai_gateway.providers.base import ProviderAdapter
from ai_gateway.registry import build_adapters
from ai_gateway.retry import SleepFn, call_with_retry, is_retryable
from ai_gateway.types import (
    AUTO,
    CompleteChunk,
    CompletionRequest,
    CompletionResult,
    EmbeddingRequest,
    EmbeddingResult,
    ProviderCapabilities,
    StreamChunk,
    TokenUsage,
    UsageRecord,
)

logger = logging.getLogger(__name__)


class GatewayService:
    """Multi-provider AI gateway with task-driven provider selection.

    Adapters are built from the config for every provider that has a
    credential. Each call resolves a provider and model, runs through the
    retry wrapper, records usage in the ledger and, for ``provider="auto"``
    requests, fails over once to another registered provider.

    Usage:
        # Reads AI_* / vendor API key env vars
        async with GatewayService() as gateway:
            result = await gateway.get_chat_completion(
                CompletionRequest(messages=[{"role": "user", "content": "Say OK"}])
            )
            print(result.provider, result.model, result.content)

        # Or with injected adapters (for testing)
        gateway = GatewayService(adapters={"fake": FakeProviderAdapter()})
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        adapters: Mapping[str, ProviderAdapter] | None = None,
        policy: SelectionPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config or GatewayConfig()

        # Auto-configure observability
        configure_logging(
            level=self._config.log_level,
            fmt=self._config.log_format,
        )
        if self._config.trace_enabled:
            configure_tracing(
                exporter=self._config.trace_exporter,
                endpoint=self._config.trace_endpoint,
                service_name=self._config.trace_service_name,
            )

        self._adapters: dict[str, ProviderAdapter] = (
            dict(adapters) if adapters is not None else build_adapters(self._config)
        )
        self._policy = policy or SelectionPolicy()
        self._ledger = UsageLedger(cost_warn_usd=self._config.cost_warn_usd)
        self._sleep = sleep
        self._closed = False

    @property
    def policy(self) -> SelectionPolicy:
        return self._policy

    # ── Chat ────────────────────────────────────────────────────

    async def get_chat_completion(self, request: CompletionRequest) -> CompletionResult:
        """Resolve a provider for *request* and return its completion.

        A concrete registered ``request.provider`` is used as given, with
        ``request.model`` or the policy's model for (task, quality). Otherwise
        the policy recommends a provider for ``request.task``.

        Raises:
            NoProviderError: If no provider can be resolved.
            ClientInputError: If the provider rejected the request (4xx).
            TransientUpstreamError: If retries (and any failover) are exhausted.
        """
        provider, model = self._resolve(request)
        bind_call_context(task=request.task, requested_provider=request.provider)
        try:
            try:
                return await self._complete(provider, model, request)
            except Exception as exc:
                if request.provider != AUTO or not is_retryable(exc):
                    raise
                fallback = self._policy.recommend_provider(
                    request.task,
                    [name for name in self._adapters if name != provider],
                )
                if fallback is None or not fallback.model:
                    raise
                logger.warning(
                    "Falling back from %s to %s: %s",
                    provider,
                    fallback.provider,
                    exc,
                    extra={
                        "failed_provider": provider,
                        "fallback_provider": fallback.provider,
                        "fallback_model": fallback.model,
                    },
                )
                return await self._complete(fallback.provider, fallback.model, request)
        finally:
            unbind_call_context("task", "requested_provider")

    async def stream_chat_completion(
        self,
        request: CompletionRequest,
    ) -> AsyncIterator[StreamChunk]:
        """Stream chunks from the resolved provider.

        Never retried and never failed over: an upstream error mid-stream
        propagates after whatever was already yielded. Usage is recorded once,
        from the terminal ``CompleteChunk``.
        """
        provider, model = self._resolve(request)
        adapter = self._adapters[provider]

        stream = adapter.stream_chat_completion(model, request.messages, request.tuning)
        try:
            async for chunk in stream:
                if isinstance(chunk, CompleteChunk):
                    self._record(provider, model, chunk.usage)
                yield chunk
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    # ── Embeddings ──────────────────────────────────────────────

    async def get_embeddings(self, request: EmbeddingRequest) -> EmbeddingResult:
        """Embed ``request.input``.

        A concrete registered provider is honoured; otherwise ``openai`` is
        preferred, then ``deepseek``. Retried like chat but never failed over.

        Raises:
            NoProviderError: If neither a requested nor a default provider is
                registered.
            CapabilityError: If the provider has no embedding models.
        """
        provider = self._resolve_embedding_provider(request.provider)
        model = request.model or self._policy.get_embedding_model(provider)
        adapter = self._adapters[provider]

        async with traced_provider_call(provider, model, operation="ai.embeddings") as span_data:
            result = await call_with_retry(
                lambda: adapter.create_embeddings(model, request.input, request.dimensions),
                provider,
                **self._retry_options(),
            )
            span_data["result"] = result
            span_data["cost_usd"] = self._record(provider, model, result.usage)

        logger.info(
            "AI embeddings completed",
            extra={
                "provider": provider,
                "model": model,
                "vectors": len(result.embeddings),
                "input_tokens": result.usage.input_tokens,
            },
        )
        return result

    # ── Usage ───────────────────────────────────────────────────

    def get_usage_stats(self) -> dict[str, UsageRecord]:
        """Copy of every usage record, keyed by ``provider:model``."""
        return self._ledger.snapshot()

    def reset_usage_stats(self) -> None:
        """Clear all usage records."""
        self._ledger.reset()

    def usage_summary(self) -> dict[str, Any]:
        """Totals across every provider and model."""
        return self._ledger.summary()

    # ── Introspection ───────────────────────────────────────────

    def get_available_providers(self) -> list[str]:
        return list(self._adapters)

    def is_provider_available(self, name: str) -> bool:
        return name in self._adapters

    def get_provider_capabilities(self, name: str) -> ProviderCapabilities | None:
        adapter = self._adapters.get(name)
        if adapter is None:
            return None
        return adapter.get_capabilities()

    async def test_connection(self, name: str) -> bool:
        """Probe *name*'s upstream. ``False`` for unregistered providers."""
        adapter = self._adapters.get(name)
        if adapter is None:
            return False
        return await adapter.test_connection()

    async def close(self) -> None:
        """Clean up adapter resources."""
        if self._closed:
            return
        self._closed = True
        for adapter in self._adapters.values():
            await adapter.close()

    async def __aenter__(self) -> GatewayService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── Internals ───────────────────────────────────────────────

    def _resolve(self, request: CompletionRequest) -> tuple[str, str]:
        """Return (provider, model) for a chat request."""
        if request.provider != AUTO and request.provider in self._adapters:
            model = request.model or self._policy.get_model_for_task(
                request.provider, request.task, request.quality
            )
            return request.provider, model

        recommendation = self._policy.recommend_provider(request.task, list(self._adapters))
        if recommendation is None:
            raise NoProviderError()
        model = request.model or recommendation.model
        if not model:
            msg = f"No model configured for provider '{recommendation.provider}'; set request.model"
            raise ConfigError(msg)
        return recommendation.provider, model

    def _resolve_embedding_provider(self, requested: str) -> str:
        if requested != AUTO and requested in self._adapters:
            return requested
        for name in ("openai", "deepseek"):
            if name in self._adapters:
                return name
        raise NoProviderError("No embedding provider available")

    async def _complete(
        self,
        provider: str,
        model: str,
        request: CompletionRequest,
    ) -> CompletionResult:
        """One retried chat call against *provider*, recorded on success."""
        adapter = self._adapters[provider]
        async with traced_provider_call(provider, model, task=request.task) as span_data:
            result = await call_with_retry(
                lambda: adapter.chat_completion(model, request.messages, request.tuning),
                provider,
                **self._retry_options(),
            )
            span_data["result"] = result
            cost = span_data["cost_usd"] = self._record(provider, model, result.usage)

        logger.info(
            "AI call completed",
            extra={
                "provider": provider,
                "model": model,
                "input_tokens": result.usage.input_tokens,
                "output_tokens": result.usage.output_tokens,
                "cost_usd": cost,
                "latency_ms": round(result.latency_ms, 1),
                "cumulative_cost_usd": self._ledger.total_cost_usd,
            },
        )
        return result

    def _record(self, provider: str, model: str, usage: TokenUsage) -> float:
        cost = self._policy.calculate_cost(provider, model, usage)
        self._ledger.record(provider, model, usage, cost)
        return cost

    def _retry_options(self) -> dict[str, Any]:
        return {
            "max_attempts": self._config.max_attempts,
            "base_delay": self._config.retry_base_delay_seconds,
            "max_delay": self._config.retry_max_delay_seconds,
            "sleep": self._sleep,
        }
