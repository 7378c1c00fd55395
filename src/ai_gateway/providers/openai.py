"""OpenAI provider — wraps AsyncOpenAI for chat, streaming and embeddings.

``OpenAICompatibleAdapter`` holds the Chat Completions translation shared
with other OpenAI-compatible backends (see ``providers.deepseek``).
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any, ClassVar

from openai import APIError, APIStatusError, AsyncOpenAI

from ai_gateway.config import GatewayConfig
from ai_gateway.cost import provider_rates
from ai_gateway.exceptions import ClientInputError, TransientUpstreamError, UpstreamError
from ai_gateway.types import (
    ChatMessage,
    CompleteChunk,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    Embedding,
    EmbeddingResult,
    ProviderCapabilities,
    ReasoningChunk,
    StreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)

# CompletionTuning field → Chat Completions parameter
_TUNING_PARAMS: dict[str, str] = {
    "temperature": "temperature",
    "max_tokens": "max_tokens",
    "top_p": "top_p",
    "stop": "stop",
    "frequency_penalty": "frequency_penalty",
    "presence_penalty": "presence_penalty",
    "response_format": "response_format",
    "tools": "tools",
    "tool_choice": "tool_choice",
    "user": "user",
}


class OpenAICompatibleAdapter:
    """Chat Completions adapter for any OpenAI-compatible endpoint."""

    name: ClassVar[str] = "openai"
    CAPABILITIES: ClassVar[ProviderCapabilities]
    # Tuning fields this backend accepts; others are dropped.
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset(_TUNING_PARAMS)

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        # Retries are owned by the gateway, not the SDK.
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=float(timeout_seconds),
            max_retries=0,
        )

    # ── Chat ────────────────────────────────────────────────────

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> CompletionResult:
        """Call Chat Completions and normalize the first choice."""
        request = self._build_request(model, messages, tuning)
        start = time.monotonic()
        try:
            completion = await self._client.chat.completions.create(**request)
        except APIError as exc:
            raise self._map_error(exc) from exc
        latency_ms = (time.monotonic() - start) * 1000

        choice = completion.choices[0]
        message = choice.message
        return CompletionResult(
            provider=self.name,
            model=model,
            content=message.content or "",
            usage=self._map_usage(completion.usage),
            finish_reason=choice.finish_reason,
            reasoning=getattr(message, "reasoning_content", None),
            tool_calls=self._tool_calls(message),
            latency_ms=latency_ms,
        )

    async def stream_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> AsyncIterator[StreamChunk]:
        """Stream Chat Completions deltas, then one ``CompleteChunk``."""
        request = self._build_request(model, messages, tuning)
        request["stream"] = True
        request["stream_options"] = {"include_usage": True}

        try:
            stream = await self._client.chat.completions.create(**request)
        except APIError as exc:
            raise self._map_error(exc) from exc

        content = ""
        reasoning = ""
        finish_reason: str | None = None
        usage: TokenUsage | None = None
        tool_calls: dict[int, dict[str, Any]] = {}

        try:
            async for chunk in stream:
                if getattr(chunk, "usage", None) is not None:
                    usage = self._map_usage(chunk.usage)
                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                delta = choice.delta

                reasoning_delta = getattr(delta, "reasoning_content", None)
                if reasoning_delta:
                    reasoning += reasoning_delta
                    yield ReasoningChunk(self.name, model, reasoning_delta, reasoning)

                text = getattr(delta, "content", None)
                if text:
                    content += text
                    yield ContentChunk(self.name, model, text, content)

                for fragment in getattr(delta, "tool_calls", None) or []:
                    self._merge_tool_call(tool_calls, fragment)

                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except APIError as exc:
            raise self._map_error(exc) from exc
        finally:
            await stream.close()

        yield CompleteChunk(
            provider=self.name,
            model=model,
            content=content,
            usage=usage or TokenUsage(),
            finish_reason=finish_reason,
            reasoning=reasoning or None,
            tool_calls=[tool_calls[i] for i in sorted(tool_calls)] or None,
        )

    # ── Embeddings ──────────────────────────────────────────────

    async def create_embeddings(
        self,
        model: str,
        input: str | Sequence[str],
        dimensions: int | None = None,
    ) -> EmbeddingResult:
        """Call the Embeddings API."""
        request: dict[str, Any] = {
            "model": model,
            "input": input if isinstance(input, str) else list(input),
        }
        if dimensions is not None:
            request["dimensions"] = dimensions

        try:
            response = await self._client.embeddings.create(**request)
        except APIError as exc:
            raise self._map_error(exc) from exc

        prompt_tokens = getattr(response.usage, "prompt_tokens", 0) or 0
        return EmbeddingResult(
            provider=self.name,
            model=model,
            embeddings=[Embedding(index=item.index, vector=list(item.embedding)) for item in response.data],
            usage=TokenUsage(input_tokens=prompt_tokens),
        )

    # ── Introspection ───────────────────────────────────────────

    def get_capabilities(self) -> ProviderCapabilities:
        return self.CAPABILITIES

    async def test_connection(self) -> bool:
        """List models as a liveness probe."""
        try:
            await self._client.models.list()
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s connection test failed: %s", self.name, exc)
            return False
        return True

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    # ── Translation helpers ─────────────────────────────────────

    def _build_request(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> dict[str, Any]:
        converted: list[dict[str, Any]] = []
        if tuning.system:
            converted.append({"role": "system", "content": tuning.system})
        for msg in messages:
            native: dict[str, Any] = {
                "role": msg.get("role", "user"),
                "content": msg.get("content", ""),
            }
            for key in ("name", "tool_call_id"):
                if msg.get(key):
                    native[key] = msg[key]  # type: ignore[literal-required]
            converted.append(native)

        request: dict[str, Any] = {"model": model, "messages": converted}
        for field_name, param in _TUNING_PARAMS.items():
            if field_name not in self.SUPPORTED_TUNING:
                continue
            value = getattr(tuning, field_name)
            if value is not None:
                request[param] = value
        return request

    def _map_usage(self, usage: Any) -> TokenUsage:
        if usage is None:
            return TokenUsage()
        prompt_details = getattr(usage, "prompt_tokens_details", None)
        completion_details = getattr(usage, "completion_tokens_details", None)
        return TokenUsage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            cache_hit_tokens=getattr(prompt_details, "cached_tokens", None),
            reasoning_tokens=getattr(completion_details, "reasoning_tokens", None),
        )

    @staticmethod
    def _tool_calls(message: Any) -> list[dict[str, Any]] | None:
        calls = getattr(message, "tool_calls", None)
        if not calls:
            return None
        return [
            {
                "id": call.id,
                "type": call.type,
                "function": {"name": call.function.name, "arguments": call.function.arguments},
            }
            for call in calls
        ]

    @staticmethod
    def _merge_tool_call(acc: dict[int, dict[str, Any]], fragment: Any) -> None:
        """Fold one streamed tool-call fragment into the accumulator."""
        entry = acc.setdefault(
            fragment.index,
            {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
        )
        if getattr(fragment, "id", None):
            entry["id"] = fragment.id
        function = getattr(fragment, "function", None)
        if function is None:
            return
        if getattr(function, "name", None):
            entry["function"]["name"] += function.name
        if getattr(function, "arguments", None):
            entry["function"]["arguments"] += function.arguments

    def _map_error(self, exc: APIError) -> UpstreamError:
        """Translate an SDK error into the gateway hierarchy."""
        if isinstance(exc, APIStatusError):
            status = exc.status_code
            error_cls = ClientInputError if 400 <= status < 500 else TransientUpstreamError
            return error_cls(self.name, exc.message, status=status, original=exc)
        return TransientUpstreamError(self.name, str(exc), original=exc)


class OpenAIAdapter(OpenAICompatibleAdapter):
    """OpenAI: GPT-4o family, o1 reasoning models and text-embedding-3."""

    name: ClassVar[str] = "openai"
    CAPABILITIES: ClassVar[ProviderCapabilities] = ProviderCapabilities(
        provider="openai",
        supports_streaming=True,
        supports_tools=True,
        supports_embeddings=True,
        supports_vision=True,
        supports_json=True,
        models={
            "chat": ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"),
            "reasoning": ("o1-preview", "o1-mini"),
            "embeddings": (
                "text-embedding-3-small",
                "text-embedding-3-large",
                "text-embedding-ada-002",
            ),
        },
        context_window_by_model={
            "gpt-4o": 128_000,
            "gpt-4o-mini": 128_000,
            "o1-preview": 128_000,
            "o1-mini": 128_000,
        },
        pricing_by_model=provider_rates("openai"),
    )

    @classmethod
    def from_config(cls, config: GatewayConfig) -> OpenAIAdapter:
        """Factory method for the provider registry."""
        return cls(
            api_key=config.get_api_key("openai"),
            base_url=config.openai_base_url,
            timeout_seconds=config.timeout_seconds,
        )
