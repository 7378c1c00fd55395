"""Anthropic provider — wraps AsyncAnthropic's Messages API."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any, ClassVar

from anthropic import APIError, APIStatusError, AsyncAnthropic

from ai_gateway.config import GatewayConfig
from ai_gateway.cost import provider_rates
from ai_gateway.exceptions import (
    CapabilityError,
    ClientInputError,
    TransientUpstreamError,
    UpstreamError,
)
from ai_gateway.types import (
    ChatMessage,
    CompleteChunk,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    EmbeddingResult,
    ProviderCapabilities,
    StreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096
_PROBE_MODEL = "claude-3-haiku-20240307"


def convert_messages(
    messages: Sequence[ChatMessage],
    system: str | None = None,
) -> tuple[str, list[dict[str, str]]]:
    """Split OpenAI-style messages into Anthropic's (system, messages).

    Every system message is hoisted into one system prompt, joined by blank
    lines after *system*. Tool and function results become user messages.
    """
    system_parts: list[str] = [system] if system else []
    conversation: list[dict[str, str]] = []

    for msg in messages:
        role = msg.get("role", "user")
        content = msg.get("content", "")
        if role == "system":
            system_parts.append(content)
        elif role in ("user", "assistant"):
            conversation.append({"role": role, "content": content})
        elif role in ("tool", "function"):
            conversation.append({"role": "user", "content": f"Function result: {content}"})

    return "\n\n".join(system_parts), conversation


class AnthropicAdapter:
    """LLM provider backed by the Anthropic Messages API.

    ``tuning.tools`` and ``tuning.tool_choice`` are passed through unchanged
    and must already be in Anthropic's tool format.
    """

    name: ClassVar[str] = "anthropic"
    CAPABILITIES: ClassVar[ProviderCapabilities] = ProviderCapabilities(
        provider="anthropic",
        supports_streaming=True,
        supports_tools=True,
        supports_embeddings=False,
        supports_vision=True,
        supports_json=False,
        models={
            "chat": (
                "claude-3-5-sonnet-20241022",
                "claude-3-opus-20240229",
                "claude-3-sonnet-20240229",
                "claude-3-haiku-20240307",
            ),
        },
        context_window_by_model={
            "claude-3-opus-20240229": 200_000,
            "claude-3-5-sonnet-20241022": 200_000,
            "claude-3-sonnet-20240229": 200_000,
            "claude-3-haiku-20240307": 200_000,
        },
        max_output_tokens=8192,
        pricing_by_model=provider_rates("anthropic"),
    )

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=float(timeout_seconds),
            max_retries=0,
        )

    @classmethod
    def from_config(cls, config: GatewayConfig) -> AnthropicAdapter:
        """Factory method for the provider registry."""
        return cls(
            api_key=config.get_api_key("anthropic"),
            base_url=config.anthropic_base_url,
            timeout_seconds=config.timeout_seconds,
        )

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> CompletionResult:
        """Call the Messages API and join its text blocks."""
        request = self._build_request(model, messages, tuning)
        start = time.monotonic()
        try:
            message = await self._client.messages.create(**request)
        except APIError as exc:
            raise self._map_error(exc) from exc
        latency_ms = (time.monotonic() - start) * 1000

        text = "\n".join(block.text for block in message.content if block.type == "text")
        tool_calls = [
            {"id": block.id, "type": "tool_use", "function": {"name": block.name, "arguments": block.input}}
            for block in message.content
            if block.type == "tool_use"
        ]
        return CompletionResult(
            provider=self.name,
            model=model,
            content=text,
            usage=self._map_usage(message.usage),
            finish_reason=message.stop_reason,
            tool_calls=tool_calls or None,
            stop_sequence=message.stop_sequence,
            latency_ms=latency_ms,
        )

    async def stream_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> AsyncIterator[StreamChunk]:
        """Stream text deltas, then one ``CompleteChunk``.

        Input tokens arrive on ``message_start`` and output tokens on
        ``message_delta``; both feed the terminal chunk's usage.
        """
        request = self._build_request(model, messages, tuning)
        request["stream"] = True

        try:
            stream = await self._client.messages.create(**request)
        except APIError as exc:
            raise self._map_error(exc) from exc

        content = ""
        input_tokens = 0
        output_tokens = 0
        cache_hit: int | None = None
        finish_reason: str | None = None

        try:
            async for event in stream:
                if event.type == "message_start":
                    start_usage = event.message.usage
                    input_tokens = getattr(start_usage, "input_tokens", 0) or 0
                    cache_hit = getattr(start_usage, "cache_read_input_tokens", None)
                elif event.type == "content_block_delta":
                    if event.delta.type == "text_delta":
                        content += event.delta.text
                        yield ContentChunk(self.name, model, event.delta.text, content)
                elif event.type == "message_delta":
                    if event.delta.stop_reason:
                        finish_reason = event.delta.stop_reason
                    delta_usage = getattr(event, "usage", None)
                    if delta_usage is not None:
                        output_tokens = getattr(delta_usage, "output_tokens", 0) or output_tokens
        except APIError as exc:
            raise self._map_error(exc) from exc
        finally:
            await stream.close()

        yield CompleteChunk(
            provider=self.name,
            model=model,
            content=content,
            usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cache_hit_tokens=cache_hit,
            ),
            finish_reason=finish_reason,
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
            "Anthropic has no embedding models; use the openai provider.",
        )

    def get_capabilities(self) -> ProviderCapabilities:
        return self.CAPABILITIES

    async def test_connection(self) -> bool:
        """Send a five-token message as a liveness probe."""
        try:
            message = await self._client.messages.create(
                model=_PROBE_MODEL,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=5,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("anthropic connection test failed: %s", exc)
            return False
        return bool(message.content)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    def _build_request(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> dict[str, Any]:
        system, conversation = convert_messages(messages, tuning.system)
        request: dict[str, Any] = {
            "model": model,
            "messages": conversation,
            "max_tokens": tuning.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system:
            request["system"] = system
        optional = {
            "temperature": tuning.temperature,
            "top_p": tuning.top_p,
            "top_k": tuning.top_k,
            "stop_sequences": tuning.stop,
            "tools": tuning.tools,
            "tool_choice": tuning.tool_choice,
        }
        request.update({key: value for key, value in optional.items() if value is not None})
        return request

    @staticmethod
    def _map_usage(usage: Any) -> TokenUsage:
        """Extract token usage from a Messages API response."""
        if usage is None:
            return TokenUsage()
        return TokenUsage(
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            cache_hit_tokens=getattr(usage, "cache_read_input_tokens", None),
        )

    def _map_error(self, exc: APIError) -> UpstreamError:
        if isinstance(exc, APIStatusError):
            status = exc.status_code
            error_cls = ClientInputError if 400 <= status < 500 else TransientUpstreamError
            return error_cls(self.name, exc.message, status=status, original=exc)
        return TransientUpstreamError(self.name, str(exc), original=exc)
