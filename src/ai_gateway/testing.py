"""Testing utilities shipped with ai-gateway.

Provides ``FakeProviderAdapter`` for consumers to use in their test suites
without reimplementing the ProviderAdapter Protocol.

Usage::

    from ai_gateway import CompletionRequest, GatewayService
    from ai_gateway.exceptions import TransientUpstreamError
    from ai_gateway.testing import FakeProviderAdapter

    flaky = FakeProviderAdapter("deepseek")
    flaky.fail_with(TransientUpstreamError("deepseek", "overloaded", status=503))
    backup = FakeProviderAdapter("openai", content="OK")

    async def no_sleep(_: float) -> None:
        pass

    gateway = GatewayService(
        adapters={"deepseek": flaky, "openai": backup},
        sleep=no_sleep,
    )
    result = await gateway.get_chat_completion(
        CompletionRequest(messages=[{"role": "user", "content": "Say OK"}])
    )
    assert result.provider == "openai"
    assert flaky.call_count == 3
"""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from ai_gateway.exceptions import CapabilityError
from ai_gateway.types import (
    ChatMessage,
    CompleteChunk,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    Embedding,
    EmbeddingResult,
    ProviderCapabilities,
    StreamChunk,
    TokenUsage,
)


@dataclass
class FakeCall:
    """Record of a single adapter invocation."""

    operation: str
    model: str
    messages: Sequence[ChatMessage] = ()
    tuning: CompletionTuning | None = None
    input: Any = None


class FakeClock:
    """Drop-in ``sleep`` for ``GatewayService`` that records backoff delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class _Script:
    """Queued outcomes; the last one repeats once the queue drains."""

    outcomes: deque[Any] = field(default_factory=deque)

    def push(self, outcome: Any) -> None:
        self.outcomes.append(outcome)

    def next(self) -> Any:
        if len(self.outcomes) > 1:
            return self.outcomes.popleft()
        return self.outcomes[0] if self.outcomes else None


class FakeProviderAdapter:
    """Fake provider adapter for testing. Implements ``ProviderAdapter``.

    Each operation replays a script of outcomes. An outcome that is an
    exception instance is raised; anything else is returned. The last
    outcome repeats forever, so ``fail_with(err)`` alone makes every call
    fail. With no script, chat returns *content* with fixed usage and
    streaming yields *content* word by word.

    Streams may be scripted without a ``CompleteChunk``; one is then
    synthesized from the yielded content, as real adapters do.
    """

    def __init__(
        self,
        name: str = "fake",
        content: str = "OK",
        input_tokens: int = 10,
        output_tokens: int = 5,
        capabilities: ProviderCapabilities | None = None,
        supports_embeddings: bool = True,
    ) -> None:
        self.name = name
        self._content = content
        self._usage = TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)
        self._capabilities = capabilities or ProviderCapabilities(
            provider=name,
            supports_embeddings=supports_embeddings,
        )
        self._chat = _Script()
        self._streams = _Script()
        self._embeddings = _Script()
        self.calls: list[FakeCall] = []
        self.connection_ok = True
        self.closed = False

    # ── Scripting ───────────────────────────────────────────────

    def respond_with(self, *outcomes: CompletionResult | BaseException) -> FakeProviderAdapter:
        """Queue chat outcomes (results or exceptions) in order."""
        for outcome in outcomes:
            self._chat.push(outcome)
        return self

    def fail_with(self, exc: BaseException) -> FakeProviderAdapter:
        """Make chat (and embeddings) raise *exc* on every call."""
        self._chat.push(exc)
        self._embeddings.push(exc)
        return self

    def stream_with(self, chunks: Sequence[StreamChunk] | BaseException) -> FakeProviderAdapter:
        """Queue one stream.

        *chunks* may contain exception instances, raised when reached; a bare
        exception is raised before the first chunk.
        """
        self._streams.push(chunks)
        return self

    def embed_with(self, *outcomes: EmbeddingResult | BaseException) -> FakeProviderAdapter:
        for outcome in outcomes:
            self._embeddings.push(outcome)
        return self

    @property
    def call_count(self) -> int:
        """Number of invocations recorded, across all operations."""
        return len(self.calls)

    def calls_for(self, operation: str) -> list[FakeCall]:
        return [call for call in self.calls if call.operation == operation]

    # ── ProviderAdapter ─────────────────────────────────────────

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> CompletionResult:
        self.calls.append(FakeCall("chat", model, messages=messages, tuning=tuning))
        outcome = self._chat.next()
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            return outcome
        return CompletionResult(
            provider=self.name,
            model=model,
            content=self._content,
            usage=self._usage,
            finish_reason="stop",
        )

    async def stream_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> AsyncIterator[StreamChunk]:
        self.calls.append(FakeCall("stream", model, messages=messages, tuning=tuning))
        outcome = self._streams.next()
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            outcome = self._default_stream(model)

        content = ""
        completed = False
        for chunk in outcome:
            if isinstance(chunk, BaseException):
                raise chunk
            if isinstance(chunk, ContentChunk):
                content = chunk.aggregate
            if isinstance(chunk, CompleteChunk):
                if completed:
                    continue
                completed = True
            yield chunk

        if not completed:
            yield CompleteChunk(
                provider=self.name,
                model=model,
                content=content,
                usage=self._usage,
                finish_reason="stop",
            )

    async def create_embeddings(
        self,
        model: str,
        input: str | Sequence[str],
        dimensions: int | None = None,
    ) -> EmbeddingResult:
        self.calls.append(FakeCall("embeddings", model, input=input))
        if not self._capabilities.supports_embeddings:
            raise CapabilityError(self.name, "embeddings")
        outcome = self._embeddings.next()
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            return outcome

        texts = [input] if isinstance(input, str) else list(input)
        width = dimensions or 3
        return EmbeddingResult(
            provider=self.name,
            model=model,
            embeddings=[Embedding(index=i, vector=[0.0] * width) for i in range(len(texts))],
            usage=TokenUsage(input_tokens=self._usage.input_tokens),
        )

    def get_capabilities(self) -> ProviderCapabilities:
        return self._capabilities

    async def test_connection(self) -> bool:
        return self.connection_ok

    async def close(self) -> None:
        """Mark the adapter closed."""
        self.closed = True

    def _default_stream(self, model: str) -> list[StreamChunk]:
        chunks: list[StreamChunk] = []
        aggregate = ""
        for word in self._content.split(" "):
            delta = f" {word}" if aggregate else word
            aggregate += delta
            chunks.append(ContentChunk(self.name, model, delta, aggregate))
        return chunks
