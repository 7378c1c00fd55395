"""Provider adapter protocol — the contract every backend must satisfy."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Protocol, runtime_checkable

from ai_gateway.types import (
    ChatMessage,
    CompletionResult,
    CompletionTuning,
    EmbeddingResult,
    ProviderCapabilities,
    StreamChunk,
)


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement.

    Adapters translate the common message/tuning shapes into one backend's
    native API and map its responses, usage and errors back.
    """

    name: str

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> CompletionResult:
        """Run a non-streaming chat completion.

        Raises:
            ClientInputError: Upstream rejected the request (4xx).
            TransientUpstreamError: Network failure, timeout or 5xx.
        """
        ...

    def stream_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a chat completion.

        Yields content/reasoning chunks in upstream order followed by exactly
        one ``CompleteChunk``. Closing the iterator closes the upstream
        response.
        """
        ...

    async def create_embeddings(
        self,
        model: str,
        input: str | Sequence[str],
        dimensions: int | None = None,
    ) -> EmbeddingResult:
        """Embed *input*.

        Raises:
            CapabilityError: If the backend has no embedding models.
        """
        ...

    def get_capabilities(self) -> ProviderCapabilities:
        """Static capability descriptor."""
        ...

    async def test_connection(self) -> bool:
        """Cheap liveness probe. Never raises."""
        ...

    async def close(self) -> None:
        """Clean up provider resources (HTTP sessions, etc.)."""
        ...
