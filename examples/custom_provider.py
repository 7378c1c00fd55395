"""Demonstrates registering a custom provider and routing tasks to it."""

import asyncio
from collections.abc import AsyncIterator, Sequence

from ai_gateway import (
    CompleteChunk,
    CompletionRequest,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    GatewayConfig,
    GatewayService,
    ProviderCapabilities,
    SelectionPolicy,
    StreamChunk,
    TaskRecommendation,
    TokenUsage,
    register_provider,
)
from ai_gateway.exceptions import CapabilityError
from ai_gateway.policy import DEFAULT_MODEL_MAPPINGS, DEFAULT_TASK_RECOMMENDATIONS, ProviderChoice
from ai_gateway.types import ChatMessage, EmbeddingResult


class EchoAdapter:
    """A demo adapter that echoes back the last user message."""

    name = "echo"

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "EchoAdapter":
        return cls()

    async def chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> CompletionResult:
        last = messages[-1].get("content", "") if messages else ""
        return CompletionResult(
            provider=self.name,
            model=model,
            content=f"Echo: {last}",
            usage=TokenUsage(input_tokens=len(last.split()), output_tokens=len(last.split()) + 1),
            finish_reason="stop",
        )

    async def stream_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        tuning: CompletionTuning,
    ) -> AsyncIterator[StreamChunk]:
        result = await self.chat_completion(model, messages, tuning)
        yield ContentChunk(self.name, model, result.content, result.content)
        yield CompleteChunk(self.name, model, result.content, result.usage, finish_reason="stop")

    async def create_embeddings(self, model: str, input: str | Sequence[str], dimensions: int | None = None) -> EmbeddingResult:
        raise CapabilityError(self.name, "embeddings")

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(provider=self.name)

    async def test_connection(self) -> bool:
        return True

    async def close(self) -> None:
        pass


async def main() -> None:
    # Built with no API key, alongside any keyed providers
    register_provider("echo", EchoAdapter.from_config, requires_credential=False)

    policy = SelectionPolicy(
        model_mappings={**DEFAULT_MODEL_MAPPINGS, "echo": {"chat": {"balanced": "echo-1"}}},
        task_recommendations={
            **DEFAULT_TASK_RECOMMENDATIONS,
            "echo": TaskRecommendation(ProviderChoice("echo", "echo-1", "Local echo")),
        },
    )
    async with GatewayService(policy=policy) as gateway:
        result = await gateway.get_chat_completion(
            CompletionRequest(messages=[{"role": "user", "content": "Hello, world!"}], task="echo")
        )
        print(f"Provider: {result.provider}/{result.model}")
        print(f"Response: {result.content}")


if __name__ == "__main__":
    asyncio.run(main())
