"""Basic usage of ai-gateway."""

import asyncio

from ai_gateway import CompletionRequest, CompletionTuning, GatewayService


async def main() -> None:
    """Demonstrate a task-routed chat completion."""
    # GatewayService builds an adapter for every provider with an API key
    async with GatewayService() as gateway:
        print(f"Providers: {gateway.get_available_providers()}")
        result = await gateway.get_chat_completion(
            CompletionRequest(
                messages=[{"role": "user", "content": "What is the capital of France?"}],
                task="chat",
                tuning=CompletionTuning(max_tokens=50),
            )
        )
        print(f"Provider: {result.provider} / {result.model}")
        print(f"Answer: {result.content}")
        print(f"Tokens: {result.usage.total_tokens}")
        print(f"Latency: {result.latency_ms:.0f}ms")


if __name__ == "__main__":
    asyncio.run(main())
