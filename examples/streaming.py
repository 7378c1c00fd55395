"""Streams a reasoning answer, printing the chain of thought separately.

Routes to deepseek-reasoner when DEEPSEEK_API_KEY is set; other providers
stream content only.
"""

import asyncio

from ai_gateway import CompleteChunk, CompletionRequest, ContentChunk, GatewayService, ReasoningChunk


async def main() -> None:
    request = CompletionRequest(
        messages=[{"role": "user", "content": "Is 1001 prime? Answer briefly."}],
        task="reasoning",
    )
    async with GatewayService() as gateway:
        async for chunk in gateway.stream_chat_completion(request):
            if isinstance(chunk, ReasoningChunk):
                print(f"\033[2m{chunk.delta}\033[0m", end="", flush=True)
            elif isinstance(chunk, ContentChunk):
                print(chunk.delta, end="", flush=True)
            elif isinstance(chunk, CompleteChunk):
                print(f"\n\n[{chunk.provider}/{chunk.model}] {chunk.usage.total_tokens} tokens")


if __name__ == "__main__":
    asyncio.run(main())
