"""Demonstrates per-model usage accounting and the cost warning threshold."""

import asyncio

from ai_gateway import CompletionRequest, GatewayConfig, GatewayService


async def main() -> None:
    """Run several calls across tasks and print the ledger."""
    config = GatewayConfig(cost_warn_usd=0.01)  # Log a warning once past $0.01
    async with GatewayService(config=config) as gateway:
        for task in ("quick", "code", "analysis"):
            result = await gateway.get_chat_completion(
                CompletionRequest(
                    messages=[{"role": "user", "content": f"One sentence about {task} workloads."}],
                    task=task,
                )
            )
            print(f"{task}: {result.provider}/{result.model} ({result.usage.total_tokens} tokens)")

        for key, record in gateway.get_usage_stats().items():
            print(f"{key}: {record.requests} calls, {record.total_tokens} tokens, ${record.estimated_cost_usd:.6f}")
        print(f"\nTotals: {gateway.usage_summary()}")

        gateway.reset_usage_stats()


if __name__ == "__main__":
    asyncio.run(main())
