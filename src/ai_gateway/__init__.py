"""ai-gateway — multi-provider AI gateway for OpenAI, DeepSeek and Anthropic.

Usage:
    from ai_gateway import CompletionRequest, GatewayService

    gateway = GatewayService()  # reads AI_* / vendor API key env vars
    result = await gateway.get_chat_completion(
        CompletionRequest(messages=[{"role": "user", "content": "Say OK"}], task="chat")
    )
"""

from __future__ import annotations

from ai_gateway.config import GatewayConfig
from ai_gateway.cost import DEFAULT_RATES, UsageLedger, calculate_cost
from ai_gateway.exceptions import (
    CapabilityError,
    ClientInputError,
    ConfigError,
    GatewayError,
    NoProviderError,
    ProviderInitError,
    TransientUpstreamError,
    UpstreamError,
)
from ai_gateway.gateway import GatewayService
from ai_gateway.policy import SelectionPolicy, TaskRecommendation
from ai_gateway.providers.base import ProviderAdapter
from ai_gateway.registry import build_adapters, list_providers, register_provider
from ai_gateway.types import (
    AUTO,
    ChatMessage,
    CompleteChunk,
    CompletionRequest,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    Embedding,
    EmbeddingRequest,
    EmbeddingResult,
    ModelRate,
    ProviderCapabilities,
    ReasoningChunk,
    Recommendation,
    StreamChunk,
    TokenUsage,
    UsageRecord,
)

__all__ = [
    # Core
    "GatewayService",
    "GatewayConfig",
    "SelectionPolicy",
    "TaskRecommendation",
    # Types
    "AUTO",
    "ChatMessage",
    "CompletionRequest",
    "CompletionTuning",
    "CompletionResult",
    "ContentChunk",
    "ReasoningChunk",
    "CompleteChunk",
    "StreamChunk",
    "EmbeddingRequest",
    "EmbeddingResult",
    "Embedding",
    "TokenUsage",
    "ModelRate",
    "UsageRecord",
    "ProviderCapabilities",
    "Recommendation",
    # Provider
    "ProviderAdapter",
    "register_provider",
    "build_adapters",
    "list_providers",
    # Cost
    "DEFAULT_RATES",
    "UsageLedger",
    "calculate_cost",
    # Exceptions
    "GatewayError",
    "ConfigError",
    "NoProviderError",
    "ProviderInitError",
    "CapabilityError",
    "UpstreamError",
    "ClientInputError",
    "TransientUpstreamError",
]
