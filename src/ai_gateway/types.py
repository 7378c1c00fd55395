"""Core data types for ai-gateway."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Literal, TypedDict, Union

ProviderName = str
TaskType = str
QualityTier = Literal["fast", "balanced", "advanced"]

AUTO = "auto"


class ChatMessage(TypedDict, total=False):
    """A single message in the conversation.

    OpenAI-style shape; adapters translate it for other backends.
    """

    role: Literal["system", "user", "assistant", "tool", "function"]
    content: str
    name: str
    tool_call_id: str


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a single call.

    ``total_tokens`` is derived from input + output when not given. The
    ``cache_*`` and ``reasoning_tokens`` fields are provider extras and stay
    ``None`` when the backend does not report them.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int | None = None
    cache_hit_tokens: int | None = None
    cache_miss_tokens: int | None = None
    reasoning_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.total_tokens is None:
            object.__setattr__(self, "total_tokens", self.input_tokens + self.output_tokens)


@dataclass
class CompletionTuning:
    """Sampling and request options. ``None`` fields are not sent upstream."""

    temperature: float | None = 0.7
    max_tokens: int | None = None
    top_p: float | None = None
    top_k: int | None = None
    stop: list[str] | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    response_format: dict[str, Any] | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: Any = None
    user: str | None = None
    system: str | None = None


@dataclass
class CompletionRequest:
    """What a caller asks the gateway for."""

    messages: list[ChatMessage]
    provider: ProviderName = AUTO
    task: TaskType = "chat"
    quality: QualityTier = "balanced"
    model: str | None = None
    tuning: CompletionTuning = field(default_factory=CompletionTuning)


@dataclass
class CompletionResult:
    """Standardized non-streaming response from any provider."""

    provider: ProviderName
    model: str
    content: str
    usage: TokenUsage
    finish_reason: str | None = None
    reasoning: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    stop_sequence: str | None = None
    latency_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ContentChunk:
    """Incremental assistant text plus everything received so far."""

    type: ClassVar[str] = "content"

    provider: ProviderName
    model: str
    delta: str
    aggregate: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass
class ReasoningChunk:
    """Incremental reasoning trace (DeepSeek reasoner models)."""

    type: ClassVar[str] = "reasoning"

    provider: ProviderName
    model: str
    delta: str
    aggregate: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass
class CompleteChunk:
    """Terminal chunk of every stream. Emitted exactly once."""

    type: ClassVar[str] = "complete"

    provider: ProviderName
    model: str
    content: str
    usage: TokenUsage
    finish_reason: str | None = None
    reasoning: str | None = None
    tool_calls: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


StreamChunk = Union[ContentChunk, ReasoningChunk, CompleteChunk]


@dataclass
class EmbeddingRequest:
    input: str | list[str]
    provider: ProviderName = AUTO
    model: str | None = None
    dimensions: int | None = None


@dataclass(frozen=True)
class Embedding:
    index: int
    vector: list[float]


@dataclass
class EmbeddingResult:
    provider: ProviderName
    model: str
    embeddings: list[Embedding]
    usage: TokenUsage

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ModelRate:
    """Price of one model in USD per 1 million tokens."""

    provider: ProviderName
    model: str
    input_price_per_million: float
    output_price_per_million: float
    cache_hit_price_per_million: float | None = None


@dataclass
class UsageRecord:
    """Accumulated usage for one ``provider:model`` key."""

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0


@dataclass(frozen=True)
class ProviderCapabilities:
    """Static description of what an adapter can do."""

    provider: ProviderName
    supports_chat: bool = True
    supports_streaming: bool = True
    supports_tools: bool = False
    supports_embeddings: bool = False
    supports_vision: bool = False
    supports_json: bool = False
    supports_reasoning: bool = False
    models: dict[str, tuple[str, ...]] = field(default_factory=dict)
    context_window_by_model: dict[str, int] = field(default_factory=dict)
    max_output_tokens: int | None = None
    pricing_by_model: dict[str, ModelRate] = field(default_factory=dict)


@dataclass(frozen=True)
class Recommendation:
    """Result of task-driven provider selection."""

    provider: ProviderName
    model: str
    reason: str
    note: str = ""
