"""Tests for core types."""

from __future__ import annotations

import pytest

from ai_gateway.types import (
    CompleteChunk,
    CompletionRequest,
    CompletionResult,
    CompletionTuning,
    ContentChunk,
    ReasoningChunk,
    TokenUsage,
)


@pytest.mark.unit
class TestTokenUsage:
    def test_total_tokens(self) -> None:
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        assert usage.total_tokens == 150

    def test_defaults(self) -> None:
        usage = TokenUsage()
        assert usage.total_tokens == 0
        assert usage.cache_hit_tokens is None
        assert usage.reasoning_tokens is None

    def test_frozen(self) -> None:
        usage = TokenUsage(input_tokens=10)
        with pytest.raises(AttributeError):
            usage.input_tokens = 20  # type: ignore[misc]


@pytest.mark.unit
class TestCompletionRequest:
    def test_defaults(self) -> None:
        request = CompletionRequest(messages=[{"role": "user", "content": "hi"}])
        assert request.provider == "auto"
        assert request.task == "chat"
        assert request.quality == "balanced"
        assert request.model is None
        assert request.tuning.temperature == 0.7

    def test_tuning_not_shared(self) -> None:
        a = CompletionRequest(messages=[])
        b = CompletionRequest(messages=[])
        a.tuning.max_tokens = 10
        assert b.tuning.max_tokens is None


@pytest.mark.unit
class TestSerialization:
    def test_result_to_dict(self) -> None:
        result = CompletionResult(
            provider="deepseek",
            model="deepseek-chat",
            content="OK",
            usage=TokenUsage(input_tokens=3, output_tokens=1),
            finish_reason="stop",
        )
        data = result.to_dict()
        assert data["provider"] == "deepseek"
        assert data["usage"]["total_tokens"] == 4
        assert data["finish_reason"] == "stop"

    def test_chunk_types_are_tagged(self) -> None:
        assert ContentChunk("p", "m", "a", "a").to_dict()["type"] == "content"
        assert ReasoningChunk("p", "m", "a", "a").to_dict()["type"] == "reasoning"
        complete = CompleteChunk("p", "m", "abc", TokenUsage(input_tokens=1, output_tokens=2))
        data = complete.to_dict()
        assert data["type"] == "complete"
        assert data["usage"]["total_tokens"] == 3

    def test_content_chunk_carries_delta_and_aggregate(self) -> None:
        data = ContentChunk("openai", "gpt-4o", " world", "hello world").to_dict()
        assert data == {
            "type": "content",
            "provider": "openai",
            "model": "gpt-4o",
            "delta": " world",
            "aggregate": "hello world",
        }

    def test_tuning_defaults_send_only_temperature(self) -> None:
        tuning = CompletionTuning()
        set_fields = {k: v for k, v in vars(tuning).items() if v is not None}
        assert set_fields == {"temperature": 0.7}
