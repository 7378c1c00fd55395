"""Tests for the retry wrapper."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from ai_gateway.exceptions import (
    CapabilityError,
    ClientInputError,
    ConfigError,
    NoProviderError,
    TransientUpstreamError,
)
from ai_gateway.retry import call_with_retry, is_client_error, is_retryable
from ai_gateway.testing import FakeClock, FakeProviderAdapter
from ai_gateway.types import CompletionResult, CompletionTuning, TokenUsage

MESSAGES = [{"role": "user", "content": "hi"}]


class _Flaky:
    """Raises the queued errors in order, then returns "ok"."""

    def __init__(self, *errors: Exception) -> None:
        self._errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return "ok"


def _server_error() -> TransientUpstreamError:
    return TransientUpstreamError("fake", "service unavailable", status=503)


@pytest.mark.unit
class TestRetryPredicates:
    @pytest.mark.parametrize("status", [400, 401, 404, 422, 429, 499])
    def test_client_statuses(self, status: int) -> None:
        assert is_client_error(SimpleNamespace(status=status))  # type: ignore[arg-type]

    @pytest.mark.parametrize("status", [None, 399, 500, 503])
    def test_non_client_statuses(self, status: int | None) -> None:
        assert not is_client_error(SimpleNamespace(status=status))  # type: ignore[arg-type]

    def test_status_code_attribute(self) -> None:
        exc = RuntimeError("bad request")
        exc.status_code = 400  # type: ignore[attr-defined]
        assert is_client_error(exc)

    def test_gateway_errors_not_retried(self) -> None:
        assert not is_retryable(CapabilityError("anthropic", "embeddings"))
        assert not is_retryable(ConfigError("Unknown provider: x"))
        assert not is_retryable(NoProviderError())
        assert not is_retryable(ClientInputError("openai", "bad", status=400))

    def test_transient_errors_retried(self) -> None:
        assert is_retryable(_server_error())
        assert is_retryable(TransientUpstreamError("openai", "timeout"))
        assert is_retryable(ConnectionError("reset"))


@pytest.mark.unit
class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self, fake_clock: FakeClock) -> None:
        fn = _Flaky()
        assert await call_with_retry(fn, "fake", sleep=fake_clock.sleep) == "ok"
        assert fn.calls == 1
        assert fake_clock.delays == []

    @pytest.mark.asyncio
    async def test_server_error_exhausts_three_attempts(self, fake_clock: FakeClock) -> None:
        last = _server_error()
        fn = _Flaky(_server_error(), _server_error(), last)
        with pytest.raises(TransientUpstreamError) as exc_info:
            await call_with_retry(fn, "fake", sleep=fake_clock.sleep)
        assert exc_info.value is last
        assert fn.calls == 3
        assert fake_clock.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(_server_error())
        assert await call_with_retry(fn, "fake", sleep=fake_clock.sleep) == "ok"
        assert fn.calls == 2
        assert fake_clock.delays == [1.0]

    @pytest.mark.asyncio
    async def test_client_error_fails_immediately(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(ClientInputError("fake", "bad request", status=400))
        with pytest.raises(ClientInputError):
            await call_with_retry(fn, "fake", sleep=fake_clock.sleep)
        assert fn.calls == 1
        assert fake_clock.delays == []

    @pytest.mark.asyncio
    async def test_capability_error_fails_immediately(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(CapabilityError("anthropic", "embeddings"))
        with pytest.raises(CapabilityError):
            await call_with_retry(fn, "anthropic", sleep=fake_clock.sleep)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(*[_server_error() for _ in range(6)])
        with pytest.raises(TransientUpstreamError):
            await call_with_retry(fn, "fake", max_attempts=6, sleep=fake_clock.sleep)
        assert fn.calls == 6
        assert fake_clock.delays == [1.0, 2.0, 4.0, 8.0, 10.0]

    @pytest.mark.asyncio
    async def test_custom_base_delay(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(_server_error(), _server_error())
        await call_with_retry(fn, "fake", base_delay=0.5, sleep=fake_clock.sleep)
        assert fake_clock.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine(self, fake_clock: FakeClock) -> None:
        fn = _Flaky(_server_error())
        assert await call_with_retry(lambda: fn(), "fake", sleep=fake_clock.sleep) == "ok"
        assert fn.calls == 2
        assert fake_clock.delays == [1.0]

    @pytest.mark.asyncio
    async def test_lambda_over_bound_method(self, fake_clock: FakeClock) -> None:
        adapter = FakeProviderAdapter("openai", content="hello")
        adapter.fail_with(_server_error())

        with pytest.raises(TransientUpstreamError):
            await call_with_retry(
                lambda: adapter.chat_completion("gpt-4o", MESSAGES, CompletionTuning()),
                "openai",
                sleep=fake_clock.sleep,
            )
        assert adapter.call_count == 3

        recovering = FakeProviderAdapter("openai").respond_with(
            _server_error(),
            CompletionResult("openai", "gpt-4o", "hello", TokenUsage()),
        )
        result = await call_with_retry(
            lambda: recovering.chat_completion("gpt-4o", MESSAGES, CompletionTuning()),
            "openai",
            sleep=fake_clock.sleep,
        )
        assert isinstance(result, CompletionResult)
        assert result.content == "hello"
        assert recovering.call_count == 2

    @pytest.mark.asyncio
    async def test_bound_method_capability_error_not_retried(self, fake_clock: FakeClock) -> None:
        adapter = FakeProviderAdapter("anthropic", supports_embeddings=False)
        with pytest.raises(CapabilityError):
            await call_with_retry(
                lambda: adapter.create_embeddings("any", "hello"),
                "anthropic",
                sleep=fake_clock.sleep,
            )
        assert adapter.call_count == 1
        assert fake_clock.delays == []

    @pytest.mark.asyncio
    async def test_cancellation_not_retried(self, fake_clock: FakeClock) -> None:
        calls = 0

        async def cancelled() -> str:
            nonlocal calls
            calls += 1
            raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await call_with_retry(cancelled, "fake", sleep=fake_clock.sleep)
        assert calls == 1
        assert fake_clock.delays == []

    def test_base_exceptions_not_retryable(self) -> None:
        assert not is_retryable(asyncio.CancelledError())
        assert not is_retryable(KeyboardInterrupt())
