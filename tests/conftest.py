"""Shared test fixtures for ai-gateway."""

from __future__ import annotations

from collections.abc import Callable, Mapping

import pytest

from ai_gateway.config import GatewayConfig
from ai_gateway.gateway import GatewayService
from ai_gateway.providers.base import ProviderAdapter
from ai_gateway.testing import FakeClock, FakeProviderAdapter

_KEY_VARS = (
    "OPENAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "ANTHROPIC_API_KEY",
    "AI_OPENAI_API_KEY",
    "AI_DEEPSEEK_API_KEY",
    "AI_ANTHROPIC_API_KEY",
)


@pytest.fixture
def no_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every provider credential from the environment."""
    for var in _KEY_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def test_config(no_keys: None) -> GatewayConfig:
    """Return a GatewayConfig with test defaults (no real API key needed)."""
    return GatewayConfig(_env_file=None, trace_enabled=False)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def deepseek() -> FakeProviderAdapter:
    return FakeProviderAdapter("deepseek", content="OK from deepseek")


@pytest.fixture
def openai() -> FakeProviderAdapter:
    return FakeProviderAdapter("openai", content="OK from openai")


@pytest.fixture
def anthropic() -> FakeProviderAdapter:
    return FakeProviderAdapter("anthropic", content="OK from anthropic", supports_embeddings=False)


@pytest.fixture
def make_gateway(
    test_config: GatewayConfig,
    fake_clock: FakeClock,
) -> Callable[..., GatewayService]:
    """Build a GatewayService over injected adapters and the fake clock."""

    def _make(adapters: Mapping[str, ProviderAdapter], **kwargs: object) -> GatewayService:
        return GatewayService(
            config=test_config,
            adapters=adapters,
            sleep=fake_clock.sleep,
            **kwargs,  # type: ignore[arg-type]
        )

    return _make
