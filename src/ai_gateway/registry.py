"""Provider registry — maps provider names to adapter factories."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ai_gateway.exceptions import ProviderInitError

if TYPE_CHECKING:
    from ai_gateway.config import GatewayConfig
    from ai_gateway.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

# Global registry: name → factory(config) → adapter instance
_PROVIDERS: dict[str, Callable[["GatewayConfig"], "ProviderAdapter"]] = {}

# Providers built without a credential check (local or custom backends)
_KEYLESS: set[str] = set()


def register_provider(
    name: str,
    factory: Callable[["GatewayConfig"], "ProviderAdapter"],
    *,
    requires_credential: bool = True,
) -> None:
    """Register a provider factory.

    A registered provider is built by ``build_adapters`` whenever the config
    holds a credential for *name* (``config.credential_for(name)``), or
    always when *requires_credential* is false.

    Args:
        name: Provider name (e.g. "openai", "deepseek", "anthropic").
        factory: Callable that takes GatewayConfig and returns a ProviderAdapter.
        requires_credential: Skip the provider when no API key is configured.
    """
    _PROVIDERS[name] = factory
    if requires_credential:
        _KEYLESS.discard(name)
    else:
        _KEYLESS.add(name)
    logger.debug("Registered AI provider: %s", name)


def build_adapters(config: "GatewayConfig") -> dict[str, "ProviderAdapter"]:
    """Build one adapter per registered provider that has a credential.

    Providers without a credential are skipped silently.

    Raises:
        ProviderInitError: If a factory raises for a configured provider.
    """
    _ensure_builtins_registered()

    adapters: dict[str, ProviderAdapter] = {}
    for name, factory in _PROVIDERS.items():
        if name not in _KEYLESS and config.credential_for(name) is None:
            continue
        try:
            adapters[name] = factory(config)
        except Exception as exc:
            raise ProviderInitError(name, str(exc)) from exc
        logger.info("AI provider initialized: %s", name)

    if not adapters:
        logger.warning(
            "No AI providers configured. Set OPENAI_API_KEY, DEEPSEEK_API_KEY or ANTHROPIC_API_KEY."
        )
    return adapters


def list_providers() -> list[str]:
    """Return names of all registered providers."""
    _ensure_builtins_registered()
    return list(_PROVIDERS.keys())


# ── Lazy Registration ───────────────────────────────────────────

_builtins_registered = False


def _ensure_builtins_registered() -> None:
    """Lazily register built-in providers on first use.

    This avoids importing the vendor SDKs at module load time.
    """
    global _builtins_registered  # noqa: PLW0603
    if _builtins_registered:
        return
    _builtins_registered = True

    from ai_gateway.providers.anthropic import AnthropicAdapter
    from ai_gateway.providers.deepseek import DeepSeekAdapter
    from ai_gateway.providers.openai import OpenAIAdapter

    builtins = {
        "openai": OpenAIAdapter.from_config,
        "deepseek": DeepSeekAdapter.from_config,
        "anthropic": AnthropicAdapter.from_config,
    }
    for name, factory in builtins.items():
        # Explicit registrations made before first use win.
        if name not in _PROVIDERS:
            register_provider(name, factory)
