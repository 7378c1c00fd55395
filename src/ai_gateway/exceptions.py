"""Exception hierarchy for ai-gateway."""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all ai-gateway errors."""


class ConfigError(GatewayError):
    """Raised when a policy lookup names an unknown provider."""


class NoProviderError(GatewayError):
    """Raised when no registered provider can serve the call."""

    def __init__(self, reason: str = "No AI provider available") -> None:
        super().__init__(
            f"{reason}. Set OPENAI_API_KEY, DEEPSEEK_API_KEY or ANTHROPIC_API_KEY."
        )


class ProviderInitError(GatewayError):
    """Raised when a provider adapter fails to initialize."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        super().__init__(f"Failed to initialize provider '{provider}': {reason}")


class CapabilityError(GatewayError):
    """Raised when the chosen provider does not support an operation."""

    def __init__(self, provider: str, operation: str, hint: str = "") -> None:
        self.provider = provider
        self.operation = operation
        msg = f"Provider '{provider}' does not support {operation}."
        if hint:
            msg = f"{msg} {hint}"
        super().__init__(msg)


class UpstreamError(GatewayError):
    """Raised when an upstream provider call fails.

    ``status`` is the HTTP status when the provider answered, ``None`` for
    network failures and timeouts.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status: int | None = None,
        original: Exception | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.status = status
        self.original = original
        prefix = f"Provider '{provider}' error"
        if status is not None:
            prefix = f"{prefix} ({status})"
        super().__init__(f"{prefix}: {message}")


class ClientInputError(UpstreamError):
    """Upstream rejected the request (4xx). Never retried."""


class TransientUpstreamError(UpstreamError):
    """Network failure, timeout or 5xx. Retried, then possibly failed over."""
