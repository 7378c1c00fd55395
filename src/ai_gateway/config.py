"""Gateway configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

# Provider name → vendor env var used when the AI_-prefixed key is unset
_CREDENTIAL_FALLBACKS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class GatewayConfig(BaseSettings):
    """AI Gateway configuration.

    All fields are read from environment variables with the ``AI_`` prefix.
    Example: ``AI_TIMEOUT_SECONDS=30`` sets ``timeout_seconds=30``. Provider
    keys additionally fall back to the vendors' conventional variables
    (``OPENAI_API_KEY``, ``DEEPSEEK_API_KEY``, ``ANTHROPIC_API_KEY``).
    """

    model_config = {"env_prefix": "AI_", "env_file": ".env", "extra": "ignore"}

    # ── Credentials ─────────────────────────────────────────────
    openai_api_key: SecretStr | None = Field(default=None)
    deepseek_api_key: SecretStr | None = Field(default=None)
    anthropic_api_key: SecretStr | None = Field(default=None)

    # ── Endpoints ───────────────────────────────────────────────
    openai_base_url: str | None = Field(default=None)
    deepseek_base_url: str = Field(default="https://api.deepseek.com/v1")
    anthropic_base_url: str | None = Field(default=None)

    # ── Request handling ────────────────────────────────────────
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0.0)
    retry_max_delay_seconds: float = Field(default=10.0, ge=0.0)

    # ── Cost guardrails ─────────────────────────────────────────
    cost_warn_usd: float | None = Field(
        default=None,
        description="Emit a warning once cumulative estimated cost exceeds this (USD).",
    )

    # ── Observability ───────────────────────────────────────────
    trace_enabled: bool = Field(default=False)
    trace_exporter: str = Field(
        default="none",
        description="Trace exporter: 'none', 'console', 'otlp'.",
    )
    trace_endpoint: str = Field(default="http://localhost:4317")
    trace_service_name: str = Field(default="ai-gateway")

    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="json",
        description="Log format: 'json' or 'console'.",
    )

    @model_validator(mode="after")
    def _resolve_api_keys(self) -> GatewayConfig:
        """Fall back to vendor env vars for any key left unset."""
        for provider, env_var in _CREDENTIAL_FALLBACKS.items():
            attr = f"{provider}_api_key"
            if getattr(self, attr) is not None:
                continue
            value = os.environ.get(env_var)
            if value:
                setattr(self, attr, SecretStr(value))
        return self

    def credential_for(self, provider: str) -> str | None:
        """Return the plain API key for *provider*, or ``None`` if unset."""
        secret = getattr(self, f"{provider}_api_key", None)
        if secret is None:
            return None
        value = secret.get_secret_value()
        return value or None

    def get_api_key(self, provider: str) -> str:
        """Return the API key for *provider*.

        Raises:
            ValueError: If no key is configured for the provider.
        """
        value = self.credential_for(provider)
        if value is None:
            env_var = _CREDENTIAL_FALLBACKS.get(provider, f"AI_{provider.upper()}_API_KEY")
            msg = f"No API key configured for provider '{provider}'. Set {env_var}."
            raise ValueError(msg)
        return value
