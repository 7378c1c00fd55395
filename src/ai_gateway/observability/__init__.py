"""Observability sub-package — tracing and logging."""

from ai_gateway.observability.logging import (
    bind_call_context,
    configure_logging,
    get_logger,
    unbind_call_context,
)
from ai_gateway.observability.tracing import (
    configure_tracing,
    disable_tracing,
    get_tracer,
    traced_provider_call,
)

__all__ = [
    "bind_call_context",
    "configure_logging",
    "configure_tracing",
    "disable_tracing",
    "get_logger",
    "get_tracer",
    "traced_provider_call",
    "unbind_call_context",
]
