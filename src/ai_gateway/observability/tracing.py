"""OpenTelemetry tracing for provider calls."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from ai_gateway.types import CompletionResult, EmbeddingResult

logger = logging.getLogger(__name__)

# ── Optional OTEL imports ───────────────────────────────────────
try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    HAS_OTEL = True
except ImportError:
    HAS_OTEL = False

try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )

    HAS_OTLP = True
except ImportError:
    HAS_OTLP = False


# Module-level tracer (None when tracing is off)
_tracer: Any = None


def configure_tracing(
    exporter: str = "none",
    endpoint: str = "http://localhost:4317",
    service_name: str = "ai-gateway",
) -> None:
    """Configure OpenTelemetry tracing.

    Args:
        exporter: One of "none", "console", "otlp".
        endpoint: OTLP collector endpoint (only used when exporter="otlp").
        service_name: Service name for spans.
    """
    global _tracer

    if exporter == "none" or not HAS_OTEL:
        _tracer = None
        return

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if exporter == "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    elif exporter == "otlp":
        if not HAS_OTLP:
            logger.warning("OTLP exporter requested but opentelemetry-exporter-otlp not installed")
            _tracer = None
            return
        provider.add_span_processor(
            SimpleSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer("ai_gateway")
    logger.info("OTEL tracing configured: exporter=%s, service=%s", exporter, service_name)


def get_tracer() -> Any:
    """Return the configured tracer, or None if tracing is disabled."""
    return _tracer


def disable_tracing() -> None:
    """Disable tracing (useful for tests)."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def traced_provider_call(
    provider: str,
    model: str,
    operation: str = "ai.chat_completion",
    **attributes: Any,
) -> AsyncGenerator[dict[str, Any], None]:
    """Open a span around one provider call.

    Usage:
        async with traced_provider_call("deepseek", "deepseek-chat") as span_data:
            result = await adapter.chat_completion(...)
            span_data["result"] = result
            span_data["cost_usd"] = 0.0001

    Records ``ai.provider``, ``ai.model`` and any extra *attributes* up
    front; token counts, latency and cost when ``span_data`` is filled in;
    error status when the body raises.
    """
    span_data: dict[str, Any] = {}

    if _tracer is None:
        yield span_data
        return

    with _tracer.start_as_current_span(operation) as span:
        span.set_attribute("ai.provider", provider)
        span.set_attribute("ai.model", model)
        for key, value in attributes.items():
            span.set_attribute(f"ai.{key}", value)

        try:
            yield span_data
        except Exception as exc:
            span.set_status(trace.StatusCode.ERROR, str(exc))
            span.record_exception(exc)
            raise

        result = span_data.get("result")
        if isinstance(result, (CompletionResult, EmbeddingResult)):
            span.set_attribute("ai.input_tokens", result.usage.input_tokens)
            span.set_attribute("ai.output_tokens", result.usage.output_tokens)
            span.set_attribute("ai.total_tokens", result.usage.total_tokens or 0)
        if isinstance(result, CompletionResult):
            span.set_attribute("ai.latency_ms", result.latency_ms)
            if result.finish_reason:
                span.set_attribute("ai.finish_reason", result.finish_reason)
        if "cost_usd" in span_data:
            span.set_attribute("ai.cost_usd", span_data["cost_usd"])
