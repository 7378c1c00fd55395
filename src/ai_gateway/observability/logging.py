"""Structured logging configuration for ai-gateway."""

from __future__ import annotations

import logging
from typing import Any

_CONFIGURED = False

# Event keys whose values never reach a log sink
_SECRET_KEYS = frozenset({"api_key", "authorization", "x-api-key"})

# ── Optional structlog import ───────────────────────────────────
try:
    import structlog
    from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars

    HAS_STRUCTLOG = True
except ImportError:
    HAS_STRUCTLOG = False


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
) -> None:
    """Configure logging for ai-gateway.

    With structlog installed, stdlib records are rendered through
    structlog's ``ProcessorFormatter`` (JSON or console), carrying any
    per-call context bound with ``bind_call_context``. Otherwise plain
    stdlib logging is configured.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        fmt: Output format — "json" or "console".
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if HAS_STRUCTLOG:
        _configure_structlog(numeric_level, fmt)
    else:
        logging.basicConfig(level=numeric_level, format="%(levelname)s %(name)s %(message)s")


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor that masks credential-looking keys."""
    for key in event_dict:
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = "***"
    return event_dict


def _configure_structlog(level: int, fmt: str) -> None:
    """Set up structlog processors and rendering."""
    shared_processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def bind_call_context(**values: Any) -> None:
    """Attach *values* (e.g. task, requested provider) to every log line
    emitted by the current asyncio task. No-op without structlog."""
    if HAS_STRUCTLOG:
        bind_contextvars(**values)


def unbind_call_context(*keys: str) -> None:
    if HAS_STRUCTLOG:
        unbind_contextvars(*keys)


def get_logger(name: str) -> Any:
    """Return a logger instance.

    Returns a structlog BoundLogger if structlog is installed,
    otherwise a stdlib logger.
    """
    if HAS_STRUCTLOG:
        return structlog.get_logger(name)
    return logging.getLogger(name)
