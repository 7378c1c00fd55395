"""Bounded exponential-backoff retries for provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ai_gateway.exceptions import CapabilityError, ConfigError, NoProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

_NEVER_RETRIED = (CapabilityError, ConfigError, NoProviderError)


def is_client_error(exc: BaseException) -> bool:
    """True when *exc* carries an HTTP-style status in [400, 500)."""
    status = getattr(exc, "status", None)
    if not isinstance(status, int):
        status = getattr(exc, "status_code", None)
    return isinstance(status, int) and 400 <= status < 500


def is_retryable(exc: BaseException) -> bool:
    """Client errors and gateway-side errors fail immediately; the rest retry.

    Cancellation and interpreter exits are never retried.
    """
    if not isinstance(exc, Exception):
        return False
    if isinstance(exc, _NEVER_RETRIED):
        return False
    return not is_client_error(exc)


def _log_retry(provider: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            "Retry %d/%d for %s in %.0fms: %s",
            state.attempt_number,
            max_attempts,
            provider,
            delay * 1000,
            exc,
            extra={"provider": provider, "attempt": state.attempt_number, "delay_s": delay},
        )

    return _before_sleep


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    provider: str,
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Await ``fn()`` with up to *max_attempts* tries.

    Attempt *i* (zero-based) that fails with a retryable error waits
    ``min(base_delay * 2**i, max_delay)`` seconds before the next try. The
    last error propagates unchanged.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(provider, max_attempts),
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await fn()
    raise AssertionError("unreachable")  # pragma: no cover
