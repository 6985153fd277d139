"""
retry.py

Bounded exponential-backoff retry for a single async operation.

Responsibilities:
- Retry transient failures (transport, 403/429, 5xx)
- Surface non-retryable failures immediately, unchanged
- Emit one log event per retry (message, attempt, delay)
"""

from __future__ import annotations

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from subscriptarr import config
from subscriptarr.errors import is_retryable
from subscriptarr.logger import get_logger

logger = get_logger(__name__)
T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
RetryHook = Callable[[BaseException, int, float], None]


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float = config.DEFAULT_MAX_DELAY_SEC,
    jitter_max: float = config.DEFAULT_JITTER_MAX_SEC,
    rand: Callable[[], float] = random.random,
) -> float:
    """Backoff before retry number `attempt` (1-based): base * 2^(attempt-1) + jitter, capped."""
    exponential = base_delay * (2 ** (attempt - 1))
    jitter = rand() * jitter_max
    return min(exponential + jitter, max_delay)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = config.DEFAULT_MAX_ATTEMPTS,
    base_delay: float = config.DEFAULT_BASE_DELAY_SEC,
    *,
    max_delay: float = config.DEFAULT_MAX_DELAY_SEC,
    jitter_max: float = config.DEFAULT_JITTER_MAX_SEC,
    name: str = "",
    sleep: Sleep = asyncio.sleep,
    on_retry: Optional[RetryHook] = None,
) -> T:
    """
    Run `operation` until it succeeds, fails non-retryably, or attempts run out.

    The last error is re-raised as-is so callers can still tell a 404 from a 500.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1

            if not is_retryable(e) or attempt >= max_attempts:
                logger.debug(f"{name or 'operation'} gave up after {attempt} attempt(s): {e}")
                raise

            delay = compute_delay(attempt, base_delay, max_delay, jitter_max)
            logger.warning(
                f"{name or 'operation'} failed (attempt {attempt}/{max_attempts}), "
                f"retrying in {delay:.2f}s: {e}",
                extra={"retry_attempt": attempt, "retry_delay": delay},
            )
            if on_retry is not None:
                on_retry(e, attempt, delay)

            await sleep(delay)


def retry_wrapper(
    fn: Callable[..., Awaitable[T]], **options: Any
) -> Callable[..., Awaitable[T]]:
    """Wrap a coroutine function so every call goes through run_with_retry."""

    @functools.wraps(fn)
    async def wrapped(*args: Any, **kwargs: Any) -> T:
        return await run_with_retry(lambda: fn(*args, **kwargs), **options)

    return wrapped


class ConditionNotMet(Exception):
    """retry_until ran out of attempts while the predicate still asked for a retry."""


async def retry_until(
    operation: Callable[[], Awaitable[T]],
    should_retry: Callable[[T], bool],
    max_attempts: int = config.DEFAULT_MAX_ATTEMPTS,
    base_delay: float = config.DEFAULT_BASE_DELAY_SEC,
    *,
    max_delay: float = config.DEFAULT_MAX_DELAY_SEC,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Re-run `operation` while `should_retry(result)` holds or it raises."""
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            if not should_retry(result):
                return result
            last_error = ConditionNotMet("Condition not met")
        except Exception as e:
            last_error = e

        if attempt >= max_attempts:
            break

        await sleep(compute_delay(attempt, base_delay, max_delay))

    if last_error is not None:
        raise last_error
    raise ConditionNotMet("Max attempts reached")
