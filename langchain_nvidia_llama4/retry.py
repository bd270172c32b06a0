"""
Bounded exponential-backoff retry for embedding calls.

Waits 2^attempt seconds plus up to 100ms of jitter between attempts
(1s, 2s, 4s, ...). Once every attempt has failed, a single
RetryExhaustedError carries the last underlying failure.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    Retrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from langchain_nvidia_llama4.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_SECONDS: float = 0.1


def _sleep(seconds: float) -> None:
    time.sleep(seconds)


async def _async_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _check_attempts(max_attempts: int) -> None:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")


def _retry_kwargs(max_attempts: int) -> dict:
    return {
        "stop": stop_after_attempt(max_attempts),
        "wait": wait_exponential(multiplier=1, exp_base=2) + wait_random(0, JITTER_SECONDS),
        "before_sleep": before_sleep_log(logger, logging.WARNING),
    }


def _exhausted(error: RetryError, max_attempts: int, label: str) -> RetryExhaustedError:
    last_error = error.last_attempt.exception()
    return RetryExhaustedError(
        f"Error {label} after {max_attempts} attempts: {last_error}",
        attempts=max_attempts,
        last_error=last_error,
    )


def call_with_retry(
    operation: Callable[[], T],
    max_attempts: int,
    *,
    label: str = "calling operation",
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Run ``operation`` up to ``max_attempts`` times, backing off between failures.

    Args:
        operation: Zero-argument callable performing the network call
        max_attempts: Total attempts, including the first
        label: Describes the operation in the exhaustion message
        sleep: Blocking sleep used between attempts (injectable for tests)

    Raises:
        RetryExhaustedError: If every attempt raised
    """
    _check_attempts(max_attempts)
    retrying = Retrying(sleep=sleep or _sleep, **_retry_kwargs(max_attempts))
    try:
        return retrying(operation)
    except RetryError as e:
        exhausted = _exhausted(e, max_attempts, label)
        raise exhausted from exhausted.last_error


async def acall_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    *,
    label: str = "calling operation",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """Async counterpart of call_with_retry; the backoff suspends the caller."""
    _check_attempts(max_attempts)
    retrying = AsyncRetrying(sleep=sleep or _async_sleep, **_retry_kwargs(max_attempts))
    try:
        return await retrying(operation)
    except RetryError as e:
        exhausted = _exhausted(e, max_attempts, label)
        raise exhausted from exhausted.last_error
