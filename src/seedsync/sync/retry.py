"""Retry logic with exponential backoff.

This module provides:
- retry_with_backoff: Await a coroutine factory with exponential backoff
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from seedsync.remote.client import RemoteError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Errors that indicate a transient connectivity issue
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
    RemoteError,
)


class RetryAbortedError(Exception):
    """Retrying stopped because should_abort() asked for it."""


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = NETWORK_EXCEPTIONS,
    fatal_exceptions: tuple[type[Exception], ...] = (),
    should_abort: Callable[[], bool] | None = None,
) -> T:
    """Await a coroutine factory with exponential backoff retry.

    Args:
        func: Called once per attempt; returns the awaitable to run.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        retryable_exceptions: Tuple of exception types to retry on.
        fatal_exceptions: Exception types raised immediately even when they
            also match retryable_exceptions.
        should_abort: Checked after each backoff; when it returns True no
            further attempt is made.

    Returns:
        Result of the awaitable.

    Raises:
        The last exception if all retries fail.
        RetryAbortedError: If should_abort() stopped the retries.
    """
    backoff = initial_backoff

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except fatal_exceptions:
            raise
        except retryable_exceptions as e:
            if attempt == max_retries:
                logger.error("All %d retries failed: %s", max_retries, e)
                raise

            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %.1fs...",
                attempt + 1,
                max_retries + 1,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)
            backoff = min(backoff * backoff_multiplier, max_backoff)

            if should_abort is not None and should_abort():
                raise RetryAbortedError(f"Retry aborted after attempt {attempt + 1}") from e

    raise RuntimeError("Unexpected retry loop exit")
