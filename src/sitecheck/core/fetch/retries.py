"""
Retry utilities with tenacity.

Replays a failing async operation with a fixed pause until it
succeeds or the attempt budget is spent, then re-raises the last
failure unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_DELAY = 1.0  # seconds


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay: float = DEFAULT_DELAY,
        retry_exceptions: tuple[type[Exception], ...] | None = None,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Total number of calls, first one included
            delay: Fixed wait between attempts in seconds
            retry_exceptions: Exception types to retry on

        Raises:
            ValueError: If max_attempts < 1 or delay < 0
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.max_attempts = max_attempts
        self.delay = delay
        self.retry_exceptions = retry_exceptions or (Exception,)

    def __repr__(self) -> str:
        return f"RetryConfig(max_attempts={self.max_attempts}, delay={self.delay})"

    def retrying(self) -> AsyncRetrying:
        """Build the tenacity controller for one invocation."""
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(self.retry_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


async def retry_async(
    coro_func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic.

    Args:
        coro_func: Async function to call
        *args: Positional arguments
        config: Retry configuration
        **kwargs: Keyword arguments

    Returns:
        Function result

    Raises:
        Exception: The last failure once all attempts are spent
    """
    if config is None:
        config = RetryConfig()

    async for attempt in config.retrying():
        with attempt:
            return await coro_func(*args, **kwargs)
    raise AssertionError("unreachable: tenacity either returns or reraises")
