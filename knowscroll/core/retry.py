"""Retry utilities for rate-limited provider calls.

Only ``RateLimitedError`` (HTTP 429) is retried. Every other failure
propagates on the first attempt so a broken provider fails fast.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from knowscroll.core.exceptions import ExhaustedRetriesError, RateLimitedError
from knowscroll.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    delay_seconds: float = 1.0
    jitter: bool = True

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """
    Execute an async call, retrying while the provider answers 429.

    Waits ``delay_seconds`` between attempts, scaled by a random factor in
    [0.5, 1.5) when jitter is enabled.

    Args:
        fn: Async function to execute (no arguments)
        config: Retry configuration, uses defaults if not provided
        operation_name: Name for logging purposes

    Returns:
        Result of fn()

    Raises:
        ExhaustedRetriesError: every attempt was rate limited
        Exception: any non-429 failure, unchanged, on the attempt it happened

    Example:
        ```python
        response = await with_retry(
            lambda: transport.send(request),
            config=RetryConfig(max_retries=3),
            operation_name="fetch:wikipedia",
        )
        ```
    """
    config = config or RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return await fn()
        except RateLimitedError as e:
            if attempt + 1 == config.max_attempts:
                logger.bind(
                    operation=operation_name,
                    attempts=config.max_attempts,
                ).error("retry_exhausted")
                raise ExhaustedRetriesError(operation_name, config.max_attempts) from e

            delay = config.delay_seconds
            if config.jitter:
                delay *= 0.5 + random.random()

            logger.bind(
                operation=operation_name,
                attempt=attempt + 1,
                max_attempts=config.max_attempts,
                delay_seconds=round(delay, 2),
            ).warning("retry_attempt")
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Unexpected state in with_retry")
