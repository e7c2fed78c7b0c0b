"""
Bounded exponential backoff for remote advisory calls.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from expenso.core.errors import is_rate_limited

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Run ``operation`` and retry it while it fails with a rate-limit error.

    Args:
        operation: zero-argument coroutine factory; each call is one attempt
        max_retries: retries allowed after the first attempt
        initial_delay: seconds before the first retry
        multiplier: growth factor per retry (1s, 2s, 4s, ... by default)
        sleep: awaitable delay, swapped out in tests

    Returns:
        Whatever the first successful attempt returns.

    Raises:
        The last error once retries are exhausted, or any non rate-limit
        error immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or not is_rate_limited(e):
                raise
            delay = initial_delay * (multiplier ** attempt)
            attempt += 1
            logger.warning(f"Rate limited, retry {attempt}/{max_retries} in {delay:.1f}s: {e}")
            await sleep(delay)
