"""Retry logic with exponential backoff for rate-limited upstream calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from wallet_portfolio.errors import UpstreamRateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    max_retries : int
        Maximum number of retry attempts
    base_delay : float
        Initial delay in seconds before first retry
    max_delay : float
        Maximum delay between retries
    exponential_base : float
        Base for exponential backoff calculation
    retry_on : tuple[type[BaseException], ...]
        Exception types that trigger a retry; anything else propagates at once

    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 8.0,
        exponential_base: float = 2.0,
        retry_on: tuple[type[BaseException], ...] = (UpstreamRateLimited,),
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retry_on = retry_on

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Current attempt number (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """
    Await ``func`` and retry it on the configured exception types.

    Parameters
    ----------
    func : Callable[..., Awaitable[T]]
        Coroutine function to call
    config : RetryConfig | None
        Retry configuration. Uses default config if None.

    Returns
    -------
    T
        Result of the first successful call

    Raises
    ------
    Exception
        The last retryable exception once retries are exhausted, or any
        non-retryable exception immediately

    """
    config = config or RetryConfig()
    last_exception: BaseException | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            last_exception = e

            # Don't retry on last attempt
            if attempt == config.max_retries:
                break

            delay = config.get_delay(attempt)
            logger.debug(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                getattr(func, "__qualname__", func),
                attempt + 1,
                config.max_retries + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)

    raise last_exception  # type: ignore[misc]
