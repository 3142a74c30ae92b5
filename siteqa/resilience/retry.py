"""Retry policy for page fetches.

Failed attempts are retried with a linearly increasing delay
(base_delay * attempt): 1s, 2s, 3s with the defaults.

Example:
    >>> policy = RetryPolicy(max_attempts=4, base_delay=1.0)
    >>> html = await policy.execute_async(
    ...     fetch_once, retryable_exceptions=(FetchError,), operation_name=url
    ... )
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

T = TypeVar("T")


class RetryPolicy:
    """Retry policy with linear backoff.

    Attributes:
        max_attempts: Total attempts including the first (default: 4)
        base_delay: Delay unit in seconds; attempt n waits base_delay * n
    """

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self._logger = logging.getLogger(__name__)

    async def execute_async(
        self,
        operation: Callable[[], Awaitable[T]],
        retryable_exceptions: tuple[type[Exception], ...] | None = None,
        operation_name: str = "operation",
    ) -> T:
        """Execute async operation with retry logic.

        Args:
            operation: Async callable to execute
            retryable_exceptions: Exception types to retry
                                 (default: network/timeout errors)
            operation_name: Human-readable operation name for logging

        Returns:
            Result from successful operation execution

        Raises:
            Exception: Last exception if all attempts are exhausted, or any
                non-retryable exception immediately
        """
        if retryable_exceptions is None:
            retryable_exceptions = (httpx.NetworkError, httpx.TimeoutException)

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except retryable_exceptions as e:
                if attempt >= self.max_attempts:
                    self._logger.error(
                        f"{operation_name} failed after {self.max_attempts} attempts: {e}"
                    )
                    raise
                delay = self._get_delay(attempt)
                self._logger.warning(
                    f"{operation_name} failed (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                await self._sleep(delay)

        raise RuntimeError(f"{operation_name} failed unexpectedly")

    def _get_delay(self, attempt: int) -> float:
        return self.base_delay * attempt
