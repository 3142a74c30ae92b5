"""Per-service pacing for calls to rate limited external services.

A CallGovernor wraps every call made to one service (embeddings, generation,
vector store). It enforces a minimum spacing between calls and a cap on calls
per rolling window, and it absorbs rate limit responses by cooling down and
retrying the same call.

Example:
    >>> governor = CallGovernor(min_interval=0.1, max_calls_per_window=100)
    >>> vector = await governor.execute(
    ...     lambda: embeddings.embed_single(text), operation_name="embed"
    ... )
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from siteqa.core.errors import RateLimitError, ServiceDegradedError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def is_rate_limited(exc: BaseException) -> bool:
    """Return True if the exception is a rate limit signal from a service."""
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    return False


class CallGovernor:
    """Spacing, windowed throughput cap and rate limit cooldown for one service.

    Args:
        min_interval: Minimum seconds between the starts of two calls
        max_calls_per_window: Most calls started in any rolling window
        window_seconds: Length of the rolling window
        rate_limit_cooldown: Seconds to block after a rate limit signal that
            carries no Retry-After value
        max_rate_limit_retries: Retries after rate limit signals before giving up
        clock: Monotonic time source
        sleep: Async sleep function

    Raises:
        ValueError: If max_calls_per_window or window_seconds is not positive
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        max_calls_per_window: int = 60,
        window_seconds: float = 60.0,
        rate_limit_cooldown: float = 10.0,
        max_rate_limit_retries: int = 3,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_calls_per_window <= 0:
            raise ValueError("max_calls_per_window must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.min_interval = min_interval
        self.max_calls_per_window = max_calls_per_window
        self.window_seconds = window_seconds
        self.rate_limit_cooldown = rate_limit_cooldown
        self.max_rate_limit_retries = max_rate_limit_retries
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        operation_name: str = "call",
    ) -> T:
        """Run a call once its slot is free, cooling down on rate limits.

        Args:
            call: Zero-argument async callable performing the request
            operation_name: Name used in log messages

        Returns:
            The call's result

        Raises:
            ServiceDegradedError: If the service keeps rate limiting after
                max_rate_limit_retries cooldowns
            Exception: Any non rate limit error raised by the call
        """
        attempt = 0
        while True:
            await self._acquire_slot(operation_name)
            try:
                return await call()
            except Exception as e:
                if not is_rate_limited(e):
                    raise
                if attempt >= self.max_rate_limit_retries:
                    logger.error(
                        f"{operation_name} still rate limited after "
                        f"{self.max_rate_limit_retries} retries"
                    )
                    raise ServiceDegradedError(
                        f"{operation_name} is rate limited, try again later"
                    ) from e

                attempt += 1
                cooldown = self._cooldown_for(e)
                logger.warning(
                    f"{operation_name} rate limited, cooling down {cooldown:.1f}s "
                    f"(retry {attempt}/{self.max_rate_limit_retries})"
                )
                await self._sleep(cooldown)

    def _cooldown_for(self, exc: Exception) -> float:
        # A Retry-After value from the service wins over the configured cooldown
        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            return max(exc.retry_after, 0.0)
        return self.rate_limit_cooldown

    async def _acquire_slot(self, operation_name: str) -> None:
        async with self._lock:
            now = self._clock()

            if self._last_call is not None:
                wait = self.min_interval - (now - self._last_call)
                if wait > 0:
                    await self._sleep(wait)
                    now = self._clock()

            self._evict(now)
            if len(self._timestamps) >= self.max_calls_per_window:
                wait = self._timestamps[0] + self.window_seconds - now
                if wait > 0:
                    logger.info(
                        f"{operation_name} window full, waiting {wait:.1f}s"
                    )
                    await self._sleep(wait)
                    now = self._clock()
                self._evict(now)

            self._timestamps.append(now)
            self._last_call = now

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()
