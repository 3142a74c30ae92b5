"""Redis-backed cache of answers keyed by namespace and question."""

from __future__ import annotations

import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "siteqa:answer:"
DEFAULT_TTL_SECONDS = 3600

# redis-py raises its own ConnectionError/TimeoutError (RedisError subclasses)
CACHE_ERRORS = (redis.RedisError, ConnectionError, TimeoutError, OSError)


def cache_key(namespace: str, question: str) -> str:
    """Build the Redis key for a cached answer."""
    return f"{KEY_PREFIX}{namespace}:{question}"


class AnswerCache:
    """Store and look up answer envelopes in Redis.

    Every entry is written with a Redis TTL and also carries its own
    ``expires_at`` timestamp, which is checked on read. An outage of the
    cache never fails a request: reads degrade to a miss and writes are
    skipped, both with a warning.

    Args:
        redis_url: Redis connection URL
        default_ttl: TTL in seconds used when put() is not given one
        client: Optional pre-built Redis client
        clock: Wall clock returning epoch seconds
    """

    def __init__(
        self,
        redis_url: str,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        client: redis.Redis | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.default_ttl = default_ttl
        self._client: redis.Redis = client or redis.from_url(
            redis_url, decode_responses=True
        )
        self._clock = clock

    async def _await(self, result: Awaitable[T] | T) -> T:
        if inspect.isawaitable(result):
            return await result
        return result

    async def get(self, namespace: str, question: str) -> dict[str, Any] | None:
        """Return the cached response, or None on miss, expiry or outage."""
        key = cache_key(namespace, question)
        try:
            raw = await self._await(self._client.get(key))
        except CACHE_ERRORS as exc:
            logger.warning("Cache read failed, treating as miss: %s", exc)
            return None

        if raw is None:
            return None

        try:
            entry = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry %s", key)
            return None

        if not isinstance(entry, dict) or entry.get("expires_at", 0) <= self._clock():
            return None

        response = entry.get("response")
        return response if isinstance(response, dict) else None

    async def put(
        self,
        namespace: str,
        question: str,
        response: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        """Cache a response for ttl seconds (skipped with a warning on outage)."""
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl <= 0:
            return

        entry = {
            "namespace": namespace,
            "question": question,
            "response": response,
            "expires_at": self._clock() + ttl,
        }
        try:
            await self._await(
                self._client.set(cache_key(namespace, question), json.dumps(entry), ex=ttl)
            )
        except CACHE_ERRORS as exc:
            logger.warning("Cache write skipped: %s", exc)

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
