"""Key/value backends for the cache layer.

Stores hold serialized JSON strings with a per-key TTL. They know nothing
about namespaces or payload shapes; that belongs to ``UserCache``.
"""

import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

from services.errors import TransientError

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Minimal async key/value contract with expiry."""

    name: str = ""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write ``value`` to expire ``ttl_seconds`` from now."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """Return live keys matching a glob-style pattern."""

    async def close(self) -> None:
        return None


class MemoryStore(CacheStore):
    """In-process store. The clock is injectable so tests can expire entries."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[float, str]] = {}

    def _live(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        expires_at, value = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, pattern: str) -> list[str]:
        return [k for k in list(self._data) if fnmatch.fnmatchcase(k, pattern) and self._live(k) is not None]


class RedisStore(CacheStore):
    """Redis backend (``redis.asyncio``) with exponential reconnect backoff."""

    name = "redis"

    def __init__(self, url: str, max_retries: int = 10) -> None:
        self._redis = Redis.from_url(
            url,
            decode_responses=True,
            retry=Retry(ExponentialBackoff(cap=5.0, base=0.1), max_retries),
        )

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise TransientError(f"Redis GET {key} failed: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise TransientError(f"Redis SET {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as e:
            raise TransientError(f"Redis DEL {key} failed: {e}") from e

    async def keys(self, pattern: str) -> list[str]:
        try:
            return [k async for k in self._redis.scan_iter(match=pattern)]
        except RedisError as e:
            raise TransientError(f"Redis SCAN {pattern} failed: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis connection closed")


def create_store(backend: str, redis_url: str = "") -> CacheStore:
    """Factory: build the configured store backend."""
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        return RedisStore(redis_url)
    raise ValueError(f"Unsupported cache backend: {backend}")
