# src/common/cache.py

"""
Short-TTL caches used in front of repeated read queries.

Two implementations share the ``SuggestionCache`` interface: an in-process map
for single-worker deployments and tests, and a Redis-backed cache for
deployments running more than one worker. Cache failures are logged and
behave like misses; they never reach the caller.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class SuggestionCache(ABC):
    """Abstract string cache with per-entry expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Tuple[str, bool]]],
        ttl: int,
    ) -> str:
        """
        Return the cached value for ``key`` or compute, store and return it.

        ``compute`` returns ``(value, cacheable)``; values flagged as not
        cacheable (e.g. degraded results) are returned without being stored.
        """
        try:
            cached = await self.get(key)
        except Exception as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            cached = None
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached

        logger.debug("Cache miss: %s", key)
        value, cacheable = await compute()
        if cacheable:
            try:
                await self.set(key, value, ttl)
            except Exception as e:
                logger.warning("Cache write failed for %s: %s", key, e)
        return value


class InMemoryCache(SuggestionCache):
    # Expired entries are swept once the map grows past this many keys
    SWEEP_THRESHOLD = 1024

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        if len(self._entries) >= self.SWEEP_THRESHOLD:
            self._sweep()
        self._entries[key] = (self._clock() + ttl, value)

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        logger.debug("Swept %d expired cache entries", len(expired))

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(SuggestionCache):
    def __init__(self, redis: Redis, prefix: str = "search:"):
        self.redis = redis
        self.prefix = prefix

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self.prefix + key)
        except RedisError as e:
            logger.warning("Redis GET failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self.redis.set(self.prefix + key, value, ex=ttl)
        except RedisError as e:
            logger.warning("Redis SET failed for %s: %s", key, e)

    async def close(self) -> None:
        await self.redis.aclose()


def build_cache(url: str = "") -> SuggestionCache:
    """Pick the cache backend for ``url``; an empty URL selects the in-process cache."""
    if url:
        logger.info("Using Redis suggestion cache")
        return RedisCache(Redis.from_url(url, decode_responses=True))
    logger.info("Using in-process suggestion cache")
    return InMemoryCache()
