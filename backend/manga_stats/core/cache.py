"""Response caching utility.

Two interchangeable backends sit behind the same small interface: an in-process
dictionary for single-instance deployments and tests, and Redis when several
API instances must share cached payloads. Failures are logged and behave as
cache misses.
"""

import fnmatch
import logging
import time

import redis.asyncio as aioredis

from manga_stats.core.config import settings

logger = logging.getLogger(__name__)


class CacheBackend:
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    async def delete_pattern(self, pattern: str) -> int:
        raise NotImplementedError


class MemoryCacheBackend(CacheBackend):
    """Process-local cache with per-key expiry."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            self._data.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._data[key] = (value, time.monotonic() + ttl)

    async def delete_pattern(self, pattern: str) -> int:
        keys = [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]
        for k in keys:
            del self._data[k]
        return len(keys)


class RedisCacheBackend(CacheBackend):
    def __init__(self, url: str) -> None:
        self._url = url
        self._redis: aioredis.Redis | None = None

    async def _get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(self._url, decode_responses=True)
        return self._redis

    async def get(self, key: str) -> str | None:
        r = await self._get_redis()
        return await r.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        r = await self._get_redis()
        await r.set(key, value, ex=ttl)

    async def delete_pattern(self, pattern: str) -> int:
        r = await self._get_redis()
        deleted = 0
        cursor = 0
        while True:
            cursor, keys = await r.scan(cursor, match=pattern, count=100)
            if keys:
                deleted += await r.delete(*keys)
            if cursor == 0:
                break
        return deleted


_backend: CacheBackend | None = None


def get_cache_backend() -> CacheBackend:
    global _backend
    if _backend is None:
        if settings.cache_backend == "memory":
            _backend = MemoryCacheBackend()
        else:
            _backend = RedisCacheBackend(settings.redis_url)
    return _backend


def set_cache_backend(backend: CacheBackend | None) -> None:
    """Swap the active backend (``None`` resets to the configured one)."""
    global _backend
    _backend = backend


def make_cache_key(*parts: str) -> str:
    return "cache:" + ":".join(parts)


async def cache_get(key: str) -> str | None:
    try:
        return await get_cache_backend().get(key)
    except Exception:
        logger.exception("Cache get failed for key=%s", key)
        return None


async def cache_set(key: str, value: str, ttl: int = 60) -> None:
    try:
        await get_cache_backend().set(key, value, ttl)
    except Exception:
        logger.exception("Cache set failed for key=%s", key)


async def cache_delete_pattern(pattern: str) -> int:
    """Delete all keys matching a glob pattern. Returns the number removed."""
    try:
        return await get_cache_backend().delete_pattern(pattern)
    except Exception:
        logger.exception("Cache delete pattern failed for pattern=%s", pattern)
        return 0
