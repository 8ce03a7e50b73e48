# src/cache/redis_store.py — v1
"""Redis-based lookup cache (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Expiry uses native key TTLs (SETEX), so expired entries vanish without
explicit cleanup. Eviction beyond the soft maximum is left to the server's
maxmemory-policy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.cache.keys import METADATA_PREFIX, SOURCE_PREFIX
from goofyy.cache.models import CacheStats, MemoryUsage, NamespaceCounts
from goofyy.core.errors import CacheError

logger = logging.getLogger(__name__)

_SCAN_COUNT = 500


class RedisLookupCache(BaseLookupCache):
    """Redis-backed lookup cache sharing one long-lived client per process."""

    def __init__(
        self,
        redis_url: str,
        max_entries: int = 0,
        socket_timeout: float = 2.0,
    ) -> None:
        super().__init__(max_entries=max_entries)
        try:
            import redis.asyncio as aioredis
            from redis.exceptions import RedisError
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client: Any = aioredis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self._errors: tuple[type[BaseException], ...] = (
            RedisError, OSError, asyncio.TimeoutError,
        )
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Ping the server once; a failure leaves the cache in degraded mode."""
        if await self.ping():
            logger.info("Connected to Redis")
        else:
            logger.error("Failed to connect to Redis, continuing without cache")

    async def ping(self) -> bool:
        try:
            await self._client.ping()
        except self._errors as e:
            self._mark_failed("ping", None, e)
            return False
        self._connected = True
        return True

    async def close(self) -> None:
        """Close the Redis connection pool."""
        try:
            await self._client.aclose()
        except self._errors as e:
            logger.warning("Error closing Redis client: %s", e)
        self._connected = False

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except self._errors as e:
            self._mark_failed("get", key, e)
            return None
        self._connected = True
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.setex(key, ttl_seconds, value)
        except self._errors as e:
            self._mark_failed("set", key, e)
            return
        self._connected = True
        await self.check_capacity()

    async def size(self) -> int:
        try:
            count = await self._client.dbsize()
        except self._errors as e:
            self._mark_failed("dbsize", None, e)
            return 0
        self._connected = True
        return int(count)

    async def clear(self) -> None:
        try:
            await self._client.flushdb()
        except self._errors as e:
            self._mark_failed("flushdb", None, e)
            raise CacheError(f"Failed to clear cache: {e}") from e
        self._connected = True
        logger.info("Cache cleared")

    async def stats(self) -> CacheStats:
        try:
            db_size = await self._client.dbsize()
            info = await self._client.info("memory")
            songs = await self._count_prefix(METADATA_PREFIX)
            streams = await self._count_prefix(SOURCE_PREFIX)
        except self._errors as e:
            self._mark_failed("stats", None, e)
            raise CacheError(f"Failed to get cache status: {e}") from e
        self._connected = True
        return CacheStats(
            connected=True,
            db_size=int(db_size),
            memory=MemoryUsage.from_bytes(int(info.get("used_memory", 0) or 0)),
            namespaces=NamespaceCounts(song_cache=songs, stream_cache=streams),
        )

    async def _count_prefix(self, prefix: str) -> int:
        # SCAN instead of KEYS so large stores do not block the server
        count = 0
        async for _ in self._client.scan_iter(match=f"{prefix}*", count=_SCAN_COUNT):
            count += 1
        return count

    def _mark_failed(self, op: str, key: str | None, error: BaseException) -> None:
        self._connected = False
        if key is None:
            logger.warning("Redis %s failed: %s", op, error)
        else:
            logger.warning("Redis %s failed for %s: %s", op, key, error)
