# src/cache/memory_store.py — v1
"""In-process lookup cache (CACHE_BACKEND=memory).

Dict-backed with lazy expiry on read. Intended for local development and
tests; it is not shared between server processes.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.cache.keys import METADATA_PREFIX, SOURCE_PREFIX
from goofyy.cache.models import CacheStats, MemoryUsage, NamespaceCounts

logger = logging.getLogger(__name__)


class InMemoryLookupCache(BaseLookupCache):
    """TTL dictionary implementing the lookup cache contract."""

    def __init__(
        self,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(max_entries=max_entries)
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    @property
    def is_connected(self) -> bool:
        return True

    async def connect(self) -> None:
        logger.info("Using in-memory lookup cache")

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> str | None:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)
        await self.check_capacity()

    async def size(self) -> int:
        self._purge_expired()
        return len(self._entries)

    async def clear(self) -> None:
        self._entries.clear()

    async def stats(self) -> CacheStats:
        self._purge_expired()
        keys = list(self._entries)
        approx_bytes = sum(
            len(k.encode()) + len(v.encode()) for k, (v, _) in self._entries.items()
        )
        return CacheStats(
            connected=True,
            db_size=len(keys),
            memory=MemoryUsage.from_bytes(approx_bytes),
            namespaces=NamespaceCounts(
                song_cache=sum(1 for k in keys if k.startswith(METADATA_PREFIX)),
                stream_cache=sum(1 for k in keys if k.startswith(SOURCE_PREFIX)),
            ),
        )

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (_, exp) in self._entries.items() if now >= exp]:
            del self._entries[key]
