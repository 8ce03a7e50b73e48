# src/cache/base_cache_store.py — v1
"""Abstract lookup cache interface.

The cache is best-effort: get/set/size never raise, they log and degrade to
miss / no-op / 0. clear() and stats() raise CacheError because their callers
report store failures to the client.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from goofyy.cache.models import CacheStats

logger = logging.getLogger(__name__)


class BaseLookupCache(ABC):
    """Unified interface for lookup cache backends."""

    def __init__(self, max_entries: int = 0) -> None:
        self._max_entries = max_entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the last interaction with the store succeeded."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish the store connection (never raises)."""

    @abstractmethod
    async def ping(self) -> bool:
        """Round-trip to the store; False instead of raising."""

    @abstractmethod
    async def close(self) -> None:
        """Release the store connection."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the cached value, or None on miss or store error."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL; store errors are swallowed."""

    @abstractmethod
    async def size(self) -> int:
        """Total entry count, 0 on store error."""

    @abstractmethod
    async def clear(self) -> None:
        """Flush every entry in both namespaces.

        Raises:
            CacheError: If the store cannot be flushed.
        """

    @abstractmethod
    async def stats(self) -> CacheStats:
        """Connectivity, size, memory and per-namespace counts.

        Raises:
            CacheError: If the store cannot be queried.
        """

    async def check_capacity(self) -> None:
        """Log when the entry count exceeds the soft maximum.

        Advisory only: eviction is left to the store's own policy.
        """
        if self._max_entries <= 0:
            return
        count = await self.size()
        if count > self._max_entries:
            logger.warning(
                "Cache size (%d) exceeds limit (%d), store will auto-evict",
                count, self._max_entries,
            )
