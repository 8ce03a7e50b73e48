# src/cache/cache_factory.py — v1
"""Factory for lookup cache instantiation."""

from __future__ import annotations

from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.config.settings import Settings


def create_lookup_cache(settings: Settings | None = None) -> BaseLookupCache:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseLookupCache implementation (not yet connected).
    """
    backend = "memory" if settings is None else settings.cache_backend
    max_entries = 0 if settings is None else settings.cache_max_entries

    if backend == "memory":
        from goofyy.cache.memory_store import InMemoryLookupCache
        return InMemoryLookupCache(max_entries=max_entries)

    if backend == "redis":
        from goofyy.cache.redis_store import RedisLookupCache
        if settings is None or not settings.redis_url:
            raise ValueError("REDIS_URL must be set when CACHE_BACKEND=redis")
        return RedisLookupCache(
            redis_url=settings.redis_url,
            max_entries=max_entries,
            socket_timeout=settings.redis_socket_timeout_s,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
