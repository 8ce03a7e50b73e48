# tests/unit/cache/test_cache_factory.py — v1
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from goofyy.cache.cache_factory import create_lookup_cache
from goofyy.cache.memory_store import InMemoryLookupCache
from goofyy.cache.redis_store import RedisLookupCache
from goofyy.config.settings import Settings


class TestCreateLookupCache:
    def test_default_memory(self):
        cache = create_lookup_cache()
        assert isinstance(cache, InMemoryLookupCache)

    def test_memory_backend(self):
        s = Settings(_env_file=None, cache_backend="memory", cache_max_entries=7)
        cache = create_lookup_cache(s)
        assert isinstance(cache, InMemoryLookupCache)
        assert cache.max_entries == 7

    def test_redis_backend(self):
        s = Settings(_env_file=None, cache_backend="redis", redis_url="redis://cache:6379/1")
        cache = create_lookup_cache(s)
        assert isinstance(cache, RedisLookupCache)
        assert cache.max_entries == 1000

    def test_redis_missing_url(self):
        s = Settings(_env_file=None).model_copy(update={"redis_url": ""})
        with pytest.raises(ValueError, match="REDIS_URL"):
            create_lookup_cache(s)

    def test_unsupported_backend(self):
        s = Settings(_env_file=None).model_copy(update={"cache_backend": "sqlite"})
        with pytest.raises(ValueError, match="Unsupported"):
            create_lookup_cache(s)
