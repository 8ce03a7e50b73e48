# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides fast settings, an in-memory cache, and scripted process launchers.
No external binaries or Redis server are needed — all I/O is faked.
"""

from __future__ import annotations

import pytest

from fakes import FakeLauncher, ToolScripts, happy_tools
from goofyy.cache.memory_store import InMemoryLookupCache
from goofyy.config.settings import Settings


@pytest.fixture
def settings() -> Settings:
    """Settings tuned for tests: memory cache, short timeouts, tiny chunks."""
    return Settings(
        _env_file=None,
        cache_backend="memory",
        stream_start_timeout_s=0.5,
        stream_chunk_size=16,
        disconnect_poll_interval_s=0.01,
        process_kill_grace_s=0.05,
        posthog_api_key="",
    )


@pytest.fixture
def memory_cache() -> InMemoryLookupCache:
    return InMemoryLookupCache(max_entries=1000)


@pytest.fixture
def tools() -> ToolScripts:
    """Every tool succeeds; tests override single fields."""
    return happy_tools()


@pytest.fixture
def launcher(tools: ToolScripts) -> FakeLauncher:
    return FakeLauncher(tools)
