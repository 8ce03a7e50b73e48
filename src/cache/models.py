# src/cache/models.py — v1
"""Cache diagnostic models: MemoryUsage, NamespaceCounts, CacheStats."""

from __future__ import annotations

from pydantic import BaseModel


class MemoryUsage(BaseModel):
    """Store memory footprint as reported by the backend."""

    used: str = "Unknown"
    bytes: int = 0

    @classmethod
    def from_bytes(cls, n: int | None) -> MemoryUsage:
        if not n:
            return cls()
        return cls(used=f"{round(n / 1024 / 1024, 2)} MB", bytes=n)


class NamespaceCounts(BaseModel):
    """Entry counts per logical namespace."""

    song_cache: int = 0
    stream_cache: int = 0

    @property
    def total_cached(self) -> int:
        return self.song_cache + self.stream_cache


class CacheStats(BaseModel):
    """Snapshot returned by BaseLookupCache.stats()."""

    connected: bool
    db_size: int
    memory: MemoryUsage
    namespaces: NamespaceCounts
