# src/api/models.py — v1
"""HTTP response bodies for the cache and health endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from goofyy.cache.models import CacheStats, MemoryUsage


class CacheNamespaceStats(BaseModel):
    song_cache: int
    stream_cache: int
    total_cached: int


class CacheStatusResponse(BaseModel):
    """Body of GET /cache/status."""

    status: str = "connected"
    db_size: int
    memory_usage: MemoryUsage
    cache_stats: CacheNamespaceStats
    max_entries: int
    cache_ttl: str
    stream_cache_ttl: str

    @classmethod
    def build(
        cls,
        stats: CacheStats,
        max_entries: int,
        metadata_ttl_s: int,
        source_ttl_s: int,
    ) -> CacheStatusResponse:
        ns = stats.namespaces
        return cls(
            status="connected" if stats.connected else "disconnected",
            db_size=stats.db_size,
            memory_usage=stats.memory,
            cache_stats=CacheNamespaceStats(
                song_cache=ns.song_cache,
                stream_cache=ns.stream_cache,
                total_cached=ns.total_cached,
            ),
            max_entries=max_entries,
            cache_ttl=f"{metadata_ttl_s} seconds",
            stream_cache_ttl=f"{source_ttl_s} seconds",
        )


class ProcessMemory(BaseModel):
    rss: int
    vms: int


class HealthResponse(BaseModel):
    """Body of GET /health."""

    status: str = "healthy"
    timestamp: str
    uptime: float
    memory: ProcessMemory
    cache_backend: str
    redis: str


class MessageResponse(BaseModel):
    message: str
