# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class SongMetadata(BaseModel):
    """Resolved song metadata. Immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    duration: int | float = 0
    artist: str = ""

    @classmethod
    def empty(cls) -> SongMetadata:
        return cls()

    @classmethod
    def from_info(cls, info: dict[str, Any]) -> SongMetadata:
        """Build from a yt-dlp info dict; artist falls back to the uploader."""
        duration = info.get("duration")
        if not isinstance(duration, (int, float)) or isinstance(duration, bool):
            duration = 0
        return cls(
            title=str(info.get("title") or ""),
            duration=duration,
            artist=str(info.get("artist") or info.get("uploader") or ""),
        )


class PrewarmResult(BaseModel):
    """Outcome of pre-warming one query."""

    query: str
    success: bool
    error: str | None = None
    metadata: SongMetadata | None = None
    has_stream_url: bool = False


class PrewarmSummary(BaseModel):
    """Aggregate outcome of a pre-warm batch."""

    message: str
    succeeded: int
    failed: int
    results: list[PrewarmResult]

    @classmethod
    def from_results(cls, results: list[PrewarmResult]) -> PrewarmSummary:
        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        return cls(
            message=f"Pre-warmed {succeeded} queries, {failed} failed",
            succeeded=succeeded,
            failed=failed,
            results=results,
        )
