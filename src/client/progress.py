# src/client/progress.py — v1
"""Playback clock, duration formatting and the text progress bar."""

from __future__ import annotations

import time
from typing import Callable


def format_duration(seconds: float) -> str:
    """Format seconds as m:ss (minutes are not wrapped into hours)."""
    seconds = max(0.0, float(seconds))
    minutes = int(seconds // 60)
    rest = int(seconds % 60)
    return f"{minutes}:{rest:02d}"


def parse_duration(duration: str | float | int) -> float:
    """Parse 'm:ss' or 'h:mm:ss' (numbers pass through). Unparsable -> 0."""
    if isinstance(duration, (int, float)):
        return float(duration)
    parts = duration.strip().split(":")
    try:
        values = [int(p or "0") for p in parts]
    except ValueError:
        return 0.0
    if len(values) == 2:
        return float(values[0] * 60 + values[1])
    if len(values) == 3:
        return float(values[0] * 3600 + values[1] * 60 + values[2])
    return 0.0


def render_progress(elapsed: float, total: float, width: int = 30) -> str:
    """'0:42 █████░░░░░ 3:15'. An unknown total renders an empty bar."""
    filled = 0
    if total > 0:
        filled = min(int(elapsed / total * width), width)
    bar = "█" * filled + "░" * (width - filled)
    return f"{format_duration(elapsed)} {bar} {format_duration(total)}"


class PlaybackClock:
    """Elapsed playback time that stands still while paused."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started_at: float | None = None
        self._paused_elapsed: float | None = None

    @property
    def paused(self) -> bool:
        return self._paused_elapsed is not None

    def start(self) -> None:
        self._started_at = self._clock()
        self._paused_elapsed = None

    def pause(self) -> None:
        if self._started_at is None or self.paused:
            return
        self._paused_elapsed = self._clock() - self._started_at

    def resume(self) -> None:
        if self._paused_elapsed is None:
            return
        # Shift the start so elapsed continues from where it stopped
        self._started_at = self._clock() - self._paused_elapsed
        self._paused_elapsed = None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        if self._paused_elapsed is not None:
            return self._paused_elapsed
        return self._clock() - self._started_at
