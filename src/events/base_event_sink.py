# src/events/base_event_sink.py — v1
"""Analytics event sink interface.

Events are fire-and-forget: capture() never raises and never blocks the
request that emitted it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

METADATA_REQUESTED = "metadata_requested"
STREAM_REQUESTED = "stream_requested"


class BaseEventSink(ABC):
    """Receives named product events."""

    @abstractmethod
    def capture(self, event: str, properties: dict[str, Any] | None = None) -> None:
        """Record an event without blocking the caller."""

    async def close(self) -> None:
        """Flush pending events and release resources."""


class NullEventSink(BaseEventSink):
    """Discards events (analytics disabled)."""

    def capture(self, event: str, properties: dict[str, Any] | None = None) -> None:
        return None
