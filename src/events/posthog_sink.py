# src/events/posthog_sink.py — v1
"""Event sink posting to the PostHog capture HTTP API via httpx."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from goofyy.events.base_event_sink import BaseEventSink

logger = logging.getLogger(__name__)


class PostHogEventSink(BaseEventSink):
    """Sends each event as one POST /capture/ request in a background task.

    Args:
        api_key: Project API key (POSTHOG_API_KEY).
        host: PostHog ingestion host.
        distinct_id: Identity attached to every event.
        timeout_s: Per-request timeout.
        client: Optional pre-built httpx.AsyncClient (tests).
    """

    def __init__(
        self,
        api_key: str,
        host: str = "https://us.i.posthog.com",
        distinct_id: str = "goofyy-server",
        timeout_s: float = 3.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._distinct_id = distinct_id
        self._client = client or httpx.AsyncClient(
            base_url=host.rstrip("/"), timeout=timeout_s
        )
        self._pending: set[asyncio.Task[None]] = set()

    def capture(self, event: str, properties: dict[str, Any] | None = None) -> None:
        payload = {
            "api_key": self._api_key,
            "event": event,
            "distinct_id": self._distinct_id,
            "properties": properties or {},
        }
        try:
            task = asyncio.get_running_loop().create_task(self._send(payload))
        except RuntimeError:
            logger.debug("No running loop, dropping event %s", event)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, payload: dict[str, Any]) -> None:
        try:
            response = await self._client.post("/capture/", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to send event %s: %s", payload["event"], e)

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.aclose()
