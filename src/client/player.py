# src/client/player.py — v1
"""Music player client: fetches metadata and the PCM stream from the server.

Audio output is delegated to an AudioSink (anything with write()/close()),
so this module has no dependency on a sound device.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Protocol
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from goofyy.client.progress import PlaybackClock, format_duration
from goofyy.core.errors import GoofyyError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class PlaybackError(GoofyyError):
    """Server refused or broke the stream."""


class AudioSink(Protocol):
    def write(self, data: bytes) -> object: ...

    def close(self) -> None: ...


class SongInfo(BaseModel):
    """What the player shows for the current song."""

    title: str
    duration: str
    duration_seconds: float = 0
    artist: str = ""
    url: str


class AudioStream:
    """An open /stream response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def title(self) -> str:
        return self._response.headers.get("x-song-title", "")

    @property
    def artist(self) -> str:
        return self._response.headers.get("x-song-artist", "")

    @property
    def duration_seconds(self) -> float:
        try:
            return float(self._response.headers.get("x-song-duration", "0"))
        except ValueError:
            return 0.0

    def chunks(self, chunk_size: int = _CHUNK_SIZE) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes(chunk_size=chunk_size)


class MusicPlayerClient:
    """HTTP client for the goofyy server plus a pausable playback loop.

    Args:
        base_url: Server root, e.g. http://localhost:3000.
        client: Optional pre-built httpx.AsyncClient (tests).
        clock: Playback clock (tests inject a fake time source).
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        clock: PlaybackClock | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        # Streams can run for the whole song, so reads never time out
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(10.0, read=None),
        )
        self.clock = clock or PlaybackClock()
        self._resume = asyncio.Event()
        self._resume.set()

    async def aclose(self) -> None:
        await self._client.aclose()

    def stream_url(self, query: str) -> str:
        return f"{self._base_url}/stream?{urlencode({'q': query})}"

    async def fetch_metadata(self, query: str) -> SongInfo:
        """GET /metadata; the title falls back to the query itself.

        Raises:
            PlaybackError: On a non-2xx response.
        """
        response = await self._client.get("/metadata", params={"q": query})
        if response.status_code != 200:
            raise PlaybackError(_error_message(response, "metadata request failed"))
        data = response.json()
        duration = data.get("duration")
        seconds = float(duration) if isinstance(duration, (int, float)) else 0.0
        return SongInfo(
            title=data.get("title") or query,
            duration=format_duration(seconds),
            duration_seconds=seconds,
            artist=data.get("artist") or "",
            url=self.stream_url(query),
        )

    @asynccontextmanager
    async def open_stream(self, query: str) -> AsyncIterator[AudioStream]:
        """GET /stream as a streamed response.

        Raises:
            PlaybackError: If the server answers with an error status.
        """
        async with self._client.stream("GET", "/stream", params={"q": query}) as response:
            if response.status_code != 200:
                await response.aread()
                raise PlaybackError(_error_message(response, "stream request failed"))
            yield AudioStream(response)

    def pause(self) -> None:
        self._resume.clear()
        self.clock.pause()

    def resume(self) -> None:
        self.clock.resume()
        self._resume.set()

    @property
    def paused(self) -> bool:
        return not self._resume.is_set()

    async def play(
        self,
        query: str,
        sink: AudioSink,
        on_progress: Callable[[float, SongInfo], None] | None = None,
        progress_interval_s: float = 1.0,
    ) -> SongInfo:
        """Fetch metadata and stream concurrently, then write PCM into sink.

        Returns the SongInfo once the stream ends. The sink is closed on exit.
        """
        metadata_task = asyncio.ensure_future(self.fetch_metadata(query))
        ticker: asyncio.Task[None] | None = None
        try:
            async with self.open_stream(query) as stream:
                try:
                    song = await metadata_task
                except (PlaybackError, httpx.HTTPError) as e:
                    # The stream carries its own metadata headers
                    logger.warning("Metadata unavailable, using stream headers: %s", e)
                    song = SongInfo(
                        title=stream.title or query,
                        duration=format_duration(stream.duration_seconds),
                        duration_seconds=stream.duration_seconds,
                        artist=stream.artist,
                        url=self.stream_url(query),
                    )
                self.clock.start()
                if on_progress is not None:
                    ticker = asyncio.ensure_future(
                        self._tick(song, on_progress, progress_interval_s)
                    )
                async for chunk in stream.chunks():
                    await self._resume.wait()
                    sink.write(chunk)
                return song
        finally:
            if not metadata_task.done():
                metadata_task.cancel()
            elif not metadata_task.cancelled():
                metadata_task.exception()  # mark retrieved
            if ticker is not None:
                ticker.cancel()
            sink.close()

    async def _tick(
        self,
        song: SongInfo,
        on_progress: Callable[[float, SongInfo], None],
        interval_s: float,
    ) -> None:
        while True:
            if not self.paused:
                on_progress(self.clock.elapsed, song)
            await asyncio.sleep(interval_s)


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"{default} ({response.status_code})"
    if isinstance(body, dict) and body.get("error"):
        return f"{body['error']} ({response.status_code})"
    return f"{default} ({response.status_code})"
