# src/stream/pipeline.py — v1
"""Stream pipeline: query -> live WAV byte stream from an ffmpeg subprocess.

Per request:
  1. RESOLVING: metadata and source URL resolved concurrently. Metadata
     failure degrades to empty metadata; source failure is a setup error.
  2. TRANSCODING: headers built, ffmpeg spawned on the source URL, the
     disconnect watcher and stderr drain attached before stdout is read.
  3. The first stdout chunk must arrive within the start timeout, otherwise
     the session fails before any header is sent.
  4. STREAMING: StreamHandle.body() relays stdout until EOF, then the exit
     code decides COMPLETED or FAILED.

Headers go out together with the first body chunk, so every failure that can
still produce an error response is raised from open(). No retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Awaitable, Callable

from goofyy.config.settings import Settings
from goofyy.core.errors import (
    ResolutionError,
    StreamAborted,
    StreamRuntimeError,
    StreamSetupError,
)
from goofyy.core.models import SongMetadata
from goofyy.process.base_process import BaseProcess, ProcessLauncher
from goofyy.resolver.commands import transcode_command
from goofyy.resolver.resolver import Resolver
from goofyy.stream.headers import build_stream_headers
from goofyy.stream.session import StreamSession
from goofyy.stream.states import StreamState

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]

_STDERR_TAIL_LINES = 20


class StreamHandle:
    """A transcoder that has produced its first chunk, ready to be relayed."""

    def __init__(
        self,
        session: StreamSession,
        process: BaseProcess,
        metadata: SongMetadata,
        headers: dict[str, str],
        settings: Settings,
    ) -> None:
        self.session = session
        self.metadata = metadata
        self.headers = headers
        self._process = process
        self._settings = settings
        self._first_chunk = b""
        self._tasks: list[asyncio.Task[None]] = []
        self.stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)

    def attach_watchers(self, is_disconnected: DisconnectCheck | None) -> None:
        """Start the stderr drain and, if given, the disconnect watcher."""
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self._drain_stderr()))
        if is_disconnected is not None:
            self._tasks.append(loop.create_task(self._watch_disconnect(is_disconnected)))

    async def wait_first_chunk(self) -> None:
        """Block until ffmpeg writes its first byte (TRANSCODING -> STREAMING).

        Raises:
            StreamSetupError: Timeout or transcoder exit before any output.
            StreamAborted: Client disconnected while waiting.
        """
        session = self.session
        timeout = self._settings.stream_start_timeout_s
        try:
            chunk = await asyncio.wait_for(
                self._process.stdout.read(self._settings.stream_chunk_size),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            session.fail(f"no output within {timeout:g}s")
            raise StreamSetupError(
                f"Stream failed to start within {timeout:g} seconds",
                public_message="Stream failed to start",
            ) from None

        if session.state is StreamState.ABORTED:
            raise StreamAborted(session.reason or "client disconnected")

        if not chunk:
            code = await self._process.wait()
            reason = f"transcoder exited with code {code} before producing output"
            session.fail(reason)
            self._log_stderr_tail()
            raise StreamSetupError(reason)

        session.record_chunk(len(chunk))
        session.transition(StreamState.STREAMING)
        self._first_chunk = chunk

    async def body(self) -> AsyncIterator[bytes]:
        """Relay transcoder stdout. Teardown runs on every exit path."""
        session = self.session
        session.mark_headers_sent()
        try:
            if self._first_chunk:
                chunk, self._first_chunk = self._first_chunk, b""
                yield chunk
            while True:
                chunk = await self._process.stdout.read(self._settings.stream_chunk_size)
                if not chunk:
                    break
                session.record_chunk(len(chunk))
                yield chunk

            if session.is_terminal:
                return
            code = await self._process.wait()
            if code == 0:
                session.complete()
                logger.info(
                    "Stream finished: %.1fMB in %.1fs",
                    session.bytes_streamed / 1024 / 1024, session.elapsed_s,
                )
            else:
                session.fail(StreamRuntimeError(f"transcoder exited with code {code} mid-stream"))
                self._log_stderr_tail()
        finally:
            # Reached via GeneratorExit/CancelledError when the client goes away
            if not session.is_terminal:
                session.abort("response closed before transcoder finished")
            self.close()

    def close(self) -> None:
        """Synchronous teardown: never awaits, so it is safe under cancellation."""
        if not self.session.is_terminal:
            self.session.abort("stream handle closed")
        self.session.release()
        for task in self._tasks:
            if not task.done():
                task.cancel()

    async def _watch_disconnect(self, is_disconnected: DisconnectCheck) -> None:
        interval = self._settings.disconnect_poll_interval_s
        while not self.session.is_terminal:
            if await is_disconnected():
                self.session.abort("client disconnected")
                return
            await asyncio.sleep(interval)

    async def _drain_stderr(self) -> None:
        """Consume ffmpeg stderr for diagnostics only.

        ffmpeg separates progress updates with carriage returns, so output is
        read in blocks and split on both line terminators.
        """
        pending = ""
        while True:
            try:
                block = await self._process.stderr.read(4096)
            except (OSError, ValueError) as e:
                logger.debug("stderr read stopped: %s", e)
                return
            if not block:
                return
            pending += block.decode("utf-8", errors="replace").replace("\r", "\n")
            *lines, pending = pending.split("\n")
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                self.stderr_tail.append(line)
                if "time=" in line or "size=" in line:
                    logger.debug("FFmpeg: %s", line)

    def _log_stderr_tail(self) -> None:
        if self.stderr_tail:
            logger.error("FFmpeg stderr tail:\n%s", "\n".join(self.stderr_tail))


class StreamPipeline:
    """Builds StreamHandles for /stream requests.

    Args:
        resolver: Shared resolver (metadata + source URL).
        launcher: Process launcher used for ffmpeg.
        settings: Application settings.
    """

    def __init__(
        self,
        resolver: Resolver,
        launcher: ProcessLauncher,
        settings: Settings,
    ) -> None:
        self._resolver = resolver
        self._launcher = launcher
        self._settings = settings

    def new_session(self, query: str) -> StreamSession:
        return StreamSession(
            query,
            kill_grace_s=self._settings.process_kill_grace_s,
            progress_log_bytes=self._settings.stream_progress_log_bytes,
        )

    async def open(
        self,
        query: str,
        is_disconnected: DisconnectCheck | None = None,
        session: StreamSession | None = None,
    ) -> StreamHandle:
        """Resolve, spawn the transcoder and wait for its first chunk.

        Raises:
            StreamSetupError: Resolution, spawn, or start-timeout failure.
            StreamAborted: Client disconnected before the first chunk.
        """
        session = session or self.new_session(query)
        session.transition(StreamState.RESOLVING)

        metadata, source_url = await self._resolve(session, query)
        headers = build_stream_headers(metadata)

        session.transition(StreamState.TRANSCODING)
        argv = transcode_command(source_url, self._settings)
        try:
            process = await self._launcher.spawn(argv)
        except OSError as e:
            session.fail(f"could not start {argv[0]}: {e}")
            raise StreamSetupError(f"could not start {argv[0]}: {e}") from e
        session.attach_process(process)

        handle = StreamHandle(session, process, metadata, headers, self._settings)
        try:
            handle.attach_watchers(is_disconnected)
            await handle.wait_first_chunk()
        except BaseException:
            handle.close()
            raise
        logger.info("Streaming %r (session %s)", query, session.id)
        return handle

    async def _resolve(
        self, session: StreamSession, query: str
    ) -> tuple[SongMetadata, str]:
        metadata_result, source_result = await asyncio.gather(
            self._resolver.resolve_metadata(query),
            self._resolver.resolve_source(query),
            return_exceptions=True,
        )

        if isinstance(source_result, BaseException):
            session.fail(f"source resolution failed: {source_result}")
            if isinstance(source_result, ResolutionError):
                raise StreamSetupError(str(source_result)) from source_result
            raise source_result

        if isinstance(metadata_result, ResolutionError):
            logger.error("Error fetching song info for stream: %s", metadata_result)
            metadata_result = SongMetadata.empty()
        elif isinstance(metadata_result, BaseException):
            session.fail(f"metadata resolution crashed: {metadata_result!r}")
            raise metadata_result

        return metadata_result, source_result
