# src/stream/session.py — v1
"""Per-request stream session: state machine plus transcoder ownership.

A session is created when a /stream request arrives and is discarded when the
response ends. It owns the transcoder handle: entering any terminal state
terminates the process, so every exit path out of the state machine releases
it.
"""

from __future__ import annotations

import logging
import time
import uuid

from goofyy.process.base_process import BaseProcess
from goofyy.process.lifecycle import terminate_process
from goofyy.stream.states import StreamState, can_transition

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class StreamSession:
    """State, counters and process handle for one streaming request.

    Args:
        query: Raw query string from the request.
        kill_grace_s: Seconds between the termination signal and SIGKILL.
        progress_log_bytes: Log a progress line every time this many bytes pass.
    """

    def __init__(
        self,
        query: str,
        kill_grace_s: float = 5.0,
        progress_log_bytes: int = 10 * _MB,
    ) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.query = query
        self.state = StreamState.INIT
        self.process: BaseProcess | None = None
        self.bytes_streamed = 0
        self.started_at = time.monotonic()
        self.stream_started = False
        self.headers_sent = False
        self.reason: str | None = None
        self.error: Exception | None = None
        self._kill_grace_s = kill_grace_s
        self._progress_log_bytes = progress_log_bytes
        self._next_progress = progress_log_bytes
        self._signalled = False

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at

    def transition(self, dst: StreamState, reason: str | None = None) -> bool:
        """Move to dst if the transition table allows it.

        Returns:
            False (and leaves state untouched) for illegal transitions,
            including any attempt to leave a terminal state.
        """
        src = self.state
        if not can_transition(src, dst):
            logger.debug("Session %s: ignored %s -> %s", self.id, src.value, dst.value)
            return False
        self.state = dst
        if reason is not None:
            self.reason = reason
        logger.debug("Session %s: %s -> %s", self.id, src.value, dst.value)
        if dst.is_terminal:
            self.release()
        return True

    def attach_process(self, process: BaseProcess) -> None:
        self.process = process
        # A session that ended while the spawn was in flight must not keep it
        if self.is_terminal:
            self.release()

    def mark_headers_sent(self) -> None:
        self.headers_sent = True

    def record_chunk(self, size: int) -> None:
        """Count streamed bytes; the first byte marks the stream as started."""
        self.bytes_streamed += size
        self.stream_started = True
        if self._progress_log_bytes and self.bytes_streamed >= self._next_progress:
            logger.info(
                "Stream progress: %.1fMB at %.2fMB/s",
                self.bytes_streamed / _MB, self.rate_mb_s(),
            )
            while self._next_progress <= self.bytes_streamed:
                self._next_progress += self._progress_log_bytes

    def rate_mb_s(self) -> float:
        elapsed = self.elapsed_s
        if elapsed <= 0:
            return 0.0
        return self.bytes_streamed / _MB / elapsed

    def complete(self) -> bool:
        return self.transition(StreamState.COMPLETED, "transcoder finished")

    def fail(self, reason: str | Exception) -> bool:
        """Move to FAILED. An exception reason is kept on `error`."""
        if not self.transition(StreamState.FAILED, str(reason)):
            return False
        if isinstance(reason, Exception):
            self.error = reason
            logger.error("Stream %s failed: %s: %s", self.id, type(reason).__name__, reason)
        else:
            logger.error("Stream %s failed: %s", self.id, reason)
        return True

    def abort(self, reason: str = "client disconnected") -> bool:
        if self.transition(StreamState.ABORTED, reason):
            logger.info("Stream %s aborted: %s", self.id, reason)
            return True
        return False

    def release(self) -> None:
        """Signal the transcoder if it is still running. Idempotent."""
        process = self.process
        if process is None or self._signalled or not process.running:
            return
        self._signalled = True
        logger.info("Terminating transcoder pid=%s (%s)", process.pid, self.state.value)
        terminate_process(process, grace_s=self._kill_grace_s)
