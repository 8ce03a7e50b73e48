# tests/unit/stream/test_session.py — v1
"""Tests for stream/session.py — state machine and transcoder release."""

from __future__ import annotations

import logging
import signal

import pytest

from fakes import FakeProcess, ProcessScript
from goofyy.stream.session import StreamSession
from goofyy.stream.states import StreamState


class TestTransitions:
    def test_initial(self):
        session = StreamSession("q")
        assert session.state is StreamState.INIT
        assert session.bytes_streamed == 0
        assert session.stream_started is False
        assert session.headers_sent is False

    def test_forward(self):
        session = StreamSession("q")
        assert session.transition(StreamState.RESOLVING)
        assert session.transition(StreamState.TRANSCODING)
        assert session.state is StreamState.TRANSCODING

    def test_illegal_ignored(self):
        session = StreamSession("q")
        assert session.transition(StreamState.STREAMING) is False
        assert session.state is StreamState.INIT

    def test_terminal_sticky(self):
        session = StreamSession("q")
        session.fail("boom")
        assert session.abort() is False
        assert session.complete() is False
        assert session.state is StreamState.FAILED
        assert session.reason == "boom"

    def test_fail_with_error_keeps_it(self, caplog):
        session = StreamSession("q")
        error = RuntimeError("transcoder exited with code 1")
        with caplog.at_level(logging.ERROR, logger="goofyy.stream.session"):
            assert session.fail(error) is True
        assert session.error is error
        assert session.reason == "transcoder exited with code 1"
        assert "RuntimeError: transcoder exited with code 1" in caplog.text

    def test_fail_with_text_has_no_error(self):
        session = StreamSession("q")
        session.fail("boom")
        assert session.error is None
        assert session.reason == "boom"


class TestRelease:
    @pytest.mark.asyncio
    async def test_terminal_state_signals_process(self):
        session = StreamSession("q", kill_grace_s=0.05)
        proc = FakeProcess(ProcessScript(hang=True))
        session.transition(StreamState.RESOLVING)
        session.transition(StreamState.TRANSCODING)
        session.attach_process(proc)
        session.abort("client disconnected")
        assert proc.signals == [signal.SIGINT]
        assert await proc.wait() == -signal.SIGINT

    @pytest.mark.asyncio
    async def test_release_idempotent(self):
        session = StreamSession("q", kill_grace_s=0.05)
        proc = FakeProcess(ProcessScript(hang=True, ignore_signals=True))
        session.attach_process(proc)
        session.fail("x")
        session.release()
        session.release()
        assert proc.signals == [signal.SIGINT]
        proc.kill()

    @pytest.mark.asyncio
    async def test_attach_after_terminal_releases(self):
        session = StreamSession("q")
        session.abort()
        proc = FakeProcess(ProcessScript(hang=True))
        session.attach_process(proc)
        assert proc.signals == [signal.SIGINT]

    @pytest.mark.asyncio
    async def test_exited_process_not_signalled(self):
        session = StreamSession("q")
        proc = FakeProcess(ProcessScript())
        session.attach_process(proc)
        session.fail("x")
        assert proc.signals == []


class TestCounters:
    def test_record_chunk(self):
        session = StreamSession("q")
        session.record_chunk(10)
        session.record_chunk(5)
        assert session.bytes_streamed == 15
        assert session.stream_started is True

    def test_progress_logged_per_threshold(self, caplog):
        session = StreamSession("q", progress_log_bytes=100)
        with caplog.at_level(logging.INFO, logger="goofyy.stream.session"):
            session.record_chunk(60)
            session.record_chunk(60)
            session.record_chunk(30)
            session.record_chunk(250)
        progress = [r for r in caplog.records if "Stream progress" in r.getMessage()]
        assert len(progress) == 2

    def test_rate_non_negative(self):
        session = StreamSession("q")
        session.record_chunk(1024)
        assert session.rate_mb_s() >= 0
