# tests/unit/client/test_progress.py — v1
"""Tests for client/progress.py — durations, progress bar and playback clock."""

from __future__ import annotations

import pytest

from goofyy.client.progress import PlaybackClock, format_duration, parse_duration, render_progress


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0:00"), (5, "0:05"), (263, "4:23"), (3725, "62:05"), (-3, "0:00"), (59.9, "0:59")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestParseDuration:
    def test_minutes_seconds(self):
        assert parse_duration("4:23") == 263

    def test_hours(self):
        assert parse_duration("1:02:05") == 3725

    def test_number_passthrough(self):
        assert parse_duration(12.5) == 12.5

    @pytest.mark.parametrize("value", ["abc", "1:xx", "", "1:2:3:4"])
    def test_invalid_is_zero(self, value):
        assert parse_duration(value) == 0


class TestRenderProgress:
    def test_half(self):
        assert render_progress(50, 100, width=10) == "0:50 █████░░░░░ 1:40"

    def test_clamped_past_end(self):
        assert render_progress(500, 100, width=4) == "8:20 ████ 1:40"

    def test_unknown_total(self):
        assert render_progress(30, 0, width=4) == "0:30 ░░░░ 0:00"


class TestPlaybackClock:
    def test_not_started(self):
        assert PlaybackClock(FakeClock()).elapsed == 0

    def test_elapsed(self):
        clock = FakeClock()
        pc = PlaybackClock(clock)
        pc.start()
        clock.now = 12
        assert pc.elapsed == 12

    def test_pause_freezes_and_resume_continues(self):
        clock = FakeClock()
        pc = PlaybackClock(clock)
        pc.start()
        clock.now = 10
        pc.pause()
        assert pc.paused
        clock.now = 100
        assert pc.elapsed == 10
        pc.resume()
        clock.now = 105
        assert pc.elapsed == 15
        assert not pc.paused

    def test_double_pause_keeps_first(self):
        clock = FakeClock()
        pc = PlaybackClock(clock)
        pc.start()
        clock.now = 3
        pc.pause()
        clock.now = 8
        pc.pause()
        assert pc.elapsed == 3

    def test_pause_before_start_ignored(self):
        pc = PlaybackClock(FakeClock())
        pc.pause()
        assert not pc.paused
