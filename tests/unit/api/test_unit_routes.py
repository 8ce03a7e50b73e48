# tests/unit/api/test_routes.py — v1
"""Tests for api/ — endpoints over a FastAPI TestClient with faked tools."""

from __future__ import annotations

import time
from typing import Any
from unittest.mock import AsyncMock

import psutil
import pytest
from fastapi.testclient import TestClient

from fakes import WAV_BYTES, FakeLauncher, ProcessScript, happy_tools
from goofyy.api.app import create_app
from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.cache.models import CacheStats
from goofyy.core.errors import CacheError, StreamAborted
from goofyy.events.base_event_sink import BaseEventSink


class RecordingSink(BaseEventSink):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any] | None]] = []

    def capture(self, event: str, properties: dict[str, Any] | None = None) -> None:
        self.events.append((event, properties))


class UnreachableCache(BaseLookupCache):
    """Behaves like a Redis store whose server is down."""

    @property
    def is_connected(self) -> bool:
        return False

    async def connect(self) -> None:
        return None

    async def ping(self) -> bool:
        return False

    async def close(self) -> None:
        return None

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    async def size(self) -> int:
        return 0

    async def clear(self) -> None:
        raise CacheError("Failed to clear cache: connection refused")

    async def stats(self) -> CacheStats:
        raise CacheError("Failed to get cache status: connection refused")


@pytest.fixture
def events() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def app(settings, memory_cache, launcher, events):
    return create_app(settings, cache=memory_cache, launcher=launcher, event_sink=events)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class TestMetadataRoute:
    def test_success(self, client):
        resp = client.get("/metadata", params={"q": "shape of you"})
        assert resp.status_code == 200
        assert resp.json() == {"title": "Shape of You", "duration": 263, "artist": "Ed Sheeran"}

    def test_integer_duration_not_widened(self, client):
        # Fresh resolution, then the cached copy
        for _ in range(2):
            resp = client.get("/metadata", params={"q": "a"})
            assert '"duration":263,' in resp.text
            assert isinstance(resp.json()["duration"], int)

    def test_success_when_ytdlp_stops_at_max_downloads(self, client, tools, launcher):
        tools.metadata = ProcessScript(stdout=tools.metadata.stdout, returncode=101)
        resp = client.get("/metadata", params={"q": "shape of you"})
        assert resp.status_code == 200
        assert resp.json()["title"] == "Shape of You"
        assert len(launcher.calls_for("-j")) == 1

    def test_missing_query(self, client):
        resp = client.get("/metadata")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing query"}

    def test_blank_query(self, client):
        assert client.get("/metadata", params={"q": "   "}).status_code == 400

    def test_tool_failure(self, client, tools):
        tools.metadata = ProcessScript(returncode=1, stderr=b"ERROR: nope")
        resp = client.get("/metadata", params={"q": "zzz"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch metadata"}

    def test_second_request_served_from_cache(self, client, launcher):
        client.get("/metadata", params={"q": "Hello"})
        client.get("/metadata", params={"q": " hello "})
        assert len(launcher.calls_for("-j")) == 1

    def test_event_captured(self, client, events):
        client.get("/metadata", params={"q": "hello"})
        assert events.events == [("metadata_requested", {"query": "hello"})]

    def test_request_id_header(self, client):
        resp = client.get("/metadata", params={"q": "hello"})
        assert len(resp.headers["x-request-id"]) == 12


class TestStreamRoute:
    def test_streams_wav(self, client):
        resp = client.get("/stream", params={"q": "shape of you"})
        assert resp.status_code == 200
        assert resp.content == WAV_BYTES
        assert resp.headers["content-type"] == "audio/wav"
        assert resp.headers["x-song-title"] == "Shape of You"
        assert resp.headers["x-song-duration"] == "263"
        assert resp.headers["x-song-artist"] == "Ed Sheeran"
        assert resp.headers["cache-control"] == "no-cache"
        assert "content-length" not in resp.headers

    def test_missing_query(self, client, launcher):
        resp = client.get("/stream")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing query parameter"}
        assert launcher.calls == []

    def test_source_failure(self, client, tools):
        tools.source = ProcessScript(returncode=1)
        resp = client.get("/stream", params={"q": "zzz"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to setup stream"}

    def test_start_timeout(self, settings, memory_cache, events):
        tools = happy_tools()
        tools.transcode = ProcessScript(hang=True)
        launcher = FakeLauncher(tools)
        fast = settings.model_copy(update={"stream_start_timeout_s": 0.05})
        app = create_app(fast, cache=memory_cache, launcher=launcher, event_sink=events)
        with TestClient(app) as client:
            resp = client.get("/stream", params={"q": "q"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Stream failed to start"}
        assert launcher.processes[-1].signals

    def test_metadata_failure_still_streams(self, client, tools):
        tools.metadata = ProcessScript(returncode=1)
        resp = client.get("/stream", params={"q": "q"})
        assert resp.status_code == 200
        assert resp.content == WAV_BYTES
        assert "x-song-title" not in resp.headers

    def test_sanitized_headers(self, client, tools):
        tools.metadata = ProcessScript(
            stdout=b'{"title": "foo\\"bar\\u0007", "duration": 0, "artist": "Caf\\u00e9"}'
        )
        resp = client.get("/stream", params={"q": "q"})
        assert resp.headers["x-song-title"] == "foobar"
        assert resp.headers["x-song-artist"] == "Caf"
        assert "x-song-duration" not in resp.headers

    def test_client_gone_during_setup(self, app, client):
        app.state.services.pipeline.open = AsyncMock(side_effect=StreamAborted("client disconnected"))
        resp = client.get("/stream", params={"q": "q"})
        assert resp.status_code == 499

    def test_event_captured(self, client, events):
        client.get("/stream", params={"q": "hello"})
        assert ("stream_requested", {"query": "hello"}) in events.events


class TestCacheRoutes:
    def test_status_counts_namespaces(self, client):
        client.get("/metadata", params={"q": "a"})
        client.get("/stream", params={"q": "a"})
        body = client.get("/cache/status").json()
        assert body["status"] == "connected"
        assert body["cache_stats"] == {"song_cache": 1, "stream_cache": 1, "total_cached": 2}
        assert body["cache_ttl"] == "300 seconds"
        assert body["stream_cache_ttl"] == "600 seconds"
        assert body["max_entries"] == 1000

    def test_clear(self, client):
        client.get("/metadata", params={"q": "a"})
        resp = client.delete("/cache/clear")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Cache cleared successfully"}
        assert client.get("/cache/status").json()["cache_stats"]["total_cached"] == 0

    def test_prewarm(self, client, memory_cache, settings):
        resp = client.post("/cache/prewarm", json={"queries": ["a", "b", "c"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Pre-warmed 3 queries, 0 failed"
        assert [r["query"] for r in body["results"]] == ["a", "b", "c"]
        assert all(r["success"] and r["has_stream_url"] for r in body["results"])
        assert client.get("/cache/status").json()["cache_stats"]["total_cached"] == 6

    def test_prewarm_partial_failure(self, settings, memory_cache, events):
        tools = happy_tools()

        def handler(argv: list[str]):
            if argv[-1] == "ytsearch1:bad-query-that-fails":
                return ProcessScript(returncode=1, stderr=b"ERROR: no results")
            return tools(argv)

        app = create_app(settings, cache=memory_cache, launcher=FakeLauncher(handler), event_sink=events)
        with TestClient(app) as client:
            queries = ["a", "bad-query-that-fails", "b"]
            body = client.post("/cache/prewarm", json={"queries": queries}).json()
        assert body["message"] == "Pre-warmed 2 queries, 1 failed"
        assert len(body["results"]) == 3
        bad = body["results"][1]
        assert bad["success"] is False
        assert bad["error"]

    def test_prewarm_empty(self, client):
        body = client.post("/cache/prewarm", json={"queries": []}).json()
        assert body["message"] == "Pre-warmed 0 queries, 0 failed"

    @pytest.mark.parametrize(
        "payload",
        [{"queries": "a"}, {}, ["a"], {"queries": [1, 2]}],
    )
    def test_prewarm_invalid_body(self, client, payload):
        resp = client.post("/cache/prewarm", json=payload)
        assert resp.status_code == 400
        assert "queries" in resp.json()["error"]

    def test_prewarm_not_json(self, client):
        resp = client.post(
            "/cache/prewarm", content=b"nope", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400


class TestHealthRoute:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["redis"] == "n/a"
        assert body["cache_backend"] == "memory"
        assert body["memory"]["rss"] > 0
        assert "timestamp" in body

    def test_uptime_is_process_uptime(self, client):
        expected = time.time() - psutil.Process().create_time()
        uptime = client.get("/health").json()["uptime"]
        assert 0 <= uptime <= expected + 1
        assert uptime >= expected - 5

    def test_redis_backend_connected(self, settings, memory_cache, launcher, events):
        redis_settings = settings.model_copy(update={"cache_backend": "redis"})
        app = create_app(redis_settings, cache=memory_cache, launcher=launcher, event_sink=events)
        with TestClient(app) as c:
            body = c.get("/health").json()
        assert body["cache_backend"] == "redis"
        assert body["redis"] == "connected"


class TestUnreachableCache:
    @pytest.fixture
    def client(self, settings, launcher, events):
        redis_settings = settings.model_copy(update={"cache_backend": "redis"})
        app = create_app(redis_settings, cache=UnreachableCache(), launcher=launcher, event_sink=events)
        with TestClient(app) as c:
            yield c

    def test_metadata_still_served(self, client, launcher):
        assert client.get("/metadata", params={"q": "a"}).status_code == 200
        assert client.get("/metadata", params={"q": "a"}).status_code == 200
        # Every request misses and runs the tool
        assert len(launcher.calls_for("-j")) == 2

    def test_stream_still_served(self, client):
        assert client.get("/stream", params={"q": "a"}).content == WAV_BYTES

    def test_status_error(self, client):
        resp = client.get("/cache/status")
        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "error"
        assert "connection refused" in body["error"]

    def test_clear_error(self, client):
        resp = client.delete("/cache/clear")
        assert resp.status_code == 500
        assert resp.json()["message"] == "Failed to clear cache"

    def test_health_reports_disconnected(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["redis"] == "disconnected"
