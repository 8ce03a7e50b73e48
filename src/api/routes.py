# src/api/routes.py — v1
"""HTTP routes: metadata, stream, cache management and health."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from goofyy.api.context import AppServices, get_services
from goofyy.api.models import (
    CacheStatusResponse,
    HealthResponse,
    MessageResponse,
    ProcessMemory,
)
from goofyy.core.errors import (
    CacheError,
    ResolutionError,
    StreamAborted,
    StreamSetupError,
    ValidationError,
)
from goofyy.core.models import PrewarmResult, PrewarmSummary, SongMetadata
from goofyy.events.base_event_sink import METADATA_REQUESTED, STREAM_REQUESTED
from goofyy.logging.context import set_query_context
from goofyy.resolver.resolver import Resolver

logger = logging.getLogger(__name__)

router = APIRouter()

# nginx convention for "client closed request"
_CLIENT_CLOSED_REQUEST = 499


def require_query(q: str | None, message: str = "Missing query") -> str:
    """Reject absent or blank queries with a ValidationError (400)."""
    if q is None or not q.strip():
        raise ValidationError(message)
    return q


@router.get("/metadata", response_model=SongMetadata)
async def get_metadata(
    q: str | None = Query(default=None),
    services: AppServices = Depends(get_services),
):
    services.events.capture(METADATA_REQUESTED, {"query": q})
    query = require_query(q)
    set_query_context(query)
    try:
        return await services.resolver.resolve_metadata(query)
    except ResolutionError as e:
        logger.error("Error fetching metadata: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch metadata"})


@router.get("/stream")
async def stream(
    request: Request,
    q: str | None = Query(default=None),
    services: AppServices = Depends(get_services),
):
    services.events.capture(STREAM_REQUESTED, {"query": q})
    query = require_query(q, "Missing query parameter")
    set_query_context(query)
    try:
        handle = await services.pipeline.open(query, is_disconnected=request.is_disconnected)
    except StreamSetupError as e:
        logger.error("Stream setup error: %s", e)
        return JSONResponse(status_code=500, content={"error": e.public_message})
    except StreamAborted as e:
        logger.info("Request aborted by client: %s", e)
        return Response(status_code=_CLIENT_CLOSED_REQUEST)

    return StreamingResponse(handle.body(), headers=handle.headers)


@router.get("/cache/status", response_model=CacheStatusResponse)
async def cache_status(services: AppServices = Depends(get_services)):
    settings = services.settings
    try:
        stats = await services.cache.stats()
    except CacheError as e:
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Failed to get cache status",
                "error": str(e),
            },
        )
    return CacheStatusResponse.build(
        stats,
        max_entries=services.cache.max_entries,
        metadata_ttl_s=settings.metadata_cache_ttl_s,
        source_ttl_s=settings.source_cache_ttl_s,
    )


@router.post("/cache/prewarm", response_model=PrewarmSummary)
async def cache_prewarm(request: Request, services: AppServices = Depends(get_services)):
    queries = _parse_prewarm_body(await request.body())
    results = await asyncio.gather(
        *(_prewarm_one(services.resolver, query) for query in queries)
    )
    summary = PrewarmSummary.from_results(list(results))
    logger.info(summary.message)
    return summary


@router.delete("/cache/clear", response_model=MessageResponse)
async def cache_clear(services: AppServices = Depends(get_services)):
    try:
        await services.cache.clear()
    except CacheError as e:
        return JSONResponse(
            status_code=500,
            content={"message": "Failed to clear cache", "error": str(e)},
        )
    return MessageResponse(message="Cache cleared successfully")


@router.get("/health", response_model=HealthResponse)
async def health(services: AppServices = Depends(get_services)):
    proc = psutil.Process()
    mem = proc.memory_info()
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.time() - proc.create_time(), 3),
        memory=ProcessMemory(rss=mem.rss, vms=mem.vms),
        cache_backend=services.settings.cache_backend,
        redis=_redis_status(services),
    )


def _redis_status(services: AppServices) -> str:
    if services.settings.cache_backend != "redis":
        return "n/a"
    return "connected" if services.cache.is_connected else "disconnected"


def _parse_prewarm_body(raw: bytes) -> list[str]:
    try:
        body = json.loads(raw or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("queries must be an array") from None
    queries = body.get("queries") if isinstance(body, dict) else None
    if not isinstance(queries, list):
        raise ValidationError("queries must be an array")
    if not all(isinstance(q, str) for q in queries):
        raise ValidationError("queries must be an array of strings")
    return queries


async def _prewarm_one(resolver: Resolver, query: str) -> PrewarmResult:
    """Resolve metadata and source for one query; failures stay local."""
    metadata, source = await asyncio.gather(
        resolver.resolve_metadata(query),
        resolver.resolve_source(query),
        return_exceptions=True,
    )
    for outcome in (metadata, source):
        if isinstance(outcome, Exception):
            logger.warning("Pre-warm failed for %r: %s", query, outcome)
            return PrewarmResult(query=query, success=False, error=str(outcome))
        if isinstance(outcome, BaseException):
            raise outcome
    return PrewarmResult(
        query=query,
        success=True,
        metadata=metadata,
        has_stream_url=bool(source),
    )
