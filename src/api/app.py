# src/api/app.py — v1
"""FastAPI application factory.

Usage:
    from goofyy.api.app import create_app
    app = create_app()

The cache connection, process launcher and event sink are created once per
process and injected into the resolver and stream pipeline; the lifespan
connects the cache on startup and closes everything on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from goofyy.api.context import AppServices, RequestContextMiddleware
from goofyy.api.routes import router
from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.cache.cache_factory import create_lookup_cache
from goofyy.config.settings import Settings, load_settings
from goofyy.core.errors import ValidationError
from goofyy.events.base_event_sink import BaseEventSink
from goofyy.events.sink_factory import create_event_sink
from goofyy.process.base_process import ProcessLauncher
from goofyy.process.subprocess_launcher import SubprocessLauncher
from goofyy.resolver.resolver import Resolver
from goofyy.stream.pipeline import StreamPipeline
from goofyy.version import __version__

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    cache: BaseLookupCache | None = None,
    launcher: ProcessLauncher | None = None,
    event_sink: BaseEventSink | None = None,
) -> FastAPI:
    """Build the HTTP app with its collaborators.

    Args:
        settings: Application settings. Loaded from the environment if None.
        cache: Lookup cache. Built from settings if None.
        launcher: Process launcher for yt-dlp/ffmpeg. Real subprocesses if None.
        event_sink: Analytics sink. Built from settings if None.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or load_settings()
    cache = cache or create_lookup_cache(settings)
    launcher = launcher or SubprocessLauncher()
    event_sink = event_sink or create_event_sink(settings)

    resolver = Resolver(cache, launcher, settings)
    services = AppServices(
        settings=settings,
        cache=cache,
        resolver=resolver,
        pipeline=StreamPipeline(resolver, launcher, settings),
        events=event_sink,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.cache.connect()
        logger.info("Music server ready on http://%s:%d", settings.host, settings.port)
        yield
        logger.info("Shutting down gracefully...")
        await services.events.close()
        await services.cache.close()
        logger.info("Server closed")

    app = FastAPI(title="goofyy", version=__version__, lifespan=lifespan)
    app.state.services = services
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app


async def _validation_error_handler(request, exc: Exception) -> JSONResponse:
    if isinstance(exc, ValidationError):
        message = str(exc)
    else:
        message = "Invalid request"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})
