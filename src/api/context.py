# src/api/context.py — v1
"""Request-scoped services and the request context ASGI middleware."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request

from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.config.settings import Settings
from goofyy.events.base_event_sink import BaseEventSink
from goofyy.logging.context import clear_context, new_request_id, set_request_context
from goofyy.resolver.resolver import Resolver
from goofyy.stream.pipeline import StreamPipeline


@dataclass
class AppServices:
    """Long-lived collaborators built once at startup and shared by requests."""

    settings: Settings
    cache: BaseLookupCache
    resolver: Resolver
    pipeline: StreamPipeline
    events: BaseEventSink


def get_services(request: Request) -> AppServices:
    return request.app.state.services


class RequestContextMiddleware:
    """Tags each HTTP request with a request id for logs and the X-Request-ID header.

    Plain ASGI middleware: it leaves streaming bodies and disconnect messages
    untouched.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = new_request_id()
        set_request_context(request_id, scope.get("path", ""))

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            clear_context()
