# src/logging/context.py — v1
"""Contextual logging support — attach request_id, route and query to log records.

Context variables are task-local under asyncio, so concurrent requests never
see each other's values.
"""

from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_route: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "route", default=None
)
_query: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "query", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    route: str | None = None
    query: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        route=_route.get(),
        query=_query.get(),
    )


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def set_request_context(request_id: str, route: str) -> None:
    """Set request-level context (called once per HTTP request)."""
    _request_id.set(request_id)
    _route.set(route)


def set_query_context(query: str | None) -> None:
    _query.set(query)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _route.set(None)
    _query.set(None)
