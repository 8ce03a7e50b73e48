# src/logging/logger.py — v1
"""Logger factory, JSON/text formatters and server log wiring.

Every record carries the request context (request_id, route, query) of the
task that emitted it. uvicorn's own loggers are routed through the same
handlers, so access lines and stream lifecycle lines interleave in one log.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from goofyy.logging.context import get_context

_APP_LOGGER = "goofyy"
# uvicorn is started with log_config=None; uvicorn.error and uvicorn.access
# propagate into this one
_SERVER_LOGGER = "uvicorn"
# Chatty at INFO (one line per analytics POST / client request)
_QUIET_LOGGERS = ("httpx", "httpcore")

_QUERY_PREVIEW = 60


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context keys are top-level fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(get_context().as_dict())
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """`2026-01-01 12:00:00 INFO     goofyy.stream.pipeline [rid] (/stream) — msg`"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        head = f"{_utc_now():%Y-%m-%d %H:%M:%S} {record.levelname:<8s} {record.name}"
        if ctx.request_id:
            head += f" [{ctx.request_id}]"
        if ctx.route:
            head += f" ({ctx.route})"
        line = f"{head} — {record.getMessage()}"
        if ctx.query and record.levelno >= logging.WARNING:
            line += f" q={ctx.query[:_QUERY_PREVIEW]!r}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the goofyy namespace."""
    return logging.getLogger(f"{_APP_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> logging.Logger:
    """Attach stderr (and optionally a rotating file) to the app and server loggers.

    stdout is left alone: `goofyy play` writes PCM there. Calling this again
    replaces the handlers instead of stacking them.

    Returns:
        The configured goofyy logger.
    """
    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from goofyy.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))
    for handler in handlers:
        handler.setFormatter(formatter)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    for name in (_APP_LOGGER, _SERVER_LOGGER):
        target = logging.getLogger(name)
        target.handlers = list(handlers)
        target.setLevel(numeric_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return logging.getLogger(_APP_LOGGER)
