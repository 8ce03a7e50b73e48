# src/core/errors.py — v1
"""Error taxonomy shared by the cache, resolver, stream pipeline and API layers.

Propagation:
  - CacheError never leaves the cache component, except from clear() and
    stats() whose callers report store failures explicitly.
  - ResolutionError propagates to the endpoint layer, which picks the status.
  - StreamSetupError happens before any header is sent (500 JSON).
  - StreamRuntimeError happens after headers are sent (response is ended).
"""

from __future__ import annotations


class GoofyyError(Exception):
    """Base class for all application errors."""


class CacheError(GoofyyError):
    """Cache backend unreachable or misbehaving."""


class ResolutionError(GoofyyError):
    """The search/extract tool could not resolve a query."""

    def __init__(
        self,
        query: str,
        reason: str,
        exit_code: int | None = None,
        stderr_tail: str = "",
    ) -> None:
        self.query = query
        self.reason = reason
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        msg = f"Failed to resolve {query!r}: {reason}"
        if exit_code is not None:
            msg += f" (exit code {exit_code})"
        super().__init__(msg)


class StreamSetupError(GoofyyError):
    """Stream could not be set up; no response header has been sent yet."""

    def __init__(self, message: str, public_message: str = "Failed to setup stream") -> None:
        self.public_message = public_message
        super().__init__(message)


class StreamRuntimeError(GoofyyError):
    """Stream failed after response headers were sent."""


class StreamAborted(GoofyyError):
    """Client disconnected before or during streaming."""


class ValidationError(GoofyyError):
    """Missing or malformed request input."""
