# src/stream/headers.py — v1
"""Response headers for the audio stream."""

from __future__ import annotations

import re
from typing import Any

from goofyy.core.models import SongMetadata

# Anything outside printable ASCII is not safe in a header value
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E]+")

STREAM_HEADERS: dict[str, str] = {
    "Content-Type": "audio/wav",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "Keep-Alive": "timeout=300, max=1000",
}


def sanitize_header_value(value: Any) -> str:
    """Collapse non-printable runs to a space, drop double quotes, trim."""
    if value is None:
        return ""
    text = _NON_PRINTABLE_RE.sub(" ", str(value))
    return text.replace('"', "").strip()


def _format_duration(duration: int | float) -> str:
    if not duration:
        return ""
    if float(duration).is_integer():
        return str(int(duration))
    return str(duration)


def build_stream_headers(metadata: SongMetadata) -> dict[str, str]:
    """X-Song-* metadata headers (omitted when empty) plus streaming headers.

    No Content-Length is set, so the server uses chunked transfer encoding.
    """
    headers: dict[str, str] = {}
    song_fields = {
        "X-Song-Title": metadata.title,
        "X-Song-Duration": _format_duration(metadata.duration),
        "X-Song-Artist": metadata.artist,
    }
    for name, raw in song_fields.items():
        value = sanitize_header_value(raw)
        if value:
            headers[name] = value
    headers.update(STREAM_HEADERS)
    return headers
