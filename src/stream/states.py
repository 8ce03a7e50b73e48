# src/stream/states.py — v1
"""Stream session states and the transition table.

INIT -> RESOLVING -> TRANSCODING -> STREAMING -> COMPLETED
Any non-terminal state may also move to FAILED or ABORTED.
Terminal states are sticky.
"""

from __future__ import annotations

from enum import Enum


class StreamState(str, Enum):
    INIT = "init"
    RESOLVING = "resolving"
    TRANSCODING = "transcoding"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {StreamState.COMPLETED, StreamState.FAILED, StreamState.ABORTED}
)

_FORWARD: dict[StreamState, StreamState] = {
    StreamState.INIT: StreamState.RESOLVING,
    StreamState.RESOLVING: StreamState.TRANSCODING,
    StreamState.TRANSCODING: StreamState.STREAMING,
    StreamState.STREAMING: StreamState.COMPLETED,
}


def can_transition(src: StreamState, dst: StreamState) -> bool:
    """Whether src -> dst is a legal session transition."""
    if src.is_terminal:
        return False
    if dst in (StreamState.FAILED, StreamState.ABORTED):
        return True
    return _FORWARD.get(src) is dst
