# src/process/lifecycle.py — v1
"""Process output collection and guaranteed termination."""

from __future__ import annotations

import asyncio
import logging
import signal

from goofyy.process.base_process import BaseProcess, ByteReader

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024

# Escalation tasks must stay referenced until they finish
_reapers: set[asyncio.Task[None]] = set()


class OutputLimitExceeded(Exception):
    """Process wrote more than the allowed number of bytes to stdout."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"output exceeded {limit} bytes")


async def _read_all(reader: ByteReader, limit: int = 0) -> bytes:
    buf = bytearray()
    while True:
        chunk = await reader.read(_READ_CHUNK)
        if not chunk:
            return bytes(buf)
        buf.extend(chunk)
        if limit and len(buf) > limit:
            raise OutputLimitExceeded(limit)


async def collect_output(process: BaseProcess, limit: int = 0) -> tuple[bytes, bytes, int]:
    """Read stdout and stderr to EOF concurrently, then wait for exit.

    Both pipes are drained together so a chatty stderr cannot block the child.

    Args:
        process: Running process.
        limit: Max stdout bytes (0 = unbounded).

    Returns:
        (stdout, stderr, exit_code)

    Raises:
        OutputLimitExceeded: If stdout grows past limit. The caller owns
            terminating the process.
    """
    stdout_task = asyncio.ensure_future(_read_all(process.stdout, limit))
    stderr_task = asyncio.ensure_future(_read_all(process.stderr))
    try:
        out = await stdout_task
        err = await stderr_task
    finally:
        for task in (stdout_task, stderr_task):
            if not task.done():
                task.cancel()
    code = await process.wait()
    return out, err, code


def terminate_process(
    process: BaseProcess | None,
    sig: int = signal.SIGINT,
    grace_s: float = 5.0,
) -> bool:
    """Send a termination signal and escalate to SIGKILL after grace_s.

    Never blocks: escalation runs as a background task. Safe to call more
    than once and on processes that already exited.

    Returns:
        True if a signal was sent.
    """
    if process is None or not process.running:
        return False
    logger.debug("Sending signal %s to pid=%s", sig, process.pid)
    process.send_signal(sig)
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No loop to escalate from; the signal alone has to do
        return True
    task = loop.create_task(_escalate(process, grace_s))
    _reapers.add(task)
    task.add_done_callback(_reapers.discard)
    return True


async def _escalate(process: BaseProcess, grace_s: float) -> None:
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_s)
    except asyncio.TimeoutError:
        logger.warning("pid=%s ignored termination signal, killing", process.pid)
        process.kill()
        await process.wait()
