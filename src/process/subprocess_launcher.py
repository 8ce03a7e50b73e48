# src/process/subprocess_launcher.py — v1
"""asyncio subprocess implementation of the process abstraction."""

from __future__ import annotations

import asyncio
import logging

from goofyy.process.base_process import BaseProcess, ByteReader, ProcessLauncher

logger = logging.getLogger(__name__)


class AsyncioProcess(BaseProcess):
    """Wraps asyncio.subprocess.Process spawned with piped stdout and stderr.

    Raises:
        RuntimeError: If either pipe is missing.
    """

    def __init__(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stdout is None or proc.stderr is None:
            raise RuntimeError(f"process {proc.pid} was spawned without stdout/stderr pipes")
        self._proc = proc
        self._stdout: ByteReader = proc.stdout
        self._stderr: ByteReader = proc.stderr

    @property
    def pid(self) -> int | None:
        return self._proc.pid

    @property
    def stdout(self) -> ByteReader:
        return self._stdout

    @property
    def stderr(self) -> ByteReader:
        return self._stderr

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode

    async def wait(self) -> int:
        return await self._proc.wait()

    def send_signal(self, sig: int) -> None:
        if self._proc.returncode is not None:
            return
        try:
            self._proc.send_signal(sig)
        except ProcessLookupError:
            pass

    def kill(self) -> None:
        if self._proc.returncode is not None:
            return
        try:
            self._proc.kill()
        except ProcessLookupError:
            pass


class SubprocessLauncher(ProcessLauncher):
    """Spawns real child processes with stdout/stderr piped and stdin closed."""

    async def spawn(self, argv: list[str]) -> BaseProcess:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.debug("Spawned %s (pid=%s)", argv[0], proc.pid)
        return AsyncioProcess(proc)
