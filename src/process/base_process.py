# src/process/base_process.py — v1
"""Abstract process handle and launcher.

External tools (yt-dlp, ffmpeg) are black-box binaries driven through argv
lists. Components depend on these interfaces only, so tests can inject fake
processes instead of spawning real ones.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class ByteReader(Protocol):
    """Subset of asyncio.StreamReader used for process output."""

    async def read(self, n: int = -1) -> bytes: ...

    async def readline(self) -> bytes: ...


class BaseProcess(ABC):
    """Running child process with piped stdout/stderr."""

    @property
    @abstractmethod
    def pid(self) -> int | None:
        """OS process id (None for fakes)."""

    @property
    @abstractmethod
    def stdout(self) -> ByteReader:
        """Standard output stream."""

    @property
    @abstractmethod
    def stderr(self) -> ByteReader:
        """Standard error stream."""

    @property
    @abstractmethod
    def returncode(self) -> int | None:
        """Exit code, or None while running."""

    @abstractmethod
    async def wait(self) -> int:
        """Wait for exit and return the exit code."""

    @abstractmethod
    def send_signal(self, sig: int) -> None:
        """Deliver a signal; no-op if the process already exited."""

    @abstractmethod
    def kill(self) -> None:
        """Force-kill; no-op if the process already exited."""

    @property
    def running(self) -> bool:
        return self.returncode is None


class ProcessLauncher(ABC):
    """Spawns external tools."""

    @abstractmethod
    async def spawn(self, argv: list[str]) -> BaseProcess:
        """Start argv[0] with the remaining arguments.

        Raises:
            OSError: If the executable cannot be started.
        """
