# src/resolver/resolver.py — v1
"""Query resolution: query -> SongMetadata and query -> source locator.

Both operations follow the same read-through pattern:
  1. Normalize the query into a namespaced cache key
  2. Return the cached value on hit
  3. On miss, run yt-dlp as a subprocess and collect its stdout
  4. Parse, write through to the cache (best-effort), return

Concurrent identical misses are not deduplicated: each spawns its own
subprocess.
"""

from __future__ import annotations

import json
import logging
import time

from pydantic import ValidationError as PydanticValidationError

from goofyy.cache.base_cache_store import BaseLookupCache
from goofyy.cache.keys import metadata_key, source_key
from goofyy.config.settings import Settings
from goofyy.core.errors import ResolutionError
from goofyy.core.models import SongMetadata
from goofyy.process.base_process import ProcessLauncher
from goofyy.process.lifecycle import OutputLimitExceeded, collect_output, terminate_process
from goofyy.resolver.commands import YTDLP_OK_EXIT_CODES, metadata_command, source_command

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 500


def parse_metadata_output(query: str, stdout: bytes) -> SongMetadata:
    """Parse yt-dlp -j output (one JSON object) into SongMetadata."""
    try:
        info = json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise ResolutionError(query, f"unparsable metadata output: {e.msg}") from e
    if not isinstance(info, dict):
        raise ResolutionError(query, "metadata output is not a JSON object")
    return SongMetadata.from_info(info)


def parse_source_output(query: str, stdout: bytes) -> str:
    """Return the first non-empty line of yt-dlp --get-url output."""
    for line in stdout.decode("utf-8", errors="replace").splitlines():
        url = line.strip()
        if url:
            return url
    raise ResolutionError(query, "no source URL in output")


class Resolver:
    """Resolves queries through the lookup cache and yt-dlp.

    Args:
        cache: Shared lookup cache.
        launcher: Process launcher used to run yt-dlp.
        settings: Application settings (TTLs, binary, output cap).
    """

    def __init__(
        self,
        cache: BaseLookupCache,
        launcher: ProcessLauncher,
        settings: Settings,
    ) -> None:
        self._cache = cache
        self._launcher = launcher
        self._settings = settings

    async def resolve_metadata(self, query: str) -> SongMetadata:
        """Resolve song metadata for a query.

        Raises:
            ResolutionError: If yt-dlp fails or its output cannot be parsed.
        """
        key = metadata_key(query)
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                metadata = SongMetadata.model_validate_json(cached)
            except PydanticValidationError as e:
                logger.warning("Discarding corrupt cache entry %s: %s", key, e)
            else:
                logger.info("Cache hit for %r", query)
                return metadata

        stdout = await self._run(query, metadata_command(query, self._settings))
        metadata = parse_metadata_output(query, stdout)

        await self._cache.set(
            key, metadata.model_dump_json(), self._settings.metadata_cache_ttl_s
        )
        logger.debug("Cached metadata for %r", query)
        return metadata

    async def resolve_source(self, query: str) -> str:
        """Resolve a transcoder-readable source URL for a query.

        Raises:
            ResolutionError: If yt-dlp fails or prints no URL.
        """
        key = source_key(query)
        cached = await self._cache.get(key)
        if cached:
            logger.info("Stream cache hit for %r", query)
            return cached

        stdout = await self._run(query, source_command(query, self._settings))
        url = parse_source_output(query, stdout)

        await self._cache.set(key, url, self._settings.source_cache_ttl_s)
        logger.debug("Cached stream URL for %r", query)
        return url

    async def _run(self, query: str, argv: list[str]) -> bytes:
        """Run yt-dlp to completion and return stdout.

        The child is terminated on every path that leaves it running.
        """
        t0 = time.monotonic()
        try:
            process = await self._launcher.spawn(argv)
        except OSError as e:
            raise ResolutionError(query, f"could not start {argv[0]}: {e}") from e

        try:
            stdout, stderr, code = await collect_output(
                process, limit=self._settings.resolver_max_output_bytes
            )
        except OutputLimitExceeded as e:
            raise ResolutionError(query, str(e)) from e
        finally:
            terminate_process(process, grace_s=self._settings.process_kill_grace_s)

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.info("%s resolved %r in %dms (exit %d)", argv[0], query, elapsed_ms, code)

        if code not in YTDLP_OK_EXIT_CODES:
            raise ResolutionError(
                query,
                "search tool exited abnormally",
                exit_code=code,
                stderr_tail=_tail(stderr),
            )
        return stdout


def _tail(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace").strip()
    return text[-_STDERR_TAIL_CHARS:]
