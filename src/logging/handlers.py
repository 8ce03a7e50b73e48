# src/logging/handlers.py — v1
"""Size-based rotating file handler for the server log (LOG_FILE)."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

from goofyy.config.settings import ConfigurationError

_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)?$", re.IGNORECASE)
_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """'10MB' / '512kb' / '4096' -> bytes. Bare digits are bytes."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(match.group(1)) * _UNITS[unit]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Rotate at `rotation` bytes, keeping `retention` numbered backups.

    The file itself is opened on the first emitted record.

    Raises:
        ConfigurationError: If the log directory cannot be created.
    """
    target = Path(log_file).expanduser()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"LOG_FILE directory {target.parent} is not usable: {e}") from e
    return RotatingFileHandler(
        target,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
