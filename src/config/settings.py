# src/config/settings.py — v1
"""Typed configuration loaded from .env and the process environment via pydantic-settings.

Single source of truth for all deployment-specific settings. Environment
variable names are the upper-cased field names (REDIS_URL, POSTHOG_API_KEY, ...).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Server ===
    host: str = "0.0.0.0"
    port: int = 3000
    keep_alive_timeout_s: int = 300

    # === Cache ===
    cache_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379"
    redis_socket_timeout_s: float = 2.0
    metadata_cache_ttl_s: int = 5 * 60
    source_cache_ttl_s: int = 10 * 60
    cache_max_entries: int = 1000

    # === External tools ===
    ytdlp_binary: str = "yt-dlp"
    ytdlp_extractor_args: str = "youtube:player_client=android"
    ytdlp_source_format: str = "bestaudio[ext=m4a]/bestaudio/best[height<=720]"
    ffmpeg_binary: str = "ffmpeg"
    # 0 disables the cap
    resolver_max_output_bytes: int = 16 * 1024 * 1024

    # === Stream pipeline ===
    stream_start_timeout_s: float = 10.0
    stream_chunk_size: int = 64 * 1024
    stream_progress_log_bytes: int = 10 * 1024 * 1024
    process_kill_grace_s: float = 5.0
    disconnect_poll_interval_s: float = 0.5

    # === Analytics ===
    posthog_api_key: str = ""
    posthog_host: str = "https://us.i.posthog.com"
    analytics_distinct_id: str = "goofyy-server"
    analytics_timeout_s: float = 3.0

    # === Client ===
    server_url: str = "http://localhost:3000"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator(
        "metadata_cache_ttl_s",
        "source_cache_ttl_s",
        "stream_start_timeout_s",
        "process_kill_grace_s",
        "disconnect_poll_interval_s",
        "stream_chunk_size",
    )
    @classmethod
    def validate_positive(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("resolver_max_output_bytes", "cache_max_entries")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.redis_url.strip():
            errors.append("REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.port <= 0 or self.port > 65535:
            errors.append("PORT must be within 1..65535")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def analytics_enabled(self) -> bool:
        return bool(self.posthog_api_key.strip())


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
