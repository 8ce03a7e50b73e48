# src/resolver/commands.py — v1
"""argv builders for the external search/extract and transcode tools."""

from __future__ import annotations

from goofyy.config.settings import Settings

# Single best search hit, no playlist expansion, no certificate checks
_COMMON_YTDLP_FLAGS = [
    "--no-playlist",
    "--no-warnings",
    "--no-check-certificates",
    "--max-downloads", "1",
    "--playlist-items", "1",
]

# --max-downloads makes yt-dlp exit 101 after printing a complete result
YTDLP_MAX_DOWNLOADS_EXIT = 101
YTDLP_OK_EXIT_CODES = (0, YTDLP_MAX_DOWNLOADS_EXIT)

PCM_SAMPLE_RATE = 44100
PCM_CHANNELS = 2
PCM_CODEC = "pcm_s16le"


def search_target(query: str) -> str:
    return f"ytsearch1:{query}"


def metadata_command(query: str, settings: Settings) -> list[str]:
    """yt-dlp argv printing one JSON info document for the best hit."""
    return [
        settings.ytdlp_binary,
        "-j",
        "--skip-download",
        *_COMMON_YTDLP_FLAGS,
        "--extractor-args", settings.ytdlp_extractor_args,
        search_target(query),
    ]


def source_command(query: str, settings: Settings) -> list[str]:
    """yt-dlp argv printing the direct media URL for the best hit."""
    return [
        settings.ytdlp_binary,
        "--get-url",
        "--format", settings.ytdlp_source_format,
        *_COMMON_YTDLP_FLAGS,
        "--extractor-args", settings.ytdlp_extractor_args,
        search_target(query),
    ]


def transcode_command(source_url: str, settings: Settings) -> list[str]:
    """ffmpeg argv decoding source_url to 16-bit stereo 44.1 kHz WAV on stdout."""
    return [
        settings.ffmpeg_binary,
        "-hide_banner",
        "-i", source_url,
        "-f", "wav",
        "-acodec", PCM_CODEC,
        "-ar", str(PCM_SAMPLE_RATE),
        "-ac", str(PCM_CHANNELS),
        "-bufsize", "8192",
        "-",
    ]
