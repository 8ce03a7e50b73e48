# src/main.py — v1
"""CLI entry point — serve, info, play commands.

Usage:
    goofyy serve [--host H] [--port P]
    goofyy info <query>
    goofyy play <query> | aplay -f cd
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from goofyy.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from goofyy.config.settings import load_settings
    from goofyy.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="goofyy",
        description=f"goofyy v{__version__} — terminal music player",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the streaming server")
    p_serve.add_argument("--host", default=None, help="Bind address (default: HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: PORT)")
    p_serve.set_defaults(func=_cmd_serve)

    # --- info ---
    p_info = subparsers.add_parser("info", help="Print metadata for a song")
    p_info.add_argument("query", help='Song search, e.g. "bohemian rhapsody queen"')
    p_info.add_argument("--server", default=None, help="Server URL (default: SERVER_URL)")
    p_info.set_defaults(func=_cmd_info)

    # --- play ---
    p_play = subparsers.add_parser(
        "play", help="Stream a song as 16-bit stereo 44.1 kHz PCM/WAV to stdout",
    )
    p_play.add_argument("query", help='Song search, e.g. "shape of you"')
    p_play.add_argument("--server", default=None, help="Server URL (default: SERVER_URL)")
    p_play.set_defaults(func=_cmd_play)

    return parser


def _cmd_serve(args: argparse.Namespace, settings) -> int:
    """Run uvicorn with the long keep-alive the stream route needs."""
    import uvicorn

    from goofyy.api.app import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_keep_alive=settings.keep_alive_timeout_s,
        log_config=None,
    )
    return 0


def _cmd_info(args: argparse.Namespace, settings) -> int:
    from goofyy.client.player import MusicPlayerClient

    async def run() -> int:
        client = MusicPlayerClient(args.server or settings.server_url)
        try:
            song = await client.fetch_metadata(args.query)
        finally:
            await client.aclose()
        print(f"Title:    {song.title}")
        print(f"Artist:   {song.artist or '-'}")
        print(f"Duration: {song.duration}")
        print(f"Stream:   {song.url}")
        return 0

    return asyncio.run(run())


def _cmd_play(args: argparse.Namespace, settings) -> int:
    from goofyy.client.player import MusicPlayerClient, SongInfo
    from goofyy.client.progress import render_progress

    if sys.stdout.isatty():
        logger.error("Refusing to write audio to a terminal; pipe into a player, e.g. | aplay -f cd")
        return 1

    class _StdoutSink:
        def write(self, data: bytes) -> None:
            sys.stdout.buffer.write(data)

        def close(self) -> None:
            sys.stdout.buffer.flush()

    def show(elapsed: float, song: SongInfo) -> None:
        bar = render_progress(elapsed, song.duration_seconds)
        sys.stderr.write(f"\r{song.title[:40]}  {bar}")
        sys.stderr.flush()

    async def run() -> int:
        client = MusicPlayerClient(args.server or settings.server_url)
        try:
            await client.play(args.query, _StdoutSink(), on_progress=show)
        finally:
            await client.aclose()
            sys.stderr.write("\n")
        return 0

    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
