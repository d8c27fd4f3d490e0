"""
=============================================================================
KUBIK-HTTP CLI ENTRY POINT
=============================================================================

Runs an App with the config, log and http kubiks:

    # localhost:8080, routes from ./routes
    python -m kubikhttp --volume routes

    # all interfaces, plus a second listener
    python -m kubikhttp --port 8080 --bind 0 --server 127.0.0.1:9090

    # environment instead of flags
    HTTP_PORT=3000 HTTP_LOG_LEVEL=DEBUG python -m kubikhttp

Serves until SIGINT or SIGTERM, then stops every listener. A boot
failure (bad config, failed bind, broken route module) exits with 1.
=============================================================================
"""

from typing import Any, Dict, List, Optional
import argparse
import asyncio
import logging
import os
import signal
import sys

from . import __version__
from .component import HTTP
from .errors import KubikHTTPError
from .kubik import App, ConfigComponent, LogComponent


logger = logging.getLogger("kubikhttp")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kubikhttp",
        description="Run the kubik HTTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m kubikhttp --volume routes              # Load ./routes
  python -m kubikhttp --port 3000 --bind 0         # All interfaces
  python -m kubikhttp --server 127.0.0.1:9090      # Extra listener
  python -m kubikhttp --access-log -l DEBUG        # Verbose
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # LISTENERS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        default=os.getenv("HTTP_PORT", "8080"),
        help="Primary port (default: $HTTP_PORT or 8080, 0 picks a free port)",
    )
    parser.add_argument(
        "--bind", "-b",
        default=os.getenv("HTTP_BIND", "localhost"),
        help="Bind address for the primary port; 0 means all interfaces",
    )
    parser.add_argument(
        "--server",
        action="append",
        default=[],
        metavar="HOST:PORT",
        help="Additional listener, repeatable",
    )

    # ─────────────────────────────────────────────────────────────────────
    # ROUTES AND LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--volume", "-V",
        action="append",
        default=[],
        help="Directory of route modules, repeatable",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: $HTTP_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--access-log",
        action="store_true",
        help="Log one line per request",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"kubik-http {__version__}",
    )
    return parser


def parse_server(value: str) -> Dict[str, Any]:
    """
    "HOST:PORT" or "PORT" -> server entry.

        parse_server("127.0.0.1:9090")  -> {"bind": "127.0.0.1", "port": "9090"}
        parse_server("9090")            -> {"bind": None, "port": "9090"}
    """
    host, _, port = value.rpartition(":")
    return {"bind": host or None, "port": port}


def http_section(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate CLI arguments into an http config section."""
    return {
        "port": args.port,
        "bind": args.bind,
        "servers": [parse_server(value) for value in args.server],
        "access_log": args.access_log,
    }


async def serve(app: App, stop_event: Optional[asyncio.Event] = None) -> None:
    """Bring the app up, wait for a stop signal, bring it down."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: List[signal.Signals] = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
            installed.append(signum)
        except (NotImplementedError, RuntimeError):
            pass  # Windows, or not in the main thread

    try:
        await app.up()
        await stop_event.wait()
        logger.info("Shutting down")
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
        await app.down()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log = LogComponent(level=args.log_level)
    log.setup()

    app = App([
        ConfigComponent({"http": http_section(args)}),
        log,
        HTTP(args.volume),
    ])

    try:
        asyncio.run(serve(app))
    except (KubikHTTPError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
