"""
=============================================================================
POCKETSERVE CLI ENTRY POINT
=============================================================================

Share a folder with every device on the same WiFi.

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on port 8080
    python -m pocketserve

    # Serve a specific folder on another port
    python -m pocketserve --root ~/Share --port 3000

    # Machine-readable access log
    python -m pocketserve --log-format json

Environment variables (POCKETSERVE_PORT, POCKETSERVE_ROOT, ...) are read
first; command-line flags override them.

=============================================================================
LIFECYCLE
=============================================================================

This is the command-line stand-in for a host app: it drives the server
only through pocketserve.control, exactly like an embedding would.

    1. Build ServerConfig (env, then flags) and set up logging
    2. control.start()              → exit 1 if it fails
    3. Print the LAN URL            → http://192.168.1.23:8080
    4. Wait for Ctrl+C / SIGTERM    (or for the server to die)
    5. control.stop()

=============================================================================
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from . import __version__, control
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .exceptions import AddressNotFoundError, ConfigError
from .logging_setup import setup_logging
from .network import get_wifi_ip_address


logger = logging.getLogger(__name__)

# How often the main thread checks that the server is still alive
WATCH_INTERVAL = 0.5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocketserve",
        description="Serve a folder over HTTP to devices on the local network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pocketserve                          # Serve . on port 8080
  pocketserve --root ~/Share -p 3000   # Serve ~/Share on port 3000
  pocketserve --timeout none           # Never time out slow clients
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve (default: current directory)"
    )

    parser.add_argument(
        "--no-strict",
        action="store_true",
        help="Only reject '..' in paths; allow symlinks that leave the root"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads (default: 10)"
    )

    parser.add_argument(
        "--timeout",
        default=None,
        help="Per-connection socket timeout in seconds, 'none' to disable (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"pocketserve {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Environment first, then any flag that was actually given.

    Raises:
        ConfigError: Bad environment value or an unparseable --timeout.
    """
    overrides = {}
    if args.port is not None:
        overrides["port"] = args.port
    if args.root is not None:
        overrides["document_root"] = args.root
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    if args.timeout is not None:
        overrides["timeout"] = _parse_timeout_flag(args.timeout)
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format
    if args.no_strict:
        overrides["strict_containment"] = False

    return ServerConfig.from_env(**overrides)


def _parse_timeout_flag(value: str) -> Optional[float]:
    if value.strip().lower() in ("none", "0"):
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"Invalid --timeout: {value!r}")


def display_url(port: int, fallback: str) -> str:
    """The URL other devices should open, or the bind URL if unknown."""
    try:
        return f"http://{get_wifi_ip_address()}:{port}"
    except AddressNotFoundError as e:
        logger.warning(f"{e}; showing bind address instead")
        return fallback


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run until interrupted.

    Returns:
        0 after a clean stop, 1 if the server could not start or died.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level)

    server = control.get_server(config)
    result = control.start(config.port, config.document_root)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print(f"Serving {config.document_root} at {display_url(server.port, result.url)}")
    print("Press Ctrl+C to stop")

    # =========================================================================
    # WAIT FOR A SIGNAL
    # =========================================================================
    # Handlers only set an event; stopping happens back on the main thread.

    stop_requested = threading.Event()

    def request_stop(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
        stop_requested.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    while not stop_requested.wait(WATCH_INTERVAL):
        if not control.is_running():
            logger.error("Server stopped unexpectedly")
            return 1

    control.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
