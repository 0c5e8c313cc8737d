"""
=============================================================================
TINYWEB CLI ENTRY POINT
=============================================================================

Command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on port 8080
    python -m tinyweb 8080

    # Informational logging, written to a file
    python -m tinyweb 8080 -v -l tinyweb.log

    # Document root and executable root
    python -m tinyweb 8080 --root ./www --scripts ./www

    # Two worker slots, report 4xx/5xx to clients
    python -m tinyweb 8080 --workers 2 --error-status

=============================================================================
EXIT STATUS
=============================================================================

    0   Clean shutdown (Ctrl+C or SIGTERM)
    1   Could not listen on the requested address
    2   Invalid arguments or configuration

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .core import StartupError
from .log import LOG_ERROR, LOG_OUTPUT, log_message, setup_logging
from .server import WebServer


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyweb",
        description="Bounded-concurrency static and dynamic content web server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tinyweb 8080                              # Serve . on port 8080
  tinyweb 8080 -v                           # With informational logging
  tinyweb 8080 -l server.log                # Log to a file
  tinyweb 8080 --root ./www --workers 2     # Document root, 2 slots
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "port",
        type=int,
        nargs="?",
        default=None,
        help="Port to listen on (default: $TINYWEB_PORT or 8080)"
    )

    parser.add_argument(
        "--host",
        default=None,
        help="Address to bind to (default: 0.0.0.0)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root",
        default=None,
        help="Document root for static files (default: .)"
    )

    parser.add_argument(
        "--scripts",
        default=None,
        help="Directory executable targets are resolved against (default: .)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # BEHAVIOUR ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker slots (default: 5)"
    )

    parser.add_argument(
        "--error-status",
        action="store_true",
        help="Send a 4xx/5xx status line before closing a rejected request"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable informational log messages"
    )

    parser.add_argument(
        "-l", "--log-file",
        default=None,
        help="Write log messages to this file instead of stderr"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version",
        action="version",
        version=f"tinyweb {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then anything given on the command line."""
    config = ServerConfig.from_env()

    if args.port is not None:
        config.port = args.port
    if args.host is not None:
        config.host = args.host
    if args.root is not None:
        config.document_root = args.root
    if args.scripts is not None:
        config.script_root = args.scripts
    if args.workers is not None:
        config.max_workers = args.workers
    if args.error_status:
        config.send_error_status = True
    if args.verbose:
        config.verbose = True
    if args.log_file is not None:
        config.log_file = args.log_file

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        print(f"tinyweb: error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.verbose, config.log_file)
    log_message(LOG_OUTPUT, "port = %d", config.port)

    server = WebServer(config)
    try:
        server.run()
    except StartupError as e:
        log_message(LOG_ERROR, "Failed to properly set up the server: %s", e)
        return 1

    return 0


# This allows running: python -m tinyweb
if __name__ == "__main__":
    sys.exit(main())
