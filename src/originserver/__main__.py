"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

Entry point for running the server from the command line:

    python -m originserver [OPTIONS]
    originserver [OPTIONS]

=============================================================================
USAGE EXAMPLES
=============================================================================

    # Defaults: 127.0.0.1:4221, no /files/ endpoints
    python -m originserver

    # Serve and accept uploads under ./data
    python -m originserver --directory ./data

    # All interfaces, verbose logging
    python -m originserver --host 0.0.0.0 --log-level DEBUG

    # Environment variables seed the defaults, flags override them
    HTTP_PORT=3000 python -m originserver --read-timeout 5

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import create_app


logger = logging.getLogger("originserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="originserver",
        description="Minimal HTTP/1.1 origin server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  originserver                          # Run with defaults
  originserver --port 3000              # Custom port
  originserver --directory ./data       # Mount GET/POST /files/
  originserver --host 0.0.0.0           # Listen on all interfaces
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # Defaults are None so "not given" can fall back to the environment
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, env HTTP_HOST)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221, env HTTP_PORT)",
    )
    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Base directory for GET/POST /files/ (env HTTP_DIRECTORY)",
    )
    parser.add_argument(
        "--read-timeout", "-t",
        type=float,
        default=None,
        help="Seconds a socket read may block (default: 10, env HTTP_READ_TIMEOUT)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: INFO, env HTTP_LOG_LEVEL)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"originserver {__version__}",
    )
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """
    Environment first, then every flag that was actually given.

    Raises:
        ValueError: an environment variable or the result is invalid.
    """
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.directory is not None:
        config.directory = args.directory
    if args.read_timeout is not None:
        config.read_timeout = args.read_timeout
    if args.log_level is not None:
        config.log_level = args.log_level

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 if the server
        could not start. Invalid options exit with 2 via argparse.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        parser.error(str(e))

    server = create_app(config)

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed to start: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
