"""
CXA Bridge - Entry Point

Run with: python -m cxabridge
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from cxabridge import __version__
from cxabridge.config import BridgeConfig, load_config
from cxabridge.errors import TransportError
from cxabridge.server import BridgeServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cxabridge",
        description="CXA Bridge - HTTP control for Cambridge Audio CXA amplifiers",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file (default: built-in bridge.toml)",
    )

    parser.add_argument(
        "--port",
        type=str,
        default=None,
        help="Serial port (default: /dev/ttyUSB0)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--http-port",
        type=int,
        default=None,
        help="HTTP port (default: 8080)",
    )

    parser.add_argument(
        "--user",
        type=str,
        default=None,
        help="HTTP auth username (auth disabled when empty)",
    )

    parser.add_argument(
        "--pwd",
        type=str,
        default=None,
        help="HTTP auth password",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BridgeConfig:
    """Load the config file and apply command line overrides."""
    config = load_config(args.config)

    if args.port is not None:
        config.serial.port = args.port
    if args.host is not None:
        config.http.host = args.host
    if args.http_port is not None:
        config.http.port = args.http_port
    if args.user is not None:
        config.auth.username = args.user
    if args.pwd is not None:
        config.auth.password = args.pwd

    return config


def main() -> int:
    """Main entry point for the application."""
    args = parse_args()
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error("Cannot load config: %s", e)
        return 1

    logger.info("Starting CXA Bridge...")

    try:
        exit_code = asyncio.run(BridgeServer(config).run())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        exit_code = 0
    except TransportError as e:
        logger.error("Serial port unavailable: %s", e)
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Bridge stopped")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
