"""
Command-Line Interface - Argument Parsing and Entry Point

Runs a single query against the Nanonis software and prints the result.
Handy for checking that the TCP Programming Interface is reachable.

Usage:
    python -m py2nanonis --host 127.0.0.1 --port 6501 version
    python -m py2nanonis --config nanonis.yaml bias 0.5
    python -m py2nanonis --help
"""

import sys
import argparse
import logging
from typing import List, Optional

from py2nanonis.client import NanonisClient
from py2nanonis.core.error_formatting import format_error
from py2nanonis.core.errors import NanonisError
from py2nanonis.models.connection import (
    DEFAULT_PORT, ClientSettings, ConnectionConfig, load_settings
)

COMMANDS = ["version", "session-path", "bias"]


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="py2nanonis",
        description="Query the Nanonis SPM controller over its TCP interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --host 127.0.0.1 version
  %(prog)s --host 192.168.1.50 --port 6502 session-path
  %(prog)s --config nanonis.yaml bias
  %(prog)s --config nanonis.yaml bias 0.25
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Nanonis host name or IP address (overrides --config)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"TCP Programming Interface port (default: {DEFAULT_PORT})"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Read/write timeout in seconds (default: wait indefinitely)"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file with host, port and timeouts"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: WARNING)"
    )

    parser.add_argument("command", choices=COMMANDS, help="Query to run")

    parser.add_argument(
        "value",
        nargs="?",
        type=float,
        default=None,
        help="For 'bias': new bias in volts (omit to read the bias)"
    )

    return parser.parse_args(args)


def validate_args(args: argparse.Namespace) -> bool:
    """Validate parsed command-line arguments.

    Returns:
        True if arguments are valid, False otherwise
    """
    if args.host is None and args.config is None:
        print("Error: either --host or --config is required")
        return False

    if args.port is not None and not (1 <= args.port <= 65535):
        print(f"Error: Port must be between 1 and 65535, got {args.port}")
        return False

    if args.timeout is not None and args.timeout <= 0:
        print(f"Error: Timeout must be positive, got {args.timeout}")
        return False

    if args.value is not None and args.command != "bias":
        print(f"Error: '{args.command}' takes no value")
        return False

    return True


def setup_logging(level: str):
    """Configure application logging.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), None)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_settings(args: argparse.Namespace) -> ClientSettings:
    """Merge the settings file (if any) with command-line overrides."""
    if args.config:
        settings = load_settings(args.config)
    else:
        settings = ClientSettings(host=args.host)

    config = settings.config
    if args.timeout is not None:
        config = ConnectionConfig(
            connect_timeout=config.connect_timeout,
            read_timeout=args.timeout,
            write_timeout=args.timeout,
            error_placement=config.error_placement
        )

    return ClientSettings(
        host=args.host or settings.host,
        port=args.port or settings.port,
        config=config
    )


def run_command(client: NanonisClient, command: str, value: Optional[float] = None) -> str:
    """Run one CLI command and return the text to print."""
    if command == "version":
        info = client.util_version_get()
        return (
            f"{info.version} ({info.product_line})\n"
            f"Host application release: {info.host_app_release}\n"
            f"RT engine release: {info.rt_engine_release}"
        )
    if command == "session-path":
        return client.util_session_path_get()
    if value is not None:
        client.bias_set(value)
    return f"{client.bias_get():.6g} V"


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line tool.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 = success, 1 = error)
    """
    parsed_args = parse_args(args)

    setup_logging(parsed_args.log_level)
    logger = logging.getLogger(__name__)

    if not validate_args(parsed_args):
        return 1

    try:
        settings = build_settings(parsed_args)
        logger.debug(f"Connecting to {settings.host}:{settings.port}")
        with NanonisClient.from_settings(settings) as client:
            print(run_command(client, parsed_args.command, parsed_args.value))
        return 0

    except NanonisError as e:
        logger.debug(format_error(e, 'log'))
        print(f"Error: {format_error(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
