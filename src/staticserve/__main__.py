"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m staticserve                      # port 8000, current dir
    python -m staticserve --port 3000
    python -m staticserve --dir ./public
    staticserve --port 8080 --dir /srv/www     # installed console script

Arguments this parser doesn't know are ignored, and so is a --port or
--dir given without a value. Everything besides port and directory
comes from the environment (see ServerConfig.from_env).

=============================================================================
"""

import argparse
import dataclasses
import sys
from typing import List, Optional

from .config import ServerConfig
from .server import StaticFileServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserve",
        description="Serve a directory over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserve                         # Serve . on port 8000
  staticserve --port 3000             # Custom port
  staticserve --dir ./public          # Custom document root
  HTTP_LOG_LEVEL=DEBUG staticserve    # Verbose diagnostics
        """
    )

    parser.add_argument(
        "--port",
        type=int,
        nargs="?",
        default=None,
        help="Port to listen on (default: 8000)"
    )

    parser.add_argument(
        "--dir",
        dest="root_dir",
        nargs="?",
        default=None,
        help="Directory to serve (default: current directory)"
    )

    return parser


def parse_config(argv: Optional[List[str]] = None) -> ServerConfig:
    """
    Build the server configuration from the environment and argv.

    Raises:
        ValueError: If an environment variable doesn't parse.
    """
    args, _unknown = build_parser().parse_known_args(argv)

    config = ServerConfig.from_env()

    overrides = {}
    if args.port is not None:
        overrides["port"] = args.port
    if args.root_dir is not None:
        overrides["root_dir"] = args.root_dir

    return dataclasses.replace(config, **overrides)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    try:
        config = parse_config(argv)
        server = StaticFileServer(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"staticserve: error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
