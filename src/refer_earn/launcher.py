"""
Command line launcher for the Refer & Earn API server.

Runs the FastAPI app under uvicorn with host, port and reload settings taken
from configuration unless overridden on the command line.
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from .config import get_config
from .utils.logging_config import get_logger


def build_parser() -> argparse.ArgumentParser:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="refer-earn", description="Run the Refer & Earn API server"
    )
    parser.add_argument("--host", default=config.server.host, help="Bind address")
    parser.add_argument("--port", type=int, default=config.server.port, help="Bind port")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=config.server.auto_reload,
        help="Reload on code changes (development only)",
    )
    parser.add_argument(
        "--workers", type=int, default=config.server.workers, help="Worker processes"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the server launcher."""
    args = build_parser().parse_args(argv)
    logger = get_logger("main")
    logger.info(f"Starting server on {args.host}:{args.port}")

    try:
        uvicorn.run(
            "refer_earn.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=None if args.reload else args.workers,
            log_level="debug" if get_config().server.debug else "info",
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
