#!/usr/bin/env python3
"""
Person Registry Server Entry Point

Usage:
    python -m registry.server                       # Default settings (0.0.0.0:7272)
    python -m registry.server --port 8080           # Custom port
    python -m registry.server --data-file db.json   # Custom state file
    python -m registry.server --strict-rename       # Renaming a missing id fails
    python -m registry.server --debug               # Enable debug logging

Environment Variables:
    REGISTRY_HOST           - Server bind address
    REGISTRY_PORT           - Server port
    REGISTRY_DATA_FILE      - Path of the JSON state file
    REGISTRY_STRICT_RENAME  - Reject renames of unknown ids (true/false)
    REGISTRY_DEBUG          - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .config.settings import settings
from .errors import PersistenceFailure
from .network.tcp_server import RecordServer
from .store.persistence import JsonFilePersistence
from .store.record_store import RecordStore


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Person Registry: record store server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--data-file",
        type=str,
        default=settings.DATA_FILE,
        help="JSON file holding the durable store state",
    )

    parser.add_argument(
        "--strict-rename",
        action="store_true",
        default=settings.STRICT_RENAME,
        help="Fail renames of unknown record ids instead of ignoring them",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def build_server(args: argparse.Namespace) -> RecordServer:
    """Load the store from its data file and wrap it in a server."""
    store = RecordStore.open(JsonFilePersistence(args.data_file), strict=args.strict_rename)
    return RecordServer(host=args.host, port=args.port, store=store)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the server."""
    args = parse_args(argv)

    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    try:
        server = build_server(args)
    except PersistenceFailure as e:
        logger.error(f"Cannot load store: {e}")
        return 1

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    logger.info("Starting Person Registry server")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Data file: {args.data_file}")
    logger.info(f"  Records: {server.store.size()}")
    logger.info(f"  Strict rename: {args.strict_rename}")

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()
        logger.info("Server shutdown complete")

    return 0


if __name__ == "__main__":
    sys.exit(main())
