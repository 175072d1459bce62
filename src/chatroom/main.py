#!/usr/bin/env python3
"""
Chat Room Entry Points

    chat-room          Interactive line-oriented command loop on stdin
    chat-room-server   WebSocket command server

Settings come from environment variables (see chatroom.config) and can be
overridden with command-line flags.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import Settings, configure_logging, load_settings
from .dispatcher import CommandDispatcher
from .errors import ValidationError
from .registry import get_registry
from .repl import PROMPT, run_repl
from .websocket_server import ChatWebSocketServer

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--transport",
        dest="default_transport",
        help="Transport for rooms created by join/send (direct or framed)",
    )
    parser.add_argument(
        "--formatter", help="Formatter applied to sent messages (plain or html)"
    )
    parser.add_argument("--log-level", help="Logging level (e.g. INFO)")
    parser.add_argument(
        "--receive-timeout",
        type=float,
        help="Seconds a receive command waits for a message",
    )
    parser.add_argument(
        "--loopback",
        action="store_true",
        default=None,
        help="Feed sent payloads back to receive",
    )


def _load(parser: argparse.ArgumentParser, argv: Optional[List[str]]):
    args = parser.parse_args(argv)
    try:
        settings = load_settings().with_overrides(**vars(args))
    except ValidationError as e:
        parser.error(e.message)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the interactive command loop."""
    parser = argparse.ArgumentParser(
        prog="chat-room", description="Chat room command loop"
    )
    _add_common_arguments(parser)
    settings = _load(parser, argv)
    configure_logging(settings.log_level)

    logger.info("Starting chat room command loop...")
    dispatcher = CommandDispatcher(registry=get_registry(), settings=settings)
    prompt = PROMPT if sys.stdin.isatty() else None

    try:
        return run_repl(dispatcher, prompt=prompt)
    except KeyboardInterrupt:
        print("\nExiting...")
        return 0


async def run_server(settings: Settings):
    """
    Run the WebSocket command server until cancelled.

    Args:
        settings: Runtime settings
    """
    server = ChatWebSocketServer(registry=get_registry(), settings=settings)
    await server.start()

    try:
        # Wait indefinitely
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await server.stop()


def serve_main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the WebSocket command server."""
    parser = argparse.ArgumentParser(
        prog="chat-room-server", description="Chat room WebSocket server"
    )
    _add_common_arguments(parser)
    parser.add_argument("--host", dest="ws_host", help="Host to bind to")
    parser.add_argument("--port", dest="ws_port", type=int, help="Port")
    settings = _load(parser, argv)
    configure_logging(settings.log_level)

    logger.info("Starting chat room WebSocket server...")
    try:
        asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
