"""
Async TCP Server Module

This module implements the asynchronous TCP server that exposes a
RecordStore over the registry text protocol.

Each connection is served by its own coroutine. Store calls block (they
take the store lock and may write to disk), so they run on the default
thread pool through asyncio.to_thread(); concurrent readers really run in
parallel and writers serialize on the store's lock.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..config.settings import settings
from ..protocol.commands import Command, CommandType, Response
from ..protocol.parser import ProtocolParser
from ..store.record_store import RecordStore
from .dispatch import execute_command

logger = logging.getLogger(__name__)


class RecordServer:
    """
    Asynchronous TCP server for the person registry.

    Features:
    - Non-blocking I/O with asyncio
    - Persistent connections (multiple commands per connection)
    - Store operations off the event loop, on worker threads
    - Graceful error handling and connection cleanup
    - Shared RecordStore across all connections

    Usage:
        server = RecordServer(host='0.0.0.0', port=7272, store=store)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address
        port: Server port number (0 picks a free port, see bound_port)
        store: The RecordStore instance shared by all connections
        parser: The ProtocolParser for parsing commands
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: RecordStore = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings)
            store: RecordStore instance (creates an in-memory one if not provided)
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else RecordStore()
        self.parser = ProtocolParser()

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._running = False
        self._connection_count = 0
        self._total_requests = 0
        self._failed_requests = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Reads one command per line, executes it on the store and writes the
        response, until the client disconnects or sends QUIT.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                data = await reader.readline()
                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                try:
                    raw = data.decode().rstrip('\r\n')
                except UnicodeDecodeError:
                    response = Response.invalid_command("invalid encoding")
                    writer.write(self.parser.format_response(response).encode())
                    await writer.drain()
                    continue

                command = self.parser.parse_request(raw)

                if command.type == CommandType.QUIT:
                    logger.debug(f"Client requested quit: {addr}")
                    break

                if not command.is_valid:
                    response = Response.error(command.error or "invalid command", code=command.error_code)
                else:
                    self._total_requests += 1
                    response = await asyncio.to_thread(self._execute_command, command)

                if not response.is_ok:
                    self._failed_requests += 1

                writer.write(self.parser.format_response(response).encode())
                await writer.drain()

        except (ConnectionResetError, BrokenPipeError):
            logger.debug(f"Connection reset by client: {addr}")
        except ValueError as exc:
            # StreamReader.readline() raises ValueError for over-long lines
            logger.warning(f"Dropping client {addr}: {exc}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass

    def _execute_command(self, command: Command) -> Response:
        """Run a valid command against the shared store (worker thread)."""
        return execute_command(self.store, command)

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs until cancelled or until stop() is called.

        Example:
            server = RecordServer(port=7272)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    @property
    def bound_port(self) -> Optional[int]:
        """The port actually bound, useful when constructed with port=0."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with connection and request counts plus store stats.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "failed_requests": self._failed_requests,
            "store_stats": self.store.get_stats(),
        }
