"""
Client Transports

A transport delivers one typed operation to the record store and returns
the decoded result:

    value = await transport.call("rename", id=0, name="Alicia")

Results are the JSON-compatible values of the wire protocol. Failures are
raised as RegistryError subclasses: the server's error codes map back to
NotFound, PersistenceFailure and ValidationFailure, and anything that goes
wrong on the way (refused connection, timeout, dropped or garbled reply)
becomes TransportFailure.
"""

import asyncio
import logging
from typing import Any

from ..config.settings import settings
from ..errors import TransportFailure, ValidationFailure
from ..network.dispatch import execute_command
from ..protocol.commands import Command, Response
from ..protocol.parser import ProtocolParser
from ..store.record_store import RecordStore

logger = logging.getLogger(__name__)


class Transport:
    """Interface for client transports."""

    async def call(self, operation: str, **arguments: Any) -> Any:
        raise NotImplementedError

    async def close(self) -> None:
        pass

    @staticmethod
    def _build_command(operation: str, arguments: dict) -> Command:
        try:
            command = Command.for_operation(operation, **arguments)
        except (TypeError, ValueError) as e:
            raise ValidationFailure(str(e)) from e

        if not isinstance(command.text, str):
            raise ValidationFailure(f"{operation} expects a string, got {type(command.text).__name__}")
        if len(command.text) > settings.MAX_NAME_LENGTH:
            raise ValidationFailure(f"name longer than {settings.MAX_NAME_LENGTH} characters")
        if command.record_id is not None and command.record_id < 0:
            raise ValidationFailure(f"record id must be non-negative, got {command.record_id}")
        return command


class TcpTransport(Transport):
    """
    Sends commands to a RecordServer over TCP.

    Every call opens its own connection, sends one command line, reads one
    response line and closes, so concurrent calls never share a stream.

    Attributes:
        host: Server host
        port: Server port
        timeout: Seconds allowed for connecting and for the reply
        max_response_size: Longest reply line accepted, in bytes
    """

    def __init__(
            self,
            host: str = "127.0.0.1",
            port: int = None,
            timeout: float = None,
            max_response_size: int = None,
    ):
        self.host = host
        self.port = port if port is not None else settings.PORT
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.max_response_size = max_response_size or settings.RESPONSE_BUFFER_SIZE
        self.parser = ProtocolParser()
        self.calls = 0

    async def call(self, operation: str, **arguments: Any) -> Any:
        command = self._build_command(operation, arguments)
        self.calls += 1
        response = await self._send_command(command)
        return response.unwrap()

    async def _send_command(self, command: Command) -> Response:
        """
        Send a command to the server and parse its reply.

        Raises:
            TransportFailure: The server could not be reached or replied badly
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, limit=self.max_response_size),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Timeout connecting to {self.host}:{self.port}")
            raise TransportFailure(f"timed out connecting to {self.host}:{self.port}") from None
        except OSError as e:
            logger.error(f"Error connecting to {self.host}:{self.port}: {e}")
            raise TransportFailure(f"cannot connect to {self.host}:{self.port}: {e}") from e

        try:
            writer.write(self.parser.format_command(command).encode())
            await writer.drain()

            data = await asyncio.wait_for(reader.readline(), timeout=self.timeout)
            if not data:
                raise TransportFailure("connection closed before a response arrived")

            return self.parser.parse_response(data.decode())

        except asyncio.TimeoutError:
            logger.error(f"Timeout waiting for {command.type.name} reply from {self.host}:{self.port}")
            raise TransportFailure(f"no reply from {self.host}:{self.port} within {self.timeout}s") from None
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.error(f"Error talking to {self.host}:{self.port}: {e}")
            raise TransportFailure(f"connection error: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


class InProcessTransport(Transport):
    """
    Calls a RecordStore living in the same process.

    Store calls run on the default thread pool, as they do behind the TCP
    server, and results pass through the same Response wrapping so both
    transports hand back identical values and errors.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.calls = 0

    async def call(self, operation: str, **arguments: Any) -> Any:
        command = self._build_command(operation, arguments)
        self.calls += 1
        response = await asyncio.to_thread(execute_command, self.store, command)
        return response.unwrap()
