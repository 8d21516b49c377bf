"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
from contextlib import closing
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from registry.client.api import RecordClient
from registry.client.transport import InProcessTransport, TcpTransport
from registry.network.tcp_server import RecordServer
from registry.protocol.parser import ProtocolParser
from registry.store.persistence import JsonFilePersistence, MemoryPersistence
from registry.store.record_store import RecordStore


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# RecordStore Fixtures
# ============================================================================

@pytest.fixture
def persistence() -> MemoryPersistence:
    """In-memory persistence backend that counts saves."""
    return MemoryPersistence()


@pytest.fixture
def store(persistence: MemoryPersistence) -> RecordStore:
    """Create a fresh, empty RecordStore in lenient rename mode."""
    return RecordStore(persistence=persistence, strict=False)


@pytest.fixture
def strict_store(persistence: MemoryPersistence) -> RecordStore:
    """Create a RecordStore that rejects renames of unknown ids."""
    return RecordStore(persistence=persistence, strict=True)


@pytest.fixture
def data_file(tmp_path):
    """Path of a not-yet-existing JSON state file."""
    return tmp_path / "persons.json"


@pytest.fixture
def file_store(data_file) -> RecordStore:
    """RecordStore persisted to a JSON file in a temporary directory."""
    return RecordStore.open(JsonFilePersistence(data_file), strict=False)


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser(max_name_length=64)


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int, store: RecordStore) -> AsyncGenerator[RecordServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a RecordServer on a random free port around the store fixture
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = RecordServer(host='127.0.0.1', port=server_port, store=store)

    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


# ============================================================================
# Client Fixtures
# ============================================================================

class LineClient:
    """
    Raw line-protocol client for server tests.

    Usage:
        async with LineClient('127.0.0.1', port) as client:
            response = await client.send_command('ADD "Alice"')
            assert response == "OK 0"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        self.reader, self.writer = await asyncio.open_connection(self.host, self.port)

    async def disconnect(self) -> None:
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass

    async def send_command(self, command: str) -> str:
        """Send one command line and return the response line, stripped."""
        if not command.endswith('\n'):
            command += '\n'

        self.writer.write(command.encode())
        await self.writer.drain()

        response = await self.reader.readline()
        return response.decode().strip()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create raw line clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("LIST")
    """
    def factory() -> LineClient:
        return LineClient('127.0.0.1', server_port)
    return factory


@pytest.fixture
def tcp_client(server_port: int) -> RecordClient:
    """RecordClient talking to the server fixture over TCP."""
    return RecordClient(TcpTransport('127.0.0.1', server_port, timeout=2.0))


@pytest.fixture
def local_client(store: RecordStore) -> RecordClient:
    """RecordClient calling the store fixture in-process."""
    return RecordClient(InProcessTransport(store))


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
