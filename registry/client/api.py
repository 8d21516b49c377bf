"""
Typed Record Client

Wraps a transport with typed operations and advances a Generation after
every write the server has acknowledged.
"""

import logging
from typing import Any, List, Tuple

from ..errors import TransportFailure
from ..models import Record, RecordId
from .generation import Generation
from .transport import Transport

logger = logging.getLogger(__name__)


class RecordClient:
    """
    Async client for the record store.

    Usage:
        client = RecordClient(TcpTransport(port=7272))
        alice = await client.add("Alice")
        await client.rename(alice, "Alicia")
        record = await client.get(alice)

    Attributes:
        transport: Transport delivering the operations
        generation: Bumped once per completed add/rename
    """

    def __init__(self, transport: Transport, generation: Generation = None):
        self.transport = transport
        self.generation = generation if generation is not None else Generation()

    async def add(self, name: str) -> RecordId:
        """Create a record and return its id."""
        value = await self.transport.call("add", name=name)
        record_id = self._decode(RecordId, value)
        self.generation.bump()
        return record_id

    async def get(self, record_id: int) -> Record:
        """
        Fetch one record.

        Raises:
            NotFound: No record has this id
        """
        value = await self.transport.call("get", id=record_id)
        return self._decode(Record.from_dict, value)

    async def rename(self, record_id: int, new_name: str) -> bool:
        """
        Rename a record.

        Returns:
            False when the server ignored the rename of an unknown id
        """
        value = await self.transport.call("rename", id=record_id, name=new_name)
        self.generation.bump()
        return bool(value)

    async def search(self, substring: str = "") -> List[Tuple[RecordId, str]]:
        """(id, name) pairs whose name contains ``substring``, sorted by name."""
        value = await self.transport.call("search", substring=substring)
        return self._decode(self._pairs, value)

    async def list(self) -> List[Tuple[RecordId, str]]:
        """Every (id, name) pair, sorted by id."""
        value = await self.transport.call("list")
        return self._decode(self._pairs, value)

    async def close(self) -> None:
        await self.transport.close()

    @staticmethod
    def _pairs(value: Any) -> List[Tuple[RecordId, str]]:
        return [(RecordId(record_id), str(name)) for record_id, name in value]

    @staticmethod
    def _decode(convert, value: Any):
        try:
            return convert(value)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected payload from server: {value!r}")
            raise TransportFailure(f"unexpected payload from server: {e}") from e
