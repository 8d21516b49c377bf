"""
Command dispatch onto a RecordStore.

Shared by the TCP server and the in-process client transport, so a
command produces the same response whichever way it arrives.
"""

import logging

from ..errors import RegistryError
from ..protocol.commands import Command, CommandType, Response
from ..store.record_store import RecordStore

logger = logging.getLogger(__name__)


def execute_command(store: RecordStore, command: Command) -> Response:
    """
    Execute a valid command on ``store`` and wrap the result.

    Blocking: takes the store lock and, for writes, waits for persistence.
    Registry errors become ERROR responses carrying their wire code;
    anything else is logged and reported as an internal error.
    """
    try:
        if command.type == CommandType.ADD:
            return Response.ok(int(store.add(command.text)))

        if command.type == CommandType.GET:
            return Response.ok(store.get(command.record_id).to_dict())

        if command.type == CommandType.RENAME:
            return Response.ok(store.rename(command.record_id, command.text))

        if command.type == CommandType.SEARCH:
            return Response.ok([[int(i), name] for i, name in store.search(command.text)])

        if command.type == CommandType.LIST:
            return Response.ok([[int(i), name] for i, name in store.list()])

    except RegistryError as exc:
        logger.debug(f"{command.type.name} failed: {exc}")
        return Response.from_exception(exc)
    except Exception as exc:
        logger.exception(f"Unexpected error executing {command.type.name}: {exc}")
        return Response.error("internal error", code="internal")

    return Response.invalid_command()
