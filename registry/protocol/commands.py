"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional

from ..errors import RegistryError, error_for_code


class CommandType(Enum):
    """Enumeration of supported command types."""
    ADD = auto()
    GET = auto()
    RENAME = auto()
    SEARCH = auto()
    LIST = auto()
    QUIT = auto()
    UNKNOWN = auto()


# Transport operation name -> command type
OPERATIONS: Dict[str, CommandType] = {
    "add": CommandType.ADD,
    "get": CommandType.GET,
    "rename": CommandType.RENAME,
    "search": CommandType.SEARCH,
    "list": CommandType.LIST,
}

WRITE_COMMANDS = (CommandType.ADD, CommandType.RENAME)


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The type of command
        record_id: Target id for GET and RENAME
        text: Name for ADD and RENAME, substring for SEARCH
        raw: The raw command line as received
        error: Why the command was rejected (UNKNOWN commands only)
        error_code: Wire error code for the rejection
    """
    type: CommandType
    record_id: Optional[int] = None
    text: str = ""
    raw: str = ""
    error: str = ""
    error_code: str = "invalid_command"

    @property
    def is_valid(self) -> bool:
        """Check if the command carries the arguments its type needs."""
        if self.type == CommandType.UNKNOWN:
            return False
        if self.type in (CommandType.GET, CommandType.RENAME):
            return self.record_id is not None and self.record_id >= 0
        return True

    @property
    def is_write(self) -> bool:
        return self.type in WRITE_COMMANDS

    @classmethod
    def invalid(cls, raw: str, error: str, code: str = "invalid_command") -> "Command":
        return cls(type=CommandType.UNKNOWN, raw=raw, error=error, error_code=code)

    @classmethod
    def for_operation(cls, operation: str, **arguments: Any) -> "Command":
        """
        Build the command for a transport operation.

        Examples:
            >>> Command.for_operation("rename", id=0, name="Alicia").type
            <CommandType.RENAME: 3>

        Raises:
            ValueError: Unknown operation or missing argument
        """
        try:
            command_type = OPERATIONS[operation]
        except KeyError:
            raise ValueError(f"unknown operation: {operation!r}") from None

        try:
            if command_type == CommandType.ADD:
                return cls(type=command_type, text=arguments["name"])
            if command_type == CommandType.GET:
                return cls(type=command_type, record_id=int(arguments["id"]))
            if command_type == CommandType.RENAME:
                return cls(type=command_type, record_id=int(arguments["id"]), text=arguments["name"])
            if command_type == CommandType.SEARCH:
                return cls(type=command_type, text=arguments.get("substring", ""))
        except KeyError as e:
            raise ValueError(f"operation {operation!r} requires argument {e.args[0]!r}") from None

        return cls(type=command_type)


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        value: JSON-compatible result (OK responses)
        message: Error description (ERROR responses)
        code: Error code (ERROR responses)
    """
    status: ResponseStatus
    value: Any = None
    message: str = ""
    code: str = ""

    @property
    def is_ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @classmethod
    def ok(cls, value: Any = None) -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, value=value)

    @classmethod
    def error(cls, message: str, code: str = "internal") -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message, code=code)

    @classmethod
    def from_exception(cls, exc: RegistryError) -> "Response":
        return cls.error(str(exc), code=exc.code)

    @classmethod
    def not_found(cls, record_id: int) -> "Response":
        return cls.error(f"record {record_id} not found", code="not_found")

    @classmethod
    def invalid_command(cls, reason: str = "") -> "Response":
        return cls.error(reason or "invalid command", code="invalid_command")

    def unwrap(self) -> Any:
        """
        Return the value of an OK response.

        Raises:
            RegistryError: The matching subclass for an ERROR response
        """
        if self.is_ok:
            return self.value
        raise error_for_code(self.code, self.message)
