"""Protocol module for Person Registry."""

from .commands import Command, CommandType, OPERATIONS, Response, ResponseStatus
from .parser import ProtocolParser

__all__ = [
    "Command",
    "CommandType",
    "OPERATIONS",
    "Response",
    "ResponseStatus",
    "ProtocolParser",
]
