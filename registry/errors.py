"""
Registry exception hierarchy.

Every failure the store, the server or the client reports is a subclass of
RegistryError. Each class carries the short code used for it on the wire.
"""

from typing import Dict, Type

__all__ = [
    "RegistryError",
    "NotFound",
    "PersistenceFailure",
    "TransportFailure",
    "ValidationFailure",
    "error_for_code",
]


class RegistryError(Exception):
    """Root exception for all registry errors."""

    code = "internal"


class NotFound(RegistryError):
    """Raised when a record id is not present in the store."""

    code = "not_found"


class PersistenceFailure(RegistryError):
    """Raised when durable state could not be written or read back."""

    code = "persistence"


class TransportFailure(RegistryError):
    """Raised when the client could not reach the server or read its reply."""

    code = "transport"


class ValidationFailure(RegistryError):
    """Raised when a request argument violates an input constraint."""

    code = "validation"


_BY_CODE: Dict[str, Type[RegistryError]] = {
    cls.code: cls
    for cls in (NotFound, PersistenceFailure, TransportFailure, ValidationFailure)
}


def error_for_code(code: str, message: str) -> RegistryError:
    """Rebuild the exception a server reported under ``code``."""
    return _BY_CODE.get(code, RegistryError)(message)
