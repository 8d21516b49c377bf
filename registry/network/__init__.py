"""Network module for Person Registry."""

from .tcp_server import RecordServer

__all__ = ["RecordServer"]
