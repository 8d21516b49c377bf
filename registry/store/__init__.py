"""Store module for Person Registry."""

from .lock import ReadWriteLock
from .persistence import JsonFilePersistence, MemoryPersistence, Persistence
from .record_store import RecordStore

__all__ = [
    "JsonFilePersistence",
    "MemoryPersistence",
    "Persistence",
    "ReadWriteLock",
    "RecordStore",
]
