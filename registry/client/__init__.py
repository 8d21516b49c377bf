"""Client module for Person Registry."""

from .api import RecordClient
from .generation import Generation
from .resource_cache import CacheEntry, EntryState, ResourceCache, ResourceHandle
from .resources import RecordResources
from .transport import InProcessTransport, TcpTransport, Transport

__all__ = [
    "CacheEntry",
    "EntryState",
    "Generation",
    "InProcessTransport",
    "RecordClient",
    "RecordResources",
    "ResourceCache",
    "ResourceHandle",
    "TcpTransport",
    "Transport",
]
