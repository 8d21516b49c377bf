"""Cache primitives shared by the client."""

from .eviction import LRUTable

__all__ = ["LRUTable"]
