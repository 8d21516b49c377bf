"""
LRU Entry Table

Ordered key -> entry table that the client resource cache keeps its
entries in. With a capacity, inserting a new key into a full table evicts
the least recently used one; without one the table only tracks recency.

Recency:
- Most recently used keys sit at the END of the OrderedDict
- get() and put() move a key to the end
- Eviction pops from the beginning
"""

from collections import OrderedDict
from typing import Any, Hashable, Iterator, List, Optional, Tuple


class LRUTable:
    """
    Optionally bounded least-recently-used table.

    Usage:
        table = LRUTable(max_size=100)
        evicted = table.put(1, entry)   # (key, entry) pushed out, or None
        entry = table.get(1)            # marks 1 as recently used

    Attributes:
        max_size: Capacity, or None for no bound
    """

    def __init__(self, max_size: Optional[int] = None):
        """
        Args:
            max_size: Positive capacity, or None for an unbounded table

        Raises:
            ValueError: If max_size is given but not positive
        """
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the entry for ``key`` and mark it most recently used."""
        if key not in self._entries:
            return None

        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: Hashable, value: Any) -> Optional[Tuple[Hashable, Any]]:
        """
        Insert or replace an entry, making it the most recently used.

        Returns:
            The evicted (key, value) pair if the table was full, None otherwise
        """
        if key in self._entries:
            self._entries[key] = value
            self._entries.move_to_end(key)
            return None

        evicted = None
        if self.max_size is not None and len(self._entries) >= self.max_size:
            evicted = self._entries.popitem(last=False)

        self._entries[key] = value
        return evicted

    def pop(self, key: Hashable) -> Optional[Any]:
        """Remove ``key`` and return its entry, or None if it was absent."""
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def items(self) -> List[Tuple[Hashable, Any]]:
        """All (key, entry) pairs from least to most recently used."""
        return list(self._entries.items())
