"""
Resource Cache Module

Client-side memoization of record fetches.

- One entry per key (a record id or a search string); the first miss
  creates it, later calls for the same key share it.
- Single-flight: while an entry is pending, every caller awaits the same
  asyncio task, so one key never has two fetches in flight within a
  generation.
- Generation invalidation: entries remember the generation they were
  created under and are dropped as soon as the generation signal moves
  past it. Handles already handed out keep their (older) result.
- Failures are cached like values and re-raised until the next generation
  bump or an explicit invalidate(); there is no automatic retry.
- Entries live in an LRUTable, bounded when max_entries is set and
  unbounded by default.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from ..cache.eviction import LRUTable

logger = logging.getLogger(__name__)

Fetcher = Callable[[Any], Awaitable[Any]]


class EntryState(Enum):
    """Lifecycle of a cache entry."""
    EMPTY = "empty"
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class CacheEntry:
    """
    Memoized fetch for one key.

    Attributes:
        key: Cache key
        generation: Generation value the entry was created under
        state: Current EntryState
        task: The fetch task once started
    """
    __slots__ = ("key", "generation", "state", "task")

    def __init__(self, key: Hashable, generation: int):
        self.key = key
        self.generation = generation
        self.state = EntryState.EMPTY
        self.task: Optional[asyncio.Task] = None


class ResourceHandle:
    """
    A caller's view of a cache entry.

    The fetch starts the first time any handle for the entry is awaited.

    Usage:
        handle = cache.get_or_create(3)
        record = await handle          # or: await handle.result()
    """

    def __init__(self, cache: "ResourceCache", entry: CacheEntry):
        self._cache = cache
        self._entry = entry

    @property
    def key(self) -> Hashable:
        return self._entry.key

    @property
    def generation(self) -> int:
        return self._entry.generation

    @property
    def state(self) -> EntryState:
        return self._entry.state

    def done(self) -> bool:
        return self._entry.state in (EntryState.RESOLVED, EntryState.FAILED)

    def shares_fetch_with(self, other: "ResourceHandle") -> bool:
        """True if both handles are backed by the same entry."""
        return self._entry is other._entry

    async def result(self) -> Any:
        """
        Wait for the fetch and return its value.

        Raises:
            Exception: Whatever the fetch raised (cached for FAILED entries)
            asyncio.CancelledError: The cache was closed while pending
        """
        task = self._cache._start(self._entry)
        # Shield so that cancelling one waiter does not cancel the shared fetch
        return await asyncio.shield(task)

    def __await__(self):
        return self.result().__await__()

    def __repr__(self) -> str:
        return f"<ResourceHandle key={self.key!r} gen={self.generation} {self.state.value}>"


class ResourceCache:
    """
    Single-flight, generation-invalidated fetch cache.

    Usage:
        cache = ResourceCache(client.get)
        cache.invalidate_on(client.generation)
        record = await cache.get_or_create(record_id)

    Attributes:
        max_entries: LRU capacity, or None for no bound
    """

    def __init__(self, fetcher: Fetcher, max_entries: Optional[int] = None):
        """
        Args:
            fetcher: Coroutine function called as ``fetcher(key)`` on a miss
            max_entries: Positive LRU capacity, None or 0 for unbounded
        """
        self._fetch = fetcher
        self.max_entries = max_entries or None
        self._entries = LRUTable(self.max_entries)
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False

        self._hits = 0
        self._misses = 0
        self._fetches = 0
        self._failures = 0
        self._invalidations = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    @property
    def generation(self) -> int:
        """The generation new entries are created under."""
        return self._generation

    def get_or_create(self, key: Hashable) -> ResourceHandle:
        """
        Return a handle for ``key``, creating the entry on a miss.

        Raises:
            RuntimeError: The cache has been closed
        """
        if self._closed:
            raise RuntimeError("resource cache is closed")

        entry = self._entries.get(key)
        if entry is not None:
            self._hits += 1
            return ResourceHandle(self, entry)

        self._misses += 1
        entry = CacheEntry(key, self._generation)
        logger.debug(f"Cache miss for {key!r} (generation {self._generation})")

        evicted = self._entries.put(key, entry)
        if evicted is not None:
            evicted_key, _ = evicted
            self._evictions += 1
            logger.debug(f"Evicted {evicted_key!r}")

        return ResourceHandle(self, entry)

    def invalidate_on(self, signal) -> None:
        """
        Drop stale entries whenever ``signal`` advances.

        ``signal`` needs a ``value`` attribute and a ``subscribe(callback)``
        method returning an unsubscribe function, like Generation.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._generation = signal.value
        self._unsubscribe = signal.subscribe(self.advance)

    def advance(self, generation: int) -> int:
        """
        Move to ``generation`` and drop every entry created before it.

        PENDING entries are dropped too. Their fetch may have been sent
        before the write that moved the generation, so the next
        get_or_create() starts a fresh fetch while the old one is still in
        flight. Single-flight holds per (key, generation): the old fetch
        only resolves the handles already given out for it.

        Returns:
            Number of entries dropped
        """
        if generation <= self._generation:
            return 0

        self._generation = generation
        stale = [key for key, entry in self._entries.items() if entry.generation < generation]
        for key in stale:
            self._drop(key)

        self._invalidations += len(stale)
        if stale:
            logger.debug(f"Generation {generation}: dropped {len(stale)} entries")
        return len(stale)

    def invalidate(self, key: Hashable) -> bool:
        """Drop the entry for ``key``; return False if there was none."""
        if key not in self._entries:
            return False
        self._drop(key)
        self._invalidations += 1
        return True

    def clear(self) -> None:
        """Drop every entry. Pending fetches still finish for their waiters."""
        self._invalidations += len(self._entries)
        self._entries.clear()

    def close(self) -> None:
        """
        Tear the cache down.

        Pending fetches are cancelled so their results never surface, the
        generation subscription is released and every entry is dropped.
        """
        if self._closed:
            return
        self._closed = True

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        for _, entry in self._entries.items():
            if entry.task is not None and not entry.task.done():
                entry.task.cancel()
        self._entries.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary containing entry count, generation, hits, misses,
            fetches started, failed fetches, invalidations and evictions.
        """
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "generation": self._generation,
            "hits": self._hits,
            "misses": self._misses,
            "fetches": self._fetches,
            "failures": self._failures,
            "invalidations": self._invalidations,
            "evictions": self._evictions,
        }

    def _drop(self, key: Hashable) -> None:
        self._entries.pop(key)

    def _start(self, entry: CacheEntry) -> asyncio.Task:
        """Return the entry's fetch task, starting it on first use."""
        if entry.task is None:
            if self._closed:
                raise RuntimeError("resource cache is closed")
            entry.state = EntryState.PENDING
            entry.task = asyncio.get_running_loop().create_task(self._run_fetch(entry))
            entry.task.add_done_callback(_consume_exception)
            self._fetches += 1
        return entry.task

    async def _run_fetch(self, entry: CacheEntry) -> Any:
        try:
            value = await self._fetch(entry.key)
        except asyncio.CancelledError:
            entry.state = EntryState.FAILED
            raise
        except Exception as exc:
            entry.state = EntryState.FAILED
            self._failures += 1
            logger.debug(f"Fetch for {entry.key!r} failed: {exc!r}")
            raise

        entry.state = EntryState.RESOLVED
        return value


def _consume_exception(task: asyncio.Task) -> None:
    # Failed entries may never be awaited; mark the exception as retrieved
    if not task.cancelled():
        task.exception()
