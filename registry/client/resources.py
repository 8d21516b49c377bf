"""
Record Resources

The two read paths of a person-management view, declared as plain
functions of their inputs:

- ``person(id)`` depends on (id, generation)
- ``persons(search)`` depends on (search string, generation)

Each is a ResourceCache over the matching RecordClient call, subscribed to
the client's generation, so a view re-resolves exactly when its key
changes or a write has landed.
"""

from typing import Optional

from ..config.settings import settings
from .api import RecordClient
from .resource_cache import ResourceCache, ResourceHandle


class RecordResources:
    """
    Cached record reads for one view lifetime.

    Usage:
        resources = RecordResources(client)
        people = await resources.persons("Al")
        alice = await resources.person(people[0][0])
        await client.rename(alice.id, "Alicia")   # bumps the generation
        alice = await resources.person(alice.id)  # fetched again
        resources.close()                         # view torn down
    """

    def __init__(self, client: RecordClient, max_entries: Optional[int] = None):
        """
        Args:
            client: Client whose reads are cached and whose generation drives invalidation
            max_entries: LRU bound per cache (default from settings.CACHE_MAX_ENTRIES)
        """
        if max_entries is None:
            max_entries = settings.CACHE_MAX_ENTRIES or None

        self.client = client
        self.records = ResourceCache(client.get, max_entries=max_entries)
        self.searches = ResourceCache(client.search, max_entries=max_entries)
        self.records.invalidate_on(client.generation)
        self.searches.invalidate_on(client.generation)

    def person(self, record_id: int) -> ResourceHandle:
        """Handle resolving to the Record with ``record_id``."""
        return self.records.get_or_create(int(record_id))

    def persons(self, search: str = "") -> ResourceHandle:
        """Handle resolving to the (id, name) pairs matching ``search``."""
        return self.searches.get_or_create(search)

    def close(self) -> None:
        self.records.close()
        self.searches.close()

    def __enter__(self) -> "RecordResources":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
