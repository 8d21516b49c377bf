"""
Record Store Module

This module implements the server-side source of truth for person records.

The store:
- issues record ids from a monotonic counter, never reusing one
- guards the record map and the counter with one reader/writer lock
- writes the complete state to durable storage before a mutation is
  acknowledged
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import settings
from ..errors import NotFound, PersistenceFailure
from ..models import Record, RecordId
from .lock import ReadWriteLock
from .persistence import MemoryPersistence, Persistence

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Lock-guarded, durably persisted map of person records.

    Operations:
    - add: Allocate an id and store a new record
    - get: Snapshot a record by id
    - rename: Change the name of a record
    - search: Case-sensitive substring search on names
    - list: Every (id, name) pair

    Write discipline:
        Mutations run under the exclusive lock. The new state is built
        beside the live one, handed to the persistence backend, and only
        swapped in once save() returned. A failed save leaves the live
        state (and the id counter) untouched.

    Attributes:
        persistence: Backend receiving the full state after each mutation
        strict: Raise NotFound when renaming an absent id instead of ignoring it
    """

    def __init__(
            self,
            persistence: Persistence = None,
            strict: bool = None,
            records: Dict[RecordId, Record] = None,
            next_id: int = 0,
    ):
        """
        Initialize the store.

        Args:
            persistence: Persistence backend (in-memory if not provided)
            strict: Strict rename mode (default from settings.STRICT_RENAME)
            records: Initial records, keyed by id
            next_id: First id to issue; raised past the largest existing id
        """
        self.persistence = persistence if persistence is not None else MemoryPersistence()
        self.strict = strict if strict is not None else settings.STRICT_RENAME
        self._lock = ReadWriteLock()

        self._records: Dict[RecordId, Record] = dict(records or {})
        for key, record in self._records.items():
            if key != record.id:
                raise ValueError(f"record stored under id {key} carries id {record.id}")

        floor = max(self._records) + 1 if self._records else 0
        self._next_id = RecordId(max(int(next_id), floor))

    @classmethod
    def open(cls, persistence: Persistence, strict: bool = None) -> "RecordStore":
        """
        Build a store from the state held by ``persistence``.

        An absent state yields an empty store whose first id is 0.

        Raises:
            PersistenceFailure: The saved state is unreadable or violates
                the store invariants
        """
        state = persistence.load()
        if state is None:
            logger.info(f"No saved state at {persistence.describe()}, starting empty")
            return cls(persistence=persistence, strict=strict)

        try:
            records = {}
            for item in state.get("records", []):
                record = Record.from_dict(item)
                if record.id in records:
                    raise ValueError(f"duplicate record id {record.id}")
                records[record.id] = record
            next_id = int(state.get("next_id", 0))
            if records and next_id <= max(records):
                raise ValueError(f"next_id {next_id} is not above the largest id {max(records)}")
            store = cls(persistence=persistence, strict=strict, records=records, next_id=next_id)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"invalid state in {persistence.describe()}: {e}") from e

        logger.info(
            f"Loaded {len(records)} records from {persistence.describe()} "
            f"(next id {store._next_id})"
        )
        return store

    def add(self, name: str) -> RecordId:
        """
        Store a new record and return its id.

        Args:
            name: Name of the new record (may be empty)

        Returns:
            The freshly issued id

        Raises:
            PersistenceFailure: The new state could not be saved; nothing changed
        """
        with self._lock.write_locked():
            record_id = self._next_id
            records = dict(self._records)
            records[record_id] = Record(id=record_id, name=name)
            next_id = record_id.next()

            self._persist(records, next_id)

            self._records = records
            self._next_id = next_id

        logger.debug(f"Added record {record_id}")
        return record_id

    def get(self, record_id: int) -> Record:
        """
        Return a snapshot of the record stored under ``record_id``.

        Raises:
            NotFound: No record has this id
        """
        with self._lock.read_locked():
            record = self._records.get(record_id)

        if record is None:
            raise NotFound(f"record {record_id} not found")
        return record

    def find(self, record_id: int) -> Optional[Record]:
        """Like get(), but return None for an absent id."""
        with self._lock.read_locked():
            return self._records.get(record_id)

    def rename(self, record_id: int, new_name: str) -> bool:
        """
        Change the name of a record.

        Args:
            record_id: Id of the record to rename
            new_name: The new name (may be empty)

        Returns:
            True if a record was renamed, False if the id was absent
            (non-strict mode only)

        Raises:
            NotFound: The id is absent and the store is strict
            PersistenceFailure: The new state could not be saved; nothing changed
        """
        with self._lock.write_locked():
            current = self._records.get(record_id)
            if current is None:
                if self.strict:
                    raise NotFound(f"record {record_id} not found")
                logger.debug(f"Ignoring rename of missing record {record_id}")
                return False

            records = dict(self._records)
            records[current.id] = current.renamed(new_name)

            self._persist(records, self._next_id)

            self._records = records

        logger.debug(f"Renamed record {record_id}")
        return True

    def search(self, substring: str) -> List[Tuple[RecordId, str]]:
        """
        Find records whose name contains ``substring`` (case-sensitive).

        Returns:
            (id, name) pairs sorted by name, then by id
        """
        with self._lock.read_locked():
            matches = [r.as_pair() for r in self._records.values() if substring in r.name]

        matches.sort(key=lambda pair: (pair[1], pair[0]))
        return matches

    def list(self) -> List[Tuple[RecordId, str]]:
        """Return every (id, name) pair, sorted by id."""
        with self._lock.read_locked():
            pairs = [r.as_pair() for r in self._records.values()]

        pairs.sort()
        return pairs

    def size(self) -> int:
        """Get the number of records in the store."""
        with self._lock.read_locked():
            return len(self._records)

    @property
    def next_id(self) -> RecordId:
        """The id the next add() will issue."""
        with self._lock.read_locked():
            return self._next_id

    def snapshot(self) -> Dict[str, Any]:
        """Return the full store state in its persisted form."""
        with self._lock.read_locked():
            return self._state(self._records, self._next_id)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_records: Records currently stored
            - next_id: Id the next add() will issue
            - strict: Whether renaming a missing id raises
            - persistence: Description of the persistence target
        """
        with self._lock.read_locked():
            total = len(self._records)
            next_id = int(self._next_id)

        return {
            "total_records": total,
            "next_id": next_id,
            "strict": self.strict,
            "persistence": self.persistence.describe(),
        }

    def _persist(self, records: Dict[RecordId, Record], next_id: RecordId) -> None:
        # Called with the write lock held
        self.persistence.save(self._state(records, next_id))

    @staticmethod
    def _state(records: Dict[RecordId, Record], next_id: RecordId) -> Dict[str, Any]:
        return {
            "next_id": int(next_id),
            "records": [records[key].to_dict() for key in sorted(records)],
        }
