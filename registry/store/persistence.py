"""
Store Persistence Backends

A persistence backend saves and loads the complete store state as a plain
dictionary:

    {"next_id": 2, "records": [{"id": 0, "name": "Alice"}, ...]}

The store never looks inside the file format; it only calls save() and
load(). OSError and decoding problems surface as PersistenceFailure.
"""

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..errors import PersistenceFailure

logger = logging.getLogger(__name__)

State = Dict[str, Any]


class Persistence:
    """Interface for store persistence backends."""

    def save(self, state: State) -> None:
        raise NotImplementedError

    def load(self) -> Optional[State]:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class JsonFilePersistence(Persistence):
    """
    Keeps the store state in a single human-readable JSON file.

    Writes go to a sibling ``.tmp`` file which is fsync'ed and then moved
    over the target with os.replace(), so the file on disk always holds
    either the previous or the new state, never a partial one.

    Attributes:
        path: Location of the state file
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def save(self, state: State) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save state to {self.path}: {e}")
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise PersistenceFailure(f"could not write {self.path}: {e}") from e

        logger.debug(f"Saved {len(state.get('records', []))} records to {self.path}")

    def load(self) -> Optional[State]:
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"could not read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceFailure(f"{self.path} does not contain a state object")
        return data

    def describe(self) -> str:
        return str(self.path)


class MemoryPersistence(Persistence):
    """
    Keeps the last saved state in memory.

    Useful for tests and for running a throwaway server. Setting
    ``fail_writes`` makes every save() raise PersistenceFailure.
    """

    def __init__(self, state: Optional[State] = None):
        self._state = json.loads(json.dumps(state)) if state is not None else None
        self.fail_writes = False
        self.save_count = 0

    def save(self, state: State) -> None:
        if self.fail_writes:
            raise PersistenceFailure("in-memory persistence is set to fail writes")
        # Round-trip through JSON so the saved copy shares nothing with the caller
        self._state = json.loads(json.dumps(state))
        self.save_count += 1

    def load(self) -> Optional[State]:
        if self._state is None:
            return None
        return json.loads(json.dumps(self._state))

    def describe(self) -> str:
        return "memory"
