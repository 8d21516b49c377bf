"""
Reader/Writer Lock

A single-writer, multiple-reader lock built on threading.Condition.

Waiting writers take priority: once a writer is queued, new readers wait
until it has finished, so a stream of readers cannot starve a writer.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Reader/writer mutual exclusion.

    Usage:
        lock = ReadWriteLock()
        with lock.read_locked():
            ...  # any number of threads at once
        with lock.write_locked():
            ...  # exactly one thread, no readers

    The lock is not reentrant; a thread holding it must not acquire it again.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a read lock held")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without the write lock held")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of threads currently holding the read lock."""
        return self._readers

    @property
    def write_held(self) -> bool:
        return self._writer
