"""
Generation Signal

A monotonically increasing counter that advances each time a write has
landed on the server. Caches subscribe to it to learn when their entries
have gone stale; they depend only on ``value`` and ``subscribe()``, so any
object with the same two members can drive invalidation.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class Generation:
    """
    Write-completion counter with change listeners.

    Usage:
        generation = Generation()
        unsubscribe = generation.subscribe(lambda value: print(value))
        generation.bump()   # prints 1
        unsubscribe()
    """

    def __init__(self, value: int = 0):
        self._value = value
        self._listeners: List[Listener] = []

    @property
    def value(self) -> int:
        return self._value

    def bump(self) -> int:
        """Advance the counter, notify listeners and return the new value."""
        self._value += 1
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception(f"Generation listener {listener!r} failed")
        return self._value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener(new_value)`` after every bump.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def __repr__(self) -> str:
        return f"Generation({self._value})"
