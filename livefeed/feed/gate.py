from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .types import Direction


class RequestGate:
    """One in-flight request slot per direction.

    Forward polling and backward paging have independent slots and never block
    each other.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._busy: dict[Direction, bool] = {direction: False for direction in Direction}

    def try_acquire(self, direction: Direction) -> bool:
        with self._lock:
            if self._busy[direction]:
                return False
            self._busy[direction] = True
            return True

    def release(self, direction: Direction) -> None:
        with self._lock:
            self._busy[direction] = False

    def is_busy(self, direction: Direction) -> bool:
        with self._lock:
            return self._busy[direction]

    @contextmanager
    def hold(self, direction: Direction) -> Iterator[bool]:
        """Yield True when the slot was taken; it is released on every exit path."""
        acquired = self.try_acquire(direction)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(direction)
