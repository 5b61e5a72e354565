from __future__ import annotations

from collections.abc import Iterable

from .types import Message


class UnreadTracker:
    """Counts confirmed messages from other authors past the read boundary.

    Reading is acknowledged explicitly; fetching a batch never marks it read.
    """

    def __init__(self, user: str, *, read_boundary: int = 0) -> None:
        self.user = user
        self._read_boundary = read_boundary
        self._unread: set[int] = set()

    @property
    def unread_count(self) -> int:
        return len(self._unread)

    @property
    def read_boundary(self) -> int:
        return self._read_boundary

    def is_unread(self, message_id: int | None) -> bool:
        return message_id is not None and message_id in self._unread

    def on_arrivals(self, messages: Iterable[Message]) -> int:
        added = 0
        for message in messages:
            if not message.confirmed or message.author == self.user:
                continue
            assert message.id is not None
            if message.id <= self._read_boundary or message.id in self._unread:
                continue
            self._unread.add(message.id)
            added += 1
        return added

    def mark_read(self, upto_id: int) -> set[int]:
        """Move the boundary forward and return the ids that became read."""
        self._read_boundary = max(self._read_boundary, upto_id)
        cleared = {message_id for message_id in self._unread if message_id <= upto_id}
        self._unread -= cleared
        return cleared

    def mark_one_read(self, message_id: int) -> bool:
        if message_id not in self._unread:
            return False
        self._unread.discard(message_id)
        return True

    def on_local_remove(self, message_id: int) -> bool:
        if message_id not in self._unread:
            return False
        self._unread.discard(message_id)
        return True

    def restore(self, message_id: int) -> None:
        if message_id > self._read_boundary:
            self._unread.add(message_id)
