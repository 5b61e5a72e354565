from __future__ import annotations

import threading
from dataclasses import dataclass

from .cursors import CursorStore
from .types import Message, MessageState
from .unread import UnreadTracker


@dataclass
class Tombstone:
    message: Message
    was_unread: bool


class Feed:
    """Ordered local window of one chat room.

    Confirmed messages are ordered by id; optimistic ones follow them in
    submission order. Only the reconciler and the composer mutate entries.
    """

    def __init__(self, user: str, *, room: str = "main", read_boundary: int = 0) -> None:
        self.user = user
        self.room = room
        self.lock = threading.RLock()
        self.cursors = CursorStore()
        self.unread = UnreadTracker(user, read_boundary=read_boundary)
        self._confirmed: dict[int, Message] = {}
        self._pending: dict[str, Message] = {}
        self._tokens: dict[str, int] = {}
        self._tombstones: dict[int, Tombstone] = {}

    def __len__(self) -> int:
        with self.lock:
            return len(self._confirmed) + len(self._pending)

    @property
    def unread_count(self) -> int:
        return self.unread.unread_count

    def messages(self) -> list[Message]:
        with self.lock:
            ordered = [self._confirmed[message_id] for message_id in sorted(self._confirmed)]
            ordered.extend(self._pending.values())
            return ordered

    def get(self, message_id: int | None) -> Message | None:
        if message_id is None:
            return None
        with self.lock:
            return self._confirmed.get(message_id)

    def get_pending(self, token: str | None) -> Message | None:
        if not token:
            return None
        with self.lock:
            return self._pending.get(token)

    def confirmed_id_for(self, token: str | None) -> int | None:
        if not token:
            return None
        with self.lock:
            return self._tokens.get(token)

    # Mutators below are reserved for the reconciler and the composer.

    def put_confirmed(self, message: Message, *, token: str | None = None) -> Message | None:
        assert message.id is not None
        with self.lock:
            if token:
                self._pending.pop(token, None)
                self._tokens[token] = message.id
            previous = self._confirmed.get(message.id)
            self._confirmed[message.id] = message
            return previous

    def pop_confirmed(self, message_id: int) -> Message | None:
        with self.lock:
            return self._confirmed.pop(message_id, None)

    def add_pending(self, message: Message) -> None:
        assert message.token
        with self.lock:
            self._pending[message.token] = message

    def drop_pending(self, token: str) -> Message | None:
        with self.lock:
            return self._pending.pop(token, None)

    def set_pending_state(self, token: str, state: MessageState) -> Message | None:
        with self.lock:
            message = self._pending.get(token)
            if message is not None:
                message.state = state
            return message

    def add_tombstone(self, message_id: int, tombstone: Tombstone) -> None:
        with self.lock:
            self._tombstones[message_id] = tombstone

    def pop_tombstone(self, message_id: int) -> Tombstone | None:
        with self.lock:
            return self._tombstones.pop(message_id, None)

    def has_tombstone(self, message_id: int | None) -> bool:
        if message_id is None:
            return False
        with self.lock:
            return message_id in self._tombstones

    def apply_read_flags(self, message_ids: set[int]) -> None:
        with self.lock:
            for message_id in message_ids:
                message = self._confirmed.get(message_id)
                if message is not None:
                    message.read = True

    def snapshot(self) -> dict[str, object]:
        with self.lock:
            return {
                "room": self.room,
                "messages": [message.to_dict() for message in self.messages()],
                "cursors": self.cursors.snapshot(),
                "unread_count": self.unread.unread_count,
                "read_boundary": self.unread.read_boundary,
            }
