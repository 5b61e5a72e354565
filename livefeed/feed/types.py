from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class Direction(enum.Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class ViewportEdge(enum.Enum):
    """Which edge of the rendered window a change touched."""

    TOP = "top"
    BOTTOM = "bottom"
    NONE = "none"


class MessageState(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class Message:
    """One chat message.

    Pending and failed messages are optimistic: they have no ``id`` yet and are
    addressed by the client ``token``. Confirmed messages are addressed by ``id``.
    """

    id: int | None
    author: str
    content: str
    created_at: str
    token: str | None = None
    read: bool = True
    state: MessageState = MessageState.CONFIRMED

    @property
    def confirmed(self) -> bool:
        return self.state is MessageState.CONFIRMED and self.id is not None

    @property
    def key(self) -> str:
        if self.confirmed:
            return f"id:{self.id}"
        return f"token:{self.token}"

    def same_payload(self, other: Message) -> bool:
        return (
            self.id == other.id
            and self.author == other.author
            and self.content == other.content
            and self.created_at == other.created_at
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "created_at": self.created_at,
            "uid": self.token,
            "state": self.state.value,
            "read": self.read,
        }


@dataclass
class MergeResult:
    """Diff handed to the rendering collaborator after a feed mutation."""

    direction: Direction | None
    inserted: list[Message] = field(default_factory=list)
    replaced: list[Message] = field(default_factory=list)
    removed: list[Message] = field(default_factory=list)
    viewport: ViewportEdge = ViewportEdge.NONE

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.replaced or self.removed)

    def counts(self) -> dict[str, int]:
        return {
            "inserted": len(self.inserted),
            "replaced": len(self.replaced),
            "removed": len(self.removed),
        }
