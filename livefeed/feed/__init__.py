from __future__ import annotations

from .composer import Composer
from .cursors import CursorStore
from .gate import RequestGate
from .listener import ConsoleListener, FeedListener, NullListener
from .reconcile import Reconciler
from .scheduler import SyncScheduler
from .session import FeedSession
from .state import Feed
from .types import Direction, MergeResult, Message, MessageState, ViewportEdge
from .unread import UnreadTracker

__all__ = [
    "Composer",
    "ConsoleListener",
    "CursorStore",
    "Direction",
    "Feed",
    "FeedListener",
    "FeedSession",
    "MergeResult",
    "Message",
    "MessageState",
    "NullListener",
    "Reconciler",
    "RequestGate",
    "SyncScheduler",
    "UnreadTracker",
    "ViewportEdge",
]
