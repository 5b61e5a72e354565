from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import FeedError, MissingTarget
from .composer import Composer
from .gate import RequestGate
from .listener import FeedListener, NullListener
from .reconcile import Reconciler
from .scheduler import SyncScheduler
from .state import Feed
from .types import Message

if TYPE_CHECKING:
    from ..config import LiveFeedConfig
    from ..sync.feed_client import FeedClient

logger = logging.getLogger(__name__)


class FeedSession:
    """All collaborators for one room's feed."""

    def __init__(
        self,
        feed: Feed,
        client: FeedClient,
        *,
        listener: FeedListener | None = None,
        poll_interval_s: float = 5.0,
        page_size: int = 50,
        proximity_px: int = 300,
    ) -> None:
        self.feed = feed
        self.client = client
        self.listener: FeedListener = listener or NullListener()
        self.gate = RequestGate()
        self.reconciler = Reconciler(feed, self.listener)
        self.composer = Composer(feed, client, self.reconciler, self.listener)
        self.scheduler = SyncScheduler(
            feed,
            client,
            self.reconciler,
            gate=self.gate,
            listener=self.listener,
            poll_interval_s=poll_interval_s,
            page_size=page_size,
            proximity_px=proximity_px,
        )

    @classmethod
    def open(
        cls,
        config: LiveFeedConfig,
        *,
        listener: FeedListener | None = None,
        room: str | None = None,
    ) -> FeedSession:
        from ..sync.feed_client import FeedClient

        room_name = room or config.room
        client = FeedClient(
            config.base_url,
            room=room_name,
            user=config.user,
            timeout_s=config.request_timeout_s,
        )
        return cls(
            Feed(config.user, room=room_name),
            client,
            listener=listener,
            poll_interval_s=config.poll_interval_s,
            page_size=config.page_size,
            proximity_px=config.history_proximity_px,
        )

    def read_all(self) -> bool:
        """Acknowledge everything fetched so far; the server ack is fire-and-forget."""
        if not self.feed.unread_count:
            return False
        upto = self.feed.cursors.after
        self.reconciler.mark_read(upto)
        try:
            self.client.mark_read(upto)
        except FeedError as exc:
            logger.warning("read ack up to %s failed: %s", upto, exc)
        return True

    def read(self, message_id: int) -> bool:
        return self.reconciler.mark_one_read(message_id)

    def refresh(self, message_id: int) -> Message | None:
        """Refetch one message that is already in the feed."""
        if self.feed.get(message_id) is None:
            return None
        try:
            message = self.client.fetch_one(message_id)
        except MissingTarget:
            self.reconciler.remove(message_id)
            return None
        except FeedError as exc:
            logger.warning("refresh of %s failed: %s", message_id, exc)
            return None
        self.reconciler.confirm(message)
        return self.feed.get(message_id)

    def remote_removed(self, message_id: int) -> Message | None:
        return self.reconciler.remove(message_id)

    def start(self) -> None:
        self.scheduler.start()

    def stop(self, timeout: float | None = None) -> None:
        self.scheduler.stop(timeout)
