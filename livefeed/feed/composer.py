from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING
from uuid import uuid4

from ..errors import FeedError, MissingTarget, ServerRejection
from .listener import FeedListener, NullListener
from .reconcile import Reconciler
from .state import Feed
from .types import Message, MessageState

if TYPE_CHECKING:
    from ..sync.feed_client import FeedClient

logger = logging.getLogger(__name__)


def new_token() -> str:
    return uuid4().hex


def _require_content(content: str) -> str:
    if not content.strip():
        raise ServerRejection("message content is empty", code="empty_content")
    return content


class Composer:
    """Submits, edits and deletes messages on behalf of the local user.

    New messages appear immediately as optimistic entries keyed by a client
    token. Failures are surfaced, never silently dropped: failed sends stay in
    the feed until retried or discarded, failed deletes are restored.
    """

    def __init__(
        self,
        feed: Feed,
        client: FeedClient,
        reconciler: Reconciler,
        listener: FeedListener | None = None,
    ) -> None:
        self.feed = feed
        self.client = client
        self.reconciler = reconciler
        self.listener: FeedListener = listener or NullListener()

    def submit_new(self, content: str) -> Message:
        _require_content(content)
        message = Message(
            id=None,
            author=self.feed.user,
            content=content,
            created_at=dt.datetime.now(dt.UTC).isoformat(),
            token=new_token(),
            state=MessageState.PENDING,
        )
        self.reconciler.add_optimistic(message)
        return self._send(message)

    def retry(self, token: str) -> Message | None:
        message = self.feed.get_pending(token)
        if message is None or message.state is not MessageState.FAILED:
            return None
        self.reconciler.retry_optimistic(token)
        return self._send(message)

    def discard(self, token: str) -> Message | None:
        message = self.feed.get_pending(token)
        if message is None or message.state is not MessageState.FAILED:
            return None
        return self.reconciler.discard_optimistic(token)

    def _send(self, message: Message) -> Message:
        assert message.token
        token = message.token
        try:
            confirmed = self.client.submit(message.content, token)
        except FeedError as exc:
            confirmed_id = self.feed.confirmed_id_for(token)
            if confirmed_id is not None:
                # A forward poll already delivered the server copy.
                stored = self.feed.get(confirmed_id)
                if stored is not None:
                    self.listener.on_send_succeeded(stored)
                    return stored
            logger.warning("send failed for token %s: %s", token, exc)
            failed = self.reconciler.fail_optimistic(token) or message
            self.listener.on_send_failed(failed, exc)
            return failed
        self.reconciler.confirm(confirmed, token=token)
        stored = self.feed.get(confirmed.id) or confirmed
        self.listener.on_send_succeeded(stored)
        return stored

    def submit_edit(self, message_id: int, content: str) -> Message | None:
        """Replace the content of a confirmed message in place.

        Returns the stored message on success. On failure the previous content
        stays and the error is passed to ``on_send_failed``.
        """
        previous = self.feed.get(message_id)
        try:
            _require_content(content)
            edited = self.client.edit(message_id, content)
        except MissingTarget as exc:
            logger.info("edit target %s is gone, removing locally", message_id)
            self.reconciler.remove(message_id)
            if previous is not None:
                self.listener.on_send_failed(previous, exc)
            return None
        except FeedError as exc:
            logger.warning("edit of %s failed: %s", message_id, exc)
            if previous is not None:
                self.listener.on_send_failed(previous, exc)
            return None
        self.reconciler.confirm(edited)
        stored = self.feed.get(message_id) or edited
        self.listener.on_send_succeeded(stored)
        return stored

    def remove(self, message_id: int) -> bool:
        """Delete a message; the local entry is restored if the server refuses."""
        removed = self.reconciler.remove(message_id, tombstone=True)
        if removed is None:
            return False
        try:
            self.client.delete(message_id)
        except MissingTarget:
            self.reconciler.forget_tombstone(message_id)
            return True
        except FeedError as exc:
            logger.warning("delete of %s failed: %s", message_id, exc)
            restored = self.reconciler.restore(message_id) or removed
            self.listener.on_remove_failed(restored, exc)
            return False
        self.reconciler.forget_tombstone(message_id)
        return True
