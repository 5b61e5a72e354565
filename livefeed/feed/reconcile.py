from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from .listener import FeedListener, NullListener
from .state import Feed, Tombstone
from .types import Direction, MergeResult, Message, MessageState, ViewportEdge

logger = logging.getLogger(__name__)


class Reconciler:
    """Folds fetched and confirmed messages into a feed.

    Matching is keyed on message identity, then on the client token, so merging
    the same batch twice changes nothing.
    """

    def __init__(self, feed: Feed, listener: FeedListener | None = None) -> None:
        self.feed = feed
        self.listener: FeedListener = listener or NullListener()

    def merge(
        self,
        batch: Sequence[Message],
        direction: Direction,
        *,
        requested: int | None = None,
        page_size: int | None = None,
        read_upto: int | None = None,
    ) -> MergeResult:
        viewport = ViewportEdge.BOTTOM if direction is Direction.FORWARD else ViewportEdge.TOP
        result = MergeResult(direction=direction, viewport=viewport)
        feed = self.feed
        with feed.lock:
            unread_before = feed.unread_count
            if read_upto is not None:
                feed.apply_read_flags(feed.unread.mark_read(read_upto))
            ids: list[int] = []
            for message in batch:
                if message.id is None:
                    continue
                ids.append(message.id)
                self._fold(message, result)
            cursors = feed.cursors
            if direction is Direction.FORWARD:
                if ids:
                    cursors.advance_after(max(ids))
                    if cursors.before is None:
                        cursors.retreat_before(min(ids))
                elif requested is not None:
                    cursors.advance_after(requested)
            else:
                if ids:
                    cursors.retreat_before(min(ids))
                if page_size is None or len(batch) < page_size:
                    cursors.mark_reached_start()
            self._count_arrivals(result.inserted)
            unread_after = feed.unread_count
        self._notify(result, unread_before, unread_after)
        return result

    def confirm(self, message: Message, *, token: str | None = None) -> MergeResult:
        """Fold a server confirmation for a submit (with token) or an edit."""
        viewport = ViewportEdge.BOTTOM if token else ViewportEdge.NONE
        result = MergeResult(direction=None, viewport=viewport)
        if message.id is None:
            return result
        if token and not message.token:
            message = replace(message, token=token)
        with self.feed.lock:
            unread_before = self.feed.unread_count
            self._fold(message, result)
            self._count_arrivals(result.inserted)
            unread_after = self.feed.unread_count
        self._notify(result, unread_before, unread_after)
        return result

    def remove(self, message_id: int, *, tombstone: bool = False) -> Message | None:
        """Drop a confirmed message; keep a tombstone when the delete is unconfirmed."""
        feed = self.feed
        with feed.lock:
            unread_before = feed.unread_count
            message = feed.pop_confirmed(message_id)
            if message is None:
                return None
            was_unread = feed.unread.on_local_remove(message_id)
            if tombstone:
                feed.add_tombstone(message_id, Tombstone(message=message, was_unread=was_unread))
            unread_after = feed.unread_count
        result = MergeResult(direction=None, removed=[message], viewport=ViewportEdge.NONE)
        self._notify(result, unread_before, unread_after)
        return message

    def forget_tombstone(self, message_id: int) -> None:
        self.feed.pop_tombstone(message_id)

    def restore(self, message_id: int) -> Message | None:
        """Put back a message whose server-side delete failed."""
        feed = self.feed
        with feed.lock:
            stone = feed.pop_tombstone(message_id)
            if stone is None:
                return None
            unread_before = feed.unread_count
            feed.put_confirmed(stone.message)
            if stone.was_unread:
                feed.unread.restore(message_id)
            unread_after = feed.unread_count
        result = MergeResult(direction=None, inserted=[stone.message], viewport=ViewportEdge.NONE)
        self._notify(result, unread_before, unread_after)
        return stone.message

    def add_optimistic(self, message: Message) -> None:
        self.feed.add_pending(message)
        self._notify(
            MergeResult(direction=None, inserted=[message], viewport=ViewportEdge.BOTTOM),
            0,
            0,
        )

    def fail_optimistic(self, token: str) -> Message | None:
        message = self.feed.set_pending_state(token, MessageState.FAILED)
        if message is not None:
            self._notify(
                MergeResult(direction=None, replaced=[message], viewport=ViewportEdge.NONE), 0, 0
            )
        return message

    def retry_optimistic(self, token: str) -> Message | None:
        message = self.feed.set_pending_state(token, MessageState.PENDING)
        if message is not None:
            self._notify(
                MergeResult(direction=None, replaced=[message], viewport=ViewportEdge.NONE), 0, 0
            )
        return message

    def discard_optimistic(self, token: str) -> Message | None:
        message = self.feed.drop_pending(token)
        if message is not None:
            self._notify(
                MergeResult(direction=None, removed=[message], viewport=ViewportEdge.NONE), 0, 0
            )
        return message

    def mark_read(self, upto_id: int) -> int:
        feed = self.feed
        with feed.lock:
            unread_before = feed.unread_count
            feed.apply_read_flags(feed.unread.mark_read(upto_id))
            unread_after = feed.unread_count
        self._notify(MergeResult(direction=None), unread_before, unread_after)
        return unread_after

    def mark_one_read(self, message_id: int) -> bool:
        feed = self.feed
        with feed.lock:
            unread_before = feed.unread_count
            changed = feed.unread.mark_one_read(message_id)
            if changed:
                feed.apply_read_flags({message_id})
            unread_after = feed.unread_count
        self._notify(MergeResult(direction=None), unread_before, unread_after)
        return changed

    def _fold(self, message: Message, result: MergeResult) -> None:
        feed = self.feed
        assert message.id is not None
        token = message.token
        existing = feed.get(message.id)
        placeholder = feed.get_pending(token)
        if existing is not None:
            if existing.same_payload(message) and placeholder is None:
                return
            stored = replace(
                message, token=None, state=MessageState.CONFIRMED, read=existing.read
            )
            feed.put_confirmed(stored, token=token)
            result.replaced.append(stored)
            return
        if feed.has_tombstone(message.id):
            return
        owner = feed.confirmed_id_for(token)
        if owner is not None and owner != message.id:
            logger.warning(
                "dropping message %s: token already confirmed as %s", message.id, owner
            )
            return
        stored = replace(message, token=None, state=MessageState.CONFIRMED, read=True)
        feed.put_confirmed(stored, token=token)
        if placeholder is not None:
            result.replaced.append(stored)
        else:
            result.inserted.append(stored)

    def _count_arrivals(self, inserted: list[Message]) -> None:
        unread = self.feed.unread
        unread.on_arrivals(inserted)
        for message in inserted:
            if unread.is_unread(message.id):
                message.read = False

    def _notify(self, result: MergeResult, unread_before: int, unread_after: int) -> None:
        if result.changed:
            self.listener.on_batch_merged(result)
        if unread_before != unread_after:
            self.listener.on_unread_changed(unread_after)
