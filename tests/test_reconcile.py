from __future__ import annotations

from livefeed.feed.reconcile import Reconciler
from livefeed.feed.state import Feed
from livefeed.feed.types import Direction, Message, MessageState, ViewportEdge


def _msg(
    message_id: int,
    author: str = "alice",
    content: str | None = None,
    token: str | None = None,
) -> Message:
    return Message(
        id=message_id,
        author=author,
        content=content if content is not None else f"message {message_id}",
        created_at=f"2026-01-01T00:00:{message_id:02d}+00:00",
        token=token,
    )


def _pending(token: str, content: str = "yo") -> Message:
    return Message(
        id=None,
        author="me",
        content=content,
        created_at="2026-01-01T00:01:00+00:00",
        token=token,
        state=MessageState.PENDING,
    )


def _ids(feed: Feed) -> list[int | None]:
    return [message.id for message in feed.messages()]


def test_merging_the_same_batch_twice_changes_nothing(listener) -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed, listener)
    batch = [_msg(1), _msg(2), _msg(3)]

    first = reconciler.merge(batch, Direction.FORWARD)
    snapshot = feed.snapshot()
    second = reconciler.merge([_msg(1), _msg(2), _msg(3)], Direction.FORWARD)

    assert len(first.inserted) == 3
    assert second.changed is False
    assert feed.snapshot() == snapshot
    assert feed.unread_count == 3
    assert listener.unread == [3]
    assert len(listener.merged) == 1


def test_cursors_are_monotone_across_merges() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    seen_after = [feed.cursors.after]
    seen_before: list[int] = []

    def step(batch, direction, **kwargs) -> None:
        reconciler.merge(batch, direction, **kwargs)
        seen_after.append(feed.cursors.after)
        assert feed.cursors.before is not None
        seen_before.append(feed.cursors.before)

    step([_msg(5), _msg(6)], Direction.FORWARD)
    step([_msg(3), _msg(4)], Direction.BACKWARD, page_size=2)
    step([], Direction.FORWARD, requested=6)
    step([_msg(2)], Direction.FORWARD)
    step([_msg(1)], Direction.BACKWARD, page_size=2)
    step([_msg(7)], Direction.FORWARD)

    assert seen_after == sorted(seen_after)
    assert seen_before == sorted(seen_before, reverse=True)
    assert feed.cursors.after == 7
    assert feed.cursors.before == 1
    assert feed.cursors.reached_start is True


def test_first_forward_batch_sets_history_cursor() -> None:
    feed = Feed("me")
    Reconciler(feed).merge([_msg(5), _msg(6), _msg(7)], Direction.FORWARD)
    assert feed.cursors.before == 5
    assert feed.cursors.after == 7
    assert feed.cursors.reached_start is False


def test_overlapping_batches_never_duplicate_identities() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(2), _msg(3)], Direction.FORWARD)
    reconciler.merge([_msg(1), _msg(2)], Direction.BACKWARD, page_size=10)
    reconciler.merge([_msg(3), _msg(4)], Direction.FORWARD)
    assert _ids(feed) == [1, 2, 3, 4]


def test_forward_batch_confirms_optimistic_message_by_token() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.add_optimistic(_pending("T"))

    result = reconciler.merge([_msg(9, author="me", content="yo", token="T")], Direction.FORWARD)

    assert len(feed) == 1
    (stored,) = feed.messages()
    assert stored.id == 9
    assert stored.state is MessageState.CONFIRMED
    assert stored.token is None
    assert result.inserted == []
    assert [m.id for m in result.replaced] == [9]
    assert feed.confirmed_id_for("T") == 9
    assert feed.unread_count == 0

    late = reconciler.confirm(_msg(9, author="me", content="yo"), token="T")
    assert late.changed is False
    assert len(feed) == 1


def test_submit_confirmation_before_poll_is_not_duplicated() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.add_optimistic(_pending("T"))

    reconciler.confirm(_msg(9, author="me", content="yo"), token="T")
    result = reconciler.merge([_msg(9, author="me", content="yo", token="T")], Direction.FORWARD)

    assert result.changed is False
    assert _ids(feed) == [9]


def test_optimistic_messages_sort_after_confirmed_ones() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.add_optimistic(_pending("A", "first"))
    reconciler.merge([_msg(1), _msg(2)], Direction.FORWARD)
    reconciler.add_optimistic(_pending("B", "second"))

    assert [m.id for m in feed.messages()] == [1, 2, None, None]
    assert [m.token for m in feed.messages()[2:]] == ["A", "B"]


def test_unread_accounting_for_forward_batch_and_mark_read(listener) -> None:
    feed = Feed("me", read_boundary=10)
    reconciler = Reconciler(feed, listener)

    reconciler.merge([_msg(11), _msg(12), _msg(13)], Direction.FORWARD)
    assert feed.unread_count == 3
    assert all(not m.read for m in feed.messages())

    reconciler.mark_read(13)
    assert feed.unread_count == 0
    assert all(m.read for m in feed.messages())
    assert listener.unread == [3, 0]


def test_own_messages_do_not_count_as_unread() -> None:
    feed = Feed("me")
    Reconciler(feed).merge([_msg(1, author="me"), _msg(2)], Direction.FORWARD)
    assert feed.unread_count == 1


def test_server_read_mark_is_applied_before_arrivals() -> None:
    feed = Feed("me")
    Reconciler(feed).merge([_msg(1), _msg(2), _msg(3)], Direction.FORWARD, read_upto=2)
    assert feed.unread_count == 1
    assert [m.read for m in feed.messages()] == [True, True, False]


def test_edit_confirmation_replaces_in_place() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(41), _msg(42, author="me"), _msg(43)], Direction.FORWARD)

    result = reconciler.confirm(_msg(42, author="me", content="hello"))

    assert _ids(feed) == [41, 42, 43]
    assert feed.get(42).content == "hello"
    assert result.inserted == []
    assert result.viewport is ViewportEdge.NONE


def test_changed_payload_in_batch_replaces_and_keeps_read_state() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(1)], Direction.FORWARD)

    result = reconciler.merge([_msg(1, content="edited")], Direction.FORWARD)

    assert [m.id for m in result.replaced] == [1]
    assert feed.get(1).content == "edited"
    assert feed.get(1).read is False
    assert feed.unread_count == 1


def test_empty_backward_batch_reaches_start() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(5)], Direction.FORWARD)
    result = reconciler.merge([], Direction.BACKWARD, requested=5, page_size=50)
    assert result.changed is False
    assert feed.cursors.reached_start is True
    assert feed.cursors.before == 5


def test_full_backward_page_does_not_reach_start() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(5)], Direction.FORWARD)
    result = reconciler.merge([_msg(3), _msg(4)], Direction.BACKWARD, page_size=2)
    assert result.viewport is ViewportEdge.TOP
    assert feed.cursors.reached_start is False
    assert feed.cursors.before == 3


def test_forward_viewport_hint_is_bottom() -> None:
    result = Reconciler(Feed("me")).merge([_msg(1)], Direction.FORWARD)
    assert result.viewport is ViewportEdge.BOTTOM


def test_tombstoned_message_is_not_resurrected_by_poll() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(1), _msg(2, author="me")], Direction.FORWARD)

    reconciler.remove(2, tombstone=True)
    reconciler.merge([_msg(1), _msg(2, author="me")], Direction.FORWARD)
    assert _ids(feed) == [1]

    restored = reconciler.restore(2)
    assert restored is not None
    assert _ids(feed) == [1, 2]


def test_removing_unread_message_decrements_count(listener) -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed, listener)
    reconciler.merge([_msg(1), _msg(2)], Direction.FORWARD)

    removed = reconciler.remove(1)

    assert removed is not None
    assert feed.unread_count == 1
    assert listener.merged[-1].removed == [removed]
    assert reconciler.remove(1) is None


def test_restore_puts_back_unread_status() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(1)], Direction.FORWARD)
    reconciler.remove(1, tombstone=True)
    assert feed.unread_count == 0
    reconciler.restore(1)
    assert feed.unread_count == 1


def test_token_is_bound_to_one_identity() -> None:
    feed = Feed("me")
    reconciler = Reconciler(feed)
    reconciler.merge([_msg(1, author="me", token="T")], Direction.FORWARD)
    reconciler.merge([_msg(2, author="me", token="T")], Direction.FORWARD)
    assert _ids(feed) == [1]
