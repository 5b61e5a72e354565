from livefeed.feed.types import Message, MessageState
from livefeed.feed.unread import UnreadTracker


def _msg(message_id: int, author: str = "alice") -> Message:
    return Message(id=message_id, author=author, content="hi", created_at="")


def test_arrivals_from_others_past_boundary_are_counted() -> None:
    tracker = UnreadTracker("me", read_boundary=5)
    added = tracker.on_arrivals([_msg(4), _msg(6), _msg(7, author="me"), _msg(8)])
    assert added == 2
    assert tracker.unread_count == 2


def test_arrivals_are_counted_once() -> None:
    tracker = UnreadTracker("me")
    tracker.on_arrivals([_msg(1), _msg(2)])
    tracker.on_arrivals([_msg(1), _msg(2)])
    assert tracker.unread_count == 2


def test_pending_messages_are_never_unread() -> None:
    tracker = UnreadTracker("me")
    pending = Message(
        id=None, author="alice", content="x", created_at="", token="t", state=MessageState.PENDING
    )
    assert tracker.on_arrivals([pending]) == 0


def test_mark_read_clears_up_to_boundary_and_ignores_smaller_ids() -> None:
    tracker = UnreadTracker("me")
    tracker.on_arrivals([_msg(1), _msg(2), _msg(3)])
    assert tracker.mark_read(2) == {1, 2}
    assert tracker.unread_count == 1
    assert tracker.mark_read(1) == set()
    assert tracker.read_boundary == 2
    assert tracker.unread_count == 1


def test_local_remove_only_counts_unread() -> None:
    tracker = UnreadTracker("me")
    tracker.on_arrivals([_msg(3)])
    assert tracker.on_local_remove(3) is True
    assert tracker.on_local_remove(3) is False
    assert tracker.unread_count == 0


def test_mark_one_read() -> None:
    tracker = UnreadTracker("me")
    tracker.on_arrivals([_msg(3), _msg(4)])
    assert tracker.mark_one_read(4) is True
    assert tracker.is_unread(3)
    assert not tracker.is_unread(4)
