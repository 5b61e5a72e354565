from __future__ import annotations

from livefeed.config import LiveFeedConfig
from livefeed.errors import TransientNetworkError
from livefeed.feed.session import FeedSession
from livefeed.feed.state import Feed
from livefeed.sync.feed_client import FeedClient


def _session(fake_client, listener=None) -> FeedSession:
    return FeedSession(Feed("me"), fake_client, listener=listener, page_size=10)


def test_read_all_acknowledges_up_to_after(fake_client, listener) -> None:
    for n in range(3):
        fake_client.add("alice", f"m{n}")
    session = _session(fake_client, listener)
    session.scheduler.poll_forward()
    assert session.feed.unread_count == 3

    assert session.read_all() is True

    assert session.feed.unread_count == 0
    assert fake_client.calls[-1] == ("mark_read", 3)
    assert listener.unread == [3, 0]


def test_read_all_without_unread_sends_nothing(fake_client) -> None:
    fake_client.add("me", "mine")
    session = _session(fake_client)
    session.scheduler.poll_forward()

    assert session.read_all() is False
    assert all(call[0] != "mark_read" for call in fake_client.calls)


def test_read_ack_failure_is_not_raised(fake_client) -> None:
    fake_client.add("alice", "one")
    fake_client.errors["mark_read"] = TransientNetworkError("read ack failed (503)")
    session = _session(fake_client)
    session.scheduler.poll_forward()

    assert session.read_all() is True
    assert session.feed.unread_count == 0


def test_read_single_message(fake_client) -> None:
    fake_client.add("alice", "one")
    fake_client.add("alice", "two")
    session = _session(fake_client)
    session.scheduler.poll_forward()

    assert session.read(1) is True
    assert session.read(1) is False
    assert session.feed.unread_count == 1


def test_refresh_replaces_and_missing_removes(fake_client) -> None:
    fake_client.add("alice", "one")
    fake_client.add("alice", "two")
    session = _session(fake_client)
    session.scheduler.poll_forward()

    fake_client.log[0].content = "one, edited"
    refreshed = session.refresh(1)
    assert refreshed is not None and refreshed.content == "one, edited"

    fake_client.log.pop(1)
    assert session.refresh(2) is None
    assert [m.id for m in session.feed.messages()] == [1]
    assert session.refresh(99) is None


def test_remote_removal_updates_unread(fake_client) -> None:
    fake_client.add("alice", "one")
    session = _session(fake_client)
    session.scheduler.poll_forward()

    assert session.remote_removed(1) is not None
    assert session.feed.unread_count == 0


def test_open_builds_client_from_config() -> None:
    cfg = LiveFeedConfig(base_url="127.0.0.1:9999", room="ops", user="ann", page_size=7)
    session = FeedSession.open(cfg)
    assert isinstance(session.client, FeedClient)
    assert session.client.base_url == "http://127.0.0.1:9999"
    assert session.feed.room == "ops"
    assert session.feed.user == "ann"
    assert session.scheduler.page_size == 7
