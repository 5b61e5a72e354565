from __future__ import annotations

from pathlib import Path

import pytest

from livefeed.config import CONFIG_ENV_OVERRIDES
from livefeed.errors import MissingTarget
from livefeed.feed.types import Message
from livefeed.sync.feed_client import FeedPage


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("LIVEFEED_CONFIG", str(tmp_path / "config.json"))


class FakeFeedClient:
    """In-memory stand-in for FeedClient that records every call."""

    def __init__(self, user: str = "me") -> None:
        self.user = user
        self.base_url = "http://fake"
        self.log: list[Message] = []
        self.calls: list[tuple] = []
        self.errors: dict[str, Exception] = {}
        self.read_upto: int | None = None
        self.max_limit: int | None = None
        self._next_id = 1

    def add(self, author: str, content: str, *, token: str | None = None) -> Message:
        message = Message(
            id=self._next_id,
            author=author,
            content=content,
            created_at=f"2026-01-01T00:00:{self._next_id:02d}+00:00",
            token=token,
        )
        self._next_id += 1
        self.log.append(message)
        return message

    def _copy(self, message: Message) -> Message:
        return Message(
            id=message.id,
            author=message.author,
            content=message.content,
            created_at=message.created_at,
            token=message.token,
        )

    def _maybe_fail(self, name: str) -> None:
        error = self.errors.get(name)
        if error is not None:
            raise error

    def fetch_after(self, after: int, *, limit: int) -> FeedPage:
        self.calls.append(("fetch_after", after, limit))
        self._maybe_fail("fetch_after")
        if after <= 0:
            items = self.log[-limit:]
        else:
            items = [m for m in self.log if m.id and m.id > after][:limit]
        return FeedPage(messages=[self._copy(m) for m in items], read_upto=self.read_upto)

    def fetch_before(self, before: int, *, limit: int) -> FeedPage:
        self.calls.append(("fetch_before", before, limit))
        self._maybe_fail("fetch_before")
        applied = min(limit, self.max_limit) if self.max_limit else None
        older = [m for m in self.log if m.id and m.id < before]
        return FeedPage(
            messages=[self._copy(m) for m in older[-(applied or limit):]], limit=applied
        )

    def fetch_one(self, message_id: int) -> Message:
        self.calls.append(("fetch_one", message_id))
        self._maybe_fail("fetch_one")
        for message in self.log:
            if message.id == message_id:
                return self._copy(message)
        raise MissingTarget("message fetch failed (404: not_found)", status=404)

    def submit(self, content: str, token: str) -> Message:
        self.calls.append(("submit", content, token))
        self._maybe_fail("submit")
        for message in self.log:
            if message.token == token:
                return self._copy(message)
        return self._copy(self.add(self.user, content, token=token))

    def edit(self, message_id: int, content: str) -> Message:
        self.calls.append(("edit", message_id, content))
        self._maybe_fail("edit")
        for message in self.log:
            if message.id == message_id:
                message.content = content
                return self._copy(message)
        raise MissingTarget("edit failed (404: not_found)", status=404)

    def delete(self, message_id: int) -> None:
        self.calls.append(("delete", message_id))
        self._maybe_fail("delete")
        before = len(self.log)
        self.log = [m for m in self.log if m.id != message_id]
        if len(self.log) == before:
            raise MissingTarget("delete failed (404: not_found)", status=404)

    def mark_read(self, upto: int) -> None:
        self.calls.append(("mark_read", upto))
        self._maybe_fail("mark_read")


class RecordingListener:
    def __init__(self) -> None:
        self.merged: list = []
        self.unread: list[int] = []
        self.sent: list[Message] = []
        self.send_failures: list[tuple] = []
        self.remove_failures: list[tuple] = []
        self.sync_errors: list[tuple] = []

    def on_batch_merged(self, result) -> None:
        self.merged.append(result)

    def on_unread_changed(self, count: int) -> None:
        self.unread.append(count)

    def on_send_succeeded(self, message: Message) -> None:
        self.sent.append(message)

    def on_send_failed(self, message: Message, error) -> None:
        self.send_failures.append((message, error))

    def on_remove_failed(self, message: Message, error) -> None:
        self.remove_failures.append((message, error))

    def on_sync_error(self, direction, error) -> None:
        self.sync_errors.append((direction, error))


@pytest.fixture
def fake_client() -> FakeFeedClient:
    return FakeFeedClient()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()
