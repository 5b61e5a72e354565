from __future__ import annotations

from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Any
from urllib.parse import quote, urlencode

from ..errors import FeedError, MissingTarget, ParseFailure, ServerRejection, TransientNetworkError
from ..feed.types import Message, MessageState
from . import http_client

USER_HEADER = "X-Livefeed-User"


@dataclass
class FeedPage:
    messages: list[Message] = field(default_factory=list)
    read_upto: int | None = None
    # Page size the server applied; it may be smaller than the one requested.
    limit: int | None = None


def _error_detail(payload: dict[str, Any] | None) -> str | None:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    message = payload.get("message")
    if isinstance(error, str) and isinstance(message, str):
        return f"{error}: {message}"
    if isinstance(error, str):
        return error
    return None


def error_for_status(status: int, payload: dict[str, Any] | None, action: str) -> FeedError:
    detail = _error_detail(payload)
    code = payload.get("error") if isinstance(payload, dict) else None
    suffix = f" ({status}: {detail})" if detail else f" ({status})"
    text = f"{action} failed{suffix}"
    if status in {404, 410}:
        return MissingTarget(text, status=status, code=code)
    if 400 <= status < 500:
        return ServerRejection(text, status=status, code=code)
    return TransientNetworkError(text, status=status, code=code)


def parse_message(data: object) -> Message:
    if not isinstance(data, dict):
        raise ParseFailure("message is not an object")
    raw_id = data.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, int):
        raise ParseFailure(f"invalid message id: {raw_id!r}")
    author = data.get("author")
    content = data.get("content")
    if not isinstance(author, str) or not isinstance(content, str):
        raise ParseFailure(f"message {raw_id} is missing author or content")
    created_at = data.get("created_at")
    token = data.get("uid")
    return Message(
        id=raw_id,
        author=author,
        content=content,
        created_at=str(created_at or ""),
        token=str(token) if token else None,
        state=MessageState.CONFIRMED,
    )


def parse_page(payload: dict[str, Any] | None) -> FeedPage:
    """Parse a whole page or fail; a partially parsed page is never returned."""
    if payload is None:
        raise ParseFailure("empty response")
    items = payload.get("messages")
    if not isinstance(items, list):
        raise ParseFailure("invalid messages response")
    messages = [parse_message(item) for item in items]
    messages.sort(key=lambda message: message.id)
    read_upto = payload.get("read_upto")
    if isinstance(read_upto, bool) or not isinstance(read_upto, int):
        read_upto = None
    limit = payload.get("limit")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        limit = None
    return FeedPage(messages=messages, read_upto=read_upto, limit=limit)


def _parse_single(payload: dict[str, Any] | None) -> Message:
    if payload is None:
        raise ParseFailure("empty response")
    return parse_message(payload.get("message"))


class FeedClient:
    """HTTP access to one room's message log."""

    def __init__(
        self,
        base_url: str,
        *,
        room: str = "main",
        user: str = "",
        timeout_s: float = 3.0,
    ) -> None:
        self.base_url = http_client.build_base_url(base_url)
        if not self.base_url:
            raise ValueError("missing base url")
        self.room = room
        self.user = user
        self.timeout_s = timeout_s

    def _url(self, suffix: str = "", query: dict[str, Any] | None = None) -> str:
        url = f"{self.base_url}/rooms/{quote(self.room, safe='')}/feed{suffix}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def _request(
        self,
        method: str,
        url: str,
        *,
        action: str,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        headers = {USER_HEADER: self.user} if self.user else None
        try:
            status, payload = http_client.request_json(
                method, url, headers=headers, body=body, timeout_s=self.timeout_s
            )
        except FeedError:
            raise
        except (OSError, HTTPException) as exc:
            detail = str(exc).strip() or exc.__class__.__name__
            raise TransientNetworkError(f"{action} failed: {detail}") from exc
        if status not in {200, 201, 204}:
            raise error_for_status(status, payload, action)
        return payload

    def fetch_after(self, after: int, *, limit: int) -> FeedPage:
        payload = self._request(
            "GET", self._url(query={"after": after, "limit": limit}), action="feed poll"
        )
        return parse_page(payload)

    def fetch_before(self, before: int, *, limit: int) -> FeedPage:
        payload = self._request(
            "GET", self._url(query={"before": before, "limit": limit}), action="history fetch"
        )
        return parse_page(payload)

    def fetch_one(self, message_id: int) -> Message:
        payload = self._request("GET", self._url(f"/{message_id}"), action="message fetch")
        return _parse_single(payload)

    def submit(self, content: str, token: str) -> Message:
        payload = self._request(
            "POST", self._url(), action="send", body={"content": content, "uid": token}
        )
        return _parse_single(payload)

    def edit(self, message_id: int, content: str) -> Message:
        payload = self._request(
            "PUT", self._url(f"/{message_id}"), action="edit", body={"content": content}
        )
        return _parse_single(payload)

    def delete(self, message_id: int) -> None:
        self._request("DELETE", self._url(f"/{message_id}"), action="delete")

    def mark_read(self, upto: int) -> None:
        self._request("PUT", self._url("/read", query={"upto": upto}), action="read ack")
