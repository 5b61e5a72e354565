from __future__ import annotations

import json
import os
import re
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from .db import DEFAULT_DB_PATH
from .log_store import MessageLog, MessageRejected, NotAuthor, clamp_limit
from .sync.feed_client import USER_HEADER

MAX_BODY_BYTES = 64 * 1024
DEFAULT_LIMIT = 50

FEED_PATH_RE = re.compile(r"^/rooms/(?P<room>[^/]+)/feed(?:/(?P<tail>[^/]+))?/?$")


def _read_body(handler: BaseHTTPRequestHandler) -> bytes:
    length = int(handler.headers.get("Content-Length", "0") or 0)
    if length <= 0:
        return b""
    if length > MAX_BODY_BYTES:
        raise ValueError("payload_too_large")
    return handler.rfile.read(length)


def _parse_json_body(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _send_json(handler: BaseHTTPRequestHandler, payload: dict[str, Any], status: int = 200) -> None:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json; charset=utf-8")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _send_error(
    handler: BaseHTTPRequestHandler, status: int, code: str, message: str | None = None
) -> None:
    payload: dict[str, Any] = {"error": code}
    if message:
        payload["message"] = message
    _send_json(handler, payload, status=status)


def _int_param(params: dict[str, list[str]], key: str) -> int | None:
    value = params.get(key, [None])[0]
    if value is None or value == "":
        return None
    return int(value)


def build_feed_handler(db_path: Path | None = None):
    resolved_db = Path(db_path or os.environ.get("LIVEFEED_DB") or DEFAULT_DB_PATH)

    class FeedHandler(BaseHTTPRequestHandler):
        def log_message(self, format: str, *args: object) -> None:  # noqa: A003
            if os.environ.get("LIVEFEED_SERVER_LOGS") == "1":
                super().log_message(format, *args)

        def _log(self) -> MessageLog:
            return MessageLog(resolved_db)

        def _route(self) -> tuple[str, str | None, dict[str, list[str]]] | None:
            parsed = urlparse(self.path)
            match = FEED_PATH_RE.match(parsed.path)
            if match is None:
                _send_error(self, 404, "not_found")
                return None
            return unquote(match.group("room")), match.group("tail"), parse_qs(parsed.query)

        def _user(self) -> str | None:
            user = (self.headers.get(USER_HEADER) or "").strip()
            if not user:
                _send_error(self, 400, "missing_user", f"{USER_HEADER} header is required")
                return None
            return user

        def _message_id(self, tail: str | None) -> int | None:
            if tail is None or not tail.isdigit():
                _send_error(self, 404, "not_found")
                return None
            return int(tail)

        def _body(self) -> dict[str, Any] | None:
            try:
                raw = _read_body(self)
            except ValueError:
                _send_error(self, 413, "payload_too_large")
                return None
            body = _parse_json_body(raw)
            if body is None:
                _send_error(self, 400, "invalid_json")
            return body

        def do_GET(self) -> None:  # noqa: N802
            route = self._route()
            if route is None:
                return
            room, tail, params = route
            log = self._log()
            try:
                if tail is None:
                    try:
                        after = _int_param(params, "after")
                        before = _int_param(params, "before")
                        limit = clamp_limit(_int_param(params, "limit") or DEFAULT_LIMIT)
                    except ValueError:
                        _send_error(self, 400, "invalid_cursor")
                        return
                    if before is not None:
                        messages = log.list_before(room, before, limit=limit)
                    else:
                        messages = log.list_after(room, after or 0, limit=limit)
                    payload: dict[str, Any] = {"messages": messages, "limit": limit}
                    user = (self.headers.get(USER_HEADER) or "").strip()
                    if user:
                        payload["read_upto"] = log.read_upto(room, user)
                    _send_json(self, payload)
                    return
                message_id = self._message_id(tail)
                if message_id is None:
                    return
                message = log.get(room, message_id)
                if message is None:
                    _send_error(self, 404, "not_found")
                    return
                _send_json(self, {"message": message})
            except Exception:
                _send_error(self, 500, "internal_error")
            finally:
                log.close()

        def do_POST(self) -> None:  # noqa: N802
            route = self._route()
            if route is None:
                return
            room, tail, _params = route
            if tail is not None:
                _send_error(self, 405, "method_not_allowed")
                return
            user = self._user()
            if user is None:
                return
            body = self._body()
            if body is None:
                return
            uid = body.get("uid")
            log = self._log()
            try:
                message = log.post(room, user, body.get("content"), str(uid) if uid else None)
                _send_json(self, {"message": message}, status=201)
            except MessageRejected as exc:
                _send_error(self, 400, exc.code, str(exc))
            except Exception:
                _send_error(self, 500, "internal_error")
            finally:
                log.close()

        def do_PUT(self) -> None:  # noqa: N802
            route = self._route()
            if route is None:
                return
            room, tail, params = route
            user = self._user()
            if user is None:
                return
            log = self._log()
            try:
                if tail == "read":
                    try:
                        upto = _int_param(params, "upto")
                    except ValueError:
                        upto = None
                    if upto is None:
                        _send_error(self, 400, "invalid_cursor")
                        return
                    _send_json(self, {"ok": True, "read_upto": log.mark_read(room, user, upto)})
                    return
                message_id = self._message_id(tail)
                if message_id is None:
                    return
                body = self._body()
                if body is None:
                    return
                message = log.edit(room, message_id, user, body.get("content"))
                if message is None:
                    _send_error(self, 404, "not_found")
                    return
                _send_json(self, {"message": message})
            except MessageRejected as exc:
                _send_error(self, 400, exc.code, str(exc))
            except NotAuthor as exc:
                _send_error(self, 403, "forbidden", str(exc))
            except Exception:
                _send_error(self, 500, "internal_error")
            finally:
                log.close()

        def do_DELETE(self) -> None:  # noqa: N802
            route = self._route()
            if route is None:
                return
            room, tail, _params = route
            message_id = self._message_id(tail)
            if message_id is None:
                return
            user = self._user()
            if user is None:
                return
            log = self._log()
            try:
                if not log.delete(room, message_id, user):
                    _send_error(self, 404, "not_found")
                    return
                _send_json(self, {"ok": True})
            except NotAuthor as exc:
                _send_error(self, 403, "forbidden", str(exc))
            except Exception:
                _send_error(self, 500, "internal_error")
            finally:
                log.close()

    return FeedHandler
