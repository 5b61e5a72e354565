from __future__ import annotations

import datetime as dt
import sqlite3
from pathlib import Path
from typing import Any

from . import db

MAX_CONTENT_CHARS = 4000
MAX_PAGE_SIZE = 200


class MessageRejected(ValueError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class NotAuthor(PermissionError):
    pass


def _now() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


def _row_to_dict(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": int(row["id"]),
        "author": row["author"],
        "content": row["content"],
        "uid": row["uid"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))


def _validate_content(content: object) -> str:
    if not isinstance(content, str) or not content.strip():
        raise MessageRejected("empty_content", "message content is empty")
    if len(content) > MAX_CONTENT_CHARS:
        raise MessageRejected("content_too_long", f"message exceeds {MAX_CONTENT_CHARS} chars")
    return content


class MessageLog:
    """Server-side, append-mostly message log for all rooms."""

    def __init__(self, db_path: Path | str = db.DEFAULT_DB_PATH) -> None:
        self.db_path = Path(db_path).expanduser()
        self.conn = db.connect(self.db_path)
        db.initialize_schema(self.conn)

    def close(self) -> None:
        self.conn.close()

    def list_after(self, room: str, after: int, *, limit: int = 50) -> list[dict[str, Any]]:
        """Messages newer than ``after``, ascending.

        ``after=0`` means the client has nothing yet and gets the newest page.
        """
        limit = clamp_limit(limit)
        if after <= 0:
            rows = self.conn.execute(
                "SELECT * FROM messages WHERE room = ? ORDER BY id DESC LIMIT ?",
                (room, limit),
            ).fetchall()
            rows.reverse()
        else:
            rows = self.conn.execute(
                "SELECT * FROM messages WHERE room = ? AND id > ? ORDER BY id ASC LIMIT ?",
                (room, after, limit),
            ).fetchall()
        return [_row_to_dict(row) for row in rows]

    def list_before(self, room: str, before: int, *, limit: int = 50) -> list[dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM messages WHERE room = ? AND id < ? ORDER BY id DESC LIMIT ?",
            (room, before, clamp_limit(limit)),
        ).fetchall()
        rows.reverse()
        return [_row_to_dict(row) for row in rows]

    def get(self, room: str, message_id: int) -> dict[str, Any] | None:
        row = self.conn.execute(
            "SELECT * FROM messages WHERE room = ? AND id = ?",
            (room, message_id),
        ).fetchone()
        return _row_to_dict(row) if row else None

    def post(self, room: str, author: str, content: object, uid: str | None) -> dict[str, Any]:
        """Append a message; a repeated ``uid`` returns the stored copy."""
        text = _validate_content(content)
        if uid:
            row = self.conn.execute(
                "SELECT * FROM messages WHERE room = ? AND author = ? AND uid = ?",
                (room, author, uid),
            ).fetchone()
            if row is not None:
                return _row_to_dict(row)
        now = _now()
        cur = self.conn.execute(
            """
            INSERT INTO messages(room, author, content, uid, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (room, author, text, uid or None, now, now),
        )
        self.conn.commit()
        message_id = int(cur.lastrowid or 0)
        stored = self.get(room, message_id)
        assert stored is not None
        return stored

    def edit(
        self, room: str, message_id: int, author: str, content: object
    ) -> dict[str, Any] | None:
        text = _validate_content(content)
        existing = self.get(room, message_id)
        if existing is None:
            return None
        if existing["author"] != author:
            raise NotAuthor(f"message {message_id} belongs to {existing['author']}")
        self.conn.execute(
            "UPDATE messages SET content = ?, updated_at = ? WHERE id = ?",
            (text, _now(), message_id),
        )
        self.conn.commit()
        return self.get(room, message_id)

    def delete(self, room: str, message_id: int, author: str) -> bool:
        existing = self.get(room, message_id)
        if existing is None:
            return False
        if existing["author"] != author:
            raise NotAuthor(f"message {message_id} belongs to {existing['author']}")
        self.conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        self.conn.commit()
        return True

    def read_upto(self, room: str, user: str) -> int:
        row = self.conn.execute(
            "SELECT upto FROM read_marks WHERE room = ? AND user = ?",
            (room, user),
        ).fetchone()
        return int(row["upto"]) if row else 0

    def mark_read(self, room: str, user: str, upto: int) -> int:
        """Move the user's read mark forward; it never moves back."""
        self.conn.execute(
            """
            INSERT INTO read_marks(room, user, upto, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(room, user) DO UPDATE SET
                upto = MAX(read_marks.upto, excluded.upto),
                updated_at = excluded.updated_at
            """,
            (room, user, upto, _now()),
        )
        self.conn.commit()
        return self.read_upto(room, user)
