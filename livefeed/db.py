from __future__ import annotations

import sqlite3
from pathlib import Path

from .config import DEFAULT_DB_PATH as _DEFAULT_DB_PATH

DEFAULT_DB_PATH = Path(_DEFAULT_DB_PATH).expanduser()


def connect(db_path: Path | str, check_same_thread: bool = True) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room TEXT NOT NULL,
            author TEXT NOT NULL,
            content TEXT NOT NULL,
            uid TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_messages_room_id ON messages(room, id);
        CREATE UNIQUE INDEX IF NOT EXISTS idx_messages_room_author_uid
            ON messages(room, author, uid) WHERE uid IS NOT NULL;

        CREATE TABLE IF NOT EXISTS read_marks (
            room TEXT NOT NULL,
            user TEXT NOT NULL,
            upto INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (room, user)
        );
        """
    )
    conn.commit()
