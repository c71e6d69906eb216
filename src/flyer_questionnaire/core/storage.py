from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Protocol

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (namespace, key)
);
"""


class KeyValueStore(Protocol):
    """Local persistent storage: string keys to JSON-encoded string values."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


def get_db(db_path: str | Path) -> sqlite3.Connection:
    target = Path(db_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.executescript(SCHEMA_SQL)
    return conn


class SqliteStore:
    """
    Sqlite-backed store; each session writes into its own namespace.

    Writes are committed immediately (write-through, last write wins).
    """

    def __init__(self, conn: sqlite3.Connection, namespace: str) -> None:
        self.conn = conn
        self.namespace = namespace

    def get(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM kv WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        ).fetchone()
        return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO kv (namespace, key, value) VALUES (?, ?, ?)
                ON CONFLICT(namespace, key)
                DO UPDATE SET value = excluded.value, updated_at = datetime('now')
                """,
                (self.namespace, key, value),
            )

    def delete(self, key: str) -> None:
        with self.conn:
            self.conn.execute(
                "DELETE FROM kv WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            )
