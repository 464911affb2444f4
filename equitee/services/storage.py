"""Key/value storage standing in for the browser's ``localStorage``.

Values are always JSON-encoded strings so that every backend behaves the same
way as browser web storage: callers encode on write and decode on read.

Two implementations are provided:
  - ``InMemoryStorage`` for tests and throwaway sessions.
  - ``SQLiteKeyValueStorage`` which keeps entries in a single ``kv_store`` table.

Default SQLite location (if not provided):  ~/equitee/data/storage.db
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import sqlite3
from typing import Any, Final, Protocol

from equitee.utils.env import load_choice_from_env

LOGGER = logging.getLogger(__name__)

DEFAULT_DB_PATH: Final[Path] = Path.home() / "equitee" / "data" / "storage.db"
DEFAULT_TABLE: Final[str] = "kv_store"

USER_LOCATION_KEY: Final[str] = "userLocation"
USER_ZIP_CODE_KEY: Final[str] = "userZipCode"
USER_PROFILE_KEY: Final[str] = "equitee-user-profile"
CHAT_KEY_PREFIX: Final[str] = "equitee-chat-"


def chat_key(conversation_id: str) -> str:
    return f"{CHAT_KEY_PREFIX}{conversation_id}"


class KeyValueStorage(Protocol):
    """Contract shared by every storage backend."""

    def get_item(self, key: str) -> str | None:
        """Return the stored string or ``None`` when the key is absent."""

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""

    def remove_item(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    def keys(self) -> list[str]:
        """Return every stored key."""


class InMemoryStorage:
    """Dictionary-backed storage used in tests and when SQLite is unavailable."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class SQLiteKeyValueStorage:
    """SQLite-backed storage that persists across process restarts."""

    def __init__(self, db_path: str | Path | None = None, *, table: str = DEFAULT_TABLE) -> None:
        self._db_path = Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH
        self._table = table

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("PRAGMA journal_mode = WAL;")
        self._bootstrap()

    def _bootstrap(self) -> None:
        with self._conn:
            self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    @property
    def db_path(self) -> Path:
        return self._db_path

    def get_item(self, key: str) -> str | None:
        row = self._conn.execute(
            f"SELECT value FROM {self._table} WHERE key = ?;",
            (key,),
        ).fetchone()
        return None if row is None else str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute(
                f"""
                INSERT INTO {self._table} (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                  value = excluded.value,
                  updated_at = excluded.updated_at;
                """,
                (key, str(value), _iso_now()),
            )

    def remove_item(self, key: str) -> None:
        with self._conn:
            self._conn.execute(f"DELETE FROM {self._table} WHERE key = ?;", (key,))

    def keys(self) -> list[str]:
        rows = self._conn.execute(f"SELECT key FROM {self._table} ORDER BY key;").fetchall()
        return [str(row["key"]) for row in rows]

    def close(self) -> None:
        self._conn.close()


def read_json(storage: KeyValueStorage, key: str) -> Any | None:
    """Decode the JSON value stored under ``key``.

    Corrupted entries are logged and treated as absent.
    """

    raw_value = storage.get_item(key)
    if raw_value is None:
        return None
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        LOGGER.warning(
            "Ignoring corrupted storage entry",
            extra={"event": "storage.corrupted", "key": key},
        )
        return None


def write_json(storage: KeyValueStorage, key: str, value: Any) -> None:
    storage.set_item(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))


def create_storage(db_path: str | Path | None = None) -> KeyValueStorage:
    """Create the storage backend selected by ``EQUITEE_STORAGE``.

    SQLite is the default; if the database cannot be opened the error is logged
    and an in-memory store is returned so the application stays usable.
    """

    backend = load_choice_from_env("EQUITEE_STORAGE", ("sqlite", "memory"), "sqlite")
    if backend == "memory":
        return InMemoryStorage()

    path = db_path or os.getenv("EQUITEE_DB_PATH") or None
    try:
        return SQLiteKeyValueStorage(path)
    except (OSError, sqlite3.Error):
        LOGGER.exception(
            "SQLite storage init failed; falling back to in-memory.",
            extra={"event": "storage.init_failed"},
        )
        return InMemoryStorage()


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


__all__ = [
    "CHAT_KEY_PREFIX",
    "DEFAULT_DB_PATH",
    "InMemoryStorage",
    "KeyValueStorage",
    "SQLiteKeyValueStorage",
    "USER_LOCATION_KEY",
    "USER_PROFILE_KEY",
    "USER_ZIP_CODE_KEY",
    "chat_key",
    "create_storage",
    "read_json",
    "write_json",
]
