"""SQLite-backed KeyValueStore for local, single-machine use.

Lists, sets and strings live in separate tables keyed by name; expiry
deadlines live in their own table and are enforced lazily on each operation.
Calls run in a worker thread through asyncio.to_thread, serialized by a lock
because one connection is shared across threads.
"""

import asyncio
import fnmatch
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Self

from kindling.adapters.kv.memory_store import redis_range

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_lists (
    key TEXT NOT NULL,
    position INTEGER NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (key, position)
);
CREATE TABLE IF NOT EXISTS kv_sets (
    key TEXT NOT NULL,
    member TEXT NOT NULL,
    PRIMARY KEY (key, member)
);
CREATE TABLE IF NOT EXISTS kv_strings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS kv_expiry (
    key TEXT PRIMARY KEY,
    expires_at REAL NOT NULL
);
"""

_DATA_TABLES = ("kv_lists", "kv_sets", "kv_strings")


class SQLiteKeyValueStore:
    """KeyValueStore persisted in a single SQLite file.

    Thread Safety:
        The connection is created lazily with double-checked locking and
        opened with check_same_thread=False. Every operation additionally
        holds ``_op_lock`` so concurrent coroutines never interleave
        statements on the shared connection.
    """

    def __init__(self, db_path: Path, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite database file; parent directories are created.
            clock: Wall-clock source for expiry deadlines.
        """
        self.db_path = db_path
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()
        self._op_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            with self._conn_lock:
                if self._conn is None:
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(self.db_path, check_same_thread=False)
                    conn.executescript(_SCHEMA)
                    self._conn = conn
        return self._conn

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func: Callable[..., Any], *args: Any) -> Any:
        with self._op_lock:
            conn = self._get_connection()
            self._purge_expired(conn)
            try:
                result = func(conn, *args)
                conn.commit()
                return result
            except Exception:
                conn.rollback()
                raise

    def _purge_expired(self, conn: sqlite3.Connection) -> None:
        expired = [
            row[0]
            for row in conn.execute(
                "SELECT key FROM kv_expiry WHERE expires_at <= ?", (self._clock(),)
            )
        ]
        if expired:
            self._delete_keys(conn, expired)

    @staticmethod
    def _delete_keys(conn: sqlite3.Connection, keys: list[str]) -> int:
        deleted = 0
        for key in keys:
            existed = False
            for table in _DATA_TABLES:
                if conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,)).rowcount:
                    existed = True
            conn.execute("DELETE FROM kv_expiry WHERE key = ?", (key,))
            deleted += existed
        return deleted

    @staticmethod
    def _list_length(conn: sqlite3.Connection, key: str) -> int:
        row = conn.execute("SELECT COUNT(*) FROM kv_lists WHERE key = ?", (key,)).fetchone()
        return row[0]

    @staticmethod
    def _exists(conn: sqlite3.Connection, key: str) -> bool:
        return any(
            conn.execute(f"SELECT 1 FROM {table} WHERE key = ? LIMIT 1", (key,)).fetchone()
            for table in _DATA_TABLES
        )

    # Lists

    async def rpush(self, key: str, *values: str) -> int:
        def op(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                "SELECT COALESCE(MAX(position), -1) FROM kv_lists WHERE key = ?", (key,)
            ).fetchone()
            conn.executemany(
                "INSERT INTO kv_lists (key, position, value) VALUES (?, ?, ?)",
                [(key, row[0] + 1 + i, value) for i, value in enumerate(values)],
            )
            return self._list_length(conn, key)

        return await self._run(op)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        def op(conn: sqlite3.Connection) -> list[str]:
            lo, hi = redis_range(self._list_length(conn, key), start, stop)
            if hi <= lo:
                return []
            rows = conn.execute(
                "SELECT value FROM kv_lists WHERE key = ? ORDER BY position LIMIT ? OFFSET ?",
                (key, hi - lo, lo),
            )
            return [row[0] for row in rows]

        return await self._run(op)

    async def llen(self, key: str) -> int:
        return await self._run(self._list_length, key)

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        def op(conn: sqlite3.Connection) -> None:
            lo, hi = redis_range(self._list_length(conn, key), start, stop)
            if hi <= lo:
                self._delete_keys(conn, [key])
                return
            conn.execute(
                """
                DELETE FROM kv_lists WHERE key = ? AND position NOT IN (
                    SELECT position FROM kv_lists WHERE key = ?
                    ORDER BY position LIMIT ? OFFSET ?
                )
                """,
                (key, key, hi - lo, lo),
            )

        await self._run(op)

    # Sets

    async def sadd(self, key: str, *members: str) -> int:
        def op(conn: sqlite3.Connection) -> int:
            added = 0
            for member in set(members):
                added += conn.execute(
                    "INSERT OR IGNORE INTO kv_sets (key, member) VALUES (?, ?)", (key, member)
                ).rowcount
            return added

        return await self._run(op)

    async def srem(self, key: str, *members: str) -> int:
        def op(conn: sqlite3.Connection) -> int:
            removed = 0
            for member in set(members):
                removed += conn.execute(
                    "DELETE FROM kv_sets WHERE key = ? AND member = ?", (key, member)
                ).rowcount
            return removed

        return await self._run(op)

    async def smembers(self, key: str) -> set[str]:
        def op(conn: sqlite3.Connection) -> set[str]:
            return {
                row[0] for row in conn.execute("SELECT member FROM kv_sets WHERE key = ?", (key,))
            }

        return await self._run(op)

    async def sismember(self, key: str, member: str) -> bool:
        def op(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                "SELECT 1 FROM kv_sets WHERE key = ? AND member = ?", (key, member)
            ).fetchone()
            return row is not None

        return await self._run(op)

    async def scard(self, key: str) -> int:
        def op(conn: sqlite3.Connection) -> int:
            return conn.execute("SELECT COUNT(*) FROM kv_sets WHERE key = ?", (key,)).fetchone()[0]

        return await self._run(op)

    # Strings

    async def get(self, key: str) -> str | None:
        def op(conn: sqlite3.Connection) -> str | None:
            row = conn.execute("SELECT value FROM kv_strings WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

        return await self._run(op)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO kv_strings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            if ex is None:
                conn.execute("DELETE FROM kv_expiry WHERE key = ?", (key,))
            else:
                self._set_expiry(conn, key, ex)

        await self._run(op)

    # Keys

    def _set_expiry(self, conn: sqlite3.Connection, key: str, seconds: int) -> None:
        conn.execute(
            """
            INSERT INTO kv_expiry (key, expires_at) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET expires_at = excluded.expires_at
            """,
            (key, self._clock() + seconds),
        )

    async def expire(self, key: str, seconds: int) -> bool:
        def op(conn: sqlite3.Connection) -> bool:
            if not self._exists(conn, key):
                return False
            self._set_expiry(conn, key, seconds)
            return True

        return await self._run(op)

    async def delete(self, *keys: str) -> int:
        return await self._run(self._delete_keys, list(keys))

    async def scan_keys(self, pattern: str) -> list[str]:
        def op(conn: sqlite3.Connection) -> list[str]:
            keys: set[str] = set()
            for table in _DATA_TABLES:
                keys.update(row[0] for row in conn.execute(f"SELECT DISTINCT key FROM {table}"))
            return sorted(k for k in keys if fnmatch.fnmatchcase(k, pattern))

        return await self._run(op)

    def close(self) -> None:
        """Close the database connection if open. Safe to call repeatedly."""
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def aclose(self) -> None:
        self.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        self.close()
        return False
