from __future__ import annotations

"""
SQLite KV
=========

Durable backend for contract state: one table of BLOB key → BLOB value.

- SQLite compares BLOBs with memcmp, so big-endian record keys scan back in
  numeric order, the same order MemoryKV produces.
- A prefix scan is the half-open range [prefix, successor(prefix)).
- The connection runs in autocommit; a Batch wraps its writes in a single
  BEGIN IMMEDIATE / COMMIT, or ROLLBACK when the block raises.
- `PRAGMA user_version` records the layout version; opening a file written
  by a newer layout fails instead of guessing.
"""

import os
import sqlite3
from typing import Iterator, List, Optional, Tuple, Union

from .kv import KV, Batch

SCHEMA_VERSION = 1

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "busy_timeout": "5000",
}

_UPSERT = (
    "INSERT INTO entries(key, value) VALUES(?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)
_DELETE = "DELETE FROM entries WHERE key = ?"

PathLike = Union[str, "os.PathLike[str]"]


def _init_schema(conn: sqlite3.Connection, pragmas: Optional[dict]) -> None:
    settings = {**DEFAULT_PRAGMAS, **(pragmas or {})}
    for name, value in settings.items():
        conn.execute(f"PRAGMA {name}={value}")

    found = conn.execute("PRAGMA user_version").fetchone()[0]
    if found > SCHEMA_VERSION:
        raise RuntimeError(f"store layout v{found} is newer than supported v{SCHEMA_VERSION}")
    conn.execute(
        "CREATE TABLE IF NOT EXISTS entries ("
        " key BLOB PRIMARY KEY,"
        " value BLOB NOT NULL"
        ") WITHOUT ROWID"
    )
    if found < SCHEMA_VERSION:
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")


def _successor(prefix: bytes) -> Optional[bytes]:
    """
    First byte string that sorts after every key starting with `prefix`.
    None when `prefix` is empty or all 0xFF (no upper bound needed).
    """
    trimmed = prefix.rstrip(b"\xff")
    if not trimmed:
        return None
    return trimmed[:-1] + bytes([trimmed[-1] + 1])


class SQLiteBatch(Batch):
    """One transaction on the shared connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._active = False

    def _require_active(self) -> None:
        if not self._active:
            raise RuntimeError("batch used outside its `with` block")

    def __enter__(self) -> "SQLiteBatch":
        if self._active:
            raise RuntimeError("batch is not reentrant")
        self._conn.execute("BEGIN IMMEDIATE")
        self._active = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        self._require_active()
        self._conn.execute(_UPSERT, (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        self._require_active()
        self._conn.execute(_DELETE, (bytes(key),))

    def commit(self) -> None:
        if self._active:
            self._active = False
            self._conn.execute("COMMIT")

    def rollback(self) -> None:
        if self._active:
            self._active = False
            self._conn.execute("ROLLBACK")

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


def _connect(path: PathLike, *, pragmas: Optional[dict], create: bool) -> sqlite3.Connection:
    target = os.fspath(path)
    if target.startswith("sqlite:///"):
        target = target[len("sqlite:///"):]
    if target != ":memory:" and not os.path.exists(target):
        if not create:
            raise FileNotFoundError(f"no tally store at {target}")
        os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)

    # isolation_level=None: autocommit; SQLiteBatch issues BEGIN itself.
    conn = sqlite3.connect(target, isolation_level=None, check_same_thread=False)
    _init_schema(conn, pragmas)
    return conn


class SQLiteKV(KV):
    """KV over a single SQLite connection. Build with `open_sqlite_kv`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _one(self, sql: str, key: bytes) -> Optional[tuple]:
        return self._conn.execute(sql, (bytes(key),)).fetchone()

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._one("SELECT value FROM entries WHERE key = ?", key)
        return None if row is None else bytes(row[0])

    def has(self, key: bytes) -> bool:
        return self._one("SELECT 1 FROM entries WHERE key = ?", key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        prefix = bytes(prefix)
        upper = _successor(prefix)
        if upper is None:
            sql = "SELECT key, value FROM entries WHERE key >= ? ORDER BY key"
            args: tuple = (prefix,)
        else:
            sql = "SELECT key, value FROM entries WHERE key >= ? AND key < ? ORDER BY key"
            args = (prefix, upper)
        # fetchall: callers delete while walking
        rows: List[tuple] = self._conn.execute(sql, args).fetchall()
        for k, v in rows:
            yield bytes(k), bytes(v)

    def close(self) -> None:
        self._conn.close()

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(_UPSERT, (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        self._conn.execute(_DELETE, (bytes(key),))

    def batch(self) -> Batch:
        return SQLiteBatch(self._conn)


def open_sqlite_kv(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
) -> SQLiteKV:
    """
    Open the store at `path` (":memory:" for a throwaway one), creating the
    file and its parent directories unless `create=False`.
    """
    return SQLiteKV(_connect(path, pragmas=pragmas, create=create))


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv", "SCHEMA_VERSION"]
