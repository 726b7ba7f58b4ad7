"""
SQLite-backed KV store
======================

Embedded KV on SQLite (BLOB keys & values), implementing the `KV` /
`ReadOnlyKV` / `Batch` protocols from `multisig.store.kv`.

- Table schema: kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)
- Ordering is lexicographic (memcmp); prefix scans use a bounded range.
- WAL journal with NORMAL sync.

Concurrency:
- Write batches run under ``BEGIN IMMEDIATE``, so at most one writer holds the
  database at a time across processes. A writer that cannot obtain the lock
  within `busy_timeout` gets WriteConflict; nothing it staged is kept.
- Within one process the connection is shared (`check_same_thread=False`);
  `RecordStore` serializes access to it.
"""

from __future__ import annotations

import os
import sqlite3
from typing import Iterator, Optional, Tuple, Union
from urllib.parse import urlparse

from ..errors import StoreError, WriteConflict
from .kv import KV, Batch

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
    "foreign_keys": "OFF",
}

DEFAULT_BUSY_TIMEOUT = 5.0

PathLike = Union[str, "os.PathLike[str]"]


def _apply_pragmas(conn: sqlite3.Connection, pragmas: Optional[dict] = None) -> None:
    p = dict(DEFAULT_PRAGMAS)
    if pragmas:
        p.update(pragmas)
    cur = conn.cursor()
    for name in ("journal_mode", "synchronous", "temp_store", "foreign_keys"):
        cur.execute("PRAGMA %s=%s" % (name, p[name]))
    cur.close()


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte string greater than every key starting with `prefix`,
    or None when no such bound exists (prefix is empty or all 0xFF).

    Example: b"ab\\x01" -> b"ab\\x02"; b"\\xff\\xff" -> None
    """
    if not prefix:
        return None
    p = bytearray(prefix)
    for i in range(len(p) - 1, -1, -1):
        if p[i] != 0xFF:
            p[i] += 1
            del p[i + 1 :]
            return bytes(p)
    return None


def _is_busy(err: sqlite3.OperationalError) -> bool:
    msg = str(err).lower()
    return "locked" in msg or "busy" in msg


def _translate(err: sqlite3.Error) -> StoreError:
    if isinstance(err, sqlite3.OperationalError) and _is_busy(err):
        return WriteConflict("record store is locked by another writer", data={"sqlite": str(err)})
    return StoreError(f"sqlite error: {err}")


class SQLiteBatch(Batch):
    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise _translate(e) from e
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._conn.execute(
            "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (memoryview(key), memoryview(value)),
        )

    def delete(self, key: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def commit(self) -> None:
        if not self._open:
            return
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            self.rollback()
            raise _translate(e) from e
        self._open = False

    def rollback(self) -> None:
        if not self._open:
            return
        self._open = False
        self._conn.execute("ROLLBACK")

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


def _resolve_path(path: PathLike) -> str:
    path_str = str(path)
    if path_str.startswith("sqlite://"):
        parsed = urlparse(path_str)
        path_str = parsed.path or ""
        if path_str.startswith("/:memory:"):
            return ":memory:"
        # sqlite:///rel.db -> "rel.db"; sqlite:////abs.db -> "/abs.db"
        if path_str.startswith("//"):
            path_str = "/" + path_str.lstrip("/")
        elif path_str.startswith("/"):
            path_str = path_str[1:]
    return path_str


def _open_connection(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
) -> sqlite3.Connection:
    path_str = _resolve_path(path)
    if path_str != ":memory:":
        if not create and not os.path.exists(path_str):
            raise FileNotFoundError(f"record store not found at {path_str}")
        parent = os.path.dirname(os.path.abspath(path_str))
        os.makedirs(parent, exist_ok=True)

    conn = sqlite3.connect(
        path_str,
        timeout=busy_timeout,
        detect_types=0,
        isolation_level=None,      # autocommit; batches BEGIN explicitly
        check_same_thread=False,   # caller synchronizes
    )
    _apply_pragmas(conn, pragmas)
    _migrate(conn)
    return conn


class SQLiteKV(KV):
    """SQLite-backed KV. Use `open_sqlite_kv(uri)` to construct."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: bytes) -> Optional[bytes]:
        cur = self._conn.execute("SELECT v FROM kv WHERE k = ?", (memoryview(key),))
        row = cur.fetchone()
        cur.close()
        return bytes(row[0]) if row is not None else None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        hi = _prefix_hi(prefix)
        if hi is not None:
            sql = "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k"
            args: tuple = (memoryview(prefix), memoryview(hi))
        else:
            sql = "SELECT k, v FROM kv WHERE substr(k,1,?) = ? ORDER BY k"
            args = (len(prefix), memoryview(prefix))
        # Materialize so the cursor never outlives a concurrent write batch.
        rows = self._conn.execute(sql, args).fetchall()
        for k, v in rows:
            yield bytes(k), bytes(v)

    def close(self) -> None:
        self._conn.close()

    def put(self, key: bytes, value: bytes) -> None:
        with self.batch() as b:
            b.put(key, value)

    def delete(self, key: bytes) -> None:
        with self.batch() as b:
            b.delete(key)

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self._conn)


def open_sqlite_kv(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
) -> SQLiteKV:
    """
    Open (or create) a SQLite KV.

    Accepts a plain filesystem path, ``sqlite:///relative.db``,
    ``sqlite:////absolute.db`` or ``sqlite:///:memory:``.
    `create=False` raises FileNotFoundError if the file does not exist.
    """
    return SQLiteKV(
        _open_connection(path, pragmas=pragmas, create=create, busy_timeout=busy_timeout)
    )


__all__ = [
    "SQLiteKV",
    "SQLiteBatch",
    "open_sqlite_kv",
]
