"""A small persistent key/value store with sorted iteration."""

from __future__ import annotations

import os
import sqlite3
import struct
import threading
from typing import Iterable, Iterator, Optional, Union

from imposm.cache.options import CacheOptions

SKIP = -1

_DB_FILE = "data.sqlite"
_ITER_CHUNK = 1024


class NotFoundError(LookupError):
    """Raised when an element is not in a cache."""


def id_to_key(id_: int) -> bytes:
    """Encode an ID as an 8-byte big-endian key (keys sort like IDs >= 0)."""
    return struct.pack(">Q", id_ & 0xFFFFFFFFFFFFFFFF)


def id_from_key(key: bytes) -> int:
    """Decode a key written by :func:`id_to_key`."""
    return struct.unpack(">q", key)[0]


class KeyValueStore:
    """Byte keys to byte values, kept in a directory on disk."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        self.path = os.fspath(path)
        self.options = options if options is not None else CacheOptions()
        os.makedirs(self.path, exist_ok=True)
        self._store_lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            os.path.join(self.path, _DB_FILE), check_same_thread=False
        )
        try:
            with self._conn:
                self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS kv (k BLOB PRIMARY KEY, v BLOB NOT NULL) WITHOUT ROWID"
                )
            if self.options.cache_size_m > 0:
                self._conn.execute(f"PRAGMA cache_size = {-self.options.cache_size_m * 1024}")
        except sqlite3.Error:
            self.close()
            raise

    @property
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ValueError(f"store {self.path} is closed")
        return self._conn

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value for ``key`` or None."""
        with self._store_lock:
            row = self._connection.execute("SELECT v FROM kv WHERE k = ?", (bytes(key),)).fetchone()
        return bytes(row[0]) if row is not None else None

    def put(self, key: bytes, value: bytes) -> None:
        with self._store_lock:
            conn = self._connection
            with conn:
                conn.execute("INSERT OR REPLACE INTO kv (k, v) VALUES (?, ?)", (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        with self._store_lock:
            conn = self._connection
            with conn:
                conn.execute("DELETE FROM kv WHERE k = ?", (bytes(key),))

    def write_batch(self, items: Iterable[tuple[bytes, bytes]]) -> None:
        """Store all (key, value) pairs atomically."""
        with self._store_lock:
            conn = self._connection
            with conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO kv (k, v) VALUES (?, ?)",
                    ((bytes(k), bytes(v)) for k, v in items),
                )

    def items(self) -> Iterator[tuple[bytes, bytes]]:
        """Yield all (key, value) pairs in key order."""
        last: Optional[bytes] = None
        while True:
            with self._store_lock:
                conn = self._connection
                if last is None:
                    rows = conn.execute("SELECT k, v FROM kv ORDER BY k LIMIT ?", (_ITER_CHUNK,)).fetchall()
                else:
                    rows = conn.execute(
                        "SELECT k, v FROM kv WHERE k > ? ORDER BY k LIMIT ?", (last, _ITER_CHUNK)
                    ).fetchall()
            if not rows:
                return
            for key, value in rows:
                yield bytes(key), bytes(value)
            last = bytes(rows[-1][0])

    def close(self) -> None:
        with self._store_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()