"""
Key-value substrate for the registry.

The registry only ever talks to a KeyValueStore: get / set / remove, ordered
half-open range scans, and all-or-nothing transactions. Two backends:

- MemoryStore: sorted in-memory map, undo-log transactions (tests, ephemeral hosts)
- SqliteStore: single kv table on disk, BEGIN IMMEDIATE / COMMIT / ROLLBACK

Contract (both backends):
- Keys and values are bytes; range() yields in strict byte order of the key
- range() is lazy, finite and restartable: no cursor state survives a call
- remove() of an absent key is a no-op
- transaction(): normal exit commits; an exception or Transaction.abort()
  restores the pre-transaction state
- Backend failures surface as StorageError
"""

import bisect
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from sdk.logging import getLogger


class StorageError(Exception):
    """Storage backend operation error"""
    pass


class Order(str, Enum):
    """Range scan direction"""
    ASCENDING = "ascending"
    DESCENDING = "descending"


class Transaction:
    """Handle for an open transaction. abort() discards every write made inside it."""

    def __init__(self):
        self.aborted = False

    def abort(self):
        self.aborted = True


class KeyValueStore(ABC):
    """Abstract byte-keyed store with ordered scans"""

    @abstractmethod
    def get(self, key: bytes) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: bytes, value: bytes):
        ...

    @abstractmethod
    def remove(self, key: bytes):
        ...

    @abstractmethod
    def range(self, start: Optional[bytes], end: Optional[bytes],
              order: Order = Order.ASCENDING) -> Iterator[Tuple[bytes, bytes]]:
        """Yield (key, value) for start <= key < end. None means unbounded."""
        ...

    @abstractmethod
    def transaction(self):
        """Context manager yielding a Transaction"""
        ...

    def close(self):
        pass


class MemoryStore(KeyValueStore):
    """
    Sorted in-memory store.

    Keys live in a sorted list next to the value dict, so range scans are a
    pair of bisects plus a slice. A transaction records the prior value of
    each key it touches and rolls back by restoring only those keys.
    """

    def __init__(self):
        self._data: Dict[bytes, bytes] = {}
        self._keys: List[bytes] = []
        self._lock = threading.RLock()
        self._txn: Optional[Transaction] = None
        # key -> value before the open transaction first touched it (None = absent)
        self._undo: Dict[bytes, Optional[bytes]] = {}

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: bytes, value: bytes):
        with self._lock:
            self._remember(key)
            self._put(key, value)

    def remove(self, key: bytes):
        with self._lock:
            self._remember(key)
            self._delete(key)

    def _remember(self, key: bytes):
        if self._txn is not None and key not in self._undo:
            self._undo[key] = self._data.get(key)

    def _put(self, key: bytes, value: bytes):
        if key not in self._data:
            bisect.insort(self._keys, key)
        self._data[key] = value

    def _delete(self, key: bytes):
        if key in self._data:
            del self._data[key]
            index = bisect.bisect_left(self._keys, key)
            del self._keys[index]

    def _rollback(self):
        for key, value in self._undo.items():
            if value is None:
                self._delete(key)
            else:
                self._put(key, value)

    def range(self, start: Optional[bytes], end: Optional[bytes],
              order: Order = Order.ASCENDING) -> Iterator[Tuple[bytes, bytes]]:
        with self._lock:
            lo = 0 if start is None else bisect.bisect_left(self._keys, start)
            hi = len(self._keys) if end is None else bisect.bisect_left(self._keys, end)
            window = self._keys[lo:hi]
        if order == Order.DESCENDING:
            window.reverse()
        return self._iterate(window)

    def _iterate(self, keys: List[bytes]) -> Iterator[Tuple[bytes, bytes]]:
        for key in keys:
            value = self.get(key)
            # Removed since the scan started
            if value is not None:
                yield key, value

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._txn is not None:
                # Nested: join the outer transaction
                yield self._txn
                return

            txn = Transaction()
            self._txn = txn
            try:
                yield txn
            except BaseException:
                self._rollback()
                raise
            else:
                if txn.aborted:
                    self._rollback()
            finally:
                self._txn = None
                self._undo = {}


class SqliteStore(KeyValueStore):
    """
    SQLite-backed store.

    One WITHOUT ROWID table keyed by BLOB. SQLite orders BLOBs with memcmp,
    which is exactly the byte order the registry relies on.
    """

    # Rows fetched per query during a range scan
    SCAN_BATCH_SIZE = 256

    def __init__(self, dbPath: str):
        """
        Open (or create) the store.

        Args:
            dbPath: Path to SQLite database file, or ':memory:'
        """
        self.log = getLogger()
        self.dbPath = dbPath
        if dbPath != ':memory:':
            Path(dbPath).parent.mkdir(parents=True, exist_ok=True)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._txn: Optional[Transaction] = None
        self._connect()
        self._initSchema()

    def _connect(self):
        try:
            self.conn = sqlite3.connect(
                self.dbPath,
                check_same_thread=False,
                isolation_level=None,  # Explicit BEGIN/COMMIT only
                timeout=30.0
            )
            if self.dbPath != ':memory:':
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open {self.dbPath}: {e}")

    def _initSchema(self):
        try:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key BLOB PRIMARY KEY NOT NULL,
                    value BLOB NOT NULL
                ) WITHOUT ROWID
            """)
        except sqlite3.Error as e:
            raise StorageError(f"Schema initialization failed: {e}")

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            try:
                row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Read failed: {e}")
        return bytes(row[0]) if row else None

    def set(self, key: bytes, value: bytes):
        with self._lock:
            try:
                self.conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value))
            except sqlite3.Error as e:
                raise StorageError(f"Write failed: {e}")

    def remove(self, key: bytes):
        with self._lock:
            try:
                self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StorageError(f"Delete failed: {e}")

    def range(self, start: Optional[bytes], end: Optional[bytes],
              order: Order = Order.ASCENDING) -> Iterator[Tuple[bytes, bytes]]:
        return self._scan(start, end, order)

    def _scan(self, start: Optional[bytes], end: Optional[bytes],
              order: Order) -> Iterator[Tuple[bytes, bytes]]:
        # Each batch is its own query bounded by the last key seen
        lower, lowerInclusive = start, True
        upper = end
        direction = "DESC" if order == Order.DESCENDING else "ASC"

        while True:
            clauses, params = [], []
            if lower is not None:
                clauses.append("key >= ?" if lowerInclusive else "key > ?")
                params.append(lower)
            if upper is not None:
                clauses.append("key < ?")
                params.append(upper)
            where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
            sql = f"SELECT key, value FROM kv {where} ORDER BY key {direction} LIMIT ?"
            params.append(self.SCAN_BATCH_SIZE)

            with self._lock:
                try:
                    rows = self.conn.execute(sql, params).fetchall()
                except sqlite3.Error as e:
                    raise StorageError(f"Range scan failed: {e}")

            for key, value in rows:
                yield bytes(key), bytes(value)

            if len(rows) < self.SCAN_BATCH_SIZE:
                return

            lastKey = bytes(rows[-1][0])
            if order == Order.DESCENDING:
                upper = lastKey
            else:
                lower, lowerInclusive = lastKey, False

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._txn is not None:
                yield self._txn
                return

            try:
                self.conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageError(f"Failed to begin transaction: {e}")

            txn = Transaction()
            self._txn = txn
            try:
                yield txn
            except BaseException:
                self._rollback()
                raise
            else:
                if txn.aborted:
                    self._rollback()
                else:
                    try:
                        self.conn.execute("COMMIT")
                    except sqlite3.Error as e:
                        self._rollback()
                        raise StorageError(f"Commit failed: {e}")
            finally:
                self._txn = None

    def _rollback(self):
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            self.log.error(f"[SqliteStore] Rollback failed: {e}")

    def close(self):
        """Close database connection"""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None


def createStore(dbPath: str) -> KeyValueStore:
    """Pick the backend for a configured dbPath (':memory:' -> MemoryStore)"""
    if dbPath == ':memory:':
        return MemoryStore()
    return SqliteStore(dbPath)
