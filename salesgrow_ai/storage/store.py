"""
Key-value state stores.

Quota counters, cached responses and coach sessions all live behind the
``StateStore`` interface so the single-process in-memory store can be
swapped for a shared one without touching the callers.

Every operation is atomic with respect to other callers of the same store.
Expired entries are treated as absent on read and removed lazily; ``sweep``
purges them eagerly.
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection

Clock = Callable[[], float]


class StateStore(ABC):
    """Atomic key-value operations with optional per-entry expiry.

    Values must be JSON-serializable so that every implementation can hold
    them. ``expires_at`` is an absolute epoch timestamp in seconds.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value for ``key``, or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, expires_at: Optional[float] = None) -> None:
        """Insert or replace ``key``. Replacing keeps its insertion position."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``; True when something was removed."""

    @abstractmethod
    def increment(
        self,
        key: str,
        amount: int = 1,
        limit: Optional[int] = None,
        expires_at: Optional[float] = None,
    ) -> Optional[int]:
        """Atomically add ``amount`` to an integer counter.

        A missing or expired counter starts at 0 and takes ``expires_at``;
        an existing counter keeps its expiry. When ``limit`` is given and the
        new value would exceed it, nothing changes and None is returned.
        The counter never drops below 0.

        Returns:
            The new counter value, or None if the limit refused the change
        """

    @abstractmethod
    def insert_bounded(
        self,
        key: str,
        value: Any,
        prefix: str,
        capacity: int,
        expires_at: Optional[float] = None,
    ) -> List[str]:
        """Insert ``key`` while keeping at most ``capacity`` keys under ``prefix``.

        When ``key`` is new and the prefix is full, the oldest-inserted keys
        are evicted first. Eviction and insert happen as one operation.

        Returns:
            Keys evicted to make room
        """

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """Live keys under ``prefix`` in insertion order."""

    @abstractmethod
    def sweep(self) -> int:
        """Remove all expired entries; returns how many were removed."""

    @abstractmethod
    def clear(self, prefix: str = "") -> int:
        """Remove every key under ``prefix``; returns how many were removed."""

    def count(self, prefix: str = "") -> int:
        return len(self.keys(prefix))


@dataclass
class _Entry:
    value: Any
    expires_at: Optional[float]

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryStore(StateStore):
    """Process-local store backed by an insertion-ordered dict."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.RLock()

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._data[key]
            return None
        return entry

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._live(key)
            return None if entry is None else entry.value

    def set(self, key: str, value: Any, expires_at: Optional[float] = None) -> None:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self._data[key] = _Entry(value, expires_at)
            else:
                entry.value = value
                entry.expires_at = expires_at

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def increment(self, key, amount=1, limit=None, expires_at=None):
        with self._lock:
            entry = self._live(key)
            current = 0 if entry is None else int(entry.value)
            new_value = max(0, current + amount)
            if limit is not None and amount > 0 and new_value > limit:
                return None
            if entry is None:
                self._data[key] = _Entry(new_value, expires_at)
            else:
                entry.value = new_value
            return new_value

    def insert_bounded(self, key, value, prefix, capacity, expires_at=None):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        with self._lock:
            now = self._clock()
            # Expired entries still occupy memory until purged
            for k in [k for k, entry in self._data.items() if k.startswith(prefix) and entry.expired(now)]:
                del self._data[k]
            evicted = []
            if self._live(key) is None:
                existing = self._prefixed(prefix)
                while len(existing) >= capacity:
                    oldest = existing.pop(0)
                    del self._data[oldest]
                    evicted.append(oldest)
            self.set(key, value, expires_at)
            return evicted

    def _prefixed(self, prefix: str) -> List[str]:
        now = self._clock()
        return [
            k for k, entry in self._data.items()
            if k.startswith(prefix) and not entry.expired(now)
        ]

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return self._prefixed(prefix)

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [k for k, entry in self._data.items() if entry.expired(now)]
            for k in stale:
                del self._data[k]
            return len(stale)

    def clear(self, prefix: str = "") -> int:
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)


class SQLiteStore(StateStore):
    """Store shared by every process on one host through a SQLite file.

    Each operation runs in its own ``BEGIN IMMEDIATE`` transaction, so
    read-modify-write sequences are serialized across processes. Insertion
    order is the table rowid, which an in-place update preserves.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, clock: Clock = time.time):
        self.db_path = db_path
        self._clock = clock
        self._lock = threading.Lock()
        self.initialize_schema()

    def initialize_schema(self) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS state_store (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    value TEXT NOT NULL,
                    expires_at REAL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def _transaction(self, operation):
        with self._lock:
            conn = get_connection(self.db_path)
            conn.isolation_level = None
            try:
                conn.execute("BEGIN IMMEDIATE")
                result = operation(conn, self._clock())
                conn.execute("COMMIT")
                return result
            except Exception:
                conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()

    @staticmethod
    def _read(conn, key: str, now: float):
        row = conn.execute(
            "SELECT value, expires_at FROM state_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row[1] is not None and now >= row[1]:
            conn.execute("DELETE FROM state_store WHERE key = ?", (key,))
            return None
        return row

    @staticmethod
    def _write(conn, key: str, value: Any, expires_at: Optional[float]) -> None:
        conn.execute("""
            INSERT INTO state_store (key, value, expires_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
        """, (key, json.dumps(value), expires_at))

    @staticmethod
    def _live_keys(conn, prefix: str, now: float) -> List[str]:
        rows = conn.execute("""
            SELECT key FROM state_store
            WHERE substr(key, 1, ?) = ? AND (expires_at IS NULL OR expires_at > ?)
            ORDER BY id
        """, (len(prefix), prefix, now)).fetchall()
        return [row[0] for row in rows]

    def get(self, key: str) -> Optional[Any]:
        def operation(conn, now):
            row = self._read(conn, key, now)
            return None if row is None else json.loads(row[0])
        return self._transaction(operation)

    def set(self, key: str, value: Any, expires_at: Optional[float] = None) -> None:
        self._transaction(lambda conn, now: self._write(conn, key, value, expires_at))

    def delete(self, key: str) -> bool:
        def operation(conn, now):
            cursor = conn.execute("DELETE FROM state_store WHERE key = ?", (key,))
            return cursor.rowcount > 0
        return self._transaction(operation)

    def increment(self, key, amount=1, limit=None, expires_at=None):
        def operation(conn, now):
            row = self._read(conn, key, now)
            current = 0 if row is None else int(json.loads(row[0]))
            new_value = max(0, current + amount)
            if limit is not None and amount > 0 and new_value > limit:
                return None
            self._write(conn, key, new_value, expires_at if row is None else row[1])
            return new_value
        return self._transaction(operation)

    def insert_bounded(self, key, value, prefix, capacity, expires_at=None):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        def operation(conn, now):
            conn.execute("""
                DELETE FROM state_store
                WHERE substr(key, 1, ?) = ? AND expires_at IS NOT NULL AND expires_at <= ?
            """, (len(prefix), prefix, now))
            evicted = []
            if self._read(conn, key, now) is None:
                existing = self._live_keys(conn, prefix, now)
                while len(existing) >= capacity:
                    oldest = existing.pop(0)
                    conn.execute("DELETE FROM state_store WHERE key = ?", (oldest,))
                    evicted.append(oldest)
            self._write(conn, key, value, expires_at)
            return evicted
        return self._transaction(operation)

    def keys(self, prefix: str = "") -> List[str]:
        return self._transaction(lambda conn, now: self._live_keys(conn, prefix, now))

    def sweep(self) -> int:
        def operation(conn, now):
            cursor = conn.execute(
                "DELETE FROM state_store WHERE expires_at IS NOT NULL AND expires_at <= ?", (now,)
            )
            return cursor.rowcount
        return self._transaction(operation)

    def clear(self, prefix: str = "") -> int:
        def operation(conn, now):
            cursor = conn.execute(
                "DELETE FROM state_store WHERE substr(key, 1, ?) = ?", (len(prefix), prefix)
            )
            return cursor.rowcount
        return self._transaction(operation)
