"""Key/value backends for the local durable store.

This module provides:
- KeyValueBackend: Protocol every backend implements
- SQLiteBackend: Persistent backend surviving process restarts
- MemoryBackend: Volatile backend for tests and ephemeral sessions

Backends only move opaque JSON text around. Envelope handling
({data, timestamp}) lives in OfflineStorage.

Architecture:
    Every key lives in a namespace so several application instances can
    share one database file. There are no transactions spanning keys:
    each set/remove commits on its own (autocommit mode), so callers must
    not depend on two writes landing together.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    """Protocol for schema-less key/value storage.

    Implementations may raise any exception on failure; OfflineStorage
    converts those into StorageError.
    """

    def get(self, key: str) -> str | None:
        """Return the raw value for key, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store the raw value for key (upsert)."""
        ...

    def remove(self, key: str) -> None:
        """Delete key; missing keys are ignored."""
        ...

    def clear(self) -> None:
        """Delete every key in the namespace."""
        ...

    def keys(self) -> list[str]:
        """List keys in the namespace."""
        ...


class SQLiteBackend:
    """SQLite-backed key/value namespace.

    Values are stored as TEXT in a single table keyed by (namespace, key).
    """

    def __init__(self, db_path: Path, namespace: str = "offlinesync") -> None:
        """Open (or create) the backing database.

        Args:
            db_path: Path to SQLite database file.
            namespace: Namespace isolating this application instance.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._namespace = namespace

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)
        logger.debug("Opened local store at %s (namespace=%s)", self._db_path, namespace)

    @property
    def namespace(self) -> str:
        """Get the namespace of this backend."""
        return self._namespace

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def get(self, key: str) -> str | None:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            )
            row = cursor.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv_store (namespace, key, value) VALUES (?, ?, ?)",
                (self._namespace, key, value),
            )

    def remove(self, key: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            )

    def clear(self) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM kv_store WHERE namespace = ?",
                (self._namespace,),
            )

    def keys(self) -> list[str]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT key FROM kv_store WHERE namespace = ? ORDER BY key",
                (self._namespace,),
            )
            rows = cursor.fetchall()
        return [row[0] for row in rows]


class MemoryBackend:
    """In-memory key/value namespace (lost on exit)."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
