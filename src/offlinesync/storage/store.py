"""Local durable store for cached collections and sync bookkeeping.

This module provides:
- StorageKey: Well-known keys used by the sync layer
- StorageError: Raised when a write cannot be persisted
- OfflineStorage: Envelope store over a KeyValueBackend

Every value is persisted as a JSON envelope {"data": ..., "timestamp": ...}
where timestamp is the wall-clock time of the write in seconds. Reads never
raise: a missing or unreadable key yields None.
"""

from __future__ import annotations

import json
import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from offlinesync.storage.backends import KeyValueBackend

logger = logging.getLogger(__name__)


class StorageKey(str, Enum):
    """Keys of the cached collections and sync bookkeeping."""

    ORDERS = "offline_orders"
    EXPENSES = "offline_expenses"
    PROFILES = "offline_profiles"
    PRODUCTS = "offline_products"
    RENTAL_INVENTORY = "offline_rental_inventory"
    INVOICES = "offline_invoices"
    HANDBOOK = "offline_handbook"
    USER_PROFILE = "offline_user_profile"
    SYNC_QUEUE = "offline_sync_queue"
    LAST_SYNC = "offline_last_sync"


class StorageError(Exception):
    """Local persistence failed (disk full, locked, corrupt or unserializable value).

    Callers on the mutation path treat this as non-fatal: log and continue.
    """


def _key(key: str | StorageKey) -> str:
    return key.value if isinstance(key, StorageKey) else key


class OfflineStorage:
    """Envelope-based key/value store shared by all sync components.

    No locking serializes writers of the same key: concurrent writes are
    last-writer-wins at the backend.
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        """Initialize the store.

        Args:
            backend: Backing key/value namespace.
        """
        self._backend = backend

    @property
    def backend(self) -> KeyValueBackend:
        """Get the underlying backend."""
        return self._backend

    def save(self, key: str | StorageKey, value: Any) -> None:
        """Persist value under key wrapped in a timestamped envelope.

        Args:
            key: Storage key.
            value: JSON-serializable value.

        Raises:
            StorageError: If the value cannot be serialized or written.
        """
        name = _key(key)
        try:
            payload = json.dumps({"data": value, "timestamp": time.time()})
            self._backend.set(name, payload)
        except Exception as e:
            logger.error("Error saving %s: %s", name, e)
            raise StorageError(f"Could not save {name}: {e}") from e
        logger.debug("Saved %s", name)

    def load_envelope(self, key: str | StorageKey) -> dict[str, Any] | None:
        """Get the raw {data, timestamp} envelope for key.

        Returns:
            The envelope, or None if absent or unreadable.
        """
        name = _key(key)
        try:
            raw = self._backend.get(name)
            if raw is None:
                return None
            envelope = json.loads(raw)
        except Exception as e:
            logger.error("Error getting %s: %s", name, e)
            return None
        if not isinstance(envelope, dict) or "data" not in envelope:
            logger.warning("Ignoring malformed entry for %s", name)
            return None
        return envelope

    def load(self, key: str | StorageKey) -> Any:
        """Get the value stored under key.

        Returns:
            The stored value, or None if absent.
        """
        envelope = self.load_envelope(key)
        if envelope is None:
            return None
        return envelope["data"]

    def remove(self, key: str | StorageKey) -> None:
        """Remove a key (best effort, failures are logged)."""
        name = _key(key)
        try:
            self._backend.remove(name)
            logger.debug("Removed %s", name)
        except Exception as e:
            logger.error("Error removing %s: %s", name, e)

    def clear(self) -> None:
        """Remove every key (best effort, failures are logged)."""
        try:
            self._backend.clear()
            logger.info("Cleared all offline data")
        except Exception as e:
            logger.error("Error clearing offline data: %s", e)

    def keys(self) -> list[str]:
        """List stored keys (empty on backend failure)."""
        try:
            return self._backend.keys()
        except Exception as e:
            logger.error("Error listing keys: %s", e)
            return []

    def is_stale(self, key: str | StorageKey, max_age: float = 3600.0) -> bool:
        """Check whether key is absent or older than max_age seconds."""
        envelope = self.load_envelope(key)
        if envelope is None:
            return True
        try:
            written_at = float(envelope.get("timestamp", 0))
        except (TypeError, ValueError):
            return True
        return time.time() - written_at > max_age

    def export_all(self) -> dict[str, Any]:
        """Export every envelope (for backup)."""
        exported: dict[str, Any] = {}
        for name in self.keys():
            envelope = self.load_envelope(name)
            if envelope is not None:
                exported[name] = envelope
        return exported

    def import_data(self, data: dict[str, Any]) -> int:
        """Restore envelopes produced by export_all.

        Envelopes are written verbatim so their original timestamps survive.

        Returns:
            Number of keys written.

        Raises:
            StorageError: If an entry cannot be written.
        """
        count = 0
        for name, envelope in data.items():
            if not isinstance(envelope, dict) or "data" not in envelope:
                logger.warning("Skipping malformed backup entry %s", name)
                continue
            try:
                self._backend.set(name, json.dumps(envelope))
            except Exception as e:
                raise StorageError(f"Could not import {name}: {e}") from e
            count += 1
        logger.info("Imported %d keys", count)
        return count
