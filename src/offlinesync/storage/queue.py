"""Persistent mutation queue.

This module provides:
- QueueItem: A pending CREATE/UPDATE/DELETE against a remote table
- SyncQueue: Queue persisted as one list under StorageKey.SYNC_QUEUE

Lifecycle of an item:
    add() -> synced=False -> mark_synced() -> synced=True -> clear_synced()

Items are never deleted at acknowledgement time. The sweep in
clear_synced() removes every acknowledged item in one write, so a crash
between two acknowledgements leaves the list consistent.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from offlinesync.core.types import OperationType
from offlinesync.storage.store import OfflineStorage, StorageError, StorageKey

logger = logging.getLogger(__name__)


def generate_item_id(table: str, timestamp: float) -> str:
    """Build a unique queue item id: <table>_<ms>_<random hex>."""
    return f"{table}_{int(timestamp * 1000)}_{secrets.token_hex(4)}"


@dataclass
class QueueItem:
    """A mutation waiting to be replayed against the remote store.

    Attributes:
        id: Unique id, used for acknowledgement.
        type: CREATE, UPDATE or DELETE.
        table: Target remote table.
        data: Row payload; UPDATE and DELETE payloads carry the row id.
        timestamp: Enqueue time (seconds since epoch), for diagnostics.
        synced: True once the remote store accepted the operation.
    """

    id: str
    type: OperationType
    table: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0
    synced: bool = False

    @classmethod
    def create(
        cls,
        type: OperationType,
        table: str,
        data: dict[str, Any],
    ) -> QueueItem:
        """Create a new unsynced item stamped with the current time."""
        now = time.time()
        return cls(
            id=generate_item_id(table, now),
            type=OperationType(type),
            table=table,
            data=dict(data),
            timestamp=now,
            synced=False,
        )

    @property
    def record_id(self) -> str | None:
        """Id of the row this item targets, if present in the payload."""
        value = self.data.get("id")
        return str(value) if value is not None else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueueItem:
        """Create from a persisted dictionary."""
        return cls(
            id=str(data["id"]),
            type=OperationType(data["type"]),
            table=data["table"],
            data=dict(data.get("data") or {}),
            timestamp=float(data.get("timestamp", 0.0)),
            synced=bool(data.get("synced", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        result = asdict(self)
        result["type"] = self.type.value
        return result

    def __repr__(self) -> str:
        state = "synced" if self.synced else "pending"
        return f"QueueItem({self.type.value} {self.table} id={self.record_id}, {state})"


class SyncQueue:
    """Mutation queue stored in the local durable store.

    Each operation loads the whole list, edits it and saves it back. There is
    no mutex around that read-modify-write: concurrent writers race, and the
    sync engine's single-flight guard keeps the drain path to one writer.
    """

    def __init__(self, storage: OfflineStorage) -> None:
        """Initialize the queue.

        Args:
            storage: Local durable store holding the queue.
        """
        self._storage = storage

    def _save(self, items: list[QueueItem]) -> None:
        self._storage.save(StorageKey.SYNC_QUEUE, [item.to_dict() for item in items])

    def items(self) -> list[QueueItem]:
        """Get every item, synced or not, in stored order."""
        raw = self._storage.load(StorageKey.SYNC_QUEUE)
        if not isinstance(raw, list):
            return []
        items: list[QueueItem] = []
        for entry in raw:
            try:
                items.append(QueueItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping unreadable queue entry %r: %s", entry, e)
        return items

    def add(
        self,
        type: OperationType,
        table: str,
        data: dict[str, Any],
    ) -> QueueItem:
        """Append a new pending mutation.

        Returns:
            The queued item.

        Raises:
            StorageError: If the queue could not be persisted.
        """
        item = QueueItem.create(type, table, data)
        items = self.items()
        items.append(item)
        self._save(items)
        logger.info("Added to sync queue: %s %s", item.type.value, table)
        return item

    def pending(self, table: str | None = None) -> list[QueueItem]:
        """Get unsynced items in replay (enqueue) order.

        Order is the stored list order, which add() appends to, so a
        wall-clock step backwards cannot reorder operations.

        Args:
            table: Only return items for this table.
        """
        return [
            item
            for item in self.items()
            if not item.synced and (table is None or item.table == table)
        ]

    def pending_count(self, table: str | None = None) -> int:
        """Get number of unsynced items."""
        return len(self.pending(table))

    def mark_synced(self, item_id: str) -> bool:
        """Flag an item as accepted by the remote store.

        Returns:
            True if the flag was persisted.
        """
        items = self.items()
        found = False
        for item in items:
            if item.id == item_id:
                item.synced = True
                found = True
        if not found:
            logger.warning("Cannot mark unknown queue item %s as synced", item_id)
            return False
        try:
            self._save(items)
        except StorageError as e:
            logger.error("Error marking %s as synced: %s", item_id, e)
            return False
        logger.debug("Marked as synced: %s", item_id)
        return True

    def clear_synced(self) -> int:
        """Sweep every synced item out of the queue.

        Returns:
            Number of items removed.
        """
        items = self.items()
        remaining = [item for item in items if not item.synced]
        removed = len(items) - len(remaining)
        if removed == 0:
            return 0
        try:
            self._save(remaining)
        except StorageError as e:
            logger.error("Error clearing synced items: %s", e)
            return 0
        logger.debug("Cleared %d synced items", removed)
        return removed

    def update_last_sync_time(self, timestamp: float | None = None) -> None:
        """Record the time of the last successful sync."""
        try:
            self._storage.save(StorageKey.LAST_SYNC, timestamp or time.time())
        except StorageError as e:
            logger.error("Error updating last sync time: %s", e)

    def get_last_sync_time(self) -> float | None:
        """Get timestamp of last successful sync."""
        value = self._storage.load(StorageKey.LAST_SYNC)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring unreadable last sync time %r", value)
            return None

    def __len__(self) -> int:
        """Get number of pending items."""
        return self.pending_count()
