"""Tests for the persistent mutation queue."""

from __future__ import annotations

import re

from offlinesync.core.types import OperationType
from offlinesync.storage import (
    OfflineStorage,
    QueueItem,
    StorageKey,
    SyncQueue,
    generate_item_id,
)


class TestQueueItem:
    """Tests for QueueItem."""

    def test_generate_item_id_format(self) -> None:
        """Should build <table>_<ms>_<hex> ids."""
        item_id = generate_item_id("orders", 1700000000.123)

        assert re.fullmatch(r"orders_1700000000123_[0-9a-f]{8}", item_id)

    def test_ids_are_unique(self) -> None:
        """Should not collide for the same table and time."""
        ids = {generate_item_id("orders", 1.0) for _ in range(50)}

        assert len(ids) == 50

    def test_to_dict_from_dict(self) -> None:
        """Should survive persistence."""
        item = QueueItem.create(OperationType.UPDATE, "orders", {"id": "o1", "total": 3})

        restored = QueueItem.from_dict(item.to_dict())

        assert restored == item
        assert item.to_dict()["type"] == "UPDATE"

    def test_record_id(self) -> None:
        """Should expose the target row id."""
        assert QueueItem.create(OperationType.DELETE, "t", {"id": 7}).record_id == "7"
        assert QueueItem.create(OperationType.CREATE, "t", {}).record_id is None


class TestSyncQueue:
    """Tests for SyncQueue."""

    def test_add_persists_item(self, storage: OfflineStorage, queue: SyncQueue) -> None:
        """Should store new items unsynced."""
        item = queue.add(OperationType.CREATE, "orders", {"id": "o1"})

        stored = storage.load(StorageKey.SYNC_QUEUE)
        assert stored == [item.to_dict()]
        assert stored[0]["synced"] is False

    def test_add_copies_payload(self, queue: SyncQueue) -> None:
        """Should not share the caller's dict."""
        payload = {"id": "o1"}
        queue.add(OperationType.CREATE, "orders", payload)
        payload["id"] = "changed"

        assert queue.pending()[0].data == {"id": "o1"}

    def test_pending_in_enqueue_order(self, queue: SyncQueue, storage: OfflineStorage) -> None:
        """Should keep stored order even when timestamps went backwards."""
        items = [
            QueueItem("create", OperationType.CREATE, "t", {"id": "1"}, timestamp=30.0),
            QueueItem("update", OperationType.UPDATE, "t", {"id": "1"}, timestamp=10.0),
            QueueItem("done", OperationType.CREATE, "t", {"id": "2"}, timestamp=5.0, synced=True),
            QueueItem("delete", OperationType.DELETE, "t", {"id": "1"}, timestamp=20.0),
        ]
        storage.save(StorageKey.SYNC_QUEUE, [item.to_dict() for item in items])

        assert [item.id for item in queue.pending()] == ["create", "update", "delete"]

    def test_pending_filters_by_table(self, queue: SyncQueue) -> None:
        """Should only return items of the requested table."""
        queue.add(OperationType.CREATE, "orders", {"id": "o1"})
        queue.add(OperationType.CREATE, "expenses", {"id": "e1"})

        assert [item.table for item in queue.pending("expenses")] == ["expenses"]
        assert queue.pending_count() == 2
        assert len(queue) == 2

    def test_mark_synced_then_clear(self, queue: SyncQueue) -> None:
        """Should keep synced items until the sweep removes them."""
        first = queue.add(OperationType.CREATE, "orders", {"id": "o1"})
        queue.add(OperationType.CREATE, "orders", {"id": "o2"})

        assert queue.mark_synced(first.id)
        assert len(queue.items()) == 2
        assert queue.pending_count() == 1

        assert queue.clear_synced() == 1
        assert [item.record_id for item in queue.items()] == ["o2"]

    def test_mark_unknown_item(self, queue: SyncQueue) -> None:
        """Should return False for an unknown id."""
        assert not queue.mark_synced("nope")

    def test_clear_synced_noop(self, queue: SyncQueue) -> None:
        """Should report zero when nothing is synced."""
        queue.add(OperationType.CREATE, "orders", {"id": "o1"})

        assert queue.clear_synced() == 0

    def test_last_sync_time(self, queue: SyncQueue) -> None:
        """Should store and return the last sync time."""
        assert queue.get_last_sync_time() is None

        queue.update_last_sync_time(1700000000.0)

        assert queue.get_last_sync_time() == 1700000000.0

    def test_unreadable_entries_dropped(self, storage: OfflineStorage, queue: SyncQueue) -> None:
        """Should skip entries that cannot be parsed."""
        good = QueueItem.create(OperationType.CREATE, "orders", {"id": "o1"})
        storage.save(StorageKey.SYNC_QUEUE, [good.to_dict(), {"type": "BOGUS"}])

        assert queue.items() == [good]

    def test_unreadable_last_sync_time(self, queue: SyncQueue, storage: OfflineStorage) -> None:
        """Should treat a non-numeric last sync time as unknown."""
        storage.save(StorageKey.LAST_SYNC, "yesterday")

        assert queue.get_last_sync_time() is None

        storage.save(StorageKey.LAST_SYNC, {"at": 1})

        assert queue.get_last_sync_time() is None
