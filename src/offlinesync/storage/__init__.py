"""Local durable store and mutation queue.

Architecture:
    KeyValueBackend (SQLite / memory) → OfflineStorage ({data, timestamp}
    envelopes) → SyncQueue (pending mutations) and cached collections.
"""

from offlinesync.storage.backends import KeyValueBackend, MemoryBackend, SQLiteBackend
from offlinesync.storage.queue import QueueItem, SyncQueue, generate_item_id
from offlinesync.storage.store import OfflineStorage, StorageError, StorageKey

__all__ = [
    "KeyValueBackend",
    "MemoryBackend",
    "OfflineStorage",
    "QueueItem",
    "SQLiteBackend",
    "StorageError",
    "StorageKey",
    "SyncQueue",
    "generate_item_id",
]
