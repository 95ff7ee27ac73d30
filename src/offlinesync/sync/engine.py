"""Sync engine draining the mutation queue.

This module provides:
- SyncResult: Outcome of one sync pass
- SyncStatus: Snapshot for status displays
- CriticalTable: A table prefetched for offline use
- SyncEngine: Replays queued mutations and refreshes cached tables

Sync pass (sync_all):
    1. Offline -> no-op, SyncResult(0, 0).
    2. Replay unsynced items one at a time in enqueue order.
    3. Each success is marked synced immediately; each failure is counted
       and left in the queue for the next pass. No retry inside a pass.
       Later items for the same record are held back behind a failure so
       they replay in order on the next pass.
    4. Sweep synced items, record the last sync time if anything succeeded.

Overlapping callers (timer, reconnect event, manual trigger) share the
in-flight pass instead of draining the queue twice.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from offlinesync.core.types import OperationType, SyncState
from offlinesync.remote import RemoteError, RowNotFoundError
from offlinesync.storage.queue import QueueItem, SyncQueue
from offlinesync.storage.store import StorageError, StorageKey

if TYPE_CHECKING:
    from offlinesync.connectivity import ConnectivityMonitor
    from offlinesync.remote import RemoteStore
    from offlinesync.storage.store import OfflineStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SyncResult:
    """Result of a sync pass.

    Attributes:
        success: Items accepted by the remote store.
        failed: Items that failed and remain queued.
        failed_items: The items that did not sync.
        errors: One message per failed item.
    """

    success: int = 0
    failed: int = 0
    failed_items: list[QueueItem] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """Check if any item failed to sync."""
        return self.failed > 0


@dataclass
class SyncStatus:
    """Snapshot of sync state for status displays."""

    state: SyncState
    online: bool
    pending: int
    last_sync_at: float | None


@dataclass
class CriticalTable:
    """A remote table cached for offline use."""

    table: str
    storage_key: StorageKey
    order_by: str | None = None
    limit: int | None = None


CRITICAL_TABLES: tuple[CriticalTable, ...] = (
    CriticalTable("orders", StorageKey.ORDERS, order_by="created_at", limit=100),
    CriticalTable("expenses", StorageKey.EXPENSES, order_by="created_at", limit=100),
    CriticalTable("profiles", StorageKey.PROFILES),
    CriticalTable("products", StorageKey.PRODUCTS),
    CriticalTable("invoices", StorageKey.INVOICES, order_by="created_at", limit=50),
)


class SyncEngine:
    """Replays queued mutations against the remote store."""

    def __init__(
        self,
        remote: RemoteStore,
        storage: OfflineStorage,
        monitor: ConnectivityMonitor,
        queue: SyncQueue | None = None,
        critical_tables: tuple[CriticalTable, ...] = CRITICAL_TABLES,
        on_item_failed: Callable[[QueueItem, Exception], None] | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            remote: Remote store client.
            storage: Local durable store.
            monitor: Connectivity oracle.
            queue: Mutation queue (defaults to one over the same storage).
            critical_tables: Tables refreshed by fetch_all_critical_data().
            on_item_failed: Optional callback for each item that did not sync.
        """
        self._remote = remote
        self._storage = storage
        self._monitor = monitor
        self._queue = queue or SyncQueue(storage)
        self._critical_tables = critical_tables
        self._on_item_failed = on_item_failed

        self._flight_lock = threading.Lock()
        self._in_flight: Future[SyncResult] | None = None
        self._flight_owner: int | None = None
        self._last_result: SyncResult | None = None

    @property
    def queue(self) -> SyncQueue:
        """Get the mutation queue."""
        return self._queue

    @property
    def is_syncing(self) -> bool:
        """Check if a sync pass is running."""
        return self._in_flight is not None

    @property
    def last_result(self) -> SyncResult | None:
        """Get the result of the last completed pass."""
        return self._last_result

    # === Queue drain ===

    def sync_all(self) -> SyncResult:
        """Replay every unsynced queue item.

        Never raises. If a pass is already running on another thread, waits
        for it and returns its result. A call made from inside the running
        pass (e.g. from on_item_failed) returns an empty result at once.
        """
        with self._flight_lock:
            running = self._in_flight
            if running is None:
                in_flight: Future[SyncResult] = Future()
                self._in_flight = in_flight
                self._flight_owner = threading.get_ident()
            elif self._flight_owner == threading.get_ident():
                logger.warning("sync_all called from inside a running pass, ignoring")
                return SyncResult()

        if running is not None:
            logger.debug("Sync pass already running, joining it")
            return running.result()

        result = SyncResult()
        try:
            result = self._run_pass()
        except Exception:
            # _run_pass handles per-item failures; this guards the bookkeeping
            logger.exception("Sync pass aborted")
        finally:
            self._last_result = result
            with self._flight_lock:
                self._in_flight = None
                self._flight_owner = None
            in_flight.set_result(result)
        return result

    def _run_pass(self) -> SyncResult:
        result = SyncResult()
        if not self._monitor.is_online():
            logger.info("Cannot sync - offline")
            return result

        pending = self._queue.pending()
        if pending:
            logger.info("Syncing %d queued operation(s)", len(pending))

        # Records with a failed item this pass; their later items must wait
        blocked: set[tuple[str, str]] = set()
        for item in pending:
            target = (item.table, item.record_id) if item.record_id is not None else None
            if target is not None and target in blocked:
                result.failed += 1
                result.failed_items.append(item)
                result.errors.append(
                    f"{item.type.value} {item.table} {item.record_id}: "
                    "held back behind an earlier failed operation"
                )
                logger.warning(
                    "Holding %s on %s %s until earlier operations sync",
                    item.type.value,
                    item.table,
                    item.record_id,
                )
                continue

            try:
                self._replay(item)
            except Exception as e:
                if target is not None:
                    blocked.add(target)
                result.failed += 1
                result.failed_items.append(item)
                result.errors.append(f"{item.type.value} {item.table} {item.record_id}: {e}")
                logger.error("Failed to sync %s on %s: %s", item.type.value, item.table, e)
                self._notify_failure(item, e)
                continue

            self._queue.mark_synced(item.id)
            result.success += 1
            logger.debug("Synced %s on %s", item.type.value, item.table)

        self._queue.clear_synced()
        if result.success > 0:
            self._queue.update_last_sync_time()

        if result.success or result.failed:
            logger.info(
                "Sync complete: %d succeeded, %d failed", result.success, result.failed
            )
        return result

    def _replay(self, item: QueueItem) -> None:
        """Apply one queue item to the remote store.

        Raises:
            RemoteError: If the remote store rejects the operation.
            ValueError: If the item has no row id where one is needed.
        """
        if item.type == OperationType.CREATE:
            self._remote.insert(item.table, item.data)
            return

        record_id = item.record_id
        if record_id is None:
            raise ValueError(f"{item.type.value} on {item.table} has no row id")

        if item.type == OperationType.UPDATE:
            changes = {key: value for key, value in item.data.items() if key != "id"}
            if self._remote.update(item.table, record_id, changes) is None:
                logger.warning(
                    "UPDATE on %s matched no row %s (deleted remotely?)", item.table, record_id
                )
        elif item.type == OperationType.DELETE:
            self._remote.delete(item.table, record_id)

    def _notify_failure(self, item: QueueItem, error: Exception) -> None:
        if self._on_item_failed is None:
            return
        try:
            self._on_item_failed(item, error)
        except Exception:
            logger.exception("on_item_failed callback raised")

    # === Cache refresh ===

    def sync_table_data(
        self,
        table: str,
        storage_key: str | StorageKey,
        order_by: str | None = "created_at",
        limit: int | None = None,
    ) -> bool:
        """Replace the cached snapshot of a table with fresh server data.

        Returns:
            True if the cache was refreshed.
        """
        if not self._monitor.is_online():
            return False
        try:
            rows = self._remote.select(
                table,
                order=[f"{order_by}.desc"] if order_by else None,
                limit=limit,
            )
            self._storage.save(storage_key, rows)
        except (RemoteError, StorageError) as e:
            logger.error("Failed to sync %s: %s", table, e)
            return False
        logger.info("Synced %s data", table)
        return True

    def fetch_all_critical_data(self) -> int:
        """Cache the critical tables for offline use.

        Missing tables are skipped quietly and empty results leave the
        existing cache untouched.

        Returns:
            Number of tables cached.
        """
        if not self._monitor.is_online():
            logger.info("Cannot fetch - offline")
            return 0

        cached = 0
        for entry in self._critical_tables:
            try:
                rows = self._remote.select(
                    entry.table,
                    order=[f"{entry.order_by}.desc"] if entry.order_by else None,
                    limit=entry.limit,
                )
            except RowNotFoundError:
                logger.debug("Skipping %s (table may not exist)", entry.table)
                continue
            except RemoteError as e:
                logger.warning("Could not fetch %s: %s", entry.table, e)
                continue
            if not rows:
                continue
            try:
                self._storage.save(entry.storage_key, rows)
            except StorageError as e:
                logger.error("Could not cache %s: %s", entry.table, e)
                continue
            cached += 1
            logger.info("Cached %d %s records", len(rows), entry.table)

        self._queue.update_last_sync_time()
        logger.info("Critical data sync completed")
        return cached

    def get_data_with_offline_fallback(
        self,
        fetch: Callable[[], T],
        storage_key: str | StorageKey,
    ) -> tuple[Any, bool]:
        """Fetch data online, caching it; fall back to the cache otherwise.

        Returns:
            Tuple of (data, from_cache). data is None if nothing is cached.
        """
        if self._monitor.is_online():
            try:
                data = fetch()
            except Exception as e:
                logger.error("Fetch failed, using cache: %s", e)
                return self._storage.load(storage_key), True
            try:
                self._storage.save(storage_key, data)
            except StorageError as e:
                logger.warning("Could not cache fetched data: %s", e)
            return data, False
        return self._storage.load(storage_key), True

    # === Status ===

    def status(self) -> SyncStatus:
        """Get a snapshot of the sync state."""
        online = self._monitor.is_online()
        if not online:
            state = SyncState.OFFLINE
        elif self.is_syncing:
            state = SyncState.SYNCING
        elif self._last_result is not None and self._last_result.has_failures:
            state = SyncState.ERROR
        else:
            state = SyncState.IDLE
        return SyncStatus(
            state=state,
            online=online,
            pending=self._queue.pending_count(),
            last_sync_at=self._queue.get_last_sync_time(),
        )
