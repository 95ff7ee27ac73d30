"""Offline-transparent repository base class.

This module provides:
- OfflineRepository: list/create/update/delete over one remote table

Every mutating operation runs the same steps:
    1. Validate and sanitize (entity hooks); failures return ValidationError
       and nothing is written anywhere.
    2. Online: call the remote store, upsert the returned row into the cache.
       A failed call falls through to step 3 with
       QueuedAfterNetworkFailureError.
    3. Offline: enqueue the mutation and apply it optimistically to the
       cache. The optimistic record is returned with QueuedOfflineError.

Reads are never queued. list() fetches from the remote store when online
(replacing the cache), reads the cache otherwise, and in both cases
overlays unsynced queue items before returning.

Storage failures on the mutation path are logged and swallowed: the caller
still gets the validated record even if persistence was lost.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from offlinesync.core.types import OperationType
from offlinesync.domain.overlay import (
    apply_pending,
    find_record,
    remove_record,
    upsert_record,
)
from offlinesync.domain.results import (
    ApiResult,
    NotFoundError,
    QueuedAfterNetworkFailureError,
    QueuedOfflineError,
    ServedFromCacheError,
    ValidationError,
)
from offlinesync.remote import ConflictError, RemoteError
from offlinesync.storage.queue import QueueItem, SyncQueue
from offlinesync.storage.store import StorageError, StorageKey

if TYPE_CHECKING:
    from offlinesync.connectivity import ConnectivityMonitor
    from offlinesync.remote import RemoteStore
    from offlinesync.storage.store import OfflineStorage

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class OfflineRepository:
    """Validated CRUD over one table, transparent to connectivity.

    Subclasses set the class attributes and override the hooks
    (build_record, build_changes, check_unique, sort_records, placeholder).

    Attributes:
        table: Remote table name.
        storage_key: Local cache key for the table snapshot.
        label: Collection name used in messages ("rental inventory").
        order: Remote ordering terms for list().
    """

    table: str = ""
    storage_key: str | StorageKey = ""
    label: str = "records"
    order: list[str] | None = None

    offline_create_message = "Offline: item queued for sync."
    offline_update_message = "Offline: update queued for sync."
    offline_delete_message = "Offline: delete queued for sync."
    network_failure_message = "Request queued for sync due to network error."

    def __init__(
        self,
        remote: RemoteStore,
        storage: OfflineStorage,
        monitor: ConnectivityMonitor,
        queue: SyncQueue | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            remote: Remote store client.
            storage: Local durable store holding the cache.
            monitor: Connectivity oracle deciding online vs offline path.
            queue: Mutation queue (defaults to one over the same storage).
        """
        self._remote = remote
        self._storage = storage
        self._monitor = monitor
        self._queue = queue or SyncQueue(storage)

    @property
    def queue(self) -> SyncQueue:
        """Get the mutation queue."""
        return self._queue

    # === Entity hooks ===

    def build_record(self, payload: Mapping[str, Any]) -> Row:
        """Validate and sanitize a create payload into a full record.

        Raises:
            ValidationError: If the payload is invalid.
        """
        record = dict(payload)
        if not record.get("id"):
            raise ValidationError("Record id is required.")
        return record

    def build_changes(self, changes: Mapping[str, Any], existing: Row | None) -> Row:
        """Validate and sanitize an update payload.

        Args:
            changes: Partial record from the caller.
            existing: Current record (cache plus overlay), or None if unknown.

        Returns:
            Only the fields to write.

        Raises:
            ValidationError: If the changes are invalid.
        """
        if not changes:
            raise ValidationError("Provide at least one field to update")
        return {key: value for key, value in changes.items() if key != "id"}

    def check_unique(
        self,
        record: Row,
        records: list[Row],
        ignore_id: str | None = None,
    ) -> None:
        """Reject record if it collides with another cached record.

        Raises:
            ValidationError: On a collision.
        """

    def sort_records(self, records: list[Row]) -> list[Row]:
        """Order records for display."""
        return list(records)

    def placeholder(self, record_id: str, item: QueueItem) -> Row:
        """Base record for a pending UPDATE whose target is unknown."""
        return {"id": record_id}

    # === Cache helpers ===

    def cached_records(self) -> list[Row]:
        """Get the cached snapshot (without overlay)."""
        raw = self._storage.load(self.storage_key)
        if not isinstance(raw, list):
            return []
        return self.sort_records([dict(record) for record in raw if isinstance(record, dict)])

    def current_records(self) -> list[Row]:
        """Get the cached snapshot with pending mutations overlaid."""
        return self._overlay(self.cached_records())

    def _overlay(self, records: list[Row]) -> list[Row]:
        pending = self._queue.pending(self.table)
        if not pending:
            return self.sort_records(records)
        return self.sort_records(apply_pending(records, pending, self.placeholder))

    def _persist(self, records: list[Row]) -> None:
        try:
            self._storage.save(self.storage_key, self.sort_records(records))
        except StorageError as e:
            logger.warning("Could not update %s cache: %s", self.label, e)

    def _enqueue(self, op: OperationType, data: Row) -> None:
        try:
            self._queue.add(op, self.table, data)
        except StorageError as e:
            logger.error("Could not queue %s on %s: %s", op.value, self.table, e)

    # === Read ===

    def list(self) -> ApiResult[list[Row]]:
        """Get all records, including unconfirmed local edits.

        Returns:
            ApiResult with the records; error is ServedFromCacheError if the
            remote fetch failed and the cache was used instead.
        """
        error = None
        if self._monitor.is_online():
            try:
                rows = self._remote.select(self.table, order=self.order)
                records = self.sort_records(rows)
                self._persist(records)
            except RemoteError as e:
                logger.error("Fetching %s failed: %s", self.table, e)
                records = self.cached_records()
                error = ServedFromCacheError(f"Unable to fetch {self.label} from the server.")
        else:
            records = self.cached_records()
        return ApiResult(self._overlay(records), error)

    # === Mutations ===

    def create(self, payload: Mapping[str, Any]) -> ApiResult[Row]:
        """Create a record.

        Returns:
            ApiResult with the created (or optimistic) record.
        """
        try:
            record = self.build_record(payload)
            self.check_unique(record, self.current_records())
        except ValidationError as e:
            return ApiResult(None, e)

        if self._monitor.is_online():
            try:
                created = self._remote.insert(self.table, record)
            except ConflictError as e:
                return ApiResult(None, ValidationError(f"Rejected by server: {e}"))
            except RemoteError as e:
                logger.warning("Create on %s failed, queueing: %s", self.table, e)
                return self._queue_create(
                    record, QueuedAfterNetworkFailureError(self.network_failure_message)
                )
            self._persist(upsert_record(self.cached_records(), created))
            return ApiResult(created, None)

        return self._queue_create(record, QueuedOfflineError(self.offline_create_message))

    def _queue_create(
        self,
        record: Row,
        error: QueuedOfflineError | QueuedAfterNetworkFailureError,
    ) -> ApiResult[Row]:
        self._enqueue(OperationType.CREATE, record)
        self._persist(upsert_record(self.cached_records(), record))
        return ApiResult(record, error)

    def update(self, record_id: str, changes: Mapping[str, Any]) -> ApiResult[Row]:
        """Update fields of a record.

        Returns:
            ApiResult with the updated (or optimistic) record.
        """
        if not record_id:
            return ApiResult(None, ValidationError("Record id is required."))

        current = self.current_records()
        existing = find_record(current, record_id)
        try:
            patch = self.build_changes(changes, existing)
            if existing is not None:
                self.check_unique({**existing, **patch}, current, ignore_id=record_id)
        except ValidationError as e:
            return ApiResult(None, e)

        if self._monitor.is_online():
            try:
                updated = self._remote.update(self.table, record_id, patch)
            except ConflictError as e:
                return ApiResult(None, ValidationError(f"Rejected by server: {e}"))
            except RemoteError as e:
                logger.warning("Update on %s failed, queueing: %s", self.table, e)
                return self._queue_update(
                    record_id,
                    patch,
                    existing,
                    QueuedAfterNetworkFailureError(self.network_failure_message),
                )
            if updated is None:
                return ApiResult(
                    None, NotFoundError(f"No {self.label} record with id {record_id}.", queued=False)
                )
            self._persist(upsert_record(self.cached_records(), updated))
            return ApiResult(updated, None)

        return self._queue_update(
            record_id, patch, existing, QueuedOfflineError(self.offline_update_message)
        )

    def _queue_update(
        self,
        record_id: str,
        patch: Row,
        existing: Row | None,
        error: QueuedOfflineError | QueuedAfterNetworkFailureError,
    ) -> ApiResult[Row]:
        self._enqueue(OperationType.UPDATE, {"id": record_id, **patch})
        if existing is None:
            return ApiResult(
                None,
                NotFoundError(
                    f"No cached {self.label} record with id {record_id}; update queued for sync."
                ),
            )
        record = {**existing, **patch}
        self._persist(upsert_record(self.cached_records(), record))
        return ApiResult(record, error)

    def delete(self, record_id: str) -> ApiResult[Row]:
        """Delete a record.

        Returns:
            ApiResult with {"id": record_id}.
        """
        if not record_id:
            return ApiResult(None, ValidationError("Record id is required."))

        if self._monitor.is_online():
            try:
                self._remote.delete(self.table, record_id)
            except RemoteError as e:
                logger.warning("Delete on %s failed, queueing: %s", self.table, e)
                return self._queue_delete(
                    record_id, QueuedAfterNetworkFailureError(self.network_failure_message)
                )
            self._persist(remove_record(self.cached_records(), record_id))
            return ApiResult({"id": record_id}, None)

        return self._queue_delete(record_id, QueuedOfflineError(self.offline_delete_message))

    def _queue_delete(
        self,
        record_id: str,
        error: QueuedOfflineError | QueuedAfterNetworkFailureError,
    ) -> ApiResult[Row]:
        known = find_record(self.current_records(), record_id) is not None
        self._enqueue(OperationType.DELETE, {"id": record_id})
        self._persist(remove_record(self.cached_records(), record_id))
        if not known:
            return ApiResult(
                {"id": record_id},
                NotFoundError(
                    f"No cached {self.label} record with id {record_id}; delete queued for sync."
                ),
            )
        return ApiResult({"id": record_id}, error)
