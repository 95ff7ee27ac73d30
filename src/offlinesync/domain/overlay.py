"""Overlay of pending mutations onto a snapshot.

This module provides:
- find_record / upsert_record / remove_record: list helpers keyed by "id"
- apply_pending: replay unsynced queue items onto records

The overlay is a pure function of (snapshot, pending items). It can be
recomputed on every read, which is what keeps reads correct when a cache
write and a queue write did not both land.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from offlinesync.core.types import OperationType
from offlinesync.storage.queue import QueueItem

Row = dict[str, Any]
PlaceholderFactory = Callable[[str, QueueItem], Row]


def find_record(records: Iterable[Row], record_id: str) -> Row | None:
    """Get the record with this id, or None."""
    for record in records:
        if str(record.get("id")) == record_id:
            return record
    return None


def upsert_record(records: list[Row], record: Row) -> list[Row]:
    """Insert record, or merge it over the existing record with the same id.

    Returns:
        A new list; the input is not modified.
    """
    result = list(records)
    record_id = str(record.get("id"))
    for index, existing in enumerate(result):
        if str(existing.get("id")) == record_id:
            result[index] = {**existing, **record}
            return result
    result.append(dict(record))
    return result


def remove_record(records: list[Row], record_id: str) -> list[Row]:
    """Drop the record with this id.

    Returns:
        A new list without the record.
    """
    return [record for record in records if str(record.get("id")) != record_id]


def _default_placeholder(record_id: str, item: QueueItem) -> Row:
    return {"id": record_id}


def apply_pending(
    records: list[Row],
    pending: Iterable[QueueItem],
    placeholder: PlaceholderFactory | None = None,
) -> list[Row]:
    """Overlay unsynced mutations onto records.

    CREATE upserts, UPDATE merges fields onto the existing record (or onto
    a placeholder when the record is unknown), DELETE removes.

    Args:
        records: Server or cached snapshot.
        pending: Unsynced items for the same table, in replay order.
        placeholder: Builds the base record for an UPDATE of an unknown id.

    Returns:
        A new list reflecting every pending mutation.
    """
    make_placeholder = placeholder or _default_placeholder
    merged = list(records)
    for item in pending:
        if item.synced:
            continue
        record_id = item.record_id
        if record_id is None:
            continue
        if item.type == OperationType.CREATE:
            merged = upsert_record(merged, item.data)
        elif item.type == OperationType.UPDATE:
            base = find_record(merged, record_id) or make_placeholder(record_id, item)
            merged = upsert_record(merged, {**base, **item.data})
        elif item.type == OperationType.DELETE:
            merged = remove_record(merged, record_id)
    return merged
