"""Shared fixtures for offlinesync tests."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from offlinesync.connectivity import ConnectivityMonitor
from offlinesync.domain import RentalInventoryRepository
from offlinesync.storage import MemoryBackend, OfflineStorage, SyncQueue

Row = dict[str, Any]


class FakeRemoteStore:
    """In-memory RemoteStore with scriptable failures.

    Attributes:
        tables: Table name -> rows.
        calls: (method, table) tuples in call order.
        fail_with: Exception raised by every row operation when set.
        fail_on: (method, table) -> exception raised for that call only.
        healthy: Value returned by health_check().
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[Row]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self.healthy = True

    def _check(self, method: str, table: str) -> None:
        self.calls.append((method, table))
        if self.fail_with is not None:
            raise self.fail_with
        error = self.fail_on.get((method, table))
        if error is not None:
            raise error

    def rows(self, table: str) -> list[Row]:
        return self.tables.setdefault(table, [])

    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        self._check("select", table)
        rows = [
            copy.deepcopy(row)
            for row in self.rows(table)
            if all(row.get(key) == value for key, value in (filters or {}).items())
        ]
        return rows[:limit] if limit is not None else rows

    def insert(self, table: str, row: Row) -> Row:
        self._check("insert", table)
        stored = copy.deepcopy(row)
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        self._check("update", table)
        for row in self.rows(table):
            if str(row.get("id")) == row_id:
                row.update({key: value for key, value in changes.items() if key != "id"})
                return copy.deepcopy(row)
        return None

    def delete(self, table: str, row_id: str) -> None:
        self._check("delete", table)
        self.tables[table] = [row for row in self.rows(table) if str(row.get("id")) != row_id]

    def health_check(self) -> bool:
        return self.healthy


class FailingBackend(MemoryBackend):
    """MemoryBackend whose writes fail (disk full, quota exceeded)."""

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


@pytest.fixture
def remote() -> FakeRemoteStore:
    """Fake remote store."""
    return FakeRemoteStore()


@pytest.fixture
def storage() -> OfflineStorage:
    """Offline storage over an in-memory backend."""
    return OfflineStorage(MemoryBackend())


@pytest.fixture
def queue(storage: OfflineStorage) -> SyncQueue:
    """Mutation queue over the test storage."""
    return SyncQueue(storage)


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    """Connectivity monitor, initially online."""
    return ConnectivityMonitor(online=True)


@pytest.fixture
def repo(
    remote: FakeRemoteStore,
    storage: OfflineStorage,
    monitor: ConnectivityMonitor,
    queue: SyncQueue,
) -> RentalInventoryRepository:
    """Rental inventory repository wired to the fakes."""
    return RentalInventoryRepository(remote, storage, monitor, queue=queue)


@pytest.fixture
def failing_storage() -> OfflineStorage:
    """Offline storage whose writes always fail."""
    return OfflineStorage(FailingBackend())
