"""Sync engine and its triggers.

Architecture:
    SyncScheduler (timer / reconnect / manual / background)
        → SyncEngine.sync_all → RemoteStore → SyncQueue sweep
"""

from offlinesync.sync.engine import (
    CRITICAL_TABLES,
    CriticalTable,
    SyncEngine,
    SyncResult,
    SyncStatus,
)
from offlinesync.sync.scheduler import BACKGROUND_SYNC_TAG, SyncScheduler

__all__ = [
    "BACKGROUND_SYNC_TAG",
    "CRITICAL_TABLES",
    "CriticalTable",
    "SyncEngine",
    "SyncResult",
    "SyncScheduler",
    "SyncStatus",
]
