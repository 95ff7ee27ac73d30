"""Shared types for offlinesync.

This module defines enums used across storage, domain and sync layers.
"""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """Current state of the sync engine.

    Reported by SyncEngine.status() and shown by the CLI.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


class OperationType(str, Enum):
    """Kind of mutation held by a queue item."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
