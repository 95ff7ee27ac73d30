"""Result type and error taxonomy of the domain data access layer.

Repository operations never raise. They return ApiResult(data, error) and
callers branch on error even when data is set: a queued write carries both
the optimistic record and an informational error.

Error taxonomy:
- ValidationError: bad input, nothing written, never queued
- QueuedOfflineError: offline at call time, queued and applied locally
- QueuedAfterNetworkFailureError: remote attempt failed, queued as fallback
- NotFoundError: target unknown (queued when the remote may still have it)
- ServedFromCacheError: a read fell back to cached data
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class DomainError(Exception):
    """Base class for errors reported by repositories.

    Attributes:
        message: User-facing message.
        queued: True if the operation was stored for later replay.
    """

    queued: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return self.message == other
        if isinstance(other, DomainError):
            return type(self) is type(other) and self.message == other.message
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message))


class ValidationError(DomainError):
    """Input violates a domain rule."""


class QueuedOfflineError(DomainError):
    """Offline at call time: queued for sync and applied locally."""

    queued = True


class QueuedAfterNetworkFailureError(DomainError):
    """Deferred by failure: the remote call failed, queued as fallback."""

    queued = True


class NotFoundError(DomainError):
    """Target record is unknown.

    Raised for records missing from the local cache (the mutation is still
    queued because the remote store may have the row) and for rows the
    remote store reports as absent (nothing queued).
    """

    def __init__(self, message: str, queued: bool = True) -> None:
        super().__init__(message)
        self.queued = queued


class ServedFromCacheError(DomainError):
    """Remote read failed; cached data was returned instead."""


@dataclass
class ApiResult(Generic[T]):
    """Outcome of a repository operation."""

    data: T | None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        """Check if the operation completed against the remote store."""
        return self.error is None

    @property
    def queued(self) -> bool:
        """Check if the operation was stored for later sync."""
        return self.error is not None and self.error.queued
