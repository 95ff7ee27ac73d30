"""Domain data access layer.

Repositories validate input, pick the online or offline path and keep the
local cache consistent with either the server response or the queued
intent. Results are returned as ApiResult(data, error), never raised.
"""

from offlinesync.domain.overlay import apply_pending, find_record, remove_record, upsert_record
from offlinesync.domain.rentals import (
    ALLOWED_CATEGORIES,
    DEFAULT_CATEGORY,
    RentalInventoryRepository,
    RentalItemCreate,
    RentalItemUpdate,
    has_duplicate_name,
    normalize_counts,
    sanitize_category,
    sanitize_text,
)
from offlinesync.domain.repository import OfflineRepository
from offlinesync.domain.results import (
    ApiResult,
    DomainError,
    NotFoundError,
    QueuedAfterNetworkFailureError,
    QueuedOfflineError,
    ServedFromCacheError,
    ValidationError,
)

__all__ = [
    "ALLOWED_CATEGORIES",
    "ApiResult",
    "DEFAULT_CATEGORY",
    "DomainError",
    "NotFoundError",
    "OfflineRepository",
    "QueuedAfterNetworkFailureError",
    "QueuedOfflineError",
    "RentalInventoryRepository",
    "RentalItemCreate",
    "RentalItemUpdate",
    "ServedFromCacheError",
    "ValidationError",
    "apply_pending",
    "find_record",
    "has_duplicate_name",
    "normalize_counts",
    "remove_record",
    "sanitize_category",
    "sanitize_text",
    "upsert_record",
]
