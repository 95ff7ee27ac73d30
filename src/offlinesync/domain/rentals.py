"""Rental inventory entity.

This module provides:
- RentalItemCreate / RentalItemUpdate: Pydantic schemas for input payloads
- sanitize_category, sanitize_text, normalize_counts: Input normalization
- has_duplicate_name: Case-insensitive (category, item_name) collision check
- RentalInventoryRepository: Offline-transparent CRUD on rental_inventory

Counts invariant:
    working + faulty + inactive <= total, checked before any write.

The duplicate-name check only sees the local cache, which may be stale
while offline. It is a UX guard; the remote table's own unique constraint
is authoritative and its rejection is surfaced as a ValidationError.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as SchemaError

from offlinesync.domain.repository import OfflineRepository
from offlinesync.domain.results import ValidationError
from offlinesync.storage.queue import QueueItem
from offlinesync.storage.store import StorageKey

logger = logging.getLogger(__name__)

TABLE_NAME = "rental_inventory"
ALLOWED_CATEGORIES = ("Chairs", "Canopies", "Tables", "Mattresses")
DEFAULT_CATEGORY = "Tables"
MAX_TEXT_LENGTH = 120
COUNT_FIELDS = ("total", "working", "faulty", "inactive")

COUNTS_MESSAGE = "Total must be greater than or equal to working + faulty + inactive counts"
DUPLICATE_MESSAGE = "An item with this name already exists in that category."
DUPLICATE_UPDATE_MESSAGE = "Another item with this name already exists in that category."

Row = dict[str, Any]

_WHITESPACE = re.compile(r"\s+")


def _parse_count(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            value = float(text)
        except ValueError:
            raise ValueError("Value must be a number") from None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Value must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("Value must be a whole number")
        value = int(value)
    if value < 0:
        raise ValueError("Value must be zero or greater")
    return value


def _parse_optional_count(value: Any) -> int | None:
    if value is None:
        return None
    return _parse_count(value)


Count = Annotated[int, BeforeValidator(_parse_count)]
OptionalCount = Annotated[int | None, BeforeValidator(_parse_optional_count)]


def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


class RentalItemCreate(BaseModel):
    """Payload for a new rental item."""

    model_config = ConfigDict(extra="ignore")

    category: str = Field(default="", validate_default=True)
    item_name: str = Field(default="", validate_default=True)
    total: Count = 0
    working: Count = 0
    faulty: Count = 0
    inactive: Count = 0

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> str:
        return _required_text(value, "Category")

    @field_validator("item_name", mode="before")
    @classmethod
    def _item_name(cls, value: Any) -> str:
        return _required_text(value, "Item name")

    @model_validator(mode="after")
    def _counts_fit_total(self) -> RentalItemCreate:
        if self.working + self.faulty + self.inactive > self.total:
            raise ValueError(COUNTS_MESSAGE)
        return self


class RentalItemUpdate(BaseModel):
    """Partial payload for an existing rental item."""

    model_config = ConfigDict(extra="ignore")

    category: str | None = None
    item_name: str | None = None
    total: OptionalCount = None
    working: OptionalCount = None
    faulty: OptionalCount = None
    inactive: OptionalCount = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> str | None:
        return None if value is None else _required_text(value, "Category")

    @field_validator("item_name", mode="before")
    @classmethod
    def _item_name(cls, value: Any) -> str | None:
        return None if value is None else _required_text(value, "Item name")

    @model_validator(mode="after")
    def _has_changes(self) -> RentalItemUpdate:
        if all(getattr(self, name) is None for name in type(self).model_fields):
            raise ValueError("Provide at least one field to update")
        counts = [getattr(self, name) for name in COUNT_FIELDS]
        if all(count is not None for count in counts):
            total, working, faulty, inactive = counts
            if working + faulty + inactive > total:
                raise ValueError(COUNTS_MESSAGE)
        return self


def format_schema_error(error: SchemaError) -> str:
    """Join pydantic error messages into one user-facing string."""
    messages = []
    for issue in error.errors():
        message = str(issue.get("msg", "Invalid value"))
        message = message.removeprefix("Value error, ")
        location = ".".join(str(part) for part in issue.get("loc", ()))
        if location and not message.lower().startswith(location.replace("_", " ").lower()):
            message = f"{location}: {message}"
        messages.append(message)
    return ", ".join(messages)


def sanitize_category(value: str | None) -> str:
    """Clamp a category to the allow-list (case-insensitive), else the default."""
    if not value:
        return DEFAULT_CATEGORY
    normalized = value.strip().lower()
    for category in ALLOWED_CATEGORIES:
        if category.lower() == normalized:
            return category
    return DEFAULT_CATEGORY


def sanitize_text(value: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Trim, collapse internal whitespace and cap length."""
    return _WHITESPACE.sub(" ", value.strip())[:max_length]


def normalize_counts(total: int, working: int, faulty: int, inactive: int) -> dict[str, int]:
    """Clamp counts to non-negative integers with total >= sum of the parts."""
    working = max(0, int(working))
    faulty = max(0, int(faulty))
    inactive = max(0, int(inactive))
    total = max(working + faulty + inactive, int(total))
    return {"total": total, "working": working, "faulty": faulty, "inactive": inactive}


def has_duplicate_name(
    records: list[Row],
    category: str,
    item_name: str,
    ignore_id: str | None = None,
) -> bool:
    """Check whether another record shares (category, item_name), ignoring case."""
    normalized_category = category.strip().lower()
    normalized_name = item_name.strip().lower()
    for record in records:
        if ignore_id is not None and str(record.get("id")) == ignore_id:
            continue
        if (
            str(record.get("category") or "").strip().lower() == normalized_category
            and str(record.get("item_name") or "").strip().lower() == normalized_name
        ):
            return True
    return False


def utc_now() -> str:
    """Current time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class RentalInventoryRepository(OfflineRepository):
    """Offline-transparent access to the rental_inventory table."""

    table = TABLE_NAME
    storage_key = StorageKey.RENTAL_INVENTORY
    label = "rental inventory"
    order = ["category.asc", "item_name.asc"]

    def build_record(self, payload: Mapping[str, Any]) -> Row:
        try:
            parsed = RentalItemCreate.model_validate(dict(payload))
        except SchemaError as e:
            raise ValidationError(format_schema_error(e)) from e

        now = utc_now()
        return {
            "id": str(uuid.uuid4()),
            "category": sanitize_category(parsed.category),
            "item_name": sanitize_text(parsed.item_name),
            **normalize_counts(parsed.total, parsed.working, parsed.faulty, parsed.inactive),
            "created_at": now,
            "updated_at": now,
        }

    def build_changes(self, changes: Mapping[str, Any], existing: Row | None) -> Row:
        try:
            parsed = RentalItemUpdate.model_validate(dict(changes))
        except SchemaError as e:
            raise ValidationError(format_schema_error(e)) from e

        patch: Row = {}
        if parsed.category is not None:
            patch["category"] = sanitize_category(parsed.category)
        if parsed.item_name is not None:
            patch["item_name"] = sanitize_text(parsed.item_name)

        provided = {name: getattr(parsed, name) for name in COUNT_FIELDS}
        if any(value is not None for value in provided.values()):
            if existing is None:
                # Unknown base record: absent parts count as 0 against a given total
                total = provided["total"]
                parts = sum(provided[name] or 0 for name in ("working", "faulty", "inactive"))
                if total is not None and parts > total:
                    raise ValidationError(COUNTS_MESSAGE)
                patch.update({name: value for name, value in provided.items() if value is not None})
            else:
                merged = {
                    name: provided[name] if provided[name] is not None else int(existing.get(name) or 0)
                    for name in COUNT_FIELDS
                }
                if merged["working"] + merged["faulty"] + merged["inactive"] > merged["total"]:
                    raise ValidationError(COUNTS_MESSAGE)
                patch.update(normalize_counts(**merged))

        patch["updated_at"] = utc_now()
        return patch

    def check_unique(
        self,
        record: Row,
        records: list[Row],
        ignore_id: str | None = None,
    ) -> None:
        category = str(record.get("category") or "")
        item_name = str(record.get("item_name") or "")
        if has_duplicate_name(records, category, item_name, ignore_id):
            raise ValidationError(DUPLICATE_UPDATE_MESSAGE if ignore_id else DUPLICATE_MESSAGE)

    def sort_records(self, records: list[Row]) -> list[Row]:
        return sorted(
            records,
            key=lambda record: (
                str(record.get("category") or "").lower(),
                str(record.get("item_name") or "").lower(),
                str(record.get("id")),
            ),
        )

    def placeholder(self, record_id: str, item: QueueItem) -> Row:
        # Stamped with the queue time so repeated reads stay identical
        stamp = datetime.fromtimestamp(item.timestamp, timezone.utc).isoformat()
        return {
            "id": record_id,
            "category": DEFAULT_CATEGORY,
            "item_name": "Pending Item",
            "total": 0,
            "working": 0,
            "faulty": 0,
            "inactive": 0,
            "created_at": stamp,
            "updated_at": stamp,
        }
