"""Document Fields — identity generation, publication timestamps, wire formatting.

Invariants:
    - documentId is 25 chars from [a-z0-9], drawn from a CSPRNG
    - All timestamps leave the engine as ISO-8601 UTC with a trailing "Z"
    - Naive datetimes (SQLite returns them) are treated as UTC
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from content_engine.core.domain_types import (
    DOCUMENT_ID_ALPHABET, DOCUMENT_ID_LENGTH, DocumentId, PublicationStatus,
)
from content_engine.core.errors import PayloadValidationError

# Distinguishes "publishedAt not supplied" from an explicit null
UNSET = object()


def generate_document_id() -> DocumentId:
    return DocumentId("".join(
        secrets.choice(DOCUMENT_ID_ALPHABET) for _ in range(DOCUMENT_ID_LENGTH)
    ))


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse a caller-supplied publishedAt into an aware UTC datetime."""
    if value is None or isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (AttributeError, ValueError):
        raise PayloadValidationError(
            "publishedAt must be an ISO-8601 timestamp or null.", "publishedAt",
        ) from None


def resolve_published_at(
    explicit: object,
    default_state: PublicationStatus,
    now: datetime,
) -> datetime | None:
    """publishedAt for a new document: explicit value wins, else the type default."""
    if explicit is not UNSET:
        return parse_timestamp(explicit)
    if default_state is PublicationStatus.PUBLISHED:
        return now
    return None


@dataclass
class StoredDocument:
    """A document as read from the store, payload already decoded."""
    id: int
    document_id: DocumentId
    content_type_id: int
    payload: dict[str, Any]
    published_at: datetime | None
    locale: str
    created_at: datetime
    updated_at: datetime

    def value_of(self, key: str) -> Any:
        """Filter/search view: system fields first, timestamps as ISO strings."""
        if key == "id":
            return self.id
        if key == "documentId":
            return self.document_id
        if key == "locale":
            return self.locale
        if key in _TIMESTAMP_FIELDS:
            return to_iso(getattr(self, _TIMESTAMP_FIELDS[key]))
        return self.payload.get(key)

    def sort_value(self, key: str) -> Any:
        """Sort view: timestamps stay datetimes so ordering is chronological."""
        if key in _TIMESTAMP_FIELDS:
            return as_utc(getattr(self, _TIMESTAMP_FIELDS[key]))
        return self.value_of(key)


_TIMESTAMP_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "publishedAt": "published_at",
}
