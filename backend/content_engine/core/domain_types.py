"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - DocumentId is the public 25-char id; InternalId is the storage key
    - All valid states encoded as Enums — no raw string matching
    - SYSTEM_FIELDS is the single source of truth for document-level keys

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - Enum values mirror the stored schema vocabulary (collectionType, manyWay, ...)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

DocumentId = NewType("DocumentId", str)
InternalId = NewType("InternalId", int)
ContentTypeId = NewType("ContentTypeId", int)

DOCUMENT_ID_LENGTH = 25
DOCUMENT_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


# ─── Enums ───────────────────────────────────────────────────────

class ContentKind(str, Enum):
    """Content type kind — a single type holds at most one document."""
    COLLECTION = "collectionType"
    SINGLE = "singleType"


class AttributeType(str, Enum):
    """Semantic attribute types understood by the engine."""
    TEXT = "text"
    RICHTEXT = "richtext"
    RICHTEXT_MARKDOWN = "richtext-markdown"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"
    ENUMERATION = "enumeration"
    UID = "uid"
    MEDIA = "media"
    RELATION = "relation"
    COMPONENT = "component"
    DYNAMIC_ZONE = "dynamiczone"


class RelationKind(str, Enum):
    """Relation cardinality as declared on the owning attribute."""
    ONE_TO_ONE = "oneToOne"
    ONE_TO_MANY = "oneToMany"
    MANY_TO_ONE = "manyToOne"
    MANY_TO_MANY = "manyToMany"
    ONE_WAY = "oneWay"
    MANY_WAY = "manyWay"


class PublicationState(str, Enum):
    """Query-time lens over publication status."""
    LIVE = "live"
    PREVIEW = "preview"


class PublicationStatus(str, Enum):
    """Status of a single document relative to now."""
    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CreateStatus(str, Enum):
    """Outcome tag for create_document — rejection is not an exception."""
    CREATED = "created"
    REJECTED_SINGLE_TYPE_EXISTS = "rejected_single_type_exists"


# ─── Derived constants ───────────────────────────────────────────

ATTRIBUTE_TYPE_ALIASES: dict[str, AttributeType] = {
    "enum": AttributeType.ENUMERATION,
    "dynamic-zone": AttributeType.DYNAMIC_ZONE,
}

CONTENT_KIND_ALIASES: dict[str, ContentKind] = {
    "collection": ContentKind.COLLECTION,
    "single": ContentKind.SINGLE,
}

MULTI_RELATION_KINDS = frozenset({
    RelationKind.ONE_TO_MANY,
    RelationKind.MANY_TO_MANY,
    RelationKind.MANY_WAY,
})

TEXT_LIKE_TYPES = frozenset({
    AttributeType.TEXT,
    AttributeType.RICHTEXT,
    AttributeType.RICHTEXT_MARKDOWN,
    AttributeType.EMAIL,
    AttributeType.UID,
})

# Document-level keys addressable by filters, sort and projection
SYSTEM_FIELDS = frozenset({
    "id", "documentId", "createdAt", "updatedAt", "publishedAt", "locale",
})

# Sort keys the store can order by natively (push-down eligible)
SYSTEM_SORT_FIELDS = frozenset({
    "id", "documentId", "createdAt", "updatedAt", "publishedAt",
})
