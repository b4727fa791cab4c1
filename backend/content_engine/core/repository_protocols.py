"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE their results are never async themselves
    - Stores flush but never commit; the service owning the write commits once
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.documents import StoredDocument
from content_engine.core.query_plan import PublicationWindow
from content_engine.core.sorting import SortKey


@dataclass(frozen=True)
class RelationEdge:
    """Directed, field-scoped, ordered link between two documents (internal ids)."""
    from_id: int
    to_id: int
    field_name: str
    order: int


class ContentTypeRegistry(Protocol):
    """Resolves content types — collaborator owned outside the engine."""
    async def resolve_by_plural(self, plural_id: str) -> ContentTypeDefinition | None: ...
    async def resolve_by_singular(
        self, singular_id: str,
    ) -> ContentTypeDefinition | None: ...


class MediaStore(Protocol):
    """Resolves media ids to media records — collaborator."""
    async def resolve_media(self, ids: Sequence[Any]) -> list[dict]: ...


class DocumentStore(Protocol):
    """Document persistence; payloads are opaque to the store."""
    async def get(
        self, content_type_id: int, document_id: str,
    ) -> StoredDocument | None: ...
    async def get_many(self, ids: Sequence[int]) -> dict[int, StoredDocument]: ...
    async def resolve_internal_ids(
        self, document_ids: Sequence[str], content_type_id: int | None = None,
    ) -> dict[str, int]: ...
    async def list_documents(
        self,
        content_type_id: int,
        window: PublicationWindow,
        now: datetime,
        order: Sequence[SortKey],
        limit: int,
        offset: int = 0,
    ) -> list[StoredDocument]: ...
    async def count(
        self, content_type_id: int, window: PublicationWindow, now: datetime,
    ) -> int: ...
    async def scan_payloads(
        self, content_type_id: int,
    ) -> list[tuple[int, dict[str, Any]]]: ...
    async def insert(
        self,
        content_type_id: int,
        document_id: str,
        payload: dict[str, Any],
        published_at: datetime | None,
        locale: str,
    ) -> StoredDocument: ...
    async def replace_payload(
        self, id: int, payload: dict[str, Any], published_at: datetime | None,
    ) -> StoredDocument: ...
    async def delete(self, id: int) -> None: ...


class RelationGraph(Protocol):
    """Ordered relation edges keyed by originating field."""
    async def replace_edges(
        self, from_id: int, targets_by_field: dict[str, list[int]],
    ) -> None: ...
    async def edges_from(
        self, from_id: int, field_name: str | None = None,
    ) -> list[RelationEdge]: ...
    async def targets_for(
        self, from_ids: Sequence[int], field_names: Sequence[str],
    ) -> dict[tuple[int, str], list[int]]: ...
    async def delete_all_for(self, document_id: int) -> int: ...
