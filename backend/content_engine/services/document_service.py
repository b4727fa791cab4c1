"""Document Service — read and write entry points over one database session.

Invariants:
    - Unknown content type or document → ResourceNotFoundError (never None)
    - Every write is one unit of work: payload row and relation edges commit
      together, any exception rolls the whole session back
    - Payloads are validated against the attribute list before any write
    - A second create on a single type returns CreateResult(REJECTED_...), not an error
    - delete_document() on a missing document returns False

Design Decisions:
    - Collaborators injected (registry, store, graph, media); from_session() wires
      the SQL implementations for request handlers
    - Updates shallow-merge over the stored payload, but relation edges are replaced
      wholesale on every create and update: relations absent from the request are cleared
    - publish/unpublish only move publishedAt and leave payload and edges alone
    - Last write wins: no version token on documents
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.config import Settings, get_settings
from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.documents import (
    UNSET, generate_document_id, parse_timestamp, resolve_published_at,
)
from content_engine.core.domain_types import ContentKind, CreateStatus
from content_engine.core.errors import ErrorContext, ResourceNotFoundError
from content_engine.core.payload import check_required, split_relations, validate_payload
from content_engine.core.query_plan import (
    DEFAULT_CANDIDATE_CAP, Populate, PublicationWindow, QueryOptions, pagination_meta,
)
from content_engine.core.repository_protocols import (
    ContentTypeRegistry, DocumentStore, MediaStore, RelationGraph,
)
from content_engine.infrastructure.content_type_registry import SqlContentTypeRegistry
from content_engine.infrastructure.document_store import SqlDocumentStore
from content_engine.infrastructure.media_store import SqlMediaStore
from content_engine.infrastructure.relation_graph import SqlRelationGraph
from content_engine.services.document_formatter import DocumentFormatter
from content_engine.services.query_engine import QueryEngine
from content_engine.services.uniqueness import UniquenessValidator

logger = logging.getLogger(__name__)

_POPULATE_ALL = Populate(all_fields=True)


@dataclass
class CreateResult:
    """Outcome of create_document: created with data, or rejected by policy."""
    status: CreateStatus
    data: dict[str, Any] | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def created(self) -> bool:
        return self.status is CreateStatus.CREATED


class DocumentService:
    """find / create / update / delete documents of runtime-defined content types."""

    def __init__(
        self,
        db: AsyncSession,
        registry: ContentTypeRegistry,
        store: DocumentStore,
        graph: RelationGraph,
        media: MediaStore,
        candidate_cap: int = DEFAULT_CANDIDATE_CAP,
        default_locale: str = "en",
    ):
        self.db = db
        self.registry = registry
        self.store = store
        self.graph = graph
        self.engine = QueryEngine(store, graph, candidate_cap)
        self.formatter = DocumentFormatter(store, graph, media, registry)
        self.uniqueness = UniquenessValidator(store)
        self.default_locale = default_locale

    @classmethod
    def from_session(
        cls, db: AsyncSession, settings: Settings | None = None,
    ) -> "DocumentService":
        settings = settings or get_settings()
        timeout = settings.query_timeout_seconds
        return cls(
            db,
            registry=SqlContentTypeRegistry(db, timeout),
            store=SqlDocumentStore(db, timeout),
            graph=SqlRelationGraph(db, timeout),
            media=SqlMediaStore(db, timeout),
            candidate_cap=settings.query_candidate_cap,
            default_locale=settings.default_locale,
        )

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ─── Resolution ─────────────────────────────────────────────

    async def resolve_type(self, plural_id: str) -> ContentTypeDefinition:
        content_type = await self.registry.resolve_by_plural(plural_id)
        if content_type is None:
            raise ResourceNotFoundError(
                "Content type", plural_id, ErrorContext(content_type=plural_id),
            )
        return content_type

    async def _get_or_404(self, content_type: ContentTypeDefinition, document_id: str):
        doc = await self.engine.find_one(content_type, document_id)
        if doc is None:
            raise ResourceNotFoundError(
                "Document", document_id,
                ErrorContext(
                    content_type=content_type.singular_id, document_id=document_id,
                ),
            )
        return doc

    async def _resolve_targets(
        self, content_type: ContentTypeDefinition, relations: dict[str, list[str]],
    ) -> dict[str, list[int]]:
        """documentIds → internal ids per field, keeping order; unknown ids skipped."""
        resolved: dict[str, list[int]] = {}
        for name, document_ids in relations.items():
            attr = content_type.attribute(name)
            target_type = None
            if attr is not None and attr.target:
                target_type = await self.registry.resolve_by_singular(attr.target)
            ids = await self.store.resolve_internal_ids(
                document_ids, target_type.id if target_type else None,
            )
            missing = [d for d in document_ids if d not in ids]
            if missing:
                logger.warning(
                    f"Relation targets not found, skipped: {missing}",
                    extra={"content_type": content_type.singular_id, "field": name},
                )
            resolved[name] = [ids[d] for d in document_ids if d in ids]
        return resolved

    # ─── Reads ──────────────────────────────────────────────────

    async def find_documents(
        self,
        plural_id: str,
        options: QueryOptions | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        content_type = await self.resolve_type(plural_id)
        options = options or QueryOptions()
        page = await self.engine.find(content_type, options, now)
        data = await self.formatter.format_many(
            page.documents, content_type, options.populate, options.fields,
        )
        return {
            "data": data,
            "meta": {"pagination": pagination_meta(page.total, options)},
        }

    async def find_one_document(
        self,
        plural_id: str,
        document_id: str,
        populate: Populate = Populate(),
        fields: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        content_type = await self.resolve_type(plural_id)
        doc = await self._get_or_404(content_type, document_id)
        data = await self.formatter.format_one(doc, content_type, populate, fields)
        return {"data": data, "meta": {}}

    # ─── Writes ─────────────────────────────────────────────────

    async def create_document(
        self,
        plural_id: str,
        payload: dict[str, Any],
        *,
        locale: str | None = None,
        published_at: object = UNSET,
    ) -> CreateResult:
        content_type = await self.resolve_type(plural_id)
        now = datetime.now(timezone.utc)
        async with self._unit_of_work():
            if content_type.kind is ContentKind.SINGLE:
                existing = await self.store.count(
                    content_type.id, PublicationWindow.ANY, now,
                )
                if existing:
                    logger.info(
                        "Rejected second document for single type",
                        extra={"content_type": content_type.singular_id},
                    )
                    return CreateResult(CreateStatus.REJECTED_SINGLE_TYPE_EXISTS)

            cleaned = validate_payload(content_type, payload)
            data, relations = split_relations(content_type, cleaned)
            check_required(content_type, data, relations)
            await self.uniqueness.validate(content_type, data)

            doc = await self.store.insert(
                content_type.id,
                generate_document_id(),
                data,
                resolve_published_at(
                    published_at, content_type.default_publication_state, now,
                ),
                locale or self.default_locale,
            )
            await self.graph.replace_edges(
                doc.id, await self._resolve_targets(content_type, relations),
            )

        logger.info(
            "Document created",
            extra={
                "content_type": content_type.singular_id,
                "document_id": doc.document_id,
            },
        )
        formatted = await self.formatter.format_one(doc, content_type, _POPULATE_ALL)
        return CreateResult(CreateStatus.CREATED, formatted)

    async def update_document(
        self,
        plural_id: str,
        document_id: str,
        payload: dict[str, Any],
        *,
        published_at: object = UNSET,
    ) -> dict[str, Any]:
        content_type = await self.resolve_type(plural_id)
        async with self._unit_of_work():
            doc = await self._get_or_404(content_type, document_id)
            cleaned = validate_payload(content_type, payload)
            data, relations = split_relations(content_type, cleaned)
            merged = {**doc.payload, **data}
            check_required(content_type, merged, relations, partial=True)
            await self.uniqueness.validate(content_type, merged, exclude_id=doc.id)

            new_published_at = doc.published_at
            if published_at is not UNSET:
                new_published_at = parse_timestamp(published_at)
            doc = await self.store.replace_payload(doc.id, merged, new_published_at)
            await self.graph.replace_edges(
                doc.id, await self._resolve_targets(content_type, relations),
            )

        logger.info(
            "Document updated",
            extra={"content_type": content_type.singular_id, "document_id": document_id},
        )
        data = await self.formatter.format_one(doc, content_type, _POPULATE_ALL)
        return {"data": data, "meta": {}}

    async def delete_document(self, plural_id: str, document_id: str) -> bool:
        content_type = await self.resolve_type(plural_id)
        async with self._unit_of_work():
            doc = await self.engine.find_one(content_type, document_id)
            if doc is None:
                return False
            removed = await self.graph.delete_all_for(doc.id)
            await self.store.delete(doc.id)
        logger.info(
            f"Document deleted ({removed} edges removed)",
            extra={"content_type": content_type.singular_id, "document_id": document_id},
        )
        return True

    async def publish_document(
        self, plural_id: str, document_id: str, at: datetime | str | None = None,
    ) -> dict[str, Any]:
        """Set publishedAt (now unless given); a future time schedules the document."""
        when = parse_timestamp(at) if at is not None else datetime.now(timezone.utc)
        return await self._set_published_at(plural_id, document_id, when)

    async def unpublish_document(self, plural_id: str, document_id: str) -> dict[str, Any]:
        return await self._set_published_at(plural_id, document_id, None)

    async def _set_published_at(
        self, plural_id: str, document_id: str, when: datetime | None,
    ) -> dict[str, Any]:
        content_type = await self.resolve_type(plural_id)
        async with self._unit_of_work():
            doc = await self._get_or_404(content_type, document_id)
            doc = await self.store.replace_payload(doc.id, doc.payload, when)
        logger.info(
            "Publication changed",
            extra={"content_type": content_type.singular_id, "document_id": document_id},
        )
        data = await self.formatter.format_one(doc, content_type, _POPULATE_ALL)
        return {"data": data, "meta": {}}
