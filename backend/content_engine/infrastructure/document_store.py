"""SQL Document Store — CRUD over the documents table with opaque JSON payloads.

Invariants:
    - The store never interprets attribute semantics; payloads are JSON blobs
    - A malformed blob decodes to {} (logged at WARNING), never fails the read
    - Every statement is bounded by the configured query timeout
    - flush() only — commit belongs to the caller's unit of work

Design Decisions:
    - Publication windows compiled to SQL here, so both query paths share them
    - Default order is createdAt desc; id breaks ties so paging is deterministic
    - publishedAt nulls ordered explicitly: SQLite and PostgreSQL disagree by default
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.core.documents import StoredDocument
from content_engine.core.domain_types import DocumentId, SortDirection
from content_engine.core.query_plan import PublicationWindow
from content_engine.core.sorting import SortKey
from content_engine.infrastructure.database import bounded
from content_engine.models.document import Document

logger = logging.getLogger(__name__)

_ORDER_COLUMNS = {
    "id": Document.id,
    "documentId": Document.document_id,
    "createdAt": Document.created_at,
    "updatedAt": Document.updated_at,
    "publishedAt": Document.published_at,
}


def decode_payload(blob: str | None, document_id: str | None = None) -> dict[str, Any]:
    """Decode a stored payload, degrading to {} on malformed data."""
    if not blob:
        return {}
    try:
        data = json.loads(blob)
    except (TypeError, ValueError):
        logger.warning(
            "Malformed document payload, using empty record",
            extra={"document_id": document_id},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Document payload is not an object, using empty record",
            extra={"document_id": document_id},
        )
        return {}
    return data


def encode_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _to_stored(row: Document) -> StoredDocument:
    return StoredDocument(
        id=row.id,
        document_id=DocumentId(row.document_id),
        content_type_id=row.content_type_id,
        payload=decode_payload(row.data, row.document_id),
        published_at=row.published_at,
        locale=row.locale,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _window_clauses(window: PublicationWindow, now: datetime) -> list:
    if window is PublicationWindow.PUBLISHED:
        return [Document.published_at.is_not(None), Document.published_at <= now]
    if window is PublicationWindow.DRAFT:
        return [Document.published_at.is_(None)]
    if window is PublicationWindow.SCHEDULED:
        return [Document.published_at.is_not(None), Document.published_at > now]
    return []


def _order_by(order: Sequence[SortKey]) -> list:
    if not order:
        return [Document.created_at.desc(), Document.id.desc()]
    clauses = []
    for key in order:
        column = _ORDER_COLUMNS.get(key.field)
        if column is None:
            continue
        clause = column.desc() if key.direction is SortDirection.DESC else column.asc()
        if key.field == "publishedAt":
            clause = clause.nulls_last() if key.descending else clause.nulls_first()
        clauses.append(clause)
    clauses.append(Document.id.asc())
    return clauses


class SqlDocumentStore:
    """DocumentStore implementation over SQLAlchemy AsyncSession."""

    def __init__(self, db: AsyncSession, timeout_seconds: float | None = None):
        self.db = db
        self._timeout = timeout_seconds

    async def _execute(self, statement):
        return await bounded(self.db.execute(statement), self._timeout)

    async def get(
        self, content_type_id: int, document_id: str,
    ) -> StoredDocument | None:
        result = await self._execute(
            select(Document)
            .where(Document.content_type_id == content_type_id)
            .where(Document.document_id == document_id)
        )
        row = result.scalar_one_or_none()
        return _to_stored(row) if row else None

    async def get_many(self, ids: Sequence[int]) -> dict[int, StoredDocument]:
        if not ids:
            return {}
        result = await self._execute(select(Document).where(Document.id.in_(set(ids))))
        return {row.id: _to_stored(row) for row in result.scalars().all()}

    async def resolve_internal_ids(
        self, document_ids: Sequence[str], content_type_id: int | None = None,
    ) -> dict[str, int]:
        """Map public documentIds to internal ids; unknown ids are absent."""
        if not document_ids:
            return {}
        query = select(Document.document_id, Document.id).where(
            Document.document_id.in_(set(document_ids)),
        )
        if content_type_id is not None:
            query = query.where(Document.content_type_id == content_type_id)
        result = await self._execute(query)
        return {document_id: id for document_id, id in result.all()}

    async def list_documents(
        self,
        content_type_id: int,
        window: PublicationWindow,
        now: datetime,
        order: Sequence[SortKey],
        limit: int,
        offset: int = 0,
    ) -> list[StoredDocument]:
        query = (
            select(Document)
            .where(Document.content_type_id == content_type_id)
            .where(*_window_clauses(window, now))
            .order_by(*_order_by(order))
            .limit(limit)
            .offset(offset)
        )
        result = await self._execute(query)
        return [_to_stored(row) for row in result.scalars().all()]

    async def count(
        self, content_type_id: int, window: PublicationWindow, now: datetime,
    ) -> int:
        result = await self._execute(
            select(func.count(Document.id))
            .where(Document.content_type_id == content_type_id)
            .where(*_window_clauses(window, now))
        )
        return result.scalar_one()

    async def scan_payloads(
        self, content_type_id: int,
    ) -> list[tuple[int, dict[str, Any]]]:
        """Every (id, payload) of a type, uncapped."""
        result = await self._execute(
            select(Document.id, Document.document_id, Document.data)
            .where(Document.content_type_id == content_type_id)
        )
        return [
            (id, decode_payload(data, document_id))
            for id, document_id, data in result.all()
        ]

    async def insert(
        self,
        content_type_id: int,
        document_id: str,
        payload: dict[str, Any],
        published_at: datetime | None,
        locale: str,
    ) -> StoredDocument:
        now = datetime.now(timezone.utc)
        row = Document(
            document_id=document_id,
            content_type_id=content_type_id,
            data=encode_payload(payload),
            published_at=published_at,
            locale=locale,
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        await bounded(self.db.flush(), self._timeout)
        return _to_stored(row)

    async def replace_payload(
        self, id: int, payload: dict[str, Any], published_at: datetime | None,
    ) -> StoredDocument:
        row = await bounded(self.db.get(Document, id), self._timeout)
        if row is None:
            raise LookupError(f"document row {id} vanished during update")
        row.data = encode_payload(payload)
        row.published_at = published_at
        row.updated_at = datetime.now(timezone.utc)
        await bounded(self.db.flush(), self._timeout)
        return _to_stored(row)

    async def delete(self, id: int) -> None:
        await self._execute(delete(Document).where(Document.id == id))
