"""SQL Relation Graph — ordered, field-scoped edges between documents.

Invariants:
    - replace_edges() deletes then inserts inside the caller's transaction:
      a half-replaced edge set is never committed
    - order is dense from 0 per (from, field) after every replace
    - Every outgoing edge of from_id is dropped, named fields or not: the new set
      is the whole relation state of the document
    - flush() only — commit belongs to the caller's unit of work

Design Decisions:
    - Bulk delete + add_all over per-row diffing: edge sets are small and
      wholesale replacement keeps ordering trivially correct
    - targets_for() loads all edges for a candidate set in one query, so
      relation-field filters cost one round trip regardless of page size
"""

import logging
from typing import Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.core.repository_protocols import RelationEdge
from content_engine.infrastructure.database import bounded
from content_engine.models.document_relation import DocumentRelation

logger = logging.getLogger(__name__)


def _to_edge(row: DocumentRelation) -> RelationEdge:
    return RelationEdge(
        from_id=row.from_document_id,
        to_id=row.to_document_id,
        field_name=row.field_name,
        order=row.order,
    )


class SqlRelationGraph:
    """RelationGraph implementation over SQLAlchemy AsyncSession."""

    def __init__(self, db: AsyncSession, timeout_seconds: float | None = None):
        self.db = db
        self._timeout = timeout_seconds

    async def _execute(self, statement):
        return await bounded(self.db.execute(statement), self._timeout)

    async def replace_edges(
        self, from_id: int, targets_by_field: dict[str, list[int]],
    ) -> None:
        """Drop every edge leaving from_id, then insert targets_by_field in order."""
        await self._execute(
            delete(DocumentRelation).where(DocumentRelation.from_document_id == from_id)
        )
        rows = [
            DocumentRelation(
                from_document_id=from_id,
                to_document_id=to_id,
                field_name=field_name,
                order=position,
            )
            for field_name, targets in targets_by_field.items()
            for position, to_id in enumerate(targets)
        ]
        self.db.add_all(rows)
        await bounded(self.db.flush(), self._timeout)
        logger.debug(
            f"Replaced edges for {sorted(targets_by_field)} ({len(rows)} rows)",
            extra={"document_id": from_id},
        )

    async def edges_from(
        self, from_id: int, field_name: str | None = None,
    ) -> list[RelationEdge]:
        query = select(DocumentRelation).where(
            DocumentRelation.from_document_id == from_id,
        )
        if field_name is not None:
            query = query.where(DocumentRelation.field_name == field_name)
        query = query.order_by(
            DocumentRelation.field_name, DocumentRelation.order, DocumentRelation.id,
        )
        result = await self._execute(query)
        return [_to_edge(row) for row in result.scalars().all()]

    async def targets_for(
        self, from_ids: Sequence[int], field_names: Sequence[str],
    ) -> dict[tuple[int, str], list[int]]:
        """Ordered target ids keyed by (from_id, field_name)."""
        if not from_ids or not field_names:
            return {}
        result = await self._execute(
            select(DocumentRelation)
            .where(DocumentRelation.from_document_id.in_(set(from_ids)))
            .where(DocumentRelation.field_name.in_(set(field_names)))
            .order_by(DocumentRelation.order, DocumentRelation.id)
        )
        targets: dict[tuple[int, str], list[int]] = {}
        for row in result.scalars().all():
            targets.setdefault(
                (row.from_document_id, row.field_name), [],
            ).append(row.to_document_id)
        return targets

    async def delete_all_for(self, document_id: int) -> int:
        """Remove every edge where document_id is either endpoint."""
        result = await self._execute(
            delete(DocumentRelation).where(or_(
                DocumentRelation.from_document_id == document_id,
                DocumentRelation.to_document_id == document_id,
            ))
        )
        return result.rowcount or 0
