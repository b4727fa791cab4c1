"""Document Formatter — outward representation of stored documents.

Invariants:
    - Shape: id, documentId, payload fields, createdAt, updatedAt, publishedAt, locale
    - Private attributes never leave the engine (top level and populated targets)
    - Population is depth one: populated targets are never populated themselves
    - Dangling edges (target deleted) are omitted and logged at WARNING
    - Projection runs last and always keeps the system fields

Design Decisions:
    - format_many() batches edge, target and media loads for a whole page, so a
      populated list costs a constant number of queries
    - Relation cardinality decides the shape: list for multi kinds, else object or None
"""

import logging
from typing import Any, Iterable, Sequence

from content_engine.core.content_types import AttributeDefinition, ContentTypeDefinition
from content_engine.core.documents import StoredDocument, to_iso
from content_engine.core.domain_types import AttributeType, SYSTEM_FIELDS
from content_engine.core.payload import as_media_id
from content_engine.core.query_plan import Populate
from content_engine.core.repository_protocols import (
    ContentTypeRegistry, DocumentStore, MediaStore, RelationGraph,
)

logger = logging.getLogger(__name__)

ALWAYS_PROJECTED = (
    "id", "documentId", "createdAt", "updatedAt", "publishedAt", "locale",
)


def base_representation(
    doc: StoredDocument, private_names: Iterable[str] = (),
) -> dict[str, Any]:
    """System fields around the payload, private attributes removed."""
    hidden = set(private_names)
    out: dict[str, Any] = {"id": doc.id, "documentId": doc.document_id}
    for key, value in doc.payload.items():
        if key in hidden or key in SYSTEM_FIELDS:
            continue
        out[key] = value
    out["createdAt"] = to_iso(doc.created_at)
    out["updatedAt"] = to_iso(doc.updated_at)
    out["publishedAt"] = to_iso(doc.published_at)
    out["locale"] = doc.locale
    return out


def project(record: dict[str, Any], fields: Sequence[str]) -> dict[str, Any]:
    if not fields:
        return record
    allowed = set(ALWAYS_PROJECTED) | set(fields)
    return {k: v for k, v in record.items() if k in allowed}


def _media_ids(value: Any) -> list[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, list) else [value]


class DocumentFormatter:
    """Hydrates relations and media, then projects."""

    def __init__(
        self,
        store: DocumentStore,
        graph: RelationGraph,
        media: MediaStore,
        registry: ContentTypeRegistry,
    ):
        self.store = store
        self.graph = graph
        self.media = media
        self.registry = registry

    async def format_one(
        self,
        doc: StoredDocument,
        content_type: ContentTypeDefinition,
        populate: Populate = Populate(),
        fields: Sequence[str] = (),
    ) -> dict[str, Any]:
        formatted = await self.format_many([doc], content_type, populate, fields)
        return formatted[0]

    async def format_many(
        self,
        docs: Sequence[StoredDocument],
        content_type: ContentTypeDefinition,
        populate: Populate = Populate(),
        fields: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        records = [base_representation(d, content_type.private_names) for d in docs]
        if docs and populate.requested:
            await self._populate_relations(docs, records, content_type, populate)
            await self._populate_media(docs, records, content_type, populate)
        return [project(r, fields) for r in records]

    async def _populate_relations(
        self,
        docs: Sequence[StoredDocument],
        records: list[dict[str, Any]],
        content_type: ContentTypeDefinition,
        populate: Populate,
    ) -> None:
        attrs = [
            a for a in content_type.relation_attributes
            if populate.includes(a.name) and a.name not in content_type.private_names
        ]
        if not attrs:
            return
        edges = await self.graph.targets_for([d.id for d in docs], [a.name for a in attrs])
        wanted = {to_id for targets in edges.values() for to_id in targets}
        targets = await self.store.get_many(sorted(wanted))
        hidden_by_type = await self._private_names_by_target(attrs)

        for doc, record in zip(docs, records):
            for attr in attrs:
                resolved = []
                for to_id in edges.get((doc.id, attr.name), []):
                    target = targets.get(to_id)
                    if target is None:
                        logger.warning(
                            f"Dangling relation edge {attr.name} -> {to_id} omitted",
                            extra={
                                "content_type": content_type.singular_id,
                                "document_id": doc.document_id,
                                "field": attr.name,
                            },
                        )
                        continue
                    resolved.append(base_representation(
                        target, hidden_by_type.get(attr.target, frozenset()),
                    ))
                if attr.is_multi_relation:
                    record[attr.name] = resolved
                else:
                    record[attr.name] = resolved[0] if resolved else None

    async def _private_names_by_target(
        self, attrs: Iterable[AttributeDefinition],
    ) -> dict[str, frozenset[str]]:
        hidden: dict[str, frozenset[str]] = {}
        for attr in attrs:
            if not attr.target or attr.target in hidden:
                continue
            target_type = await self.registry.resolve_by_singular(attr.target)
            hidden[attr.target] = target_type.private_names if target_type else frozenset()
        return hidden

    async def _populate_media(
        self,
        docs: Sequence[StoredDocument],
        records: list[dict[str, Any]],
        content_type: ContentTypeDefinition,
        populate: Populate,
    ) -> None:
        attrs = [
            a for a in content_type.attributes
            if a.type is AttributeType.MEDIA and populate.includes(a.name)
        ]
        refs: dict[tuple[int, str], list[int]] = {}
        for doc, record in zip(docs, records):
            for attr in attrs:
                if attr.name not in record:
                    continue
                ids = (as_media_id(v) for v in _media_ids(doc.payload.get(attr.name)))
                refs[(doc.id, attr.name)] = [i for i in ids if i is not None]
        if not refs:
            return
        wanted = sorted({i for ids in refs.values() for i in ids})
        by_id = {m["id"]: m for m in await self.media.resolve_media(wanted)} if wanted else {}

        for doc, record in zip(docs, records):
            for attr in attrs:
                if (doc.id, attr.name) not in refs:
                    continue
                resolved = [by_id[i] for i in refs[(doc.id, attr.name)] if i in by_id]
                if attr.multiple:
                    record[attr.name] = resolved
                else:
                    record[attr.name] = resolved[0] if resolved else None
