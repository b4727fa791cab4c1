"""Query Engine — push-down or bounded in-memory evaluation of find requests.

Invariants:
    - needs_in_memory() (core/query_plan.py) alone chooses the execution path
    - Push-down: the store orders, counts and pages (default createdAt desc)
    - In-memory: at most candidate_cap documents are considered, newest first;
      filters, then search, then a stable sort, then the page slice
    - Totals past the cap are not counted: an accepted approximation, logged
    - Relation-field filters see target documentIds in edge order, dangling
      targets excluded

Design Decisions:
    - Returns StoredDocuments + total, not formatted output: formatting is the
      DocumentFormatter's job and the engine stays testable without it
    - Filter tree parsed before any IO, so malformed filters fail fast
    - Store, graph and cap injected, never reached through module state
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.documents import StoredDocument
from content_engine.core.domain_types import SYSTEM_FIELDS
from content_engine.core.filters import FilterNode, evaluate, parse_filters, relation_fields_in
from content_engine.core.query_plan import (
    DEFAULT_CANDIDATE_CAP, QueryOptions, matches_search, needs_in_memory,
    paginate, resolve_publication_window, search_field_names,
)
from content_engine.core.repository_protocols import DocumentStore, RelationGraph
from content_engine.core.sorting import sort_records

logger = logging.getLogger(__name__)

PUSH_DOWN = "push_down"
IN_MEMORY = "in_memory"


@dataclass
class QueryPage:
    """One page of matching documents plus the (possibly capped) total."""
    documents: list[StoredDocument]
    total: int
    execution_path: str
    capped: bool = False


class QueryEngine:
    """Evaluates find requests against a DocumentStore and RelationGraph."""

    def __init__(
        self,
        store: DocumentStore,
        graph: RelationGraph,
        candidate_cap: int = DEFAULT_CANDIDATE_CAP,
    ):
        if candidate_cap < 1:
            raise ValueError("candidate_cap must be >= 1")
        self.store = store
        self.graph = graph
        self.candidate_cap = candidate_cap

    async def find(
        self,
        content_type: ContentTypeDefinition,
        options: QueryOptions,
        now: datetime | None = None,
    ) -> QueryPage:
        now = now or datetime.now(timezone.utc)
        tree = parse_filters(options.filters, content_type)
        if needs_in_memory(options):
            page = await self._find_in_memory(content_type, options, tree, now)
        else:
            page = await self._find_push_down(content_type, options, now)
        logger.debug(
            f"find: {len(page.documents)} of {page.total}",
            extra={
                "content_type": content_type.singular_id,
                "execution_path": page.execution_path,
                "total": page.total,
            },
        )
        return page

    async def find_one(
        self, content_type: ContentTypeDefinition, document_id: str,
    ) -> StoredDocument | None:
        """Lookup by documentId; publication state does not apply."""
        return await self.store.get(content_type.id, document_id)

    async def _find_push_down(
        self,
        content_type: ContentTypeDefinition,
        options: QueryOptions,
        now: datetime,
    ) -> QueryPage:
        window = resolve_publication_window(options.publication_state, options.status)
        total = await self.store.count(content_type.id, window, now)
        documents = await self.store.list_documents(
            content_type.id, window, now, options.sort,
            limit=options.page_size, offset=options.offset,
        )
        return QueryPage(documents, total, PUSH_DOWN)

    async def _find_in_memory(
        self,
        content_type: ContentTypeDefinition,
        options: QueryOptions,
        tree: FilterNode | None,
        now: datetime,
    ) -> QueryPage:
        window = resolve_publication_window(options.publication_state, options.status)
        candidates = await self.store.list_documents(
            content_type.id, window, now, (), limit=self.candidate_cap,
        )
        capped = len(candidates) >= self.candidate_cap
        if capped:
            logger.warning(
                f"Candidate cap {self.candidate_cap} reached; results and total "
                f"cover only the newest {self.candidate_cap} documents",
                extra={
                    "content_type": content_type.singular_id,
                    "candidates": len(candidates),
                },
            )

        matched = candidates
        if tree is not None:
            value_of = await self._value_accessor(candidates, tree)
            matched = [d for d in matched if evaluate(tree, value_of(d))]

        if options.search:
            names = search_field_names(content_type, options.search_field)
            matched = [
                d for d in matched if matches_search(options.search, names, d.value_of)
            ]

        if options.sort:
            # insertion order is the final tie-break
            matched = sorted(matched, key=lambda d: d.id)
            matched = sort_records(
                matched, options.sort,
                lambda d, f: d.sort_value(f),
                (content_type.attribute_names - content_type.private_names) | SYSTEM_FIELDS,
            )

        return QueryPage(paginate(matched, options), len(matched), IN_MEMORY, capped)

    async def _value_accessor(
        self, candidates: list[StoredDocument], tree: FilterNode,
    ) -> Callable[[StoredDocument], Callable[[str], Any]]:
        """Per-document value getter; relation fields read preloaded target ids."""
        relation_fields = relation_fields_in(tree)
        targets: dict[tuple[int, str], list[str]] = {}
        if relation_fields and candidates:
            edges = await self.graph.targets_for(
                [d.id for d in candidates], sorted(relation_fields),
            )
            wanted = sorted({to_id for ids in edges.values() for to_id in ids})
            loaded = await self.store.get_many(wanted)
            targets = {
                key: [loaded[i].document_id for i in ids if i in loaded]
                for key, ids in edges.items()
            }

        def accessor(doc: StoredDocument) -> Callable[[str], Any]:
            def get(field: str) -> Any:
                if field in relation_fields:
                    return targets.get((doc.id, field), [])
                return doc.value_of(field)
            return get

        return accessor
