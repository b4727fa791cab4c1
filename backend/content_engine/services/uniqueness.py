"""Uniqueness Validator — scans a content type's payloads for unique-value collisions.

Invariants:
    - Raises ValidationConflictError naming the first colliding attribute
    - The document being updated is excluded by internal id
    - Types without unique attributes cost no query
"""

import logging
from typing import Any

from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.errors import ErrorContext, ValidationConflictError
from content_engine.core.repository_protocols import DocumentStore
from content_engine.core.uniqueness import find_unique_conflict

logger = logging.getLogger(__name__)


class UniquenessValidator:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def validate(
        self,
        content_type: ContentTypeDefinition,
        candidate: dict[str, Any],
        exclude_id: int | None = None,
    ) -> None:
        unique = [a for a in content_type.unique_attributes if not a.is_relation]
        if not unique:
            return
        existing = await self.store.scan_payloads(content_type.id)
        field = find_unique_conflict(unique, candidate, existing, exclude_id)
        if field is None:
            return
        logger.info(
            "Unique constraint rejected write",
            extra={"content_type": content_type.singular_id, "field": field},
        )
        raise ValidationConflictError(
            field, ErrorContext(content_type=content_type.singular_id),
        )
