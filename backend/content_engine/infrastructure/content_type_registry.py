"""SQL Content-Type Registry — resolves and registers runtime content types.

Invariants:
    - Identifiers are matched and stored lowercase
    - A stored row always resolves: unparseable attributes degrade to an empty
      attribute list (logged at WARNING) instead of failing every request
    - register() never overwrites: a taken singular or plural id is rejected

Design Decisions:
    - Rows are converted to frozen ContentTypeDefinition at the boundary, so the
      engine never holds ORM objects
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.core.content_types import (
    ContentTypeDefinition, parse_attributes, parse_content_kind,
)
from content_engine.core.domain_types import ContentKind, ContentTypeId, PublicationStatus
from content_engine.core.errors import ContentTypeDefinitionError, ErrorContext
from content_engine.infrastructure.database import bounded
from content_engine.models.content_type import ContentType

logger = logging.getLogger(__name__)


def _to_definition(row: ContentType) -> ContentTypeDefinition:
    try:
        attributes = parse_attributes(row.attributes or [])
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(
            f"Content type has invalid attributes, serving without them: {e}",
            extra={"content_type": row.singular_id},
        )
        attributes = ()
    try:
        kind = parse_content_kind(row.kind)
    except ValueError:
        kind = ContentKind.COLLECTION
    default_state = (
        PublicationStatus.PUBLISHED
        if row.default_publication_state == PublicationStatus.PUBLISHED.value
        else PublicationStatus.DRAFT
    )
    return ContentTypeDefinition(
        id=ContentTypeId(row.id),
        singular_id=row.singular_id,
        plural_id=row.plural_id,
        kind=kind,
        display_name=row.display_name,
        attributes=attributes,
        draft_publish=row.draft_publish,
        default_publication_state=default_state,
    )


class SqlContentTypeRegistry:
    """ContentTypeRegistry implementation backed by the content_types table."""

    def __init__(self, db: AsyncSession, timeout_seconds: float | None = None):
        self.db = db
        self._timeout = timeout_seconds

    async def _execute(self, statement):
        return await bounded(self.db.execute(statement), self._timeout)

    async def _one(self, clause) -> ContentTypeDefinition | None:
        result = await self._execute(select(ContentType).where(clause))
        row = result.scalar_one_or_none()
        return _to_definition(row) if row else None

    async def resolve_by_plural(self, plural_id: str) -> ContentTypeDefinition | None:
        return await self._one(ContentType.plural_id == plural_id.lower())

    async def resolve_by_singular(
        self, singular_id: str,
    ) -> ContentTypeDefinition | None:
        return await self._one(ContentType.singular_id == singular_id.lower())

    async def list_all(self) -> list[ContentTypeDefinition]:
        result = await self._execute(
            select(ContentType).order_by(ContentType.singular_id),
        )
        return [_to_definition(row) for row in result.scalars().all()]

    async def register(
        self,
        *,
        singular_id: str,
        plural_id: str,
        display_name: str,
        attributes: list[dict],
        kind: str = ContentKind.COLLECTION.value,
        draft_publish: bool = False,
        default_publication_state: str = PublicationStatus.DRAFT.value,
        description: str | None = None,
    ) -> ContentTypeDefinition:
        """Validate and persist a new content type. Caller commits.

        Raises ContentTypeDefinitionError on malformed attributes, unknown kind,
        or a taken id.
        """
        singular_id, plural_id = singular_id.lower(), plural_id.lower()
        context = ErrorContext(content_type=singular_id)
        try:
            parsed = parse_attributes(attributes)
            parsed_kind = parse_content_kind(kind)
        except (AttributeError, TypeError, ValueError) as e:
            raise ContentTypeDefinitionError(str(e), context) from None
        if default_publication_state not in (
            PublicationStatus.DRAFT.value, PublicationStatus.PUBLISHED.value,
        ):
            raise ContentTypeDefinitionError(
                f"default publication state must be draft or published, "
                f"got {default_publication_state!r}",
                context,
            )
        taken = await self._execute(
            select(ContentType.id).where(or_(
                ContentType.singular_id.in_([singular_id, plural_id]),
                ContentType.plural_id.in_([singular_id, plural_id]),
            ))
        )
        if taken.first() is not None:
            raise ContentTypeDefinitionError(
                f"content type id '{singular_id}' or '{plural_id}' is taken", context,
            )
        row = ContentType(
            singular_id=singular_id,
            plural_id=plural_id,
            display_name=display_name,
            description=description,
            kind=parsed_kind.value,
            draft_publish=draft_publish,
            default_publication_state=default_publication_state,
            attributes=[a.to_dict() for a in parsed],
        )
        self.db.add(row)
        await bounded(self.db.flush(), self._timeout)
        logger.info(
            f"Registered content type ({parsed_kind.value})",
            extra={"content_type": singular_id},
        )
        return _to_definition(row)
