"""Content-Type Registry Routes — list, inspect and register content types.

Invariants:
    - GET /api/content-types/{singular_id} → 404 when unknown
    - POST validates the envelope (Pydantic) then the attributes (core parser);
      either failure is a 400
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.config import get_settings
from content_engine.core.errors import ErrorContext, ResourceNotFoundError
from content_engine.infrastructure.content_type_registry import SqlContentTypeRegistry
from content_engine.infrastructure.database import get_db
from content_engine.schemas.content_type import ContentTypeCreate, ContentTypeResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/content-types", tags=["content-types"])


def _registry(db: AsyncSession) -> SqlContentTypeRegistry:
    return SqlContentTypeRegistry(db, get_settings().query_timeout_seconds)


@router.get("", response_model=list[ContentTypeResponse])
async def list_content_types(db: AsyncSession = Depends(get_db)):
    registry = _registry(db)
    return [ContentTypeResponse.from_definition(ct) for ct in await registry.list_all()]


@router.post(
    "", response_model=ContentTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_content_type(
    body: ContentTypeCreate, db: AsyncSession = Depends(get_db),
):
    registry = _registry(db)
    try:
        ct = await registry.register(
            singular_id=body.singular_id,
            plural_id=body.plural_id,
            display_name=body.display_name,
            attributes=body.attribute_dicts(),
            kind=body.kind,
            draft_publish=body.draft_publish,
            default_publication_state=body.default_publication_state,
            description=body.description,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return ContentTypeResponse.from_definition(ct)


@router.get("/{singular_id}", response_model=ContentTypeResponse)
async def get_content_type(singular_id: str, db: AsyncSession = Depends(get_db)):
    ct = await _registry(db).resolve_by_singular(singular_id)
    if ct is None:
        raise ResourceNotFoundError(
            "Content type", singular_id, ErrorContext(content_type=singular_id),
        )
    return ContentTypeResponse.from_definition(ct)
