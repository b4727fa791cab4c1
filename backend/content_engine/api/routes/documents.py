"""Content API — Strapi-style REST routes over runtime-defined content types.

Invariants:
    - Reserved API ids (auth, upload, content-types, ...) are never treated as
      content types: 404 before any lookup
    - Unknown content type or document → 404 via ResourceNotFoundError
    - Rejected single-type create → 400 SINGLE_TYPE_EXISTS (not an exception)
    - Routes parse and delegate; DocumentService owns every rule

Design Decisions:
    - Registered LAST in main.py: /api/{plural_id} would otherwise shadow
      /api/content-types and /api/v1/health
    - Query strings read from request.query_params.multi_items() so bracket keys
      and repeated keys survive intact
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.api.query_params import parse_content_query
from content_engine.config import get_settings
from content_engine.core.errors import ErrorContext, ErrorSeverity, ResourceNotFoundError
from content_engine.core.query_plan import QueryOptions
from content_engine.infrastructure.database import get_db
from content_engine.schemas.document import DocumentWrite, PublishRequest
from content_engine.services.document_service import DocumentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["documents"])

RESERVED_API_IDS = frozenset({
    "auth", "upload", "content-types", "content-manager",
    "users", "roles", "permissions", "media", "admin",
})


def get_document_service(db: AsyncSession = Depends(get_db)) -> DocumentService:
    return DocumentService.from_session(db, get_settings())


def _ensure_not_reserved(plural_id: str) -> None:
    if plural_id.lower() in RESERVED_API_IDS:
        raise ResourceNotFoundError(
            "Content type", plural_id, ErrorContext(content_type=plural_id),
        )


def _query_options(request: Request) -> QueryOptions:
    settings = get_settings()
    return parse_content_query(
        request.query_params.multi_items(),
        default_page_size=settings.query_default_page_size,
        max_page_size=settings.query_max_page_size,
    )


@router.get("/{plural_id}")
async def list_documents(
    plural_id: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
):
    """Filtered, sorted, paginated documents of one content type."""
    _ensure_not_reserved(plural_id)
    return await service.find_documents(plural_id, _query_options(request))


@router.post("/{plural_id}", status_code=status.HTTP_201_CREATED)
async def create_document(
    plural_id: str,
    body: DocumentWrite,
    service: DocumentService = Depends(get_document_service),
):
    _ensure_not_reserved(plural_id)
    result = await service.create_document(
        plural_id, body.data,
        locale=body.locale, published_at=body.published_at_or_unset,
    )
    if not result.created:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "SINGLE_TYPE_EXISTS",
                    "message": "Single type already has a document; update it instead",
                    "category": "business_rule",
                    "severity": ErrorSeverity.WARNING.value,
                },
            },
        )
    return {"data": result.data, "meta": result.meta}


@router.get("/{plural_id}/{document_id}")
async def get_document(
    plural_id: str,
    document_id: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
):
    _ensure_not_reserved(plural_id)
    options = _query_options(request)
    return await service.find_one_document(
        plural_id, document_id, options.populate, options.fields,
    )


@router.put("/{plural_id}/{document_id}")
async def update_document(
    plural_id: str,
    document_id: str,
    body: DocumentWrite,
    service: DocumentService = Depends(get_document_service),
):
    """Shallow-merge the body over the stored payload."""
    _ensure_not_reserved(plural_id)
    return await service.update_document(
        plural_id, document_id, body.data,
        published_at=body.published_at_or_unset,
    )


@router.delete("/{plural_id}/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    plural_id: str,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    _ensure_not_reserved(plural_id)
    if not await service.delete_document(plural_id, document_id):
        raise ResourceNotFoundError(
            "Document", document_id,
            ErrorContext(content_type=plural_id, document_id=document_id),
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plural_id}/{document_id}/actions/publish")
async def publish_document(
    plural_id: str,
    document_id: str,
    body: PublishRequest | None = None,
    service: DocumentService = Depends(get_document_service),
):
    """Publish now, or schedule when publishedAt is in the future."""
    _ensure_not_reserved(plural_id)
    at = body.published_at if body else None
    return await service.publish_document(plural_id, document_id, at)


@router.post("/{plural_id}/{document_id}/actions/unpublish")
async def unpublish_document(
    plural_id: str,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    _ensure_not_reserved(plural_id)
    return await service.unpublish_document(plural_id, document_id)
