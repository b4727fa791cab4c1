"""SQL Media Store — resolves media ids stored in payloads to media records."""

import logging
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from content_engine.core.documents import to_iso
from content_engine.core.payload import as_media_id
from content_engine.infrastructure.database import bounded
from content_engine.models.media import Media

logger = logging.getLogger(__name__)


def media_to_dict(row: Media) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "url": row.url,
        "mime": row.mime,
        "size": row.size,
        "width": row.width,
        "height": row.height,
        "alternativeText": row.alternative_text,
        "createdAt": to_iso(row.created_at),
    }


class SqlMediaStore:
    """MediaStore implementation backed by the media table."""

    def __init__(self, db: AsyncSession, timeout_seconds: float | None = None):
        self.db = db
        self._timeout = timeout_seconds

    async def resolve_media(self, ids: Sequence[Any]) -> list[dict]:
        """Records for the given ids in request order; unknown ids are skipped."""
        wanted = [i for i in (as_media_id(v) for v in ids) if i is not None]
        if not wanted:
            return []
        result = await bounded(
            self.db.execute(select(Media).where(Media.id.in_(set(wanted)))), self._timeout,
        )
        by_id = {row.id: row for row in result.scalars().all()}
        missing = [i for i in wanted if i not in by_id]
        if missing:
            logger.warning(f"Media ids not found: {missing}")
        return [media_to_dict(by_id[i]) for i in wanted if i in by_id]
