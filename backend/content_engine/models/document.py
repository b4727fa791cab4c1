"""Document ORM — one stored document of any content type.

Invariants:
    - document_id is the public 25-char id, unique across the whole store
    - data is an opaque JSON blob; only the document store decodes it
    - published_at NULL = draft, <= now = published, > now = scheduled
    - Relation values are never stored in data (see DocumentRelation)

Design Decisions:
    - Integer primary key: doubles as insertion order for final sort ties
    - Text, not JSON, for data: the blob is opaque and may hold historical garbage
    - Composite index (content_type_id, created_at) backs the default listing order
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from content_engine.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """Stored document — opaque payload plus system metadata."""
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_type_created", "content_type_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(
        String(25), nullable=False, unique=True, index=True,
    )
    content_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_types.id", ondelete="CASCADE"),
        nullable=False,
    )
    data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    locale: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
