"""ContentType ORM — registry row describing one runtime-defined content type.

Invariants:
    - singular_id and plural_id are unique and stored lowercase
    - attributes holds the ordered attribute list as JSON (parsed by core.content_types)
    - kind is collectionType | singleType

Design Decisions:
    - JSON column for attributes: the schema is data, never DDL
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from content_engine.db.base import Base


class ContentType(Base):
    """Content type registry entry."""
    __tablename__ = "content_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    singular_id: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True,
    )
    plural_id: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True,
    )
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, default="collectionType",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    draft_publish: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    default_publication_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft",
    )
    attributes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
