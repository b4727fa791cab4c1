"""DocumentRelation ORM — ordered, field-scoped edge between two documents.

Invariants:
    - (from_document_id, field_name, order) is dense from 0 per replace
    - Edges are replaced wholesale per field, never patched

Design Decisions:
    - No foreign keys: edges may outlive their target and are dropped at read time
    - Indexed on both endpoints: deletion removes edges in either direction
"""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from content_engine.db.base import Base


class DocumentRelation(Base):
    """Directed edge owned by the document holding the relation attribute."""
    __tablename__ = "document_relations"
    __table_args__ = (
        Index("ix_relations_from_field", "from_document_id", "field_name", "order"),
        Index("ix_relations_to", "to_document_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    from_document_id: Mapped[int] = mapped_column(Integer, nullable=False)
    to_document_id: Mapped[int] = mapped_column(Integer, nullable=False)
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
