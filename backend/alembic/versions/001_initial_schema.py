"""Initial schema — content_types, documents, document_relations, media.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "content_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("singular_id", sa.String(100), nullable=False, unique=True),
        sa.Column("plural_id", sa.String(100), nullable=False, unique=True),
        sa.Column("kind", sa.String(20), nullable=False, server_default="collectionType"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("draft_publish", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("default_publication_state", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("attributes", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("document_id", sa.String(25), nullable=False),
        sa.Column(
            "content_type_id", sa.Integer,
            sa.ForeignKey("content_types.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("data", sa.Text, nullable=False, server_default="{}"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locale", sa.String(10), nullable=False, server_default="en"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_documents_document_id", "documents", ["document_id"], unique=True)
    op.create_index("ix_documents_type_created", "documents", ["content_type_id", "created_at"])

    op.create_table(
        "document_relations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("from_document_id", sa.Integer, nullable=False),
        sa.Column("to_document_id", sa.Integer, nullable=False),
        sa.Column("field_name", sa.String(100), nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_relations_from_field", "document_relations",
        ["from_document_id", "field_name", "order"],
    )
    op.create_index("ix_relations_to", "document_relations", ["to_document_id"])

    op.create_table(
        "media",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url", sa.String(1000), nullable=False),
        sa.Column("mime", sa.String(100), nullable=False),
        sa.Column("size", sa.Integer, nullable=False, server_default="0"),
        sa.Column("width", sa.Integer, nullable=True),
        sa.Column("height", sa.Integer, nullable=True),
        sa.Column("alternative_text", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("media")
    op.drop_index("ix_relations_to", table_name="document_relations")
    op.drop_index("ix_relations_from_field", table_name="document_relations")
    op.drop_table("document_relations")
    op.drop_index("ix_documents_type_created", table_name="documents")
    op.drop_index("ix_documents_document_id", table_name="documents")
    op.drop_table("documents")
    op.drop_table("content_types")
