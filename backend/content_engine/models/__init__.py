"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Document rows are scoped by content_type_id; relations by document ids

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
"""

from content_engine.models.content_type import ContentType  # noqa: F401
from content_engine.models.document import Document  # noqa: F401
from content_engine.models.document_relation import DocumentRelation  # noqa: F401
from content_engine.models.media import Media  # noqa: F401
