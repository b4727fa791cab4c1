"""Service test fixtures — async DB, wired DocumentService, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - db_manager patched so readiness probes see the test engine

Design Decisions:
    - SQLite in-memory: fast, no external dependency; the engine's SQL is portable
      (publication windows and ordering avoid dialect-specific functions)
    - register_type commits, so content types exist before any document write
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from content_engine.config import Settings
from content_engine.db.base import Base
from content_engine.infrastructure.content_type_registry import SqlContentTypeRegistry
from content_engine.infrastructure.database import get_db, DatabaseSessionManager
from content_engine.services.document_service import DocumentService
import content_engine.infrastructure.database as db_module
import content_engine.models  # noqa: F401
from content_engine.main import app

ARTICLE_ATTRIBUTES = [
    {"name": "title", "type": "text", "required": True},
    {"name": "slug", "type": "uid", "unique": True},
    {"name": "views", "type": "number"},
    {"name": "category", "type": "text"},
    {"name": "body", "type": "richtext"},
    {"name": "secret", "type": "text", "private": True},
    {"name": "cover", "type": "media"},
    {
        "name": "author", "type": "relation",
        "relation": "manyToOne", "target": "author",
    },
    {
        "name": "tags", "type": "relation",
        "relation": "manyToMany", "target": "tag",
    },
]


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        query_timeout_seconds=5.0,
    )


@pytest.fixture
def service(test_db, settings):
    return DocumentService.from_session(test_db, settings)


@pytest.fixture
def register_type(test_db):
    """Register a content type and commit. Returns the definition."""
    async def _register(singular_id: str, plural_id: str, attributes: list, **kw):
        ct = await SqlContentTypeRegistry(test_db).register(
            singular_id=singular_id,
            plural_id=plural_id,
            display_name=kw.pop("display_name", singular_id.title()),
            attributes=attributes,
            **kw,
        )
        await test_db.commit()
        return ct
    return _register


@pytest.fixture
async def blog_types(register_type):
    """author, tag and article types; article relates to both."""
    author = await register_type("author", "authors", [
        {"name": "name", "type": "text"},
        {"name": "email", "type": "email", "private": True},
    ])
    tag = await register_type("tag", "tags", [{"name": "label", "type": "text"}])
    article = await register_type(
        "article", "articles", ARTICLE_ATTRIBUTES,
        default_publication_state="published",
    )
    return {"author": author, "tag": tag, "article": article}


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
