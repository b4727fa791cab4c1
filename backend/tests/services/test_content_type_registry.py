"""Content-Type Registry — registration rules and tolerant resolution of stored rows."""

import logging

import pytest

from content_engine.core.domain_types import ContentKind, PublicationStatus
from content_engine.core.errors import ContentTypeDefinitionError
from content_engine.infrastructure.content_type_registry import SqlContentTypeRegistry
from content_engine.models.content_type import ContentType


async def test_register_and_resolve(test_db, register_type):
    ct = await register_type(
        "Recipe", "Recipes", [{"name": "name", "type": "text", "unique": True}],
        draft_publish=True, default_publication_state="published",
    )
    registry = SqlContentTypeRegistry(test_db)

    by_plural = await registry.resolve_by_plural("RECIPES")
    by_singular = await registry.resolve_by_singular("recipe")

    assert ct.singular_id == "recipe"
    assert by_plural == by_singular
    assert by_plural.kind is ContentKind.COLLECTION
    assert by_plural.default_publication_state is PublicationStatus.PUBLISHED
    assert by_plural.attribute("name").unique
    assert await registry.resolve_by_plural("nothing") is None


async def test_list_all_is_ordered(test_db, blog_types):
    names = [ct.singular_id for ct in await SqlContentTypeRegistry(test_db).list_all()]
    assert names == ["article", "author", "tag"]


async def test_taken_ids_rejected(test_db, blog_types):
    registry = SqlContentTypeRegistry(test_db)
    with pytest.raises(ContentTypeDefinitionError):
        await registry.register(
            singular_id="article", plural_id="posts", display_name="Post", attributes=[],
        )
    # a plural may not reuse another type's singular id
    with pytest.raises(ContentTypeDefinitionError):
        await registry.register(
            singular_id="post", plural_id="tag", display_name="Post", attributes=[],
        )


@pytest.mark.parametrize("kwargs", [
    {"attributes": [{"name": "x", "type": "geo"}]},
    {"attributes": [{"name": "x", "type": "text"}, {"name": "x", "type": "text"}]},
    {"attributes": [{"type": "text"}]},
    {"attributes": [], "kind": "bundle"},
    {"attributes": [], "default_publication_state": "scheduled"},
])
async def test_malformed_definitions_rejected(test_db, kwargs):
    registry = SqlContentTypeRegistry(test_db)
    with pytest.raises(ContentTypeDefinitionError) as exc_info:
        await registry.register(
            singular_id="thing", plural_id="things", display_name="Thing", **kwargs,
        )
    assert exc_info.value.code == "INVALID_CONTENT_TYPE"


async def test_stored_row_with_bad_attributes_still_resolves(test_db, caplog):
    test_db.add(ContentType(
        singular_id="legacy", plural_id="legacies", display_name="Legacy",
        kind="collectionType", attributes=[{"name": "x", "type": "geo"}],
    ))
    await test_db.commit()

    with caplog.at_level(logging.WARNING):
        ct = await SqlContentTypeRegistry(test_db).resolve_by_plural("legacies")

    assert ct is not None
    assert ct.attributes == ()
    assert any("invalid attributes" in r.getMessage() for r in caplog.records)
