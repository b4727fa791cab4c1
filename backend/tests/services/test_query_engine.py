"""Query Engine — push-down vs in-memory paths, filtering, sorting, the candidate cap.

Tests:
    - Plain and system-sorted queries push down; filters/search/attribute sort do not
    - Default order is newest first
    - Filters (including relation fields) and search through the service
    - Attribute sort is numeric-aware and stable on ties (insertion order)
    - The candidate cap bounds totals on the in-memory path and is logged
"""

import logging

import pytest

from content_engine.config import Settings
from content_engine.core.errors import InvalidQueryError
from content_engine.core.query_plan import build_query_options
from content_engine.services.document_service import DocumentService
from content_engine.services.query_engine import IN_MEMORY, PUSH_DOWN, QueryEngine


async def _create(service, payload, plural="articles", **kw) -> dict:
    result = await service.create_document(plural, payload, **kw)
    assert result.created
    return result.data


async def _find(service, plural="articles", **options) -> dict:
    return await service.find_documents(plural, build_query_options(**options))


def _titles(page: dict) -> list[str]:
    return [d["title"] for d in page["data"]]


# ─── Execution path ──────────────────────────────────────────────

async def test_execution_path_choice(service, blog_types):
    article = blog_types["article"]
    await _create(service, {"title": "A", "views": 1})

    plain = await service.engine.find(article, build_query_options())
    by_date = await service.engine.find(article, build_query_options(sort="createdAt:asc"))
    filtered = await service.engine.find(
        article, build_query_options(filters={"views": {"$gt": 0}}),
    )
    searched = await service.engine.find(article, build_query_options(search="a"))
    sorted_by_title = await service.engine.find(article, build_query_options(sort="title"))

    assert plain.execution_path == PUSH_DOWN
    assert by_date.execution_path == PUSH_DOWN
    assert filtered.execution_path == IN_MEMORY
    assert searched.execution_path == IN_MEMORY
    assert sorted_by_title.execution_path == IN_MEMORY
    assert not filtered.capped


def test_candidate_cap_must_be_positive():
    with pytest.raises(ValueError):
        QueryEngine(store=None, graph=None, candidate_cap=0)


async def test_default_order_is_newest_first(service, blog_types):
    for title in ("first", "second", "third"):
        await _create(service, {"title": title})

    assert _titles(await _find(service)) == ["third", "second", "first"]
    assert _titles(await _find(service, sort="createdAt:asc")) == ["first", "second", "third"]


async def test_push_down_pagination(service, blog_types):
    for i in range(5):
        await _create(service, {"title": f"t{i}"})

    page = await _find(service, page=3, page_size=2)

    assert _titles(page) == ["t0"]
    assert page["meta"]["pagination"] == {
        "page": 3, "pageSize": 2, "pageCount": 3, "total": 5,
    }


async def test_in_memory_pagination_counts_matches(service, blog_types):
    for i in range(5):
        await _create(service, {"title": f"t{i}", "views": i})

    page = await _find(
        service, filters={"views": {"$gte": 1}}, sort="views", page=2, page_size=3,
    )

    assert _titles(page) == ["t4"]
    assert page["meta"]["pagination"]["total"] == 4
    assert page["meta"]["pagination"]["pageCount"] == 2


# ─── Filters / search ────────────────────────────────────────────

async def test_filters_through_service(service, blog_types):
    await _create(service, {"title": "Hello World", "views": 10, "category": "news"})
    await _create(service, {"title": "hello again", "views": 20, "category": "blog"})
    await _create(service, {"title": "Goodbye", "views": 30})

    assert _titles(await _find(service, filters={"views": {"$gt": 15}}, sort="views")) == [
        "hello again", "Goodbye",
    ]
    assert set(_titles(await _find(service, filters={"title": {"$containsi": "HELLO"}}))) == {
        "Hello World", "hello again",
    }
    assert _titles(await _find(service, filters={"category": {"$null": True}})) == ["Goodbye"]
    assert _titles(await _find(service, filters={
        "$or": [{"category": "news"}, {"views": {"$gte": 30}}],
    }, sort="views")) == ["Hello World", "Goodbye"]


async def test_filters_on_system_fields(service, blog_types):
    first = await _create(service, {"title": "First"})
    await _create(service, {"title": "Second"})

    page = await _find(service, filters={"documentId": first["documentId"]})
    assert _titles(page) == ["First"]


async def test_filter_respects_publication_window(service, blog_types):
    await _create(service, {"title": "Draft", "views": 5}, published_at=None)
    await _create(service, {"title": "Live", "views": 5})

    live = await _find(service, filters={"views": 5})
    preview = await _find(service, filters={"views": 5}, publication_state="preview")

    assert _titles(live) == ["Live"]
    assert len(preview["data"]) == 2


async def test_relation_filter(service, blog_types):
    ada = await _create(service, {"name": "Ada"}, plural="authors")
    bob = await _create(service, {"name": "Bob"}, plural="authors")
    await _create(service, {"title": "By Ada", "author": ada["documentId"]})
    await _create(service, {"title": "By Bob", "author": {"documentId": bob["documentId"]}})
    await _create(service, {"title": "Anonymous"})

    by_ada = await _find(service, filters={"author": {"documentId": {"$eq": ada["documentId"]}}})
    orphans = await _find(service, filters={"author": {"$null": True}})

    assert _titles(by_ada) == ["By Ada"]
    assert _titles(orphans) == ["Anonymous"]


async def test_unknown_operator_rejected(service, blog_types):
    with pytest.raises(InvalidQueryError):
        await _find(service, filters={"title": {"$like": "x"}})


async def test_unknown_filter_field_is_ignored(service, blog_types):
    await _create(service, {"title": "Only"})
    assert _titles(await _find(service, filters={"colour": "red"})) == ["Only"]


async def test_search(service, blog_types):
    await _create(service, {"title": "Python tips", "category": "dev"})
    await _create(service, {"title": "Cooking", "category": "python"})

    everywhere = await _find(service, search="PYTHON")
    in_title = await _find(service, search="python", search_field="title")

    assert set(_titles(everywhere)) == {"Python tips", "Cooking"}
    assert _titles(in_title) == ["Python tips"]


async def test_private_fields_are_ignored_by_search_and_filters(service, blog_types):
    await _create(service, {"title": "Vault", "secret": "hunter2"})

    searched = await _find(service, search="hunter", search_field="secret")
    filtered = await _find(service, filters={"secret": {"$startsWith": "zzz"}})

    assert searched["meta"]["pagination"]["total"] == 0
    # the private condition is dropped, so the document is not excluded by it
    assert _titles(filtered) == ["Vault"]


async def test_private_sort_key_is_skipped(service, blog_types):
    for title, secret in (("first", "b"), ("second", "a")):
        await _create(service, {"title": title, "secret": secret})

    # falls back to insertion order, not secret order
    assert _titles(await _find(service, sort="secret")) == ["first", "second"]


# ─── Sorting ─────────────────────────────────────────────────────

async def test_sort_is_stable_on_ties(service, blog_types):
    for title, category in (("a1", "b"), ("a2", "a"), ("a3", "b"), ("a4", "a")):
        await _create(service, {"title": title, "category": category})

    assert _titles(await _find(service, sort="category")) == ["a2", "a4", "a1", "a3"]
    assert _titles(await _find(service, sort="category:desc")) == ["a1", "a3", "a2", "a4"]


async def test_sort_is_numeric_aware(service, blog_types):
    for title in ("item10", "item2", "item1"):
        await _create(service, {"title": title})

    assert _titles(await _find(service, sort="title")) == ["item1", "item2", "item10"]


async def test_multi_key_sort_mixing_attribute_and_system_fields(service, blog_types):
    for title, views in (("x", 1), ("y", 2), ("z", 1)):
        await _create(service, {"title": title, "views": views})

    page = await _find(service, sort=["views:desc", "createdAt:desc"])
    assert _titles(page) == ["y", "z", "x"]


# ─── Candidate cap ───────────────────────────────────────────────

async def test_candidate_cap_bounds_in_memory_totals(test_db, blog_types, caplog):
    capped = DocumentService.from_session(test_db, Settings(
        database_url="sqlite+aiosqlite:///:memory:", query_candidate_cap=5,
    ))
    for i in range(7):
        await _create(capped, {"title": f"t{i}", "views": i})

    with caplog.at_level(logging.WARNING):
        filtered = await _find(capped, filters={"views": {"$gte": 0}}, sort="views")

    assert filtered["meta"]["pagination"]["total"] == 5
    # only the five newest documents were candidates
    assert _titles(filtered) == ["t2", "t3", "t4", "t5", "t6"]
    assert any("Candidate cap" in r.getMessage() for r in caplog.records)

    plain = await _find(capped)
    assert plain["meta"]["pagination"]["total"] == 7
