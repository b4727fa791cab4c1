"""Relations and Formatting — edge integrity, population, privacy, atomic writes.

Tests:
    - Edges keep request order; every write replaces the whole outgoing edge set
    - Deleting a document removes edges where it is either endpoint
    - Unknown or wrong-type targets are skipped with a WARNING
    - Populated targets hide their own private fields; dangling edges are omitted
    - Media ids resolve to media records on populate
    - A failure after edges are written rolls back payload and edges together
"""

import logging

import pytest
from sqlalchemy import update

from content_engine.core.errors import PayloadValidationError
from content_engine.core.query_plan import Populate, build_query_options
from content_engine.models.document import Document
from content_engine.models.media import Media

ALL = Populate(all_fields=True)


async def _create(service, payload, plural="articles", **kw) -> dict:
    result = await service.create_document(plural, payload, **kw)
    assert result.created
    return result.data


async def _get(service, document_id, populate=ALL, fields=(), plural="articles") -> dict:
    found = await service.find_one_document(plural, document_id, populate, fields)
    return found["data"]


@pytest.fixture
async def people(service, blog_types):
    ada = await _create(service, {"name": "Ada", "email": "ada@example.com"}, plural="authors")
    bob = await _create(service, {"name": "Bob"}, plural="authors")
    return ada, bob


@pytest.fixture
async def labels(service, blog_types):
    return [
        await _create(service, {"label": name}, plural="tags")
        for name in ("red", "green", "blue")
    ]


# ─── Edges ───────────────────────────────────────────────────────

async def test_relation_order_is_preserved(service, people, labels):
    red, green, blue = labels
    created = await _create(service, {
        "title": "Colours",
        "author": people[0]["documentId"],
        "tags": [blue["documentId"], red["documentId"], green["documentId"]],
    })

    assert [t["label"] for t in created["tags"]] == ["blue", "red", "green"]
    assert created["author"]["name"] == "Ada"

    edges = await service.graph.edges_from(created["id"], "tags")
    assert [e.order for e in edges] == [0, 1, 2]


async def test_update_replaces_the_whole_edge_set(service, people, labels):
    red, green, blue = labels
    created = await _create(service, {
        "title": "Colours",
        "author": people[0]["documentId"],
        "tags": [red["documentId"], green["documentId"]],
    })

    updated = await service.update_document(
        "articles", created["documentId"], {"tags": [blue["documentId"]]},
    )

    assert [t["label"] for t in updated["data"]["tags"]] == ["blue"]
    assert updated["data"]["author"] is None
    edges = await service.graph.edges_from(created["id"])
    assert [(e.field_name, e.to_id, e.order) for e in edges] == [("tags", blue["id"], 0)]


async def test_update_without_relations_clears_edges(service, people):
    created = await _create(service, {"title": "Dropped", "author": people[1]["documentId"]})

    updated = await service.update_document("articles", created["documentId"], {"views": 9})

    assert updated["data"]["author"] is None
    assert updated["data"]["views"] == 9
    assert await service.graph.edges_from(created["id"]) == []


async def test_publish_keeps_edges(service, people):
    created = await _create(
        service, {"title": "Kept", "author": people[1]["documentId"]}, published_at=None,
    )

    published = await service.publish_document("articles", created["documentId"])
    unpublished = await service.unpublish_document("articles", created["documentId"])

    assert published["data"]["author"]["name"] == "Bob"
    assert unpublished["data"]["author"]["name"] == "Bob"
    assert unpublished["data"]["title"] == "Kept"


async def test_clearing_a_relation(service, people):
    created = await _create(service, {"title": "Kept", "author": people[1]["documentId"]})

    updated = await service.update_document(
        "articles", created["documentId"], {"author": None},
    )

    assert updated["data"]["author"] is None
    assert await service.graph.edges_from(created["id"], "author") == []


async def test_delete_removes_edges_in_both_directions(service, people, labels):
    ada = people[0]
    created = await _create(service, {
        "title": "Doomed", "author": ada["documentId"], "tags": [labels[0]["documentId"]],
    })
    survivor = await _create(service, {"title": "Survivor", "author": ada["documentId"]})

    assert await service.delete_document("authors", ada["documentId"]) is True
    assert await service.graph.edges_from(survivor["id"]) == []
    assert (await _get(service, survivor["documentId"]))["author"] is None

    assert await service.delete_document("articles", created["documentId"]) is True
    assert await service.graph.edges_from(created["id"]) == []


async def test_unknown_targets_skipped_with_warning(service, people, labels, caplog):
    with caplog.at_level(logging.WARNING):
        created = await _create(service, {
            "title": "Partial",
            "tags": ["doesnotexist", labels[0]["documentId"], people[0]["documentId"]],
        })

    # the author's documentId is not a tag
    assert [t["label"] for t in created["tags"]] == ["red"]
    assert any("Relation targets not found" in r.getMessage() for r in caplog.records)


async def test_single_cardinality_relation_rejects_lists(service, people):
    with pytest.raises(PayloadValidationError):
        await service.create_document("articles", {
            "title": "Two authors",
            "author": [people[0]["documentId"], people[1]["documentId"]],
        })


# ─── Formatting ──────────────────────────────────────────────────

async def test_populated_targets_hide_private_fields(service, people):
    created = await _create(service, {"title": "Private", "author": people[0]["documentId"]})

    author = (await _get(service, created["documentId"]))["author"]

    assert author["name"] == "Ada"
    assert "email" not in author
    assert author["documentId"] == people[0]["documentId"]
    # population is depth one
    assert "author" not in author


async def test_populate_named_fields_only(service, people, labels):
    created = await _create(service, {
        "title": "Some", "author": people[0]["documentId"],
        "tags": [labels[0]["documentId"]],
    })

    data = await _get(service, created["documentId"], Populate(names=frozenset({"tags"})))

    assert "author" not in data
    assert [t["label"] for t in data["tags"]] == ["red"]


async def test_populate_on_list_queries(service, people):
    for name in ("one", "two"):
        await _create(service, {"title": name, "author": people[1]["documentId"]})

    page = await service.find_documents(
        "articles", build_query_options(populate="author", sort="title"),
    )

    assert [d["author"]["name"] for d in page["data"]] == ["Bob", "Bob"]


async def test_projection_keeps_system_fields(service, blog_types):
    created = await _create(service, {"title": "Proj", "views": 5, "category": "x"})

    data = await _get(service, created["documentId"], Populate(), ("title",))

    assert set(data) == {
        "id", "documentId", "title", "createdAt", "updatedAt", "publishedAt", "locale",
    }


async def test_dangling_edge_omitted_with_warning(service, people, test_db, caplog):
    created = await _create(service, {"title": "Dangling", "author": people[1]["documentId"]})
    # remove the target behind the graph's back
    await service.store.delete(people[1]["id"])
    await test_db.commit()

    with caplog.at_level(logging.WARNING):
        data = await _get(service, created["documentId"])

    assert data["author"] is None
    assert any("Dangling relation edge" in r.getMessage() for r in caplog.records)


async def test_media_populated(service, blog_types, test_db):
    image = Media(name="cover.png", url="/uploads/cover.png", mime="image/png", size=2048)
    test_db.add(image)
    await test_db.commit()

    with_cover = await _create(service, {"title": "Pic", "cover": image.id})
    missing = await _create(service, {"title": "No pic", "cover": 9999})

    unpopulated = await _get(service, with_cover["documentId"], Populate())
    populated = await _get(service, with_cover["documentId"])

    assert unpopulated["cover"] == image.id
    assert populated["cover"]["url"] == "/uploads/cover.png"
    assert populated["cover"]["mime"] == "image/png"
    assert (await _get(service, missing["documentId"]))["cover"] is None


async def test_media_for_a_page_loads_in_one_call(service, blog_types, test_db, monkeypatch):
    images = [
        Media(name=f"{n}.png", url=f"/uploads/{n}.png", mime="image/png", size=1)
        for n in ("a", "b")
    ]
    test_db.add_all(images)
    await test_db.commit()
    for image in images:
        await _create(service, {"title": image.name, "cover": image.id})
    await _create(service, {"title": "bare"})

    calls = []
    original = service.formatter.media.resolve_media

    async def counting(ids):
        calls.append(list(ids))
        return await original(ids)

    monkeypatch.setattr(service.formatter.media, "resolve_media", counting)
    page = await service.find_documents(
        "articles", build_query_options(populate="cover", sort="title"),
    )

    covers = {d["title"]: d.get("cover") for d in page["data"]}
    assert covers["a.png"]["url"] == "/uploads/a.png"
    assert covers["b.png"]["url"] == "/uploads/b.png"
    assert covers["bare"] is None
    assert calls == [sorted(i.id for i in images)]


async def test_malformed_stored_payload_reads_as_empty(service, blog_types, test_db, caplog):
    created = await _create(service, {"title": "Soon broken"})
    await test_db.execute(
        update(Document)
        .where(Document.id == created["id"])
        .values(data="{not json")
        .execution_options(synchronize_session=False)
    )
    await test_db.commit()
    test_db.expire_all()

    with caplog.at_level(logging.WARNING):
        data = await _get(service, created["documentId"], Populate())

    assert data["documentId"] == created["documentId"]
    assert "title" not in data
    assert any("Malformed document payload" in r.getMessage() for r in caplog.records)


# ─── Atomicity ───────────────────────────────────────────────────

async def test_failed_update_rolls_back_payload_and_edges(
    service, labels, monkeypatch,
):
    red, green, _ = labels
    created = await _create(service, {"title": "Before", "tags": [red["documentId"]]})
    original = service.graph.replace_edges

    async def replace_then_fail(from_id, targets_by_field):
        await original(from_id, targets_by_field)
        raise RuntimeError("storage went away")

    monkeypatch.setattr(service.graph, "replace_edges", replace_then_fail)

    with pytest.raises(RuntimeError):
        await service.update_document(
            "articles", created["documentId"],
            {"title": "After", "tags": [green["documentId"]]},
        )

    monkeypatch.undo()
    data = await _get(service, created["documentId"])
    assert data["title"] == "Before"
    assert [t["label"] for t in data["tags"]] == ["red"]


async def test_failed_create_leaves_nothing_behind(service, labels, monkeypatch):
    async def fail(from_id, targets_by_field):
        raise RuntimeError("storage went away")

    monkeypatch.setattr(service.graph, "replace_edges", fail)

    with pytest.raises(RuntimeError):
        await service.create_document(
            "articles", {"title": "Half", "tags": [labels[0]["documentId"]]},
        )

    page = await service.find_documents(
        "articles", build_query_options(publication_state="preview"),
    )
    assert page["meta"]["pagination"]["total"] == 0
