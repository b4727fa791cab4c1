"""Query-String Parsing — bracket nesting and QueryOptions interpretation."""

import pytest

from content_engine.api.query_params import nest_params, parse_content_query
from content_engine.core.domain_types import PublicationState, PublicationStatus, SortDirection
from content_engine.core.errors import InvalidQueryError


def _parse(items):
    return parse_content_query(items, default_page_size=25, max_page_size=100)


def test_nest_params_builds_tree():
    tree = nest_params([
        ("filters[slug][$eq]", "x"),
        ("filters[$or][0][title]", "a"),
        ("filters[$or][1][title]", "b"),
        ("page", "2"),
    ])
    assert tree == {
        "filters": {
            "slug": {"$eq": "x"},
            "$or": {"0": {"title": "a"}, "1": {"title": "b"}},
        },
        "page": "2",
    }


def test_repeated_and_appended_keys_collect_in_order():
    tree = nest_params([("sort", "a"), ("sort", "b"), ("populate[]", "x"), ("populate[]", "y")])
    assert tree == {"sort": ["a", "b"], "populate": ["x", "y"]}


def test_defaults():
    options = _parse([])
    assert options.page == 1
    assert options.page_size == 25
    assert options.filters is None
    assert options.publication_state is PublicationState.LIVE


def test_bracket_filters_and_pagination():
    options = _parse([
        ("filters[views][$gte]", "5"),
        ("pagination[page]", "2"),
        ("pagination[pageSize]", "500"),
    ])
    assert options.filters == {"views": {"$gte": "5"}}
    assert options.page == 2
    assert options.page_size == 100


def test_top_level_paging_aliases():
    options = _parse([("page", "3"), ("pageSize", "10")])
    assert (options.page, options.page_size) == (3, 10)


def test_json_filters():
    options = _parse([("filters", '{"title": {"$eq": "x"}}')])
    assert options.filters == {"title": {"$eq": "x"}}


@pytest.mark.parametrize("items", [
    [("filters", "{broken")],
    [("filters", "[1, 2]")],
    [("pagination[page]", "one")],
    [("sort", "[broken")],
    [("publicationState", "everything")],
])
def test_malformed_values_raise(items):
    with pytest.raises(InvalidQueryError):
        _parse(items)


@pytest.mark.parametrize("items", [
    [("sort", "title:desc,views")],
    [("sort", "title:desc"), ("sort", "views")],
    [("sort[0]", "title:desc"), ("sort[1]", "views")],
    [("sort", '["title:desc", "views"]')],
])
def test_sort_forms(items):
    options = _parse(items)
    assert [(k.field, k.direction) for k in options.sort] == [
        ("title", SortDirection.DESC), ("views", SortDirection.ASC),
    ]


def test_populate_forms():
    assert _parse([("populate", "*")]).populate.all_fields
    assert _parse([("populate[0]", "author"), ("populate[1]", "tags")]).populate.names == {
        "author", "tags",
    }
    assert _parse([("populate[author][fields][0]", "name")]).populate.names == {"author"}


def test_fields_star_means_everything():
    assert _parse([("fields", "*")]).fields == ()
    assert _parse([("fields[0]", "title")]).fields == ("title",)


def test_publication_and_search_options():
    options = _parse([
        ("publicationState", "preview"), ("status", "draft"),
        ("_q", " hello "), ("searchField", "title"),
    ])
    assert options.publication_state is PublicationState.PREVIEW
    assert options.status is PublicationStatus.DRAFT
    assert options.search == "hello"
    assert options.search_field == "title"
