"""Sorting — expression parsing, natural ordering, stability across keys."""

from datetime import datetime, timezone

import pytest

from content_engine.core.domain_types import SortDirection
from content_engine.core.errors import InvalidQueryError
from content_engine.core.sorting import SortKey, natural_key, parse_sort, sort_records

KNOWN = frozenset({"title", "cat", "n", "v"})


def _get(record: dict, field: str):
    return record.get(field)


def test_parse_sort_list_and_comma_string():
    expected = [SortKey("title", SortDirection.DESC), SortKey("views", SortDirection.ASC)]
    assert parse_sort(["title:desc", "views"]) == expected
    assert parse_sort("title:DESC, views") == expected
    assert parse_sort(None) == []


def test_parse_sort_rejects_bad_direction():
    with pytest.raises(InvalidQueryError):
        parse_sort(["title:sideways"])


def test_numeric_aware_ordering():
    values = ["item10", "item2", "Item1"]
    assert sorted(values, key=natural_key) == ["Item1", "item2", "item10"]
    assert sorted(["10", "9"], key=natural_key) == ["9", "10"]
    assert sorted([10, 2.5, 3], key=natural_key) == [2.5, 3, 10]


def test_naive_and_aware_datetimes_compare_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert natural_key(naive) == natural_key(aware)


def test_blanks_first_ascending_last_descending():
    records = [{"v": "b"}, {"v": None}, {"v": "a"}, {"v": ""}]
    asc = sort_records(records, [SortKey("v")], _get, KNOWN)
    assert [r["v"] for r in asc] == [None, "", "a", "b"]
    desc = sort_records(records, [SortKey("v", SortDirection.DESC)], _get, KNOWN)
    assert [r["v"] for r in desc] == ["b", "a", None, ""]


def test_ties_keep_input_order_in_both_directions():
    records = [{"v": 1, "n": "x"}, {"v": 1, "n": "y"}, {"v": 0, "n": "z"}]
    desc = sort_records(records, [SortKey("v", SortDirection.DESC)], _get, KNOWN)
    assert [r["n"] for r in desc] == ["x", "y", "z"]
    asc = sort_records(records, [SortKey("v")], _get, KNOWN)
    assert [r["n"] for r in asc] == ["z", "x", "y"]


def test_multi_key_mixed_directions():
    records = [
        {"cat": "b", "title": "1"},
        {"cat": "a", "title": "2"},
        {"cat": "a", "title": "1"},
    ]
    keys = [SortKey("cat"), SortKey("title", SortDirection.DESC)]
    ordered = sort_records(records, keys, _get, KNOWN)
    assert [(r["cat"], r["title"]) for r in ordered] == [("a", "2"), ("a", "1"), ("b", "1")]


def test_unknown_sort_fields_are_skipped():
    records = [{"v": 2}, {"v": 1}]
    assert sort_records(records, [SortKey("nope")], _get, KNOWN) == records


def test_does_not_mutate_input():
    records = [{"v": 2}, {"v": 1}]
    sort_records(records, [SortKey("v")], _get, KNOWN)
    assert records == [{"v": 2}, {"v": 1}]
