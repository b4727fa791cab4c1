"""Uniqueness Rules — normalized comparison and conflict detection."""

from content_engine.core.content_types import AttributeDefinition
from content_engine.core.domain_types import AttributeType
from content_engine.core.uniqueness import (
    find_unique_conflict, normalize_unique_value, same_unique_value,
)

SLUG = AttributeDefinition(name="slug", type=AttributeType.UID, unique=True)
CODE = AttributeDefinition(name="code", type=AttributeType.NUMBER, unique=True)


def test_blank_values_are_exempt():
    assert normalize_unique_value(None) is None
    assert normalize_unique_value("") is None
    assert normalize_unique_value("   ") is None
    assert not same_unique_value("", "")
    assert not same_unique_value(None, None)


def test_strings_trimmed_then_case_sensitive():
    assert same_unique_value("hello ", " hello")
    assert not same_unique_value("Hello", "hello")


def test_boolean_never_equals_number():
    assert not same_unique_value(True, 1)
    assert same_unique_value(1, 1.0)


def test_conflict_found_against_other_documents():
    existing = [(1, {"slug": "hello"}), (2, {"slug": "world", "code": 7})]
    assert find_unique_conflict([SLUG, CODE], {"slug": " hello "}, existing) == "slug"
    assert find_unique_conflict([SLUG, CODE], {"slug": "new", "code": 7}, existing) == "code"
    assert find_unique_conflict([SLUG, CODE], {"slug": "new"}, existing) is None


def test_own_row_is_excluded_on_update():
    existing = [(1, {"slug": "hello"})]
    assert find_unique_conflict([SLUG], {"slug": "hello"}, existing, exclude_id=1) is None


def test_empty_candidate_never_conflicts():
    existing = [(1, {"slug": ""}), (2, {"slug": None})]
    assert find_unique_conflict([SLUG], {"slug": ""}, existing) is None
    assert find_unique_conflict([SLUG], {}, existing) is None
