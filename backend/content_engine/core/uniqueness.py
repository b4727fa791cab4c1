"""Uniqueness Rules — normalized comparison of unique-flagged attribute values.

Invariants:
    - Pure: the caller supplies the scanned (internal_id, payload) pairs
    - Strings are trimmed, then compared case-sensitively
    - Numbers compare exactly; a boolean never equals a number
    - None, "" and whitespace-only values never collide

Design Decisions:
    - Full scan per unique attribute per write: O(n) in the type's document count.
      Fine for the moderate cardinalities this engine targets; a type with many
      thousands of documents and unique fields should move the constraint into a
      database index instead
"""

from typing import Any, Iterable

from content_engine.core.content_types import AttributeDefinition


def normalize_unique_value(value: Any) -> Any:
    """Comparable form of a value, or None when the value is exempt."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def same_unique_value(a: Any, b: Any) -> bool:
    na, nb = normalize_unique_value(a), normalize_unique_value(b)
    if na is None or nb is None:
        return False
    if isinstance(na, bool) != isinstance(nb, bool):
        return False
    return na == nb


def find_unique_conflict(
    unique_attributes: Iterable[AttributeDefinition],
    candidate: dict[str, Any],
    existing: Iterable[tuple[int, dict[str, Any]]],
    exclude_id: int | None = None,
) -> str | None:
    """Name of the first unique attribute whose value another document holds."""
    others = [(i, p) for i, p in existing if i != exclude_id]
    for attr in unique_attributes:
        value = candidate.get(attr.name)
        if normalize_unique_value(value) is None:
            continue
        for _, payload in others:
            if same_unique_value(value, payload.get(attr.name)):
                return attr.name
    return None
