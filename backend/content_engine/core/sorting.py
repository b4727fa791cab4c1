"""Sorting — sort expression parsing and stable, numeric-aware multi-key ordering.

Invariants:
    - Pure: no IO; values read through the supplied accessor
    - Stable: ties fall through to the next key; final ties keep input order
    - Numeric-aware: "9" < "10", "item2" < "item10"
    - None and "" sort first ascending, last descending
    - Keys the content type does not know are skipped

Design Decisions:
    - Successive stable sorts from the last key to the first (Python's sort keeps
      equal elements in order even with reverse=True), so mixed directions need no
      custom comparator
    - Numbers get their own rank ahead of text so 2 < 10 even when stored as numbers
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence, TypeVar

from content_engine.core.domain_types import SortDirection
from content_engine.core.errors import InvalidQueryError

T = TypeVar("T")

_CHUNK_RE = re.compile(r"(\d+)")


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


def parse_sort(sort: Sequence[str] | str | None) -> list[SortKey]:
    """Parse ["title:asc", "createdAt:desc"] (or a comma list) into SortKeys."""
    if not sort:
        return []
    if isinstance(sort, str):
        sort = [s for s in sort.split(",") if s.strip()]
    keys = []
    for expr in sort:
        field, _, direction = expr.strip().partition(":")
        if not field:
            raise InvalidQueryError(f"Invalid sort expression '{expr}'")
        try:
            parsed = SortDirection((direction or "asc").lower())
        except ValueError:
            raise InvalidQueryError(
                f"Invalid sort direction '{direction}' in '{expr}'"
            ) from None
        keys.append(SortKey(field, parsed))
    return keys


def natural_key(value: Any) -> tuple:
    """Comparable key: (rank, payload). Blank < numbers < text."""
    if value is None or value == "":
        return (0,)
    if isinstance(value, bool):
        return (2, [(1, str(value).lower())])
    if isinstance(value, (int, float)):
        return (1, float(value))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (1, value.timestamp())
    chunks = []
    for part in _CHUNK_RE.split(str(value)):
        if not part:
            continue
        if part.isdigit():
            chunks.append((0, int(part)))
        else:
            chunks.append((1, part.casefold()))
    return (2, chunks)


def sort_records(
    records: Sequence[T],
    keys: Sequence[SortKey],
    get_value: Callable[[T, str], Any],
    known_fields: frozenset[str],
) -> list[T]:
    """Stable multi-key sort. Unknown fields are skipped."""
    ordered = list(records)
    for key in reversed([k for k in keys if k.field in known_fields]):
        ordered.sort(
            key=lambda r, f=key.field: natural_key(get_value(r, f)),
            reverse=key.descending,
        )
    return ordered
