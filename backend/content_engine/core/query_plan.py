"""Query Plan — normalized query options and the push-down / in-memory decision.

Invariants:
    - Pure: no IO, no clock reads (callers pass `now`)
    - page >= 1, 1 <= page_size <= MAX_PAGE_SIZE after normalization
    - needs_in_memory() is the ONLY place the execution path is decided
    - status is ignored under the live lens (live always means published <= now)

Design Decisions:
    - QueryOptions is a frozen dataclass built once per request, so both execution
      paths read identical, already-validated inputs
    - PublicationWindow is storage-agnostic; the document store turns it into SQL
    - Search and pagination live here beside the plan: they are the in-memory
      steps that follow filter evaluation
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence, TypeVar

from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.domain_types import (
    PublicationState, PublicationStatus, SYSTEM_SORT_FIELDS, TEXT_LIKE_TYPES,
)
from content_engine.core.errors import InvalidQueryError
from content_engine.core.sorting import SortKey, parse_sort

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
DEFAULT_CANDIDATE_CAP = 2000


class PublicationWindow(str, Enum):
    """Which publication statuses a query may see."""
    ANY = "any"
    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"


@dataclass(frozen=True)
class Populate:
    """Which attributes to hydrate. all_fields wins over names."""
    all_fields: bool = False
    names: frozenset[str] = frozenset()

    def includes(self, name: str) -> bool:
        return self.all_fields or name in self.names

    @property
    def requested(self) -> bool:
        return self.all_fields or bool(self.names)


@dataclass(frozen=True)
class QueryOptions:
    filters: dict[str, Any] | None = None
    sort: tuple[SortKey, ...] = ()
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    publication_state: PublicationState = PublicationState.LIVE
    status: PublicationStatus | None = None
    search: str | None = None
    search_field: str | None = None
    populate: Populate = field(default_factory=Populate)
    fields: tuple[str, ...] = ()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def parse_populate(raw: Any) -> Populate:
    """Accept "*", a name, a list of names, or a Strapi-style mapping."""
    if raw is None or raw == "" or raw is False:
        return Populate()
    if raw == "*" or raw is True:
        return Populate(all_fields=True)
    if isinstance(raw, str):
        names = [n.strip() for n in raw.split(",") if n.strip()]
    elif isinstance(raw, dict):
        names = [str(k) for k in raw]
    elif isinstance(raw, (list, tuple, set, frozenset)):
        names = [str(n) for n in raw]
    else:
        raise InvalidQueryError("populate must be '*', a list of names, or an object")
    if "*" in names:
        return Populate(all_fields=True)
    return Populate(names=frozenset(names))


def build_query_options(
    *,
    filters: dict[str, Any] | None = None,
    sort: Sequence[str] | str | None = None,
    page: int | None = None,
    page_size: int | None = None,
    publication_state: PublicationState | str | None = None,
    status: PublicationStatus | str | None = None,
    search: str | None = None,
    search_field: str | None = None,
    populate: Any = None,
    fields: Sequence[str] | None = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> QueryOptions:
    """Validate and normalize raw options into QueryOptions."""
    page = 1 if page is None else int(page)
    page_size = default_page_size if page_size is None else int(page_size)
    if page < 1:
        raise InvalidQueryError("page must be >= 1")
    if page_size < 1:
        raise InvalidQueryError("pageSize must be >= 1")
    try:
        state = PublicationState(publication_state or PublicationState.LIVE)
        parsed_status = PublicationStatus(status) if status else None
    except ValueError as e:
        raise InvalidQueryError(str(e)) from None
    search = search.strip() if isinstance(search, str) else None
    search_field = search_field.strip() if isinstance(search_field, str) else None
    return QueryOptions(
        filters=filters or None,
        sort=tuple(parse_sort(sort)),
        page=page,
        page_size=min(page_size, max_page_size),
        publication_state=state,
        status=parsed_status,
        search=search or None,
        search_field=search_field or None,
        populate=parse_populate(populate),
        fields=tuple(f for f in (fields or ()) if f),
    )


def resolve_publication_window(
    state: PublicationState, status: PublicationStatus | None,
) -> PublicationWindow:
    if state is PublicationState.LIVE:
        return PublicationWindow.PUBLISHED
    if status is None:
        return PublicationWindow.ANY
    return PublicationWindow(status.value)


def needs_in_memory(options: QueryOptions) -> bool:
    """True when the store cannot evaluate the request natively."""
    if options.filters:
        return True
    if options.search:
        return True
    return any(key.field not in SYSTEM_SORT_FIELDS for key in options.sort)


def search_field_names(
    content_type: ContentTypeDefinition, search_field: str | None,
) -> set[str]:
    """Attributes a free-text search looks at. A private field matches nothing."""
    if search_field:
        if search_field in content_type.private_names:
            return set()
        return {search_field}
    names = {
        a.name for a in content_type.attributes
        if a.type in TEXT_LIKE_TYPES and not a.private
    }
    return names or {"documentId"}


def matches_search(
    term: str, names: set[str], get_value: Callable[[str], Any],
) -> bool:
    """Case-insensitive substring match across the given fields."""
    needle = term.lower()
    for name in names:
        value = get_value(name)
        if value is not None and needle in str(value).lower():
            return True
    return False


def paginate(records: Sequence[T], options: QueryOptions) -> list[T]:
    return list(records[options.offset:options.offset + options.page_size])


def pagination_meta(total: int, options: QueryOptions) -> dict:
    return {
        "page": options.page,
        "pageSize": options.page_size,
        "pageCount": math.ceil(total / options.page_size),
        "total": total,
    }
