"""Query-String Parsing — Strapi-style REST parameters into QueryOptions.

Invariants:
    - Bracket keys nest: filters[slug][$eq]=x → {"filters": {"slug": {"$eq": "x"}}}
    - Repeated keys (and key[]) collect into a list in arrival order
    - Malformed JSON or non-integer paging raises InvalidQueryError (400)
    - Option semantics (caps, defaults, enums) stay in core/query_plan.py

Design Decisions:
    - Two steps: nest_params() rebuilds the qs-style tree, parse_content_query()
      interprets it; each is testable without a request object
    - filters, sort and populate also accept a JSON string for clients that
      cannot emit bracket notation
"""

import json
import re
from typing import Any, Iterable, Mapping

from content_engine.core.errors import InvalidQueryError
from content_engine.core.query_plan import QueryOptions, build_query_options

_BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")


def _split_key(key: str) -> tuple[list[str], bool]:
    """'filters[a][$eq]' → (['filters', 'a', '$eq'], False); 'sort[]' appends."""
    append = key.endswith("[]")
    if append:
        key = key[:-2]
    head, bracket, rest = key.partition("[")
    parts = [head]
    if bracket:
        parts.extend(_BRACKET_RE.findall(bracket + rest))
    return parts, append


def nest_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Rebuild a nested mapping from flat (key, value) query pairs."""
    tree: dict[str, Any] = {}
    for key, value in items:
        parts, append = _split_key(key)
        node = tree
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        last = parts[-1]
        if last in node and not isinstance(node[last], dict):
            existing = node[last]
            node[last] = (existing if isinstance(existing, list) else [existing]) + [value]
        elif append:
            node[last] = [value]
        else:
            node[last] = value
    return tree


def _digit_dict_values(raw: dict) -> list | None:
    if raw and all(str(k).isdigit() for k in raw):
        return [raw[k] for k in sorted(raw, key=int)]
    return None


def _load_json(name: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} is not valid JSON") from None


def _filters(raw: Any) -> dict[str, Any] | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        raw = _load_json("filters", raw)
    if not isinstance(raw, dict):
        raise InvalidQueryError("filters must be an object")
    return raw or None


def _string_list(name: str, raw: Any) -> list[str]:
    """Comma list, repeated key, JSON array, or key[0]= form."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        if raw.startswith("["):
            raw = _load_json(name, raw)
        else:
            return [s.strip() for s in raw.split(",") if s.strip()]
    if isinstance(raw, dict):
        values = _digit_dict_values(raw)
        if values is None:
            raise InvalidQueryError(f"{name} must be a list")
        raw = values
    if not isinstance(raw, list):
        raise InvalidQueryError(f"{name} must be a list")
    out: list[str] = []
    for item in raw:
        out.extend(_string_list(name, item) if isinstance(item, str) else [str(item)])
    return out


def _populate(raw: Any) -> Any:
    if isinstance(raw, str) and raw.startswith("["):
        return _load_json("populate", raw)
    if isinstance(raw, dict):
        values = _digit_dict_values(raw)
        return values if values is not None else raw
    return raw


def _int(name: str, raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} must be an integer") from None


def _first(params: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = params.get(name)
        if isinstance(value, list):
            value = value[0] if value else None
        if value not in (None, ""):
            return value
    return None


def parse_content_query(
    items: Iterable[tuple[str, str]],
    *,
    default_page_size: int,
    max_page_size: int,
) -> QueryOptions:
    """Interpret request query pairs as QueryOptions."""
    params = nest_params(items)
    pagination = params.get("pagination")
    if not isinstance(pagination, dict):
        pagination = {}
    fields = [f for f in _string_list("fields", params.get("fields")) if f != "*"]
    return build_query_options(
        filters=_filters(params.get("filters")),
        sort=_string_list("sort", params.get("sort")),
        page=_int("page", pagination.get("page", params.get("page"))),
        page_size=_int("pageSize", pagination.get("pageSize", params.get("pageSize"))),
        publication_state=_first(params, "publicationState"),
        status=_first(params, "status"),
        search=_first(params, "_q", "q", "search"),
        search_field=_first(params, "searchField", "searchInField"),
        populate=_populate(params.get("populate")),
        fields=fields,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
