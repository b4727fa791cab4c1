"""Filter Trees — parse the operator DSL into an AST and evaluate it against documents.

Invariants:
    - Pure: no IO; evaluation reads values only through the supplied accessor
    - One recursive evaluator for every caller (no per-path filter semantics)
    - Ordering operators coerce to float (numbers, numeric strings, ISO dates as
      epoch millis); anything non-coercible compares False, never raises
    - Equality is strict: True never equals 1
    - Unknown operators raise InvalidQueryError at parse time

Design Decisions:
    - Tagged union (Condition | FilterGroup) over nested dicts: the shape is checked
      once at parse, evaluation never re-inspects raw input
    - A mapping is the AND of its entries; several operators under one field are ANDed
    - Bare list under a field means $in (Strapi convention)
    - Filters on fields the content type does not know, or marks private, are
      dropped at parse
    - Relation conditions test membership in the ordered list of target documentIds
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Union

from content_engine.core.content_types import ContentTypeDefinition
from content_engine.core.domain_types import AttributeType, SYSTEM_FIELDS
from content_engine.core.errors import InvalidQueryError
from content_engine.core.payload import is_blank


@dataclass(frozen=True)
class Condition:
    """Leaf: one operator applied to one field."""
    field: str
    operator: str
    operand: Any
    relation: bool = False


@dataclass(frozen=True)
class FilterGroup:
    """Branch: AND / OR over child nodes."""
    combinator: Literal["and", "or"]
    children: tuple["FilterNode", ...]


FilterNode = Union[Condition, FilterGroup]
ValueGetter = Callable[[str], Any]


# ─── Coercion ────────────────────────────────────────────────────

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_comparable(value: Any) -> float | None:
    """Numeric-or-epoch form of a value, or None when it has none."""
    if _is_number(value):
        return float(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_comparable(parsed)
    return None


def strict_equal(a: Any, b: Any) -> bool:
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


# ─── Operators ───────────────────────────────────────────────────

def _compare(test: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def op(value: Any, operand: Any) -> bool:
        left, right = to_comparable(value), to_comparable(operand)
        return left is not None and right is not None and test(left, right)
    return op


def _string_op(test: Callable[[str, str], bool], fold: bool = False):
    def op(value: Any, operand: Any) -> bool:
        if not isinstance(value, str) or operand is None:
            return False
        needle = str(operand)
        if fold:
            return test(value.lower(), needle.lower())
        return test(value, needle)
    return op


def _between(value: Any, operand: Any) -> bool:
    low, high = operand
    v, lo, hi = to_comparable(value), to_comparable(low), to_comparable(high)
    return v is not None and lo is not None and hi is not None and lo <= v <= hi


def _is_null(value: Any) -> bool:
    return value is None or value == ""


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": strict_equal,
    "$ne": lambda v, o: not strict_equal(v, o),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$in": lambda v, o: any(strict_equal(v, x) for x in o),
    "$notIn": lambda v, o: not any(strict_equal(v, x) for x in o),
    "$contains": _string_op(lambda a, b: b in a),
    "$containsi": _string_op(lambda a, b: b in a, fold=True),
    "$startsWith": _string_op(str.startswith),
    "$startsWithi": _string_op(str.startswith, fold=True),
    "$endsWith": _string_op(str.endswith),
    "$endsWithi": _string_op(str.endswith, fold=True),
    "$null": lambda v, o: _is_null(v) == o,
    "$empty": lambda v, o: is_blank(v) == o,
    "$notEmpty": lambda v, o: (not is_blank(v)) == o,
    "$between": _between,
}

OPERATORS = frozenset(_OPERATORS)
_LIST_OPERATORS = frozenset({"$in", "$notIn"})
_FLAG_OPERATORS = frozenset({"$null", "$empty", "$notEmpty"})
_CASTABLE_OPERATORS = frozenset({"$eq", "$ne", "$in", "$notIn"})

# System fields with a non-string native type
_SYSTEM_FIELD_TYPES = {"id": AttributeType.NUMBER}


def _match_relation(operator: str, targets: list[str], operand: Any) -> bool:
    if operator == "$eq":
        return operand in targets
    if operator == "$ne":
        return operand not in targets
    if operator == "$in":
        return any(t in operand for t in targets)
    if operator == "$notIn":
        return not any(t in operand for t in targets)
    if operator in ("$null", "$empty"):
        return (not targets) == operand
    if operator == "$notEmpty":
        return bool(targets) == operand
    return any(_OPERATORS[operator](t, operand) for t in targets)


# ─── Evaluation ──────────────────────────────────────────────────

def evaluate(node: FilterNode, get_value: ValueGetter) -> bool:
    """Recursively evaluate a filter tree for one document."""
    if isinstance(node, FilterGroup):
        results = (evaluate(child, get_value) for child in node.children)
        return all(results) if node.combinator == "and" else any(results)
    value = get_value(node.field)
    if node.relation:
        return _match_relation(node.operator, value or [], node.operand)
    return _OPERATORS[node.operator](value, node.operand)


def relation_fields_in(node: FilterNode | None) -> set[str]:
    """Relation attributes a tree references (their edges must be preloaded)."""
    if node is None:
        return set()
    if isinstance(node, FilterGroup):
        return set().union(*(relation_fields_in(c) for c in node.children))
    return {node.field} if node.relation else set()


# ─── Parsing ─────────────────────────────────────────────────────

def _as_list(raw: Any) -> list | None:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and all(str(k).isdigit() for k in raw):
        return [raw[k] for k in sorted(raw, key=lambda k: int(k))]
    return None


def _as_flag(operator: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    raise InvalidQueryError(f"{operator} expects true or false")


def _cast(attr_type: AttributeType | None, raw: Any) -> Any:
    """Cast query-string operands to the attribute's native type."""
    if not isinstance(raw, str):
        return raw
    if attr_type is AttributeType.NUMBER:
        try:
            number = float(raw)
        except ValueError:
            return raw
        return int(number) if number.is_integer() and "." not in raw else number
    if attr_type is AttributeType.BOOLEAN and raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    return raw


def _parse_condition(
    field: str, operator: str, raw: Any,
    attr_type: AttributeType | None, relation: bool,
) -> Condition:
    if operator not in OPERATORS:
        raise InvalidQueryError(f"Unknown filter operator '{operator}' on '{field}'")
    operand = raw
    if operator in _LIST_OPERATORS:
        operand = _as_list(raw)
        if operand is None:
            operand = [raw]
        if operator in _CASTABLE_OPERATORS:
            operand = [_cast(attr_type, x) for x in operand]
        operand = tuple(operand)
    elif operator == "$between":
        operand = _as_list(raw)
        if operand is None and isinstance(raw, str) and "," in raw:
            operand = [p.strip() for p in raw.split(",")]
        if operand is None or len(operand) != 2:
            raise InvalidQueryError(f"$between on '{field}' expects [low, high]")
        operand = tuple(operand)
    elif operator in _FLAG_OPERATORS:
        operand = _as_flag(operator, raw)
    elif operator in _CASTABLE_OPERATORS:
        operand = _cast(attr_type, raw)
    return Condition(field, operator, operand, relation)


def _parse_field(
    field: str, raw: Any, content_type: ContentTypeDefinition,
) -> list[FilterNode]:
    attr = content_type.attribute(field)
    attr_type = attr.type if attr else _SYSTEM_FIELD_TYPES.get(field)
    relation = bool(attr and attr.is_relation)
    if relation and isinstance(raw, dict) and "documentId" in raw:
        raw = raw["documentId"]
    if isinstance(raw, dict) and raw and all(str(k).startswith("$") for k in raw):
        return [
            _parse_condition(field, op, operand, attr_type, relation)
            for op, operand in raw.items()
        ]
    if isinstance(raw, list):
        return [_parse_condition(field, "$in", raw, attr_type, relation)]
    if isinstance(raw, dict) and any(str(k).startswith("$") for k in raw):
        raise InvalidQueryError(f"Filter on '{field}' mixes operators and values")
    return [_parse_condition(field, "$eq", raw, attr_type, relation)]


def _parse_mapping(
    filters: dict[str, Any], content_type: ContentTypeDefinition,
) -> list[FilterNode]:
    nodes: list[FilterNode] = []
    known = (content_type.attribute_names - content_type.private_names) | SYSTEM_FIELDS
    for key, raw in filters.items():
        if key in ("$and", "$or"):
            branches = _as_list(raw)
            if branches is None or not all(isinstance(b, dict) for b in branches):
                raise InvalidQueryError(f"{key} expects a list of filter objects")
            children = tuple(
                _group("and", _parse_mapping(b, content_type)) for b in branches
            )
            nodes.append(FilterGroup(key[1:], children))
        elif key.startswith("$"):
            raise InvalidQueryError(f"Unknown filter operator '{key}'")
        elif key in known:
            nodes.extend(_parse_field(key, raw, content_type))
    return nodes


def _group(combinator: Literal["and", "or"], nodes: list[FilterNode]) -> FilterNode:
    if len(nodes) == 1:
        return nodes[0]
    return FilterGroup(combinator, tuple(nodes))


def parse_filters(
    filters: dict[str, Any] | None, content_type: ContentTypeDefinition,
) -> FilterNode | None:
    """Parse a raw filter mapping into an AST. None when nothing applies."""
    if not filters:
        return None
    if not isinstance(filters, dict):
        raise InvalidQueryError("filters must be an object")
    nodes = _parse_mapping(filters, content_type)
    if not nodes:
        return None
    return _group("and", nodes)
