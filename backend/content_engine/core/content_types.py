"""Content Type Definitions — runtime schema for documents whose shape is data.

Invariants:
    - Attribute names are unique within a content type (enforced by parse)
    - Unknown attribute types are rejected at parse time, never at query time
    - Definitions are frozen: the engine reads them, the registry owns them

Design Decisions:
    - Plain frozen dataclasses, not ORM rows: core stays free of IO
    - Aliases (enum, dynamic-zone, collection, single) normalized on parse so the
      rest of the engine only ever sees canonical enum members
"""

from dataclasses import dataclass, field
from typing import Any

from content_engine.core.domain_types import (
    ATTRIBUTE_TYPE_ALIASES, CONTENT_KIND_ALIASES, MULTI_RELATION_KINDS,
    AttributeType, ContentKind, ContentTypeId, PublicationStatus, RelationKind,
)


@dataclass(frozen=True)
class AttributeDefinition:
    """One field of a content type."""
    name: str
    type: AttributeType
    required: bool = False
    unique: bool = False
    private: bool = False
    relation: RelationKind | None = None
    target: str | None = None
    multiple: bool = False
    repeatable: bool = False
    enum: tuple[str, ...] = ()
    min: float | None = None
    max: float | None = None
    max_length: int | None = None
    date_type: str | None = None

    @property
    def is_relation(self) -> bool:
        return self.type is AttributeType.RELATION

    @property
    def is_multi_relation(self) -> bool:
        return self.relation in MULTI_RELATION_KINDS

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AttributeDefinition":
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("attribute requires a non-empty name")
        attr_type = parse_attribute_type(raw.get("type"))
        relation = None
        if attr_type is AttributeType.RELATION:
            try:
                relation = RelationKind(raw.get("relation", RelationKind.ONE_TO_ONE.value))
            except ValueError:
                raise ValueError(
                    f"attribute '{name}' has unknown relation kind {raw.get('relation')!r}"
                ) from None
        return cls(
            name=name,
            type=attr_type,
            required=bool(raw.get("required", False)),
            unique=bool(raw.get("unique", False)),
            private=bool(raw.get("private", False)),
            relation=relation,
            target=raw.get("target"),
            multiple=bool(raw.get("multiple", False)),
            repeatable=bool(raw.get("repeatable", False)),
            enum=tuple(raw.get("enum") or ()),
            min=raw.get("min"),
            max=raw.get("max"),
            max_length=raw.get("maxLength"),
            date_type=raw.get("dateType"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "type": self.type.value}
        for key, value in (
            ("required", self.required), ("unique", self.unique),
            ("private", self.private), ("multiple", self.multiple),
            ("repeatable", self.repeatable),
        ):
            if value:
                out[key] = True
        if self.relation is not None:
            out["relation"] = self.relation.value
        if self.target:
            out["target"] = self.target
        if self.enum:
            out["enum"] = list(self.enum)
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        if self.max_length is not None:
            out["maxLength"] = self.max_length
        if self.date_type:
            out["dateType"] = self.date_type
        return out


@dataclass(frozen=True)
class ContentTypeDefinition:
    """A content type as resolved by the registry."""
    id: ContentTypeId
    singular_id: str
    plural_id: str
    kind: ContentKind = ContentKind.COLLECTION
    display_name: str = ""
    attributes: tuple[AttributeDefinition, ...] = ()
    draft_publish: bool = False
    default_publication_state: PublicationStatus = PublicationStatus.DRAFT
    _by_name: dict[str, AttributeDefinition] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self):
        self._by_name.update({a.name: a for a in self.attributes})

    def attribute(self, name: str) -> AttributeDefinition | None:
        return self._by_name.get(name)

    @property
    def attribute_names(self) -> frozenset[str]:
        return frozenset(self._by_name)

    @property
    def relation_attributes(self) -> list[AttributeDefinition]:
        return [a for a in self.attributes if a.is_relation]

    @property
    def unique_attributes(self) -> list[AttributeDefinition]:
        return [a for a in self.attributes if a.unique]

    @property
    def private_names(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.private)


def parse_attribute_type(raw: object) -> AttributeType:
    """Normalize a stored type string, accepting documented aliases."""
    if isinstance(raw, str):
        if raw in ATTRIBUTE_TYPE_ALIASES:
            return ATTRIBUTE_TYPE_ALIASES[raw]
        try:
            return AttributeType(raw)
        except ValueError:
            pass
    raise ValueError(f"unknown attribute type {raw!r}")


def parse_content_kind(raw: object) -> ContentKind:
    if isinstance(raw, str):
        if raw in CONTENT_KIND_ALIASES:
            return CONTENT_KIND_ALIASES[raw]
        try:
            return ContentKind(raw)
        except ValueError:
            pass
    raise ValueError(f"unknown content type kind {raw!r}")


def parse_attributes(raw_attributes: list[dict]) -> tuple[AttributeDefinition, ...]:
    """Parse an attribute list, rejecting duplicate names."""
    parsed = tuple(AttributeDefinition.from_dict(a) for a in raw_attributes)
    seen: set[str] = set()
    for attr in parsed:
        if attr.name in seen:
            raise ValueError(f"duplicate attribute name '{attr.name}'")
        seen.add(attr.name)
    return parsed
