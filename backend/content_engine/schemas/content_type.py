"""Content Type Schemas — registry request/response models.

Invariants:
    - singularId / pluralId: lowercase, start with a letter, [a-z0-9-] after
    - singularId != pluralId
    - Attribute entries must carry name and type; other keys pass through to
      core.content_types for type-specific parsing
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from content_engine.core.content_types import ContentTypeDefinition

_API_ID_PATTERN = r"^[a-z][a-z0-9-]*$"


class AttributeSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=40)


class ContentTypeCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    singular_id: str = Field(alias="singularId", max_length=100, pattern=_API_ID_PATTERN)
    plural_id: str = Field(alias="pluralId", max_length=100, pattern=_API_ID_PATTERN)
    display_name: str = Field(alias="displayName", min_length=1, max_length=200)
    kind: str = "collectionType"
    description: str | None = Field(None, max_length=2000)
    draft_publish: bool = Field(False, alias="draftPublish")
    default_publication_state: Literal["draft", "published"] = Field(
        "draft", alias="defaultPublicationState",
    )
    attributes: list[AttributeSchema] = Field(default_factory=list)

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("displayName cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def ids_differ(self) -> "ContentTypeCreate":
        if self.singular_id == self.plural_id:
            raise ValueError("singularId and pluralId must differ")
        return self

    def attribute_dicts(self) -> list[dict[str, Any]]:
        return [a.model_dump() for a in self.attributes]


class ContentTypeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    singular_id: str = Field(alias="singularId")
    plural_id: str = Field(alias="pluralId")
    display_name: str = Field(alias="displayName")
    kind: str
    draft_publish: bool = Field(alias="draftPublish")
    default_publication_state: str = Field(alias="defaultPublicationState")
    attributes: list[dict[str, Any]]

    @classmethod
    def from_definition(cls, ct: ContentTypeDefinition) -> "ContentTypeResponse":
        return cls(
            id=ct.id,
            singular_id=ct.singular_id,
            plural_id=ct.plural_id,
            display_name=ct.display_name,
            kind=ct.kind.value,
            draft_publish=ct.draft_publish,
            default_publication_state=ct.default_publication_state.value,
            attributes=[a.to_dict() for a in ct.attributes],
        )
