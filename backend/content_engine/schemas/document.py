"""Document Schemas — write-body envelope for the content API.

Invariants:
    - Accepts {"data": {...}} or a bare object
    - publishedAt and locale are lifted out of the payload; the rest passes through
      untouched (typed checks happen against the content type in core/payload.py)

Design Decisions:
    - model_validator(mode="before") unwraps the envelope, so routes see one shape
    - "publishedAt given as null" differs from "not given": published_at_or_unset
      keeps the distinction via model_fields_set
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from content_engine.core.documents import UNSET

_LIFTED_KEYS = ("publishedAt", "locale")


class DocumentWrite(BaseModel):
    """Body of POST / PUT on /api/{pluralId}."""
    model_config = ConfigDict(populate_by_name=True)

    data: dict[str, Any] = Field(default_factory=dict)
    locale: str | None = Field(None, min_length=1, max_length=10)
    published_at: datetime | None = Field(None, alias="publishedAt")

    @model_validator(mode="before")
    @classmethod
    def unwrap_envelope(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            raise ValueError("request body must be a JSON object")
        enveloped = isinstance(raw.get("data"), dict)
        data = dict(raw["data"] if enveloped else raw)
        unwrapped: dict[str, Any] = {}
        for key in _LIFTED_KEYS:
            if key in data:
                unwrapped[key] = data.pop(key)
            elif enveloped and key in raw:
                unwrapped[key] = raw[key]
        unwrapped["data"] = data
        return unwrapped

    @property
    def published_at_or_unset(self) -> object:
        if "published_at" in self.model_fields_set:
            return self.published_at
        return UNSET


class PublishRequest(BaseModel):
    """Optional publish time; omitted means now, a future time schedules."""
    published_at: datetime | None = Field(None, alias="publishedAt")
