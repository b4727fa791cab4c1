"""Payload Validation — typed boundary checks for schemaless document payloads.

Invariants:
    - Pure: no IO, never mutates the caller's dict
    - None is always an acceptable value unless the attribute is required
    - Relation fields never reach the stored payload (split_relations removes them)
    - System keys sent back by clients (id, documentId, timestamps, locale) are dropped

Design Decisions:
    - Validate at the write boundary, then treat the payload as opaque everywhere else
    - One checker per AttributeType in an explicit dict (no getattr dispatch)
    - bool is rejected where a number is expected (Python's bool subclasses int)
"""

import re
from datetime import date, datetime
from typing import Any, Callable

from content_engine.core.content_types import AttributeDefinition, ContentTypeDefinition
from content_engine.core.domain_types import AttributeType, SYSTEM_FIELDS
from content_engine.core.errors import PayloadValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fail(attr: AttributeDefinition, expected: str) -> None:
    raise PayloadValidationError(
        f'Field "{attr.name}" must be {expected}.', attr.name,
    )


def _check_string(attr: AttributeDefinition, value: Any) -> None:
    if not isinstance(value, str):
        _fail(attr, "a string")
    if attr.max_length is not None and len(value) > attr.max_length:
        _fail(attr, f"at most {attr.max_length} characters")


def _check_email(attr: AttributeDefinition, value: Any) -> None:
    _check_string(attr, value)
    if value and not _EMAIL_RE.match(value):
        _fail(attr, "a valid email address")


def _check_number(attr: AttributeDefinition, value: Any) -> None:
    if not _is_number(value):
        _fail(attr, "a number")
    if attr.min is not None and value < attr.min:
        _fail(attr, f">= {attr.min}")
    if attr.max is not None and value > attr.max:
        _fail(attr, f"<= {attr.max}")


def _check_boolean(attr: AttributeDefinition, value: Any) -> None:
    if not isinstance(value, bool):
        _fail(attr, "a boolean")


def _check_date(attr: AttributeDefinition, value: Any) -> None:
    if not isinstance(value, str):
        _fail(attr, "an ISO-8601 string")
    if not value or attr.date_type == "time":
        return
    try:
        if attr.date_type == "date":
            date.fromisoformat(value)
        else:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        _fail(attr, "an ISO-8601 string")


def _check_enumeration(attr: AttributeDefinition, value: Any) -> None:
    _check_string(attr, value)
    if attr.enum and value not in attr.enum:
        _fail(attr, f"one of {', '.join(attr.enum)}")


def as_media_id(value: Any) -> int | None:
    """Stored media reference (int, digit string or {"id": ...}) to an id."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    if isinstance(value, dict):
        return as_media_id(value.get("id"))
    return None


def _check_media(attr: AttributeDefinition, value: Any) -> None:
    ids = value if isinstance(value, list) else [value]
    if isinstance(value, list) and not attr.multiple:
        _fail(attr, "a single media id")
    if not all(_is_number(i) or isinstance(i, str) for i in ids):
        _fail(attr, "a media id or list of media ids")


def _check_component(attr: AttributeDefinition, value: Any) -> None:
    if attr.repeatable:
        if not (isinstance(value, list) and all(isinstance(v, dict) for v in value)):
            _fail(attr, "a list of objects")
    elif not isinstance(value, dict):
        _fail(attr, "an object")


def _check_dynamic_zone(attr: AttributeDefinition, value: Any) -> None:
    if not (isinstance(value, list) and all(isinstance(v, dict) for v in value)):
        _fail(attr, "a list of objects")


def _check_any(attr: AttributeDefinition, value: Any) -> None:
    return None


_CHECKERS: dict[AttributeType, Callable[[AttributeDefinition, Any], None]] = {
    AttributeType.TEXT: _check_string,
    AttributeType.RICHTEXT: _check_any,  # blocks JSON or string
    AttributeType.RICHTEXT_MARKDOWN: _check_string,
    AttributeType.EMAIL: _check_email,
    AttributeType.PASSWORD: _check_string,
    AttributeType.NUMBER: _check_number,
    AttributeType.BOOLEAN: _check_boolean,
    AttributeType.DATE: _check_date,
    AttributeType.JSON: _check_any,
    AttributeType.ENUMERATION: _check_enumeration,
    AttributeType.UID: _check_string,
    AttributeType.MEDIA: _check_media,
    AttributeType.COMPONENT: _check_component,
    AttributeType.DYNAMIC_ZONE: _check_dynamic_zone,
}


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return not value
    return False


def validate_payload(
    content_type: ContentTypeDefinition, payload: dict[str, Any],
) -> dict[str, Any]:
    """Check every non-relation value against its attribute. Returns a cleaned copy.

    Raises PayloadValidationError on unknown keys or type mismatches.
    """
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if key in SYSTEM_FIELDS:
            continue
        attr = content_type.attribute(key)
        if attr is None:
            raise PayloadValidationError(f'Unknown field "{key}".', key)
        if value is not None and not attr.is_relation:
            _CHECKERS[attr.type](attr, value)
        cleaned[key] = value
    return cleaned


def check_required(
    content_type: ContentTypeDefinition,
    payload: dict[str, Any],
    relation_fields: dict[str, list[str]],
    partial: bool = False,
) -> None:
    """Every required attribute must hold a non-blank value.

    With partial=True (updates), relation attributes absent from the request
    keep their stored edges and are not checked.
    """
    for attr in content_type.attributes:
        if not attr.required:
            continue
        if attr.is_relation:
            if partial and attr.name not in relation_fields:
                continue
            present = bool(relation_fields.get(attr.name))
        else:
            present = not is_blank(payload.get(attr.name))
        if not present:
            raise PayloadValidationError(f'Field "{attr.name}" is required.', attr.name)


def split_relations(
    content_type: ContentTypeDefinition, payload: dict[str, Any],
) -> tuple[dict[str, Any], dict[str, list[str]]]:
    """Separate relation fields from the stored payload.

    Returns (data, relation_fields) where relation_fields maps each relation
    attribute named in the payload to its ordered list of target documentIds.
    """
    data = dict(payload)
    relation_fields: dict[str, list[str]] = {}
    for attr in content_type.relation_attributes:
        if attr.name in data:
            relation_fields[attr.name] = normalize_relation_targets(
                attr, data.pop(attr.name),
            )
    return data, relation_fields


def normalize_relation_targets(attr: AttributeDefinition, value: Any) -> list[str]:
    """Accept a documentId, {"documentId": ...}, or a list of either."""
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    targets: list[str] = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("documentId")
        if isinstance(item, str) and item:
            if item not in targets:
                targets.append(item)
        elif item is not None:
            raise PayloadValidationError(
                f'Relation "{attr.name}" expects documentId strings.', attr.name,
            )
    if len(targets) > 1 and not attr.is_multi_relation:
        raise PayloadValidationError(
            f'Relation "{attr.name}" accepts a single target.', attr.name,
        )
    return targets
