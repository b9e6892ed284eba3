"""Schema/Entry Mapper - dicts (parsed JSON) to domain models and back.

Invariants:
    - Required key absent => InvalidDataError naming the key; nothing else fails
    - Optional key absent => value from the explicit defaults table below
    - Unknown or missing field type => FieldType.TEXT
    - Timestamps decode from epoch milliseconds; missing, non-numeric or out of
      range => now (UTC)
    - Optional key of the wrong shape (options not a list, fieldValues not an
      object) => default, same as absent
    - Non-integer section bounds => InvalidDataError naming the key
    - Encoding always emits integer epoch milliseconds and camelCase keys
    - Decoded sections are sorted by index regardless of input order
    - form_to_dict(form_from_dict(x)) == x for well-formed x

Design Decisions:
    - Explicit REQUIRED/DEFAULTS tables over implicit .get() fallbacks: the split
      between fail and default is readable in one place
    - Id synthesis from title lives in form_from_document (asset/API boundary),
      form_from_dict itself requires an id
"""

import copy
import re
from datetime import datetime
from typing import Any, Mapping

from dynaform.core.domain_types import FieldType
from dynaform.core.errors import InvalidDataError
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm, FieldOption, FormField, FormSection
from dynaform.core.timestamps import from_epoch_millis, to_epoch_millis, utc_now


# ─── Key Tables ──────────────────────────────────────────────────

REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    "form": ("id", "title"),
    "field": ("uuid", "type", "name", "label"),
    "section": ("uuid", "title", "from", "to", "index"),
    "entry": ("id", "formId"),
}

DEFAULTS: dict[str, dict[str, Any]] = {
    "form": {"fields": [], "sections": []},
    "field": {"required": False, "options": [], "value": "", "validationError": None},
    "option": {"label": "", "value": ""},
    "entry": {
        "sourceEntryId": None, "fieldValues": {},
        "isComplete": False, "isDraft": True,
    },
}

_NON_SLUG = re.compile(r"[^a-z0-9-]")
_ARRAY = (list, tuple)


def _require(raw: Mapping[str, Any], record: str) -> None:
    if not isinstance(raw, Mapping):
        raise InvalidDataError(REQUIRED_KEYS[record][0], record)
    for key in REQUIRED_KEYS[record]:
        if raw.get(key) is None:
            raise InvalidDataError(key, record)


def _optional(raw: Mapping[str, Any], record: str, key: str, kind: type | tuple = object) -> Any:
    value = raw.get(key)
    if value is None or not isinstance(value, kind):
        return copy.copy(DEFAULTS[record][key])
    return value


def _timestamp(raw: Mapping[str, Any], key: str) -> datetime:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return utc_now()
    try:
        return from_epoch_millis(value)
    except (OverflowError, OSError, ValueError):
        return utc_now()


def _integer(raw: Mapping[str, Any], record: str, key: str) -> int:
    try:
        return int(raw[key])
    except (OverflowError, TypeError, ValueError):
        raise InvalidDataError(key, record) from None


def derive_form_id(title: str) -> str:
    """Slug used when a form document carries no id."""
    return _NON_SLUG.sub("", title.lower().replace(" ", "-"))


# ─── Decoding ────────────────────────────────────────────────────

def option_from_dict(raw: Mapping[str, Any]) -> FieldOption:
    label = _optional(raw, "option", "label")
    value = _optional(raw, "option", "value")
    return FieldOption(label=str(label), value=str(value))


def field_from_dict(raw: Mapping[str, Any]) -> FormField:
    _require(raw, "field")
    options = _optional(raw, "field", "options", _ARRAY)
    return FormField(
        uuid=str(raw["uuid"]),
        type=FieldType.from_raw(raw["type"]),
        name=str(raw["name"]),
        label=str(raw["label"]),
        required=bool(_optional(raw, "field", "required")),
        options=tuple(option_from_dict(o) for o in options if isinstance(o, Mapping)),
        value=str(_optional(raw, "field", "value")),
        validation_error=_optional(raw, "field", "validationError"),
    )


def section_from_dict(raw: Mapping[str, Any]) -> FormSection:
    _require(raw, "section")
    return FormSection(
        uuid=str(raw["uuid"]),
        title=str(raw["title"]),
        from_index=_integer(raw, "section", "from"),
        to_index=_integer(raw, "section", "to"),
        index=_integer(raw, "section", "index"),
    )


def form_from_dict(raw: Mapping[str, Any]) -> DynamicForm:
    _require(raw, "form")
    return DynamicForm(
        id=str(raw["id"]),
        title=str(raw["title"]),
        fields=tuple(field_from_dict(f) for f in _optional(raw, "form", "fields", _ARRAY)),
        sections=tuple(section_from_dict(s) for s in _optional(raw, "form", "sections", _ARRAY)),
        created_at=_timestamp(raw, "createdAt"),
        updated_at=_timestamp(raw, "updatedAt"),
    )


def form_from_document(raw: Mapping[str, Any]) -> DynamicForm:
    """Decode a form definition document, deriving a missing id from its title."""
    if isinstance(raw, Mapping) and raw.get("id") is None and raw.get("title") is not None:
        raw = {**raw, "id": derive_form_id(str(raw["title"]))}
    return form_from_dict(raw)


def entry_from_dict(raw: Mapping[str, Any]) -> FormEntry:
    _require(raw, "entry")
    values = _optional(raw, "entry", "fieldValues", Mapping)
    return FormEntry(
        id=str(raw["id"]),
        form_id=str(raw["formId"]),
        source_entry_id=_optional(raw, "entry", "sourceEntryId"),
        field_values={str(k): str(v) for k, v in values.items()},
        created_at=_timestamp(raw, "createdAt"),
        updated_at=_timestamp(raw, "updatedAt"),
        is_complete=bool(_optional(raw, "entry", "isComplete")),
        is_draft=bool(_optional(raw, "entry", "isDraft")),
    )


# ─── Encoding ────────────────────────────────────────────────────

def option_to_dict(option: FieldOption) -> dict:
    return {"label": option.label, "value": option.value}


def field_to_dict(f: FormField) -> dict:
    data = {
        "uuid": f.uuid,
        "type": f.type.value,
        "name": f.name,
        "label": f.label,
        "required": f.required,
        "options": [option_to_dict(o) for o in f.options],
        "value": f.value,
    }
    if f.validation_error is not None:
        data["validationError"] = f.validation_error
    return data


def section_to_dict(section: FormSection) -> dict:
    return {
        "uuid": section.uuid,
        "title": section.title,
        "from": section.from_index,
        "to": section.to_index,
        "index": section.index,
    }


def form_to_dict(form: DynamicForm) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "fields": [field_to_dict(f) for f in form.fields],
        "sections": [section_to_dict(s) for s in form.sections],
        "createdAt": to_epoch_millis(form.created_at),
        "updatedAt": to_epoch_millis(form.updated_at),
    }


def entry_to_dict(entry: FormEntry) -> dict:
    return {
        "id": entry.id,
        "formId": entry.form_id,
        "sourceEntryId": entry.source_entry_id,
        "fieldValues": dict(entry.field_values),
        "createdAt": to_epoch_millis(entry.created_at),
        "updatedAt": to_epoch_millis(entry.updated_at),
        "isComplete": entry.is_complete,
        "isDraft": entry.is_draft,
    }
