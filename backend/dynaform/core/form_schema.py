"""Form Schema Model - immutable form definitions: fields, sections, options.

Invariants:
    - Every model is frozen; "mutations" return new instances via dataclasses.replace
    - Field order is significant: section ranges index into DynamicForm.fields
    - Section ranges are inclusive on both ends ([from_index, to_index])
    - Out-of-range sections are clamped, never raise (empty slice at worst)
    - DynamicForm.sections is always sorted by section index
    - Option membership for checkbox values is checked on the field, not in
      the Field Validator

Design Decisions:
    - Tuples for collections: true immutability without a copy-on-read API
    - Entries are referenced structurally (value_for) to keep this module free
      of an import cycle with form_entry
"""

from __future__ import annotations

import re
import uuid as uuid_module
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Mapping

from dynaform.core.domain_types import FieldType
from dynaform.core.field_validator import ValidationResult, is_blank, validate_field
from dynaform.core.timestamps import utc_now

if TYPE_CHECKING:
    from dynaform.core.form_entry import FormEntry


_HTML_TAG = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class ValidationError:
    """Transient per-field validation failure. Never persisted."""
    field_uuid: str
    message: str


@dataclass(frozen=True)
class FieldOption:
    """Selectable option. Identity is the value."""
    label: str
    value: str

    @property
    def id(self) -> str:
        return self.value


# ─── Fields ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class FormField:
    """One input (or display-only block) of a form."""
    uuid: str
    type: FieldType
    name: str
    label: str
    required: bool = False
    options: tuple[FieldOption, ...] = ()
    value: str = ""
    validation_error: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "options", tuple(self.options))

    @property
    def id(self) -> str:
        return self.uuid

    @property
    def has_valid_value(self) -> bool:
        return not self.required or not is_blank(self.value)

    @property
    def has_error(self) -> bool:
        return self.validation_error is not None

    @property
    def is_display_only(self) -> bool:
        return self.type is FieldType.DESCRIPTION

    @property
    def requires_input(self) -> bool:
        return not self.is_display_only

    @property
    def option_values(self) -> list[str]:
        return [o.value for o in self.options]

    def with_value(self, value: str) -> FormField:
        return replace(self, value=value)

    def with_validation_error(self, error: str | None) -> FormField:
        return replace(self, validation_error=error)

    def clear_validation_error(self) -> FormField:
        return self.with_validation_error(None)

    def validate(self, value: str | None = None) -> ValidationResult:
        """Run the Field Validator on value (defaults to the field's own value)."""
        return validate_field(
            self.value if value is None else value,
            self.type,
            self.required,
            self.option_values,
            self.label,
        )

    def selected_values(self) -> list[str]:
        """Checkbox selections: comma-separated, trimmed, unordered."""
        return [part.strip() for part in self.value.split(",")]

    def display_value(self) -> str:
        if self.type in (FieldType.DROPDOWN, FieldType.RADIO):
            for option in self.options:
                if option.value == self.value:
                    return option.label
        return self.value

    def is_value_valid_option(self) -> bool:
        """Whether the current value is drawn from the declared options."""
        match self.type:
            case FieldType.DROPDOWN | FieldType.RADIO:
                return self.value in self.option_values
            case FieldType.CHECKBOX:
                allowed = set(self.option_values)
                return all(v in allowed for v in self.selected_values())
            case _:
                return True

    # --- Factories -----------------------------------------------------------

    @classmethod
    def text_field(
        cls, uuid: str, name: str, label: str, required: bool = False, value: str = "",
    ) -> FormField:
        return cls(uuid, FieldType.TEXT, name, label, required, value=value)

    @classmethod
    def number_field(
        cls, uuid: str, name: str, label: str, required: bool = False, value: str = "",
    ) -> FormField:
        return cls(uuid, FieldType.NUMBER, name, label, required, value=value)

    @classmethod
    def dropdown_field(
        cls,
        uuid: str,
        name: str,
        label: str,
        options: Iterable[FieldOption],
        required: bool = False,
        value: str = "",
    ) -> FormField:
        return cls(uuid, FieldType.DROPDOWN, name, label, required, tuple(options), value)

    @classmethod
    def description_field(
        cls, uuid: str, name: str, label: str, content: str = "",
    ) -> FormField:
        return cls(uuid, FieldType.DESCRIPTION, name, label, False, value=content)


# ─── Sections ────────────────────────────────────────────────────

@dataclass(frozen=True)
class FormSection:
    """Titled group of fields addressed by an inclusive index range."""
    uuid: str
    title: str
    from_index: int
    to_index: int
    index: int

    @property
    def id(self) -> str:
        return self.uuid

    @property
    def contains_html(self) -> bool:
        return _HTML_TAG.search(self.title) is not None

    @property
    def plain_title(self) -> str:
        return _HTML_TAG.sub("", self.title)

    @property
    def field_count(self) -> int:
        return max(0, self.to_index - self.from_index + 1)

    @property
    def has_valid_range(self) -> bool:
        return 0 <= self.from_index <= self.to_index

    def contains_field_index(self, field_index: int) -> bool:
        return self.from_index <= field_index <= self.to_index

    def fields_in_range(self, fields: tuple[FormField, ...] | list[FormField]) -> list[FormField]:
        """Slice fields[from..to] clamped to the sequence; never raises."""
        start = max(0, min(self.from_index, len(fields)))
        end = max(start, min(self.to_index + 1, len(fields)))
        return list(fields[start:end])

    @classmethod
    def create(
        cls, title: str, from_index: int, to_index: int, index: int, uuid: str | None = None,
    ) -> FormSection:
        return cls(uuid or str(uuid_module.uuid4()), title, from_index, to_index, index)


@dataclass(frozen=True)
class SectionProgress:
    """Completion snapshot of one section against a set of values."""
    section_id: str
    completed_fields: int
    total_fields: int
    required_fields: int
    completed_required_fields: int
    has_errors: bool

    @property
    def completion_percentage(self) -> float:
        if self.required_fields == 0:
            return 1.0
        return self.completed_required_fields / self.required_fields

    @property
    def is_completed(self) -> bool:
        return self.completed_required_fields == self.required_fields


# ─── Form ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DynamicForm:
    """A complete form definition. Authoritative values live in entries."""
    id: str
    title: str
    fields: tuple[FormField, ...] = ()
    sections: tuple[FormSection, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(
            self, "sections", tuple(sorted(self.sections, key=lambda s: s.index)),
        )

    # --- Queries -------------------------------------------------------------

    def fields_in_section(self, section: FormSection) -> list[FormField]:
        return section.fields_in_range(self.fields)

    def field_by_uuid(self, field_uuid: str) -> FormField | None:
        return next((f for f in self.fields if f.uuid == field_uuid), None)

    def required_fields(self) -> list[FormField]:
        return [f for f in self.fields if f.required]

    def invalid_fields(self) -> list[FormField]:
        return [f for f in self.fields if f.has_error]

    def is_valid(self) -> bool:
        return not any(f.has_error for f in self.fields)

    def has_unsaved_changes(self) -> bool:
        return any(not is_blank(f.value) for f in self.fields)

    def completion_percentage(self) -> float:
        """Fraction of required fields holding a non-blank value."""
        required = self.required_fields()
        if not required:
            return 1.0
        filled = sum(1 for f in required if not is_blank(f.value))
        return filled / len(required)

    def section_containing(self, field_uuid: str) -> FormSection | None:
        position = next(
            (i for i, f in enumerate(self.fields) if f.uuid == field_uuid), None,
        )
        if position is None:
            return None
        return next(
            (s for s in self.sections if s.contains_field_index(position)), None,
        )

    def section_progress(
        self, section: FormSection, values: Mapping[str, str],
    ) -> SectionProgress:
        fields = self.fields_in_section(section)
        required = [f for f in fields if f.required]
        return SectionProgress(
            section_id=section.uuid,
            completed_fields=sum(
                1 for f in fields if not is_blank(values.get(f.uuid, ""))
            ),
            total_fields=len(fields),
            required_fields=len(required),
            completed_required_fields=sum(
                1 for f in required if not is_blank(values.get(f.uuid, ""))
            ),
            has_errors=any(
                not f.validate(values.get(f.uuid, "")).is_valid
                for f in fields if f.requires_input
            ),
        )

    def total_progress(self, values: Mapping[str, str]) -> float:
        """Mean section completion; 1.0 for a form without sections."""
        if not self.sections:
            return 1.0
        progress = [
            self.section_progress(s, values).completion_percentage
            for s in self.sections
        ]
        return sum(progress) / len(progress)

    def validate(self) -> list[ValidationError]:
        """Validate every field's current value, in field order."""
        errors = []
        for f in self.fields:
            result = f.validate()
            if not result.is_valid and result.error_message is not None:
                errors.append(ValidationError(f.uuid, result.error_message))
        return errors

    # --- Transformations -----------------------------------------------------

    def update_field_value(self, field_uuid: str, value: str) -> DynamicForm:
        """Set one field's value and clear its error; bumps updated_at."""
        fields = tuple(
            f.with_value(value).clear_validation_error() if f.uuid == field_uuid else f
            for f in self.fields
        )
        return replace(self, fields=fields, updated_at=utc_now())

    def update_field_validation(self, field_uuid: str, error: str | None) -> DynamicForm:
        fields = tuple(
            f.with_validation_error(error) if f.uuid == field_uuid else f
            for f in self.fields
        )
        return replace(self, fields=fields)

    def with_validation_errors(self, errors: Iterable[ValidationError]) -> DynamicForm:
        """Replace every field's error with the matching entry of errors."""
        by_uuid = {e.field_uuid: e.message for e in errors}
        fields = tuple(f.with_validation_error(by_uuid.get(f.uuid)) for f in self.fields)
        return replace(self, fields=fields)

    def with_field_values(self, entry: FormEntry) -> DynamicForm:
        """Project an entry's values onto the fields for pre-filled rendering."""
        fields = tuple(f.with_value(entry.value_for(f.uuid)) for f in self.fields)
        return replace(self, fields=fields, updated_at=utc_now())
