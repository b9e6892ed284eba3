"""Entry Validation - validate an entry against a form, whole or by section.

Invariants:
    - Pure: returns lists/maps/summaries, never raises for invalid data
    - Only fields covered by a section are validated when the form has sections;
      a form without sections validates every field
    - Display-only fields (description) are never validated
    - Partial (while-typing) validation never reports a blank required field

Design Decisions:
    - Field label is the name used in messages, matching FormField.validate
    - Fields shared by overlapping sections are validated once, first section wins
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from dynaform.core.field_validator import ValidationResult, is_blank
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import (
    DynamicForm, FormField, FormSection, SectionProgress, ValidationError,
)


class FieldStatus(str, Enum):
    REQUIRED_EMPTY = "required_empty"
    OPTIONAL_EMPTY = "optional_empty"
    VALID = "valid"
    INVALID = "invalid"

    @property
    def display_name(self) -> str:
        return {
            FieldStatus.REQUIRED_EMPTY: "Required",
            FieldStatus.OPTIONAL_EMPTY: "Optional",
            FieldStatus.VALID: "Valid",
            FieldStatus.INVALID: "Invalid",
        }[self]


@dataclass(frozen=True)
class FieldValidationStatus:
    field_uuid: str
    field_label: str
    is_required: bool
    has_value: bool
    is_valid: bool
    error_message: str | None = None

    @property
    def status(self) -> FieldStatus:
        if not self.has_value:
            return FieldStatus.REQUIRED_EMPTY if self.is_required else FieldStatus.OPTIONAL_EMPTY
        return FieldStatus.VALID if self.is_valid else FieldStatus.INVALID


@dataclass(frozen=True)
class ValidationSummary:
    """Everything a submit button or progress bar needs about one entry."""
    is_valid: bool
    error_count: int
    required_fields_count: int
    completed_required_fields_count: int
    completion_percentage: float
    errors: list[ValidationError] = field(default_factory=list)
    field_statuses: list[FieldValidationStatus] = field(default_factory=list)

    @property
    def can_submit(self) -> bool:
        return self.is_valid and self.completed_required_fields_count == self.required_fields_count

    @property
    def has_partial_completion(self) -> bool:
        return 0.0 < self.completion_percentage < 1.0


# ─── Validation ──────────────────────────────────────────────────

def _validated_fields(form: DynamicForm) -> list[FormField]:
    if not form.sections:
        return list(form.fields)
    seen: set[str] = set()
    fields = []
    for section in form.sections:
        for f in form.fields_in_section(section):
            if f.uuid not in seen:
                seen.add(f.uuid)
                fields.append(f)
    return fields


def _collect_errors(fields: Iterable[FormField], entry: FormEntry) -> list[ValidationError]:
    errors = []
    for f in fields:
        if not f.requires_input:
            continue
        result = f.validate(entry.value_for(f.uuid))
        if not result.is_valid and result.error_message is not None:
            errors.append(ValidationError(f.uuid, result.error_message))
    return errors


def validate_entry(form: DynamicForm, entry: FormEntry) -> list[ValidationError]:
    """Errors for every input field covered by the form's sections, in field order."""
    return _collect_errors(_validated_fields(form), entry)


def validate_section(
    form: DynamicForm, entry: FormEntry, section: FormSection,
) -> list[ValidationError]:
    return _collect_errors(form.fields_in_section(section), entry)


def validate_batch(
    form: DynamicForm, entries: Iterable[FormEntry],
) -> dict[str, list[ValidationError]]:
    """Map entry id to its errors; valid entries are omitted."""
    results = {}
    for entry in entries:
        errors = validate_entry(form, entry)
        if errors:
            results[entry.id] = errors
    return results


def is_valid_for_submission(form: DynamicForm, entry: FormEntry) -> bool:
    return not validate_entry(form, entry)


def field_errors(form: DynamicForm, entry: FormEntry) -> dict[str, str]:
    return {e.field_uuid: e.message for e in validate_entry(form, entry)}


def is_field_valid(form: DynamicForm, entry: FormEntry, field_uuid: str) -> bool:
    f = form.field_by_uuid(field_uuid)
    if f is None:
        return True
    return f.validate(entry.value_for(field_uuid)).is_valid


def validate_field_real_time(
    f: FormField, value: str, is_partial: bool = False,
) -> ValidationResult:
    """Validate while typing: a partial blank required value is not yet an error."""
    if is_partial and f.required and is_blank(value):
        return ValidationResult.valid()
    return f.validate(value)


def errors_by_section(
    form: DynamicForm, entry: FormEntry,
) -> dict[str, list[ValidationError]]:
    grouped: dict[str, list[ValidationError]] = {}
    for error in validate_entry(form, entry):
        section = form.section_containing(error.field_uuid)
        if section is not None:
            grouped.setdefault(section.uuid, []).append(error)
    return grouped


def section_progress(form: DynamicForm, entry: FormEntry) -> list[SectionProgress]:
    return [form.section_progress(s, entry.field_values) for s in form.sections]


def validation_summary(form: DynamicForm, entry: FormEntry) -> ValidationSummary:
    errors = validate_entry(form, entry)
    required = form.required_fields()
    statuses = []
    for f in form.fields:
        value = entry.value_for(f.uuid)
        result = f.validate(value)
        statuses.append(FieldValidationStatus(
            field_uuid=f.uuid,
            field_label=f.label,
            is_required=f.required,
            has_value=not is_blank(value),
            is_valid=result.is_valid,
            error_message=result.error_message,
        ))
    return ValidationSummary(
        is_valid=not errors,
        error_count=len(errors),
        required_fields_count=len(required),
        completed_required_fields_count=sum(
            1 for f in required if not is_blank(entry.value_for(f.uuid))
        ),
        completion_percentage=entry.completion_percentage(form),
        errors=errors,
        field_statuses=statuses,
    )
