"""Field Validator - pure validation of a single value against a field type.

Invariants:
    - validate_field NEVER raises; every outcome is a ValidationResult
    - Required check runs first and short-circuits every type rule
    - Blank (whitespace-only) optional values are valid for every type
    - Checkbox and description values are always valid at this layer

Design Decisions:
    - Exhaustive match over FieldType: adding an enum member without a rule
      is caught by the type checker (assert_never)
    - Checkbox option membership lives on FormField.is_value_valid_option,
      not here (ADR: permissive checkbox validation preserved)
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, NamedTuple, assert_never

from dynaform.core.domain_types import FieldType


MAX_TEXT_LENGTH: int = 255
MIN_PASSWORD_LENGTH: int = 6

EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$", re.IGNORECASE,
)
_DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value."""
    is_valid: bool
    error_message: str | None = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def invalid(cls, message: str) -> "ValidationResult":
        return cls(False, message)


class FieldSpec(NamedTuple):
    """One item of a batch validation request."""
    value: str
    field_type: FieldType
    required: bool = False
    options: tuple[str, ...] = ()
    name: str = "Field"


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_field(
    value: str,
    field_type: FieldType,
    is_required: bool = False,
    options: Iterable[str] = (),
    field_name: str = "Field",
) -> ValidationResult:
    """Validate value for field_type. Pure, never raises."""
    if is_blank(value):
        if is_required:
            return ValidationResult.invalid(f"{field_name} is required")
        return ValidationResult.valid()

    match field_type:
        case FieldType.TEXT | FieldType.TEXTAREA | FieldType.FILE:
            return _validate_text(value, field_name)
        case FieldType.NUMBER:
            return _validate_number(value, field_name)
        case FieldType.EMAIL:
            return _validate_email(value, field_name)
        case FieldType.PASSWORD:
            return _validate_password(value, field_name)
        case FieldType.DROPDOWN | FieldType.RADIO:
            return _validate_selection(value, list(options), field_name)
        case FieldType.DATE:
            return _validate_date(value, field_name)
        case FieldType.CHECKBOX | FieldType.DESCRIPTION:
            return ValidationResult.valid()
        case _:
            assert_never(field_type)


# ─── Batch Helpers ───────────────────────────────────────────────

def validate_fields(specs: Iterable[FieldSpec]) -> list[ValidationResult]:
    """Validate a batch; result order follows input order."""
    return [
        validate_field(s.value, s.field_type, s.required, s.options, s.name)
        for s in specs
    ]


def all_valid(results: Iterable[ValidationResult]) -> bool:
    return all(r.is_valid for r in results)


def error_messages(results: Iterable[ValidationResult]) -> list[str]:
    return [r.error_message for r in results if r.error_message is not None]


# ─── Type Rules ──────────────────────────────────────────────────

def _validate_text(value: str, field_name: str) -> ValidationResult:
    if len(value.strip()) > MAX_TEXT_LENGTH:
        return ValidationResult.invalid(
            f"{field_name} must be less than {MAX_TEXT_LENGTH} characters",
        )
    return ValidationResult.valid()


def _validate_number(value: str, field_name: str) -> ValidationResult:
    if not is_finite_decimal(value.strip()):
        return ValidationResult.invalid(f"{field_name} must be a valid number")
    return ValidationResult.valid()


def _validate_email(value: str, field_name: str) -> ValidationResult:
    if not EMAIL_PATTERN.match(value.strip()):
        return ValidationResult.invalid(
            f"{field_name} must be a valid email address",
        )
    return ValidationResult.valid()


def _validate_password(value: str, field_name: str) -> ValidationResult:
    # raw length: surrounding whitespace counts toward a password
    if len(value) < MIN_PASSWORD_LENGTH:
        return ValidationResult.invalid(
            f"{field_name} must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    return ValidationResult.valid()


def _validate_selection(
    value: str, options: list[str], field_name: str,
) -> ValidationResult:
    if value.strip() not in options:
        return ValidationResult.invalid(
            f"{field_name} must be one of the available options",
        )
    return ValidationResult.valid()


def _validate_date(value: str, field_name: str) -> ValidationResult:
    if parse_date(value.strip()) is None:
        return ValidationResult.invalid(
            f"{field_name} must be a valid date (YYYY-MM-DD)",
        )
    return ValidationResult.valid()


# ─── Parsing ─────────────────────────────────────────────────────

def is_finite_decimal(text: str) -> bool:
    if not _DECIMAL_PATTERN.match(text):
        return False
    return math.isfinite(float(text))


def parse_date(text: str) -> datetime | None:
    """Parse ISO-8601 or one of the accepted calendar formats."""
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
