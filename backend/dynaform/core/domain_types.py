"""Domain Types - closed enums and identity aliases shared by every core module.

Invariants:
    - FormId, EntryId, FieldUuid wrap str; never use a bare str where an id is meant
    - Every raw field-type string passes through FieldType.from_raw before use
    - Unknown field types normalize to FieldType.TEXT, never raise

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: external format is JSON)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

FormId = NewType("FormId", str)
EntryId = NewType("EntryId", str)
FieldUuid = NewType("FieldUuid", str)


# ─── Field Types ─────────────────────────────────────────────────

class FieldType(str, Enum):
    """Closed set of field kinds a form definition may declare."""
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    PASSWORD = "password"
    DROPDOWN = "dropdown"
    DESCRIPTION = "description"
    DATE = "date"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    FILE = "file"

    @classmethod
    def from_raw(cls, raw: object) -> "FieldType":
        """Parse a loosely-typed value; anything unrecognized becomes TEXT."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.TEXT
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.TEXT

    @property
    def display_name(self) -> str:
        return _FIELD_TYPE_DISPLAY_NAMES[self]

    @property
    def supports_multiple_values(self) -> bool:
        return self is FieldType.CHECKBOX

    @property
    def requires_options(self) -> bool:
        return self in (FieldType.DROPDOWN, FieldType.RADIO, FieldType.CHECKBOX)


_FIELD_TYPE_DISPLAY_NAMES: dict[FieldType, str] = {
    FieldType.TEXT: "Text",
    FieldType.NUMBER: "Number",
    FieldType.EMAIL: "Email",
    FieldType.PASSWORD: "Password",
    FieldType.DROPDOWN: "Dropdown",
    FieldType.DESCRIPTION: "Description",
    FieldType.DATE: "Date",
    FieldType.RADIO: "Radio Button",
    FieldType.CHECKBOX: "Checkbox",
    FieldType.TEXTAREA: "Text Area",
    FieldType.FILE: "File",
}


# ─── Entry Lifecycle ─────────────────────────────────────────────

class EntryStatus(str, Enum):
    """Derived entry state. Exactly one applies to any FormEntry."""
    DRAFT = "draft"
    EDIT_DRAFT = "edit_draft"
    SUBMITTED = "submitted"
    COMPLETED = "completed"

    @property
    def display_name(self) -> str:
        return {
            EntryStatus.DRAFT: "Draft",
            EntryStatus.EDIT_DRAFT: "Edit Draft",
            EntryStatus.SUBMITTED: "Submitted",
            EntryStatus.COMPLETED: "Completed",
        }[self]


class EntryStatusFilter(str, Enum):
    """Status filter offered by entry listings."""
    ALL = "all"
    DRAFTS = "drafts"
    COMPLETED = "completed"
    EDIT_DRAFTS = "edit_drafts"

    @property
    def display_name(self) -> str:
        return {
            EntryStatusFilter.ALL: "All",
            EntryStatusFilter.DRAFTS: "Drafts",
            EntryStatusFilter.COMPLETED: "Completed",
            EntryStatusFilter.EDIT_DRAFTS: "Edit Drafts",
        }[self]


class EntrySortOption(str, Enum):
    """Sort key and direction for entry listings."""
    UPDATED_DESC = "updated_desc"
    UPDATED_ASC = "updated_asc"
    CREATED_DESC = "created_desc"
    CREATED_ASC = "created_asc"

    @property
    def display_name(self) -> str:
        return {
            EntrySortOption.UPDATED_DESC: "Recently Updated",
            EntrySortOption.UPDATED_ASC: "Least Recently Updated",
            EntrySortOption.CREATED_DESC: "Newest First",
            EntrySortOption.CREATED_ASC: "Oldest First",
        }[self]


class ConflictResolutionStrategy(str, Enum):
    """What a save does when the stored copy is newer than the local one."""
    OVERWRITE = "overwrite"
    MERGE = "merge"
    FAIL = "fail"
    CREATE_NEW = "create_new"
    SKIP = "skip"


DEFAULT_SAVE_STRATEGY = ConflictResolutionStrategy.OVERWRITE
DEFAULT_AUTO_SAVE_STRATEGY = ConflictResolutionStrategy.MERGE
