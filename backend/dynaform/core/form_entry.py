"""Form Entry - one set of user-entered values tied to a form, with its lifecycle.

Invariants:
    - Frozen: every transition returns a new FormEntry; field_values is a
      read-only copy of the mapping it was built from
    - Status is derived and exactly one of draft | edit_draft | submitted | completed
    - Editing any value (any state) re-opens the entry as a draft
    - mark_as_complete clears the draft flag; is_draft and is_complete are never
      both left true by a transition
    - source_entry_id is fixed at creation (create_edit_draft) and never changes
    - Validation errors are computed on demand, never stored on the entry

Design Decisions:
    - Generated ids embed the form/source id and a fractional epoch label, matching
      ids already produced by existing stores
    - Display helpers are pure so any presentation layer can reuse them
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from dynaform.core.domain_types import EntryStatus
from dynaform.core.field_validator import is_blank
from dynaform.core.timestamps import epoch_seconds_label, utc_now

if TYPE_CHECKING:
    from dynaform.core.form_schema import DynamicForm


TITLE_MAX_LENGTH: int = 25
TITLE_TRUNCATED_LENGTH: int = 22
ID_PREFIX_LENGTH: int = 8


@dataclass(frozen=True)
class FormEntry:
    """User data for one form. field_values maps field uuid to a string value."""
    id: str
    form_id: str
    source_entry_id: str | None = None
    field_values: Mapping[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    is_complete: bool = False
    is_draft: bool = True

    def __post_init__(self):
        object.__setattr__(self, "field_values", MappingProxyType(dict(self.field_values)))

    def __hash__(self) -> int:
        return hash(self.id)

    # --- Factories -----------------------------------------------------------

    @classmethod
    def new_draft(cls, form_id: str, id: str | None = None) -> FormEntry:
        now = utc_now()
        return cls(
            id=id or f"draft_{form_id}_{epoch_seconds_label(now)}",
            form_id=form_id,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def completed(cls, id: str, form_id: str, field_values: Mapping[str, str]) -> FormEntry:
        return cls(
            id=id, form_id=form_id, field_values=field_values,
            is_complete=True, is_draft=False,
        )

    # --- Derived state -------------------------------------------------------

    @property
    def is_edit_draft(self) -> bool:
        return self.is_draft and self.source_entry_id is not None

    @property
    def is_new_draft(self) -> bool:
        return self.is_draft and self.source_entry_id is None

    @property
    def status(self) -> EntryStatus:
        if self.is_complete:
            return EntryStatus.COMPLETED
        if self.is_draft:
            return EntryStatus.EDIT_DRAFT if self.is_edit_draft else EntryStatus.DRAFT
        return EntryStatus.SUBMITTED

    @property
    def has_data(self) -> bool:
        return any(not is_blank(v) for v in self.field_values.values())

    def value_for(self, field_uuid: str) -> str:
        return self.field_values.get(field_uuid, "")

    def non_empty_field_values(self) -> dict[str, str]:
        return {k: v for k, v in self.field_values.items() if not is_blank(v)}

    def completion_percentage(self, form: DynamicForm) -> float:
        required = form.required_fields()
        if not required:
            return 1.0
        filled = sum(1 for f in required if not is_blank(self.value_for(f.uuid)))
        return filled / len(required)

    # --- Transitions ---------------------------------------------------------

    def update_field_value(self, field_uuid: str, value: str) -> FormEntry:
        return self.update_field_values({field_uuid: value})

    def update_field_values(self, updates: Mapping[str, str]) -> FormEntry:
        """Merge updates into the values; the result is always a draft."""
        values = dict(self.field_values)
        values.update(updates)
        return replace(
            self, field_values=values, updated_at=utc_now(),
            is_draft=True, is_complete=False,
        )

    def mark_as_complete(self) -> FormEntry:
        return replace(self, updated_at=utc_now(), is_complete=True, is_draft=False)

    def mark_as_draft(self) -> FormEntry:
        return replace(self, updated_at=utc_now(), is_complete=False, is_draft=True)

    def create_edit_draft(self, draft_id: str | None = None) -> FormEntry:
        """Stage revisions of this entry in a new draft that points back to it."""
        now = utc_now()
        return FormEntry(
            id=draft_id or f"draft_edit_{self.id}_{epoch_seconds_label(now)}",
            form_id=self.form_id,
            source_entry_id=self.id,
            field_values=self.field_values,
            created_at=now,
            updated_at=now,
            is_complete=False,
            is_draft=True,
        )

    def duplicate(self, new_id: str | None = None) -> FormEntry:
        """Independent copy: a fresh new draft with no back-reference."""
        now = utc_now()
        return FormEntry(
            id=new_id or f"copy_{self.id}_{epoch_seconds_label(now)}",
            form_id=self.form_id,
            source_entry_id=None,
            field_values=self.field_values,
            created_at=now,
            updated_at=now,
            is_complete=False,
            is_draft=True,
        )

    # --- Validation ----------------------------------------------------------

    def validate_against_form(self, form: DynamicForm) -> dict[str, str]:
        """Map field uuid to error message. Type errors override required errors."""
        errors: dict[str, str] = {}
        for f in form.required_fields():
            if is_blank(self.value_for(f.uuid)):
                errors[f.uuid] = f"{f.label} is required"

        for f in form.fields:
            value = self.value_for(f.uuid)
            if is_blank(value):
                continue
            result = f.validate(value)
            if not result.is_valid and result.error_message is not None:
                errors[f.uuid] = result.error_message
        return errors

    # --- Display -------------------------------------------------------------

    def generate_display_title(self) -> str:
        if self.is_edit_draft:
            return "Edit Draft"

        first_value = next(iter(self.non_empty_field_values().values()), None)
        if self.is_draft:
            if first_value is not None:
                return f"Draft: {_truncate(first_value)}"
            return f"New Draft ({_short_timestamp(self.created_at)})"

        if first_value is not None:
            return _truncate(first_value)
        return f"Entry {self.id[:ID_PREFIX_LENGTH]}"

    def generate_display_subtitle(self) -> str:
        if self.is_edit_draft and self.source_entry_id is not None:
            return f"Based on {self.source_entry_id[:ID_PREFIX_LENGTH]}"
        if self.is_draft:
            return f"Created {_long_timestamp(self.created_at)}"
        return f"Submitted {_long_timestamp(self.updated_at)}"


def _truncate(value: str) -> str:
    if len(value) > TITLE_MAX_LENGTH:
        return value[:TITLE_TRUNCATED_LENGTH] + "..."
    return value


def _short_timestamp(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment:%H:%M}"


def _long_timestamp(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment:%Y} • {moment:%H:%M}"
