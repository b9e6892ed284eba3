"""Form Entry - verifies lifecycle transitions, validation and display metadata.

Tests:
    - Status is always exactly one of the four states
    - Scenario C: new draft -> edit value -> complete
    - Scenario D: edit draft from a completed entry keeps values, links back
    - Editing a completed entry re-opens it as a draft
    - Display title/subtitle rules and truncation
"""

import pytest

from dynaform.core.domain_types import EntryStatus
from dynaform.core.form_entry import FormEntry
from tests.factories import make_entry


def test_scenario_c_draft_to_completed():
    entry = FormEntry.new_draft("f1").update_field_value("u1", "a@b.com").mark_as_complete()
    assert not entry.is_draft
    assert entry.is_complete
    assert entry.field_values["u1"] == "a@b.com"
    assert entry.status is EntryStatus.COMPLETED


def test_scenario_d_edit_draft_from_completed():
    completed = FormEntry.completed("e1", "f1", {"u1": "x"})
    draft = completed.create_edit_draft()
    assert draft.source_entry_id == "e1"
    assert draft.is_draft and not draft.is_complete
    assert draft.field_values == completed.field_values
    assert draft.id != "e1"
    assert draft.id.startswith("draft_edit_e1_")
    assert draft.status is EntryStatus.EDIT_DRAFT


def test_editing_completed_entry_reopens_as_draft():
    entry = FormEntry.completed("e1", "f1", {"u1": "x"}).update_field_value("u1", "y")
    assert entry.is_draft and not entry.is_complete
    assert entry.status is EntryStatus.DRAFT


@pytest.mark.parametrize("is_draft, is_complete, source, expected", [
    (True, False, None, EntryStatus.DRAFT),
    (True, False, "e0", EntryStatus.EDIT_DRAFT),
    (False, False, None, EntryStatus.SUBMITTED),
    (False, True, None, EntryStatus.COMPLETED),
    (True, True, None, EntryStatus.COMPLETED),
])
def test_status_is_derived(is_draft, is_complete, source, expected):
    entry = make_entry(is_draft=is_draft, is_complete=is_complete, source_entry_id=source)
    assert entry.status is expected


def test_new_draft_generates_prefixed_id():
    draft = FormEntry.new_draft("contact")
    assert draft.id.startswith("draft_contact_")
    assert draft.is_new_draft
    assert FormEntry.new_draft("contact", id="mine").id == "mine"


def test_duplicate_is_independent_draft():
    source = make_entry("e1", values={"a": "1"}, is_draft=False, is_complete=True)
    copy = source.duplicate()
    assert copy.id.startswith("copy_e1_")
    assert copy.source_entry_id is None
    assert copy.is_new_draft
    assert copy.field_values == {"a": "1"}
    assert copy.created_at > source.created_at


def test_field_values_are_copied_on_construction():
    values = {"a": "1"}
    entry = FormEntry(id="e", form_id="f", field_values=values)
    values["a"] = "2"
    assert entry.value_for("a") == "1"
    assert entry.value_for("missing") == ""


def test_field_values_are_read_only():
    entry = make_entry(values={"name": "Ada"})
    with pytest.raises(TypeError):
        entry.field_values["name"] = "Eve"
    assert entry.value_for("name") == "Ada"
    assert entry.field_values == {"name": "Ada"}


def test_update_field_values_merges():
    entry = make_entry(values={"a": "1", "b": "2"}).update_field_values({"b": "3", "c": "4"})
    assert entry.field_values == {"a": "1", "b": "3", "c": "4"}


def test_validate_against_form_type_error_overrides_required(contact_form):
    entry = make_entry(values={"email": "bad", "age": "old"})
    errors = entry.validate_against_form(contact_form)
    assert errors == {
        "name": "Name is required",
        "email": "Email must be a valid email address",
        "age": "Age must be a valid number",
    }


def test_completion_percentage_against_form(contact_form):
    assert make_entry(values={"name": "Ada"}).completion_percentage(contact_form) == 0.5
    assert make_entry(values={"name": " "}).has_data is False


def test_display_title_rules():
    assert make_entry(source_entry_id="e0").generate_display_title() == "Edit Draft"
    assert make_entry(values={"a": " ", "b": "Ada"}).generate_display_title() == "Draft: Ada"
    assert make_entry().generate_display_title() == "New Draft (Mar 5, 14:07)"
    done = make_entry("abcdefghijkl", is_draft=False, is_complete=True)
    assert done.generate_display_title() == "Entry abcdefgh"
    long = make_entry(values={"a": "x" * 30}, is_draft=False)
    assert long.generate_display_title() == "x" * 22 + "..."


def test_display_title_keeps_exactly_25_characters():
    entry = make_entry(values={"a": "y" * 25}, is_draft=False)
    assert entry.generate_display_title() == "y" * 25


def test_display_subtitle_rules():
    assert make_entry(source_entry_id="source-entry-1").generate_display_subtitle() == "Based on source-e"
    assert make_entry().generate_display_subtitle() == "Created Mar 5, 2024 • 14:07"
    submitted = make_entry(is_draft=False, minutes=60)
    assert submitted.generate_display_subtitle() == "Submitted Mar 5, 2024 • 15:07"
