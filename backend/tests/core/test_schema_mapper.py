"""Schema Mapper - verifies defaulting, failure on missing keys, and round trips.

Tests:
    - Required keys missing -> InvalidDataError naming key and record
    - Optional keys missing -> defaults table values
    - Unknown type -> text; sections sorted; timestamps from epoch millis
    - Wrongly shaped optional keys -> defaults; bad section bounds -> InvalidDataError
    - form/entry round trip for well-formed dicts
    - form_from_document derives a missing id from the title
"""

from datetime import datetime, timezone

import pytest

from dynaform.core.domain_types import FieldType
from dynaform.core.errors import InvalidDataError
from dynaform.core.schema_mapper import (
    derive_form_id, entry_from_dict, entry_to_dict, field_from_dict,
    form_from_dict, form_from_document, form_to_dict, section_from_dict,
)

FORM = {
    "id": "f1",
    "title": "Survey",
    "fields": [
        {
            "uuid": "u1", "type": "dropdown", "name": "size", "label": "Size",
            "required": True, "options": [{"label": "Small", "value": "s"}], "value": "s",
        },
        {
            "uuid": "u2", "type": "email", "name": "mail", "label": "Mail",
            "required": False, "options": [], "value": "",
            "validationError": "Mail must be a valid email address",
        },
    ],
    "sections": [
        {"uuid": "s0", "title": "One", "from": 0, "to": 0, "index": 0},
        {"uuid": "s1", "title": "Two", "from": 1, "to": 1, "index": 1},
    ],
    "createdAt": 1709647620000,
    "updatedAt": 1709647680123,
}

ENTRY = {
    "id": "e1",
    "formId": "f1",
    "sourceEntryId": "e0",
    "fieldValues": {"u1": "s"},
    "createdAt": 1709647620000,
    "updatedAt": 1709647680123,
    "isComplete": False,
    "isDraft": True,
}


def test_form_round_trip():
    assert form_to_dict(form_from_dict(FORM)) == FORM


def test_entry_round_trip():
    assert entry_to_dict(entry_from_dict(ENTRY)) == ENTRY


def test_timestamps_decode_from_epoch_millis():
    form = form_from_dict(FORM)
    assert form.created_at == datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)


@pytest.mark.parametrize("record, decode, key", [
    ({"title": "T"}, form_from_dict, "id"),
    ({"id": "f"}, form_from_dict, "title"),
    ({"uuid": "u", "type": "text", "name": "n"}, field_from_dict, "label"),
    ({"uuid": "s", "title": "S", "from": 0, "index": 0}, section_from_dict, "to"),
    ({"id": "e"}, entry_from_dict, "formId"),
])
def test_missing_required_key_names_it(record, decode, key):
    with pytest.raises(InvalidDataError) as exc_info:
        decode(record)
    assert exc_info.value.key == key
    assert key in exc_info.value.message


def test_nested_field_failure_propagates():
    with pytest.raises(InvalidDataError) as exc_info:
        form_from_dict({"id": "f", "title": "T", "fields": [{"uuid": "u"}]})
    assert exc_info.value.record == "field"


def test_optional_keys_take_defaults():
    f = field_from_dict({"uuid": "u", "type": "number", "name": "n", "label": "N"})
    assert (f.required, f.options, f.value, f.validation_error) == (False, (), "", None)

    entry = entry_from_dict({"id": "e", "formId": "f"})
    assert entry.source_entry_id is None
    assert entry.field_values == {}
    assert entry.is_draft and not entry.is_complete


def test_unknown_field_type_becomes_text():
    f = field_from_dict({"uuid": "u", "type": "signature", "name": "n", "label": "N"})
    assert f.type is FieldType.TEXT


def test_sections_are_sorted_after_decoding():
    raw = dict(FORM, sections=list(reversed(FORM["sections"])))
    assert [s.uuid for s in form_from_dict(raw).sections] == ["s0", "s1"]


def test_missing_or_bad_timestamp_defaults_to_now():
    before = datetime.now(timezone.utc)
    form = form_from_dict({"id": "f", "title": "T", "createdAt": "yesterday"})
    assert form.created_at >= before
    assert form.updated_at >= before


@pytest.mark.parametrize("key", ["createdAt", "updatedAt"])
def test_out_of_range_timestamp_defaults_to_now(key):
    before = datetime.now(timezone.utc)
    entry = entry_from_dict({"id": "e", "formId": "f", key: 1e20})
    assert getattr(entry, "created_at" if key == "createdAt" else "updated_at") >= before


def test_field_values_of_the_wrong_shape_default_to_empty():
    entry = entry_from_dict({"id": "e", "formId": "f", "fieldValues": ["a"]})
    assert entry.field_values == {}


@pytest.mark.parametrize("options", [5, "small", {"label": "Small"}])
def test_options_of_the_wrong_shape_default_to_none(options):
    f = field_from_dict({"uuid": "u", "type": "dropdown", "name": "n", "label": "N", "options": options})
    assert f.options == ()


def test_form_fields_of_the_wrong_shape_default_to_none():
    form = form_from_dict({"id": "f", "title": "T", "fields": "oops", "sections": 3})
    assert form.fields == () and form.sections == ()


@pytest.mark.parametrize("key, bad", [("from", "a"), ("to", None), ("index", [1]), ("to", 1e400)])
def test_non_integer_section_bound_names_the_key(key, bad):
    raw = {"uuid": "s", "title": "S", "from": 0, "to": 0, "index": 0, key: bad}
    with pytest.raises(InvalidDataError) as exc_info:
        section_from_dict(raw)
    assert exc_info.value.key == key
    assert exc_info.value.record == "section"


def test_form_from_document_derives_id():
    form = form_from_document({"title": "Customer Feedback (2024)!"})
    assert form.id == "customer-feedback-2024"
    assert derive_form_id("All Fields") == "all-fields"
    assert form_from_document({"id": "keep", "title": "X"}).id == "keep"


def test_form_from_document_without_title_fails():
    with pytest.raises(InvalidDataError):
        form_from_document({"fields": []})
