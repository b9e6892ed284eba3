"""Test factories - small, valid domain objects shared across test packages."""

from datetime import datetime, timedelta, timezone

from dynaform.core.domain_types import FieldType
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm, FieldOption, FormField, FormSection

BASE_TIME = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)


def make_contact_form(form_id: str = "contact") -> DynamicForm:
    """Five fields in two sections; name and email required."""
    fields = (
        FormField.text_field("name", "name", "Name", required=True),
        FormField("email", FieldType.EMAIL, "email", "Email", required=True),
        FormField.number_field("age", "age", "Age"),
        FormField.description_field("intro", "intro", "About you", "<p>Tell us more</p>"),
        FormField.dropdown_field(
            "color", "color", "Favourite colour",
            [FieldOption("Red", "red"), FieldOption("Blue", "blue")],
        ),
    )
    sections = (
        FormSection("s2", "<b>Details</b>", 3, 4, 1),
        FormSection("s1", "Contact", 0, 2, 0),
    )
    return DynamicForm(
        id=form_id, title="Contact Form", fields=fields, sections=sections,
        created_at=BASE_TIME, updated_at=BASE_TIME,
    )


def make_entry(
    entry_id: str = "e1",
    form_id: str = "contact",
    values: dict | None = None,
    minutes: int = 0,
    is_draft: bool = True,
    is_complete: bool = False,
    source_entry_id: str | None = None,
) -> FormEntry:
    """Entry whose timestamps sit `minutes` after BASE_TIME."""
    moment = BASE_TIME + timedelta(minutes=minutes)
    return FormEntry(
        id=entry_id,
        form_id=form_id,
        source_entry_id=source_entry_id,
        field_values=values or {},
        created_at=moment,
        updated_at=moment,
        is_complete=is_complete,
        is_draft=is_draft,
    )


def make_form_document(form_id: str | None = "contact", title: str = "Contact Form") -> dict:
    document = {
        "title": title,
        "fields": [
            {"uuid": "name", "type": "text", "name": "name", "label": "Name", "required": True},
            {"uuid": "email", "type": "email", "name": "email", "label": "Email"},
        ],
        "sections": [{"uuid": "s1", "title": "Main", "from": 0, "to": 1, "index": 0}],
    }
    if form_id is not None:
        document["id"] = form_id
    return document


class StaticAssets:
    """Asset source returning a fixed list of forms."""

    def __init__(self, forms):
        self.forms = forms
        self.calls = 0

    async def load_forms(self):
        self.calls += 1
        return list(self.forms)
