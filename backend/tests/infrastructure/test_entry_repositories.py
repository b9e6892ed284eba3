"""Entry Repositories - contract tests run against the in-memory and SQL adapters.

Tests:
    - Read-your-writes for insert/update/save_entry_draft
    - Missing update/delete targets return NotFoundError results
    - Draft lookups, status and date-range queries
    - watch_* subscriptions observe every write
"""

from datetime import timedelta

from dynaform.core.errors import ConflictError, NotFoundError
from tests.factories import BASE_TIME, make_entry


async def test_insert_then_read(entry_repo):
    entry = make_entry("e1", values={"name": "Ada"})
    result = await entry_repo.insert_entry(entry)
    assert result.ok
    assert result.value == "e1"
    assert await entry_repo.get_entry_by_id("e1") == entry


async def test_insert_duplicate_is_conflict(entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    result = await entry_repo.insert_entry(make_entry("e1"))
    assert isinstance(result.error, ConflictError)


async def test_update_is_visible(entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    updated = make_entry("e1", values={"name": "Grace"}, minutes=5).mark_as_complete()
    assert (await entry_repo.update_entry(updated)).ok
    stored = await entry_repo.get_entry_by_id("e1")
    assert stored.field_values == {"name": "Grace"}
    assert stored.is_complete


async def test_missing_targets_return_not_found(entry_repo):
    update = await entry_repo.update_entry(make_entry("missing"))
    delete = await entry_repo.delete_entry("missing")
    assert isinstance(update.error, NotFoundError)
    assert isinstance(delete.error, NotFoundError)
    assert delete.error.message == "Entry with ID 'missing' not found"
    assert await entry_repo.get_entry_by_id("missing") is None


async def test_delete_removes_entry(entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    assert (await entry_repo.delete_entry("e1")).ok
    assert await entry_repo.get_entries_for_form("contact") == []


async def test_save_entry_draft_upserts_as_draft(entry_repo):
    completed = make_entry("e1", is_draft=False, is_complete=True)
    assert (await entry_repo.save_entry_draft(completed)).ok
    stored = await entry_repo.get_entry_by_id("e1")
    assert stored.is_draft and not stored.is_complete

    assert (await entry_repo.save_entry_draft(make_entry("e1", values={"a": "b"}))).ok
    assert (await entry_repo.get_entry_by_id("e1")).field_values == {"a": "b"}


async def test_entries_for_form_are_scoped_and_ordered(entry_repo):
    await entry_repo.insert_entry(make_entry("late", minutes=9))
    await entry_repo.insert_entry(make_entry("early", minutes=1))
    await entry_repo.insert_entry(make_entry("other", form_id="survey"))
    entries = await entry_repo.get_entries_for_form("contact")
    assert [e.id for e in entries] == ["early", "late"]


async def test_draft_lookups(entry_repo):
    await entry_repo.insert_entry(make_entry("done", minutes=1, is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("old-draft", minutes=2))
    await entry_repo.insert_entry(make_entry("new-draft", minutes=3))
    await entry_repo.insert_entry(make_entry("edit", minutes=4, source_entry_id="done"))

    assert (await entry_repo.get_draft_entry("contact")).id == "edit"
    assert (await entry_repo.get_new_draft_entry("contact")).id == "new-draft"
    assert (await entry_repo.get_edit_draft_for_entry("done")).id == "edit"
    assert await entry_repo.get_edit_draft_for_entry("old-draft") is None
    drafts = await entry_repo.get_all_drafts_for_form("contact")
    assert [e.id for e in drafts] == ["old-draft", "new-draft", "edit"]


async def test_delete_draft_entry(entry_repo):
    missing = await entry_repo.delete_draft_entry("contact")
    assert isinstance(missing.error, NotFoundError)

    await entry_repo.insert_entry(make_entry("draft", minutes=1))
    await entry_repo.insert_entry(make_entry("edit", minutes=2, source_entry_id="x"))
    assert (await entry_repo.delete_draft_entry("contact")).ok
    assert [e.id for e in await entry_repo.get_entries_for_form("contact")] == ["edit"]


async def test_delete_edit_drafts_for_entry(entry_repo):
    await entry_repo.insert_entry(make_entry("done", minutes=1, is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("edit", minutes=2, source_entry_id="done"))
    assert (await entry_repo.delete_edit_drafts_for_entry("done")).ok
    assert (await entry_repo.delete_edit_drafts_for_entry("done")).ok
    assert [e.id for e in await entry_repo.get_entries_for_form("contact")] == ["done"]


async def test_entries_by_status(entry_repo):
    await entry_repo.insert_entry(make_entry("draft", minutes=1))
    await entry_repo.insert_entry(make_entry("done", minutes=2, is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("sent", minutes=3, is_draft=False))

    drafts = await entry_repo.get_entries_by_status("contact", is_draft=True)
    completed = await entry_repo.get_entries_by_status("contact", is_draft=False, is_complete=True)
    everything = await entry_repo.get_entries_by_status("contact")
    assert [e.id for e in drafts] == ["draft"]
    assert [e.id for e in completed] == ["done"]
    assert len(everything) == 3


async def test_date_range_is_inclusive(entry_repo):
    for minutes in (1, 2, 3, 4):
        await entry_repo.insert_entry(make_entry(f"e{minutes}", minutes=minutes))
    entries = await entry_repo.get_entries_in_date_range(
        "contact", BASE_TIME + timedelta(minutes=2), BASE_TIME + timedelta(minutes=3),
    )
    assert [e.id for e in entries] == ["e2", "e3"]


async def test_watch_entry_observes_writes(entry_repo):
    stream = entry_repo.watch_entry("e1")
    try:
        assert await anext(stream) is None
        await entry_repo.insert_entry(make_entry("e1"))
        assert (await anext(stream)).id == "e1"
        await entry_repo.delete_entry("e1")
        assert await anext(stream) is None
    finally:
        await stream.aclose()


async def test_every_subscriber_sees_the_write(entry_repo):
    first = entry_repo.watch_entries_for_form("contact")
    second = entry_repo.watch_entries_for_form("contact")
    try:
        assert await anext(first) == []
        assert await anext(second) == []
        await entry_repo.insert_entry(make_entry("other", form_id="survey"))
        await entry_repo.insert_entry(make_entry("e1"))
        assert [e.id for e in await anext(first)] == ["e1"]
        assert [e.id for e in await anext(second)] == ["e1"]
    finally:
        await first.aclose()
        await second.aclose()
    assert entry_repo.feed.subscriber_count == 0
