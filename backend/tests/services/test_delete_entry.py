"""Delete Entry - single, batch, draft and confirmed deletion, and auto-save interplay."""

import asyncio

import pytest

from dynaform.core.errors import DeletionCancelledError, HasActiveEditDraftsError, NotFoundError
from dynaform.services.delete_entry import DeleteEntryService
from tests.factories import make_entry


@pytest.fixture
def service(entry_repo, scheduler):
    return DeleteEntryService(entry_repo, auto_save=scheduler)


async def confirm_yes():
    return True


async def confirm_no():
    return False


async def test_delete_existing_entry(service, entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    assert (await service.execute("e1")).ok
    assert await entry_repo.get_entry_by_id("e1") is None


async def test_delete_missing_entry(service):
    result = await service.execute("missing")
    assert isinstance(result.error, NotFoundError)
    assert result.error.resource_id == "missing"


async def test_batch_attempts_every_id(service, entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    await entry_repo.insert_entry(make_entry("e2", minutes=1))
    outcome = await service.delete_batch(["e1", "missing", "e2"])
    assert set(outcome.succeeded) == {"e1", "e2"}
    assert outcome.failure_messages() == {"missing": "Entry with ID 'missing' not found"}
    assert await entry_repo.get_entries_for_form("contact") == []


async def test_delete_draft_and_edit_drafts(service, entry_repo):
    await entry_repo.insert_entry(make_entry("draft"))
    await entry_repo.insert_entry(make_entry("done", minutes=1, is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("edit", minutes=2, source_entry_id="done"))

    assert (await service.delete_draft_entry("contact")).ok
    assert (await service.delete_edit_drafts("done")).ok
    assert [e.id for e in await entry_repo.get_entries_for_form("contact")] == ["done"]


async def test_entry_with_edit_draft_is_protected(service, entry_repo):
    await entry_repo.insert_entry(make_entry("done", is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("edit", minutes=1, source_entry_id="done"))
    result = await service.delete_with_confirmation("done", confirm_yes)
    assert isinstance(result.error, HasActiveEditDraftsError)
    assert await entry_repo.get_entry_by_id("done") is not None


async def test_declined_confirmation_keeps_entry(service, entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    result = await service.delete_with_confirmation("e1", confirm_no)
    assert isinstance(result.error, DeletionCancelledError)
    assert await entry_repo.get_entry_by_id("e1") is not None


async def test_confirmed_deletion(service, entry_repo):
    await entry_repo.insert_entry(make_entry("e1", is_draft=False, is_complete=True))
    assert (await service.delete_with_confirmation("e1", confirm_yes)).ok
    assert await entry_repo.get_entry_by_id("e1") is None


async def test_confirmation_not_asked_for_missing_entry(service):
    asked = []

    async def confirm():
        asked.append(True)
        return True

    result = await service.delete_with_confirmation("missing", confirm)
    assert isinstance(result.error, NotFoundError)
    assert asked == []


async def settle(scheduler):
    await asyncio.sleep(scheduler.interval_seconds * 5)
    await scheduler.drain()


async def test_delete_stops_pending_auto_save(service, scheduler, entry_repo):
    await entry_repo.insert_entry(make_entry("e1"))
    scheduler.schedule(make_entry("e1", values={"name": "typing"}, minutes=1))

    assert (await service.execute("e1")).ok
    await settle(scheduler)

    assert await entry_repo.get_entry_by_id("e1") is None
    assert entry_repo.draft_writes == []


async def test_delete_waits_for_auto_save_in_flight(service, scheduler, entry_repo):
    entry_repo.write_delay = scheduler.interval_seconds * 10
    scheduler.schedule(make_entry("e1", values={"name": "typing"}))
    await asyncio.sleep(scheduler.interval_seconds * 4)

    assert (await service.execute("e1")).ok
    await scheduler.drain()

    assert await entry_repo.get_entry_by_id("e1") is None


async def test_draft_deletion_stops_their_auto_saves(service, scheduler, entry_repo):
    await entry_repo.insert_entry(make_entry("draft"))
    await entry_repo.insert_entry(make_entry("done", minutes=1, is_draft=False, is_complete=True))
    await entry_repo.insert_entry(make_entry("edit", minutes=2, source_entry_id="done"))
    scheduler.schedule(make_entry("draft", values={"name": "new"}, minutes=3))
    scheduler.schedule(make_entry("edit", values={"name": "revised"}, minutes=3, source_entry_id="done"))

    await service.delete_draft_entry("contact")
    await service.delete_edit_drafts("done")
    await settle(scheduler)

    assert scheduler.pending_count == 0
    assert [e.id for e in await entry_repo.get_entries_for_form("contact")] == ["done"]
