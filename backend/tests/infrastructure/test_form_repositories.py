"""Form Repositories - contract tests run against the in-memory and SQL adapters."""

from dataclasses import replace
from datetime import timedelta

from dynaform.core.errors import AssetLoadingError, ConflictError, NotFoundError
from tests.factories import BASE_TIME, StaticAssets, make_contact_form


class BrokenAssets:
    async def load_forms(self):
        raise AssetLoadingError("asset directory 'missing' does not exist")


async def test_insert_then_read(form_repo_factory, contact_form):
    repo = form_repo_factory()
    assert (await repo.insert_form(contact_form)).ok
    assert await repo.get_form_by_id("contact") == contact_form
    assert await repo.get_all_forms() == [contact_form]


async def test_insert_duplicate_is_conflict(form_repo_factory, contact_form):
    repo = form_repo_factory()
    await repo.insert_form(contact_form)
    result = await repo.insert_form(contact_form)
    assert isinstance(result.error, ConflictError)


async def test_update_and_delete(form_repo_factory, contact_form):
    repo = form_repo_factory()
    await repo.insert_form(contact_form)
    renamed = replace(contact_form, title="Renamed")
    assert (await repo.update_form(renamed)).ok
    assert (await repo.get_form_by_id("contact")).title == "Renamed"
    assert (await repo.delete_form("contact")).ok
    assert await repo.get_form_by_id("contact") is None


async def test_missing_targets_return_not_found(form_repo_factory, contact_form):
    repo = form_repo_factory()
    update = await repo.update_form(contact_form)
    delete = await repo.delete_form("contact")
    assert isinstance(update.error, NotFoundError)
    assert delete.error.message == "Form with ID 'contact' not found"


async def test_initialized_flag(form_repo_factory, contact_form):
    repo = form_repo_factory()
    assert not await repo.is_forms_data_initialized()
    await repo.insert_form(contact_form)
    assert await repo.is_forms_data_initialized()


async def test_load_from_assets_does_not_store(form_repo_factory, contact_form):
    assets = StaticAssets([contact_form])
    repo = form_repo_factory(assets)
    result = await repo.load_forms_from_assets()
    assert result.value == [contact_form]
    assert await repo.get_all_forms() == []


async def test_load_without_source_fails(form_repo_factory):
    result = await form_repo_factory().load_forms_from_assets()
    assert isinstance(result.error, AssetLoadingError)


async def test_load_propagates_source_failure(form_repo_factory):
    result = await form_repo_factory(BrokenAssets()).load_forms_from_assets()
    assert result.error.code == "ASSET_LOADING_FAILED"


async def test_clear_and_reload_replaces_everything(form_repo_factory, contact_form):
    survey = replace(make_contact_form("survey"), title="Survey")
    repo = form_repo_factory(StaticAssets([survey]))
    await repo.insert_form(contact_form)
    assert (await repo.clear_and_reload_forms()).ok
    assert [f.id for f in await repo.get_all_forms()] == ["survey"]


async def test_clear_and_reload_keeps_forms_when_loading_fails(form_repo_factory, contact_form):
    repo = form_repo_factory(BrokenAssets())
    await repo.insert_form(contact_form)
    assert not (await repo.clear_and_reload_forms()).ok
    assert await repo.get_form_by_id("contact") is not None


async def test_search_matches_title_case_insensitively(form_repo_factory, contact_form):
    repo = form_repo_factory()
    await repo.insert_form(contact_form)
    await repo.insert_form(replace(make_contact_form("survey"), title="Customer Survey"))
    assert [f.id for f in await repo.search_forms("SURVEY")] == ["survey"]
    assert await repo.search_forms("nothing") == []


async def test_forms_in_date_range(form_repo_factory):
    repo = form_repo_factory()
    for minutes, form_id in ((0, "a"), (10, "b"), (20, "c")):
        moment = BASE_TIME + timedelta(minutes=minutes)
        await repo.insert_form(replace(
            make_contact_form(form_id), created_at=moment, updated_at=moment,
        ))
    forms = await repo.get_forms_in_date_range(BASE_TIME, BASE_TIME + timedelta(minutes=10))
    assert [f.id for f in forms] == ["a", "b"]


async def test_watch_form_observes_updates(form_repo_factory, contact_form):
    repo = form_repo_factory()
    stream = repo.watch_form("contact")
    try:
        assert await anext(stream) is None
        await repo.insert_form(make_contact_form("other"))
        await repo.insert_form(contact_form)
        assert (await anext(stream)).id == "contact"
    finally:
        await stream.aclose()
