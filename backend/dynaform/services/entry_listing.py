"""Entry Listing - read-side use cases over the entry port.

Invariants:
    - Every list is returned most-recently-updated first unless a query says otherwise
    - Filtering and search are delegated to core.entry_query (pure)
"""

from datetime import datetime

from dynaform.core.domain_types import EntrySortOption
from dynaform.core.entry_query import EntryQuery, EntryStatistics, apply_query, entry_statistics, sort_entries
from dynaform.core.form_entry import FormEntry
from dynaform.core.repository_protocols import FormEntryRepository


def _newest_first(entries: list[FormEntry]) -> list[FormEntry]:
    return sort_entries(entries, EntrySortOption.UPDATED_DESC)


class EntryListingService:
    """Lists, filters and summarizes the entries of one form."""

    def __init__(self, entry_repository: FormEntryRepository):
        self.entries = entry_repository

    async def list_entries(self, form_id: str) -> list[FormEntry]:
        return _newest_first(await self.entries.get_entries_for_form(form_id))

    async def query(self, form_id: str, query: EntryQuery) -> list[FormEntry]:
        return apply_query(await self.entries.get_entries_for_form(form_id), query)

    async def entries_by_status(
        self, form_id: str, is_draft: bool | None = None, is_complete: bool | None = None,
    ) -> list[FormEntry]:
        return _newest_first(
            await self.entries.get_entries_by_status(form_id, is_draft, is_complete)
        )

    async def draft_entries(self, form_id: str) -> list[FormEntry]:
        return await self.entries_by_status(form_id, is_draft=True)

    async def completed_entries(self, form_id: str) -> list[FormEntry]:
        return await self.entries_by_status(form_id, is_draft=False, is_complete=True)

    async def edit_drafts(self, form_id: str) -> list[FormEntry]:
        drafts = await self.entries.get_all_drafts_for_form(form_id)
        return _newest_first([e for e in drafts if e.is_edit_draft])

    async def entries_in_date_range(
        self, form_id: str, start: datetime, end: datetime,
    ) -> list[FormEntry]:
        return _newest_first(
            await self.entries.get_entries_in_date_range(form_id, start, end)
        )

    async def statistics(self, form_id: str) -> EntryStatistics:
        return entry_statistics(await self.entries.get_entries_for_form(form_id))
