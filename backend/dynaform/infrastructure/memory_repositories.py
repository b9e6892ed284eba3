"""In-Memory Repositories - dict-backed adapters for tests, previews and embedding.

Invariants:
    - One asyncio.Lock per repository: every read and write is a single critical
      section, so a cancelled caller never leaves a write half-applied
    - Domain objects are frozen, so stored values are shared without copying
    - Every write publishes to the ChangeFeed after it is applied
    - Listings are ordered by created_at (oldest first); draft lookups return the
      most recently updated match

Design Decisions:
    - Same ChangeFeed as the SQL adapter: subscriptions behave identically
    - delete_draft_entry removes the form's new drafts only; edit drafts are
      removed through delete_edit_drafts_for_entry
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import AsyncIterator

from dynaform.core.errors import (
    AssetLoadingError, ConflictError, FormsError, NotFoundError,
)
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm
from dynaform.core.repository_protocols import FormAssetSource, RepoResult
from dynaform.infrastructure.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)


def _newest(entries: list[FormEntry]) -> FormEntry | None:
    return max(entries, key=lambda e: e.updated_at, default=None)


# ─── Forms ───────────────────────────────────────────────────────

class InMemoryFormRepository:
    """FormRepository over a dict keyed by form id."""

    def __init__(
        self, asset_source: FormAssetSource | None = None, feed: ChangeFeed | None = None,
    ):
        self._forms: dict[str, DynamicForm] = {}
        self._lock = asyncio.Lock()
        self._asset_source = asset_source
        self.feed = feed or ChangeFeed()

    async def get_all_forms(self) -> list[DynamicForm]:
        async with self._lock:
            return sorted(self._forms.values(), key=lambda f: f.created_at)

    async def get_form_by_id(self, form_id: str) -> DynamicForm | None:
        async with self._lock:
            return self._forms.get(form_id)

    async def watch_form(self, form_id: str) -> AsyncIterator[DynamicForm | None]:
        async with self.feed.subscribe() as queue:
            yield await self.get_form_by_id(form_id)
            while True:
                event = await queue.get()
                if event.kind == "form" and event.key == form_id:
                    yield await self.get_form_by_id(form_id)

    async def insert_form(self, form: DynamicForm) -> RepoResult[None]:
        async with self._lock:
            if form.id in self._forms:
                return RepoResult.failure(ConflictError(f"form '{form.id}' already exists"))
            self._forms[form.id] = form
        self._publish(form.id)
        return RepoResult.success()

    async def update_form(self, form: DynamicForm) -> RepoResult[None]:
        async with self._lock:
            if form.id not in self._forms:
                return RepoResult.failure(NotFoundError("Form", form.id))
            self._forms[form.id] = form
        self._publish(form.id)
        return RepoResult.success()

    async def delete_form(self, form_id: str) -> RepoResult[None]:
        async with self._lock:
            if self._forms.pop(form_id, None) is None:
                return RepoResult.failure(NotFoundError("Form", form_id))
        self._publish(form_id)
        return RepoResult.success()

    async def load_forms_from_assets(self) -> RepoResult[list[DynamicForm]]:
        """Read the asset source without storing anything."""
        if self._asset_source is None:
            return RepoResult.failure(AssetLoadingError("no asset source configured"))
        try:
            forms = await self._asset_source.load_forms()
        except FormsError as e:
            logger.error(f"Form asset loading failed: {e}", extra={"error_code": e.code})
            return RepoResult.failure(e)
        return RepoResult.success(forms)

    async def clear_and_reload_forms(self) -> RepoResult[None]:
        loaded = await self.load_forms_from_assets()
        if not loaded.ok:
            return RepoResult.failure(loaded.error)
        async with self._lock:
            removed = list(self._forms)
            self._forms = {f.id: f for f in loaded.value or []}
            touched = set(removed) | set(self._forms)
        for form_id in touched:
            self._publish(form_id)
        logger.info(f"Reloaded {len(self._forms)} forms from assets")
        return RepoResult.success()

    async def is_forms_data_initialized(self) -> bool:
        async with self._lock:
            return bool(self._forms)

    async def search_forms(self, query: str) -> list[DynamicForm]:
        needle = query.strip().lower()
        forms = await self.get_all_forms()
        return [f for f in forms if needle in f.title.lower()]

    async def get_forms_in_date_range(
        self, start: datetime, end: datetime,
    ) -> list[DynamicForm]:
        forms = await self.get_all_forms()
        return [f for f in forms if start <= f.created_at <= end]

    def _publish(self, form_id: str) -> None:
        self.feed.publish(ChangeEvent("form", form_id, form_id))


# ─── Entries ─────────────────────────────────────────────────────

class InMemoryFormEntryRepository:
    """FormEntryRepository over a dict keyed by entry id."""

    def __init__(self, feed: ChangeFeed | None = None):
        self._entries: dict[str, FormEntry] = {}
        self._lock = asyncio.Lock()
        self.feed = feed or ChangeFeed()

    def _for_form(self, form_id: str) -> list[FormEntry]:
        return sorted(
            (e for e in self._entries.values() if e.form_id == form_id),
            key=lambda e: e.created_at,
        )

    async def get_entries_for_form(self, form_id: str) -> list[FormEntry]:
        async with self._lock:
            return self._for_form(form_id)

    async def get_entry_by_id(self, entry_id: str) -> FormEntry | None:
        async with self._lock:
            return self._entries.get(entry_id)

    async def watch_entry(self, entry_id: str) -> AsyncIterator[FormEntry | None]:
        async with self.feed.subscribe() as queue:
            yield await self.get_entry_by_id(entry_id)
            while True:
                event = await queue.get()
                if event.concerns_entry(entry_id):
                    yield await self.get_entry_by_id(entry_id)

    async def watch_entries_for_form(self, form_id: str) -> AsyncIterator[list[FormEntry]]:
        async with self.feed.subscribe() as queue:
            yield await self.get_entries_for_form(form_id)
            while True:
                event = await queue.get()
                if event.kind == "entry" and event.concerns_form(form_id):
                    yield await self.get_entries_for_form(form_id)

    async def insert_entry(self, entry: FormEntry) -> RepoResult[str]:
        async with self._lock:
            if entry.id in self._entries:
                return RepoResult.failure(ConflictError(f"entry '{entry.id}' already exists"))
            self._entries[entry.id] = entry
        self._publish(entry)
        return RepoResult.success(entry.id)

    async def update_entry(self, entry: FormEntry) -> RepoResult[None]:
        async with self._lock:
            if entry.id not in self._entries:
                return RepoResult.failure(NotFoundError("Entry", entry.id))
            self._entries[entry.id] = entry
        self._publish(entry)
        return RepoResult.success()

    async def delete_entry(self, entry_id: str) -> RepoResult[None]:
        async with self._lock:
            removed = self._entries.pop(entry_id, None)
        if removed is None:
            return RepoResult.failure(NotFoundError("Entry", entry_id))
        self._publish(removed)
        return RepoResult.success()

    async def save_entry_draft(self, entry: FormEntry) -> RepoResult[None]:
        draft = replace(entry, is_draft=True, is_complete=False)
        async with self._lock:
            self._entries[draft.id] = draft
        self._publish(draft)
        return RepoResult.success()

    async def get_draft_entry(self, form_id: str) -> FormEntry | None:
        async with self._lock:
            return _newest([e for e in self._for_form(form_id) if e.is_draft])

    async def get_new_draft_entry(self, form_id: str) -> FormEntry | None:
        async with self._lock:
            return _newest([e for e in self._for_form(form_id) if e.is_new_draft])

    async def get_edit_draft_for_entry(self, entry_id: str) -> FormEntry | None:
        async with self._lock:
            return _newest([
                e for e in self._entries.values()
                if e.is_draft and e.source_entry_id == entry_id
            ])

    async def get_all_drafts_for_form(self, form_id: str) -> list[FormEntry]:
        async with self._lock:
            return [e for e in self._for_form(form_id) if e.is_draft]

    async def delete_draft_entry(self, form_id: str) -> RepoResult[None]:
        async with self._lock:
            drafts = [e for e in self._for_form(form_id) if e.is_new_draft]
            for draft in drafts:
                del self._entries[draft.id]
        if not drafts:
            return RepoResult.failure(NotFoundError("Draft", form_id))
        for draft in drafts:
            self._publish(draft)
        return RepoResult.success()

    async def delete_edit_drafts_for_entry(self, entry_id: str) -> RepoResult[None]:
        async with self._lock:
            drafts = [
                e for e in self._entries.values()
                if e.is_draft and e.source_entry_id == entry_id
            ]
            for draft in drafts:
                del self._entries[draft.id]
        for draft in drafts:
            self._publish(draft)
        return RepoResult.success()

    async def get_entries_by_status(
        self, form_id: str, is_draft: bool | None = None, is_complete: bool | None = None,
    ) -> list[FormEntry]:
        async with self._lock:
            return [
                e for e in self._for_form(form_id)
                if (is_draft is None or e.is_draft == is_draft)
                and (is_complete is None or e.is_complete == is_complete)
            ]

    async def get_entries_in_date_range(
        self, form_id: str, start: datetime, end: datetime,
    ) -> list[FormEntry]:
        async with self._lock:
            return [e for e in self._for_form(form_id) if start <= e.created_at <= end]

    def _publish(self, entry: FormEntry) -> None:
        self.feed.publish(ChangeEvent("entry", entry.id, entry.form_id))
