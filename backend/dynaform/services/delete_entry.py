"""Delete Entry - single, batch, draft and confirmed deletion of entries.

Invariants:
    - Deleting an unknown id is a NotFoundError result, never an exception
    - Batch deletion attempts every id and reports each outcome
    - A submitted/completed entry referenced by an edit draft cannot be deleted
      through delete_with_confirmation
    - The confirmation callback runs only after the safety check passes
    - Pending or writing auto-saves of the doomed entries are stopped before the
      delete, so a debounced draft never re-creates a deleted entry
"""

import logging
from typing import Awaitable, Callable

from dynaform.core.errors import (
    DeletionCancelledError, FormsError, HasActiveEditDraftsError, NotFoundError,
)
from dynaform.core.form_entry import FormEntry
from dynaform.core.repository_protocols import FormEntryRepository, RepoResult
from dynaform.services.auto_save import AutoSaveScheduler
from dynaform.services.bulk import BulkOutcome

Confirmation = Callable[[], Awaitable[bool]]


class DeleteEntryService:
    """Removes entries and drafts through the entry port."""

    def __init__(
        self,
        entry_repository: FormEntryRepository,
        auto_save: AutoSaveScheduler | None = None,
        logger: logging.Logger | None = None,
    ):
        self.entries = entry_repository
        self.auto_save = auto_save
        self.logger = logger or logging.getLogger(__name__)

    async def execute(self, entry_id: str) -> RepoResult[None]:
        if self.auto_save is not None:
            await self.auto_save.cancel_and_wait(entry_id)
        try:
            entry = await self.entries.get_entry_by_id(entry_id)
        except FormsError as e:
            return RepoResult.failure(e)
        if entry is None:
            return RepoResult.failure(NotFoundError("Entry", entry_id))

        result = await self.entries.delete_entry(entry_id)
        if result.ok:
            self.logger.info(f"Deleted entry {entry_id}", extra={"entry_id": entry_id})
        else:
            self.logger.error(
                f"Deleting entry {entry_id} failed: {result.error.message}",
                extra={"entry_id": entry_id, "error_code": result.error.code},
            )
        return result

    async def delete_batch(self, entry_ids: list[str]) -> BulkOutcome[None]:
        outcome: BulkOutcome[None] = BulkOutcome()
        for entry_id in entry_ids:
            result = await self.execute(entry_id)
            if result.ok:
                outcome.succeeded[entry_id] = None
            else:
                outcome.failed[entry_id] = result.error
        if outcome.failed:
            self.logger.warning(
                f"Batch deletion: {len(outcome.failed)} of {outcome.total} failed",
            )
        return outcome

    async def delete_draft_entry(self, form_id: str) -> RepoResult[None]:
        if self.auto_save is not None:
            await self.auto_save.cancel_where(
                lambda e: e.form_id == form_id and e.source_entry_id is None,
            )
        return await self.entries.delete_draft_entry(form_id)

    async def delete_edit_drafts(self, entry_id: str) -> RepoResult[None]:
        if self.auto_save is not None:
            await self.auto_save.cancel_where(lambda e: e.source_entry_id == entry_id)
        return await self.entries.delete_edit_drafts_for_entry(entry_id)

    async def check_deletion_safety(self, entry: FormEntry) -> RepoResult[None]:
        if not entry.is_draft:
            if await self.entries.get_edit_draft_for_entry(entry.id) is not None:
                return RepoResult.failure(HasActiveEditDraftsError(entry.id))
        return RepoResult.success()

    async def delete_with_confirmation(
        self, entry_id: str, confirm: Confirmation,
    ) -> RepoResult[None]:
        try:
            entry = await self.entries.get_entry_by_id(entry_id)
            if entry is None:
                return RepoResult.failure(NotFoundError("Entry", entry_id))
            safety = await self.check_deletion_safety(entry)
        except FormsError as e:
            return RepoResult.failure(e)
        if not safety.ok:
            return safety
        if not await confirm():
            return RepoResult.failure(DeletionCancelledError())
        return await self.execute(entry_id)
