"""Save Entry - draft save, submission, edit drafts and conflict-aware saves.

Invariants:
    - An explicit save or submit cancels the entry's pending auto-save and waits
      for one already writing, so a stale debounced write never lands after it
    - Submitting with validation errors never writes; it returns a
      ValidationFailedError carrying the per-field map
    - execute() inserts unknown ids and updates known ones; it returns the id

Design Decisions:
    - Default save strategy is overwrite; auto-save uses merge (see auto_save.py)
    - save_batch reports per-item outcomes instead of stopping at the first failure
"""

import logging

from dynaform.core.conflict_resolution import has_conflict, merge_entries
from dynaform.core.domain_types import ConflictResolutionStrategy, DEFAULT_SAVE_STRATEGY
from dynaform.core.errors import ConflictError, ErrorContext, FormsError, ValidationFailedError
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm
from dynaform.core.repository_protocols import FormEntryRepository, RepoResult
from dynaform.services.auto_save import AutoSaveScheduler
from dynaform.services.bulk import BulkOutcome
from dynaform.services.repository_helpers import entry_exists


class SaveEntryService:
    """Persists entries on explicit user actions."""

    def __init__(
        self,
        entry_repository: FormEntryRepository,
        auto_save: AutoSaveScheduler | None = None,
        logger: logging.Logger | None = None,
    ):
        self.entries = entry_repository
        self.auto_save = auto_save
        self.logger = logger or logging.getLogger(__name__)

    async def execute(self, entry: FormEntry, is_complete: bool = False) -> RepoResult[str]:
        await self._stop_auto_save(entry.id)
        final = entry.mark_as_complete() if is_complete else entry
        try:
            exists = await entry_exists(self.entries, entry.id)
        except FormsError as e:
            return RepoResult.failure(e)

        if exists:
            result = await self.entries.update_entry(final)
            if not result.ok:
                return self._failed(entry, result.error)
            return RepoResult.success(entry.id)

        inserted = await self.entries.insert_entry(final)
        if not inserted.ok:
            return self._failed(entry, inserted.error)
        self.logger.info(
            f"Saved entry {entry.id} ({final.status.value})",
            extra={"entry_id": entry.id, "form_id": entry.form_id, "field_values": final.field_values},
        )
        return inserted

    async def save_draft(self, entry: FormEntry) -> RepoResult[str]:
        return await self.execute(entry, is_complete=False)

    async def submit(self, entry: FormEntry) -> RepoResult[str]:
        return await self.execute(entry, is_complete=True)

    async def save_with_validation(
        self, entry: FormEntry, form: DynamicForm, is_complete: bool = False,
    ) -> RepoResult[str]:
        """Drafts save regardless of errors; submissions must validate."""
        errors = entry.validate_against_form(form)
        if is_complete and errors:
            return RepoResult.failure(ValidationFailedError(
                errors, ErrorContext(form_id=form.id, entry_id=entry.id),
            ))
        return await self.execute(entry, is_complete=is_complete)

    async def auto_save_now(self, entry: FormEntry) -> RepoResult[str]:
        """Write entry as a draft immediately, skipping validation."""
        await self._stop_auto_save(entry.id)
        draft = entry.mark_as_draft()
        result = await self.entries.save_entry_draft(draft)
        if not result.ok:
            return self._failed(entry, result.error)
        return RepoResult.success(draft.id)

    async def create_edit_draft(
        self, source: FormEntry, draft_id: str | None = None,
    ) -> RepoResult[FormEntry]:
        edit_draft = source.create_edit_draft(draft_id)
        result = await self.entries.insert_entry(edit_draft)
        if not result.ok:
            return self._failed(source, result.error)
        return RepoResult.success(edit_draft)

    async def save_with_conflict_resolution(
        self,
        entry: FormEntry,
        strategy: ConflictResolutionStrategy = DEFAULT_SAVE_STRATEGY,
    ) -> RepoResult[str]:
        await self._stop_auto_save(entry.id)
        try:
            stored = await self.entries.get_entry_by_id(entry.id)
        except FormsError as e:
            return RepoResult.failure(e)
        if not has_conflict(entry, stored):
            return await self.execute(entry)

        self.logger.warning(
            f"Save conflict for entry {entry.id}, strategy {strategy.value}",
            extra={"entry_id": entry.id},
        )
        match strategy:
            case ConflictResolutionStrategy.OVERWRITE:
                return await self.execute(entry)
            case ConflictResolutionStrategy.MERGE:
                return await self.execute(merge_entries(entry, stored))
            case ConflictResolutionStrategy.FAIL:
                return RepoResult.failure(ConflictError(
                    "Entry has been modified by another source",
                    ErrorContext(form_id=entry.form_id, entry_id=entry.id),
                ))
            case ConflictResolutionStrategy.CREATE_NEW:
                return await self.entries.insert_entry(entry.duplicate())
            case ConflictResolutionStrategy.SKIP:
                return RepoResult.success(entry.id)

    async def save_batch(self, entries: list[FormEntry]) -> BulkOutcome[str]:
        outcome: BulkOutcome[str] = BulkOutcome()
        for entry in entries:
            result = await self.execute(entry)
            if result.ok:
                outcome.succeeded[entry.id] = result.value
            else:
                outcome.failed[entry.id] = result.error
        return outcome

    async def _stop_auto_save(self, entry_id: str) -> None:
        if self.auto_save is not None:
            await self.auto_save.cancel_and_wait(entry_id)

    def _failed(self, entry: FormEntry, error: FormsError) -> RepoResult:
        self.logger.error(
            f"Saving entry {entry.id} failed: {error.message}",
            extra={"entry_id": entry.id, "form_id": entry.form_id, "error_code": error.code},
        )
        return RepoResult.failure(error)
