"""Auto-Save Scheduler - debounced, conflict-aware draft persistence.

Invariants:
    - At most one pending timer per entry id; schedule() restarts it with the
      newest entry, so a burst of updates becomes one write
    - Once a timer fires, its save runs to completion; a later schedule() starts
      a new timer instead of cancelling the save in flight
    - Saves of one entry id never overlap: each waits for the previous one
    - cancel_and_wait() returns only when no auto-save of that entry is writing,
      so explicit saves, submits and deletes always land after it
    - Every auto-save writes a draft (save_entry_draft), never a completed entry
    - Conflicts are judged on the caller's updated_at, before the draft is stamped
    - Retries use exponential backoff min(base * 2**attempt, 30s) and never
      retry a conflict outcome

Design Decisions:
    - One asyncio task per timer over a polling loop: cancellation is the
      debounce (ADR: explicit save/submit cancels the pending timer)
    - retry_base_delay is injectable so tests run without real backoff sleeps
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from dynaform.core.conflict_resolution import has_conflict, merge_entries
from dynaform.core.domain_types import (
    ConflictResolutionStrategy, DEFAULT_AUTO_SAVE_STRATEGY,
)
from dynaform.core.errors import (
    AutoSaveSkippedError, ConflictError, ErrorCategory, ErrorContext, FormsError,
)
from dynaform.core.form_entry import FormEntry
from dynaform.core.repository_protocols import FormEntryRepository, RepoResult
from dynaform.core.timestamps import utc_now
from dynaform.services.bulk import BulkOutcome

MAX_RETRY_DELAY_SECONDS: float = 30.0


@dataclass
class AutoSaveStatistics:
    scheduled: int = 0
    succeeded: int = 0
    failed: int = 0
    last_saved_at: datetime | None = None


class AutoSaveScheduler:
    """Debounces per-entry saves and persists them as drafts."""

    def __init__(
        self,
        entry_repository: FormEntryRepository,
        interval_seconds: float = 1.5,
        max_retries: int = 3,
        strategy: ConflictResolutionStrategy = DEFAULT_AUTO_SAVE_STRATEGY,
        retry_base_delay: float = 1.0,
        logger: logging.Logger | None = None,
    ):
        self.entries = entry_repository
        self.interval_seconds = interval_seconds
        self.max_retries = max(1, max_retries)
        self.strategy = strategy
        self.retry_base_delay = retry_base_delay
        self.logger = logger or logging.getLogger(__name__)
        self.statistics = AutoSaveStatistics()
        self._pending: dict[str, FormEntry] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._in_flight: dict[str, asyncio.Task] = {}
        self._writing: dict[str, FormEntry] = {}

    @classmethod
    def from_settings(cls, entry_repository: FormEntryRepository, settings) -> "AutoSaveScheduler":
        return cls(
            entry_repository,
            interval_seconds=settings.auto_save_interval_seconds,
            max_retries=settings.auto_save_max_retries,
            strategy=ConflictResolutionStrategy(settings.auto_save_conflict_strategy),
        )

    # ─── Immediate Saves ─────────────────────────────────────────

    async def execute(self, entry: FormEntry) -> RepoResult[str]:
        """Resolve conflicts and write entry as a draft now."""
        ctx = ErrorContext(form_id=entry.form_id, entry_id=entry.id)
        try:
            stored = await self.entries.get_entry_by_id(entry.id)
        except FormsError as e:
            return RepoResult.failure(e)

        draft = entry.mark_as_draft()
        if has_conflict(entry, stored):
            self.logger.warning(
                f"Auto-save conflict for entry {entry.id}, strategy {self.strategy.value}",
                extra={"entry_id": entry.id},
            )
            match self.strategy:
                case ConflictResolutionStrategy.OVERWRITE:
                    pass
                case ConflictResolutionStrategy.MERGE:
                    draft = merge_entries(draft, stored, as_draft=True)
                case ConflictResolutionStrategy.FAIL:
                    return RepoResult.failure(ConflictError(
                        f"entry '{entry.id}' has been modified by another source", ctx,
                    ))
                case ConflictResolutionStrategy.SKIP:
                    return RepoResult.failure(AutoSaveSkippedError(entry.id, ctx))
                case ConflictResolutionStrategy.CREATE_NEW:
                    draft = draft.duplicate()

        result = await self.entries.save_entry_draft(draft)
        if not result.ok:
            self.logger.error(
                f"Auto-save failed for entry {entry.id}: {result.error.message}",
                extra={"entry_id": entry.id, "error_code": result.error.code},
            )
            return RepoResult.failure(result.error)
        self.logger.debug(f"Auto-saved entry {draft.id}", extra={"entry_id": draft.id})
        return RepoResult.success(draft.id)

    async def execute_with_retry(self, entry: FormEntry) -> RepoResult[str]:
        attempt = 0
        while True:
            result = await self.execute(entry)
            attempt += 1
            if result.ok:
                self.statistics.succeeded += 1
                self.statistics.last_saved_at = utc_now()
                return result
            self.logger.warning(
                f"Auto-save attempt {attempt} failed: {result.error.message}",
                extra={"entry_id": entry.id, "attempt": attempt},
            )
            if result.error.category is ErrorCategory.CONFLICT or attempt >= self.max_retries:
                self.statistics.failed += 1
                return result
            await asyncio.sleep(self._backoff(attempt))

    async def batch_auto_save(self, entries: list[FormEntry]) -> BulkOutcome[str]:
        outcome: BulkOutcome[str] = BulkOutcome()
        for entry in entries:
            result = await self.execute(entry)
            if result.ok:
                outcome.succeeded[entry.id] = result.value
            else:
                outcome.failed[entry.id] = result.error
        if outcome.failed:
            self.logger.error(
                f"Batch auto-save partial failure: {len(outcome.failed)} of {outcome.total}",
            )
        return outcome

    def _backoff(self, attempt: int) -> float:
        return min(self.retry_base_delay * (2 ** attempt), MAX_RETRY_DELAY_SECONDS)

    # ─── Debounce ────────────────────────────────────────────────

    def schedule(self, entry: FormEntry) -> None:
        """(Re)start the debounce timer for entry; the newest entry wins."""
        self._cancel_timer(entry.id)
        self._pending[entry.id] = entry
        self._timers[entry.id] = asyncio.create_task(self._fire(entry.id))
        self.statistics.scheduled += 1

    def cancel(self, entry_id: str) -> None:
        """Drop the pending save for entry_id, if any. A save already writing keeps going."""
        self._cancel_timer(entry_id)
        if self._pending.pop(entry_id, None) is not None:
            self.logger.debug(f"Cancelled auto-save for entry {entry_id}", extra={"entry_id": entry_id})

    async def cancel_and_wait(self, entry_id: str) -> None:
        """Drop the pending save and wait until no auto-save of entry_id is writing.

        Explicit writes call this first so a debounced draft can never land on
        top of them.
        """
        self.cancel(entry_id)
        task = self._in_flight.get(entry_id)
        if task is not None:
            await asyncio.wait({task})

    async def cancel_where(self, predicate: Callable[[FormEntry], bool]) -> None:
        """cancel_and_wait every pending or writing entry matching predicate."""
        entry_ids = {e.id for e in self._pending.values() if predicate(e)}
        entry_ids |= {e.id for e in self._writing.values() if predicate(e)}
        for entry_id in entry_ids:
            await self.cancel_and_wait(entry_id)

    def cancel_all(self) -> None:
        for entry_id in list(self._timers):
            self.cancel(entry_id)

    def is_pending(self, entry_id: str) -> bool:
        return entry_id in self._pending

    def is_saving(self, entry_id: str) -> bool:
        return entry_id in self._in_flight

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def flush(self, entry_id: str) -> RepoResult[str] | None:
        """Save the pending value now; None when nothing was pending."""
        self._cancel_timer(entry_id)
        entry = self._pending.pop(entry_id, None)
        if entry is None:
            return None
        return await self._start_save(entry)

    async def flush_all(self) -> BulkOutcome[str]:
        """Save every pending value now (shutdown path)."""
        outcome: BulkOutcome[str] = BulkOutcome()
        for entry_id in list(self._pending):
            result = await self.flush(entry_id)
            if result is None:
                continue
            if result.ok:
                outcome.succeeded[entry_id] = result.value
            else:
                outcome.failed[entry_id] = result.error
        return outcome

    async def drain(self) -> None:
        """Wait for saves whose timers already fired."""
        while self._in_flight:
            await asyncio.wait(set(self._in_flight.values()))

    def _cancel_timer(self, entry_id: str) -> None:
        timer = self._timers.pop(entry_id, None)
        if timer is not None:
            timer.cancel()

    def _start_save(self, entry: FormEntry) -> asyncio.Task:
        # saves of one entry are chained: the newest task covers every earlier one
        previous = self._in_flight.get(entry.id)
        task = asyncio.create_task(self._save_after(previous, entry))
        self._in_flight[entry.id] = task
        self._writing[entry.id] = entry
        task.add_done_callback(lambda done, key=entry.id: self._forget(key, done))
        return task

    async def _save_after(self, previous: asyncio.Task | None, entry: FormEntry) -> RepoResult[str]:
        if previous is not None:
            await asyncio.wait({previous})
        return await self.execute_with_retry(entry)

    def _forget(self, entry_id: str, task: asyncio.Task) -> None:
        if self._in_flight.get(entry_id) is task:
            del self._in_flight[entry_id]
            del self._writing[entry_id]

    async def _fire(self, entry_id: str) -> None:
        await asyncio.sleep(self.interval_seconds)
        if self._timers.get(entry_id) is asyncio.current_task():
            del self._timers[entry_id]
        entry = self._pending.pop(entry_id, None)
        if entry is None:
            return
        result = await self._start_save(entry)
        if result.ok:
            self.logger.info(f"Scheduled auto-save completed for entry {entry_id}", extra={"entry_id": entry_id})
        else:
            self.logger.error(
                f"Scheduled auto-save failed for entry {entry_id}: {result.error.message}",
                extra={"entry_id": entry_id, "error_code": result.error.code},
            )
