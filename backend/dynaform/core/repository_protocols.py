"""Boundary Protocols - contracts between core and the storage shell.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - Writes return RepoResult; a failure carries a display-ready FormsError
    - Reads return values directly; absence is None or an empty list, never an error
    - Read-your-writes within one repository instance
    - Every committed write is observed by every active watch_* subscription

Design Decisions:
    - Protocol over ABC: structural subtyping, adapters need no inheritance
    - RepoResult over raising: storage failures are expected outcomes the caller
      must branch on (ADR: explicit failure values at the port)
    - watch_* are async iterators: the first item is the current value, then one
      item per change until the consumer stops iterating
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Generic, Protocol, TypeVar

from dynaform.core.errors import FormsError
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm

T = TypeVar("T")


@dataclass(frozen=True)
class RepoResult(Generic[T]):
    """Success value or FormsError returned by every repository write."""
    value: T | None = None
    error: FormsError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "RepoResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FormsError) -> "RepoResult[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class FormRepository(Protocol):
    """Contract for form definition persistence - implemented by shell."""
    async def get_all_forms(self) -> list[DynamicForm]: ...
    async def get_form_by_id(self, form_id: str) -> DynamicForm | None: ...
    def watch_form(self, form_id: str) -> AsyncIterator[DynamicForm | None]: ...
    async def insert_form(self, form: DynamicForm) -> RepoResult[None]: ...
    async def update_form(self, form: DynamicForm) -> RepoResult[None]: ...
    async def delete_form(self, form_id: str) -> RepoResult[None]: ...
    async def load_forms_from_assets(self) -> RepoResult[list[DynamicForm]]: ...
    async def clear_and_reload_forms(self) -> RepoResult[None]: ...
    async def is_forms_data_initialized(self) -> bool: ...
    async def search_forms(self, query: str) -> list[DynamicForm]: ...
    async def get_forms_in_date_range(
        self, start: datetime, end: datetime,
    ) -> list[DynamicForm]: ...


class FormEntryRepository(Protocol):
    """Contract for form entry persistence - implemented by shell."""
    async def get_entries_for_form(self, form_id: str) -> list[FormEntry]: ...
    async def get_entry_by_id(self, entry_id: str) -> FormEntry | None: ...
    def watch_entry(self, entry_id: str) -> AsyncIterator[FormEntry | None]: ...
    def watch_entries_for_form(self, form_id: str) -> AsyncIterator[list[FormEntry]]: ...
    async def insert_entry(self, entry: FormEntry) -> RepoResult[str]: ...
    async def update_entry(self, entry: FormEntry) -> RepoResult[None]: ...
    async def delete_entry(self, entry_id: str) -> RepoResult[None]: ...
    async def save_entry_draft(self, entry: FormEntry) -> RepoResult[None]: ...
    async def get_draft_entry(self, form_id: str) -> FormEntry | None: ...
    async def get_new_draft_entry(self, form_id: str) -> FormEntry | None: ...
    async def get_edit_draft_for_entry(self, entry_id: str) -> FormEntry | None: ...
    async def get_all_drafts_for_form(self, form_id: str) -> list[FormEntry]: ...
    async def delete_draft_entry(self, form_id: str) -> RepoResult[None]: ...
    async def delete_edit_drafts_for_entry(self, entry_id: str) -> RepoResult[None]: ...
    async def get_entries_by_status(
        self, form_id: str, is_draft: bool | None = None, is_complete: bool | None = None,
    ) -> list[FormEntry]: ...
    async def get_entries_in_date_range(
        self, form_id: str, start: datetime, end: datetime,
    ) -> list[FormEntry]: ...


class FormAssetSource(Protocol):
    """Contract for the read-only source of bundled form definitions."""
    async def load_forms(self) -> list[DynamicForm]: ...
