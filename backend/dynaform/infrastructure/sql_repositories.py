"""SQL Repositories - SQLAlchemy adapters for the form and entry ports.

Invariants:
    - Each write is one session and one commit: it is applied entirely or not at all
    - PersistenceError and InvalidDataError never escape a write; they become
      failure RepoResults
    - Timestamps are stored and compared in UTC; naive values read back from
      SQLite are re-tagged as UTC
    - Change notifications are published only after a successful commit
    - Reads skip stored rows that no longer decode, logging each one

Design Decisions:
    - The form definition is stored as the mapper's dict in a JSON column; the
      timestamp columns are authoritative for ordering and range queries
    - Ordering matches the in-memory adapter: listings by created_at ascending,
      draft lookups by most recent updated_at
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy import delete, select

from dynaform.core.errors import (
    AssetLoadingError, ConflictError, FormsError, InvalidDataError, NotFoundError,
)
from dynaform.core.form_entry import FormEntry
from dynaform.core.form_schema import DynamicForm
from dynaform.core.repository_protocols import FormAssetSource, RepoResult
from dynaform.core.schema_mapper import form_from_dict, form_to_dict
from dynaform.infrastructure.change_feed import ChangeEvent, ChangeFeed
from dynaform.infrastructure.database import DatabaseSessionManager
from dynaform.models.form import FormRecord
from dynaform.models.form_entry import FormEntryRecord

logger = logging.getLogger(__name__)


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


# ─── Record Conversion ───────────────────────────────────────────

def form_from_record(record: FormRecord) -> DynamicForm:
    form = form_from_dict(record.definition)
    return replace(form, created_at=_utc(record.created_at), updated_at=_utc(record.updated_at))


def apply_form(record: FormRecord, form: DynamicForm) -> FormRecord:
    record.title = form.title
    record.definition = form_to_dict(form)
    record.created_at = _utc(form.created_at)
    record.updated_at = _utc(form.updated_at)
    return record


def entry_from_record(record: FormEntryRecord) -> FormEntry:
    return FormEntry(
        id=record.id,
        form_id=record.form_id,
        source_entry_id=record.source_entry_id,
        field_values={str(k): str(v) for k, v in (record.field_values or {}).items()},
        created_at=_utc(record.created_at),
        updated_at=_utc(record.updated_at),
        is_complete=record.is_complete,
        is_draft=record.is_draft,
    )


def apply_entry(record: FormEntryRecord, entry: FormEntry) -> FormEntryRecord:
    record.form_id = entry.form_id
    record.source_entry_id = entry.source_entry_id
    record.field_values = dict(entry.field_values)
    record.created_at = _utc(entry.created_at)
    record.updated_at = _utc(entry.updated_at)
    record.is_complete = entry.is_complete
    record.is_draft = entry.is_draft
    return record


# ─── Forms ───────────────────────────────────────────────────────

class SqlFormRepository:
    """FormRepository backed by the forms table."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        asset_source: FormAssetSource | None = None,
        feed: ChangeFeed | None = None,
    ):
        self.db = db
        self._asset_source = asset_source
        self.feed = feed or ChangeFeed()

    async def _select(self, stmt) -> list[DynamicForm]:
        async with self.db.session() as session:
            records = (await session.execute(stmt)).scalars().all()
        forms = []
        for record in records:
            try:
                forms.append(form_from_record(record))
            except InvalidDataError as e:
                logger.warning(f"Skipping stored form {record.id}: {e}", extra={"form_id": record.id})
        return forms

    async def get_all_forms(self) -> list[DynamicForm]:
        return await self._select(select(FormRecord).order_by(FormRecord.created_at))

    async def get_form_by_id(self, form_id: str) -> DynamicForm | None:
        forms = await self._select(select(FormRecord).where(FormRecord.id == form_id))
        return forms[0] if forms else None

    async def watch_form(self, form_id: str) -> AsyncIterator[DynamicForm | None]:
        async with self.feed.subscribe() as queue:
            yield await self.get_form_by_id(form_id)
            while True:
                event = await queue.get()
                if event.kind == "form" and event.key == form_id:
                    yield await self.get_form_by_id(form_id)

    async def insert_form(self, form: DynamicForm) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                if await session.get(FormRecord, form.id) is not None:
                    return RepoResult.failure(ConflictError(f"form '{form.id}' already exists"))
                session.add(apply_form(FormRecord(id=form.id), form))
                await session.commit()
        except FormsError as e:
            return self._failed("insert_form", e, form.id)
        self._publish(form.id)
        return RepoResult.success()

    async def update_form(self, form: DynamicForm) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                record = await session.get(FormRecord, form.id)
                if record is None:
                    return RepoResult.failure(NotFoundError("Form", form.id))
                apply_form(record, form)
                await session.commit()
        except FormsError as e:
            return self._failed("update_form", e, form.id)
        self._publish(form.id)
        return RepoResult.success()

    async def delete_form(self, form_id: str) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                record = await session.get(FormRecord, form_id)
                if record is None:
                    return RepoResult.failure(NotFoundError("Form", form_id))
                await session.delete(record)
                await session.commit()
        except FormsError as e:
            return self._failed("delete_form", e, form_id)
        self._publish(form_id)
        return RepoResult.success()

    async def load_forms_from_assets(self) -> RepoResult[list[DynamicForm]]:
        """Read the asset source without storing anything."""
        if self._asset_source is None:
            return RepoResult.failure(AssetLoadingError("no asset source configured"))
        try:
            forms = await self._asset_source.load_forms()
        except FormsError as e:
            return self._failed("load_forms_from_assets", e)
        return RepoResult.success(forms)

    async def clear_and_reload_forms(self) -> RepoResult[None]:
        loaded = await self.load_forms_from_assets()
        if not loaded.ok:
            return RepoResult.failure(loaded.error)
        forms = {f.id: f for f in loaded.value or []}
        try:
            async with self.db.session() as session:
                removed = (await session.execute(select(FormRecord.id))).scalars().all()
                await session.execute(delete(FormRecord))
                for form in forms.values():
                    session.add(apply_form(FormRecord(id=form.id), form))
                await session.commit()
        except FormsError as e:
            return self._failed("clear_and_reload_forms", e)
        for form_id in set(removed) | set(forms):
            self._publish(form_id)
        logger.info(f"Reloaded {len(forms)} forms from assets")
        return RepoResult.success()

    async def is_forms_data_initialized(self) -> bool:
        async with self.db.session() as session:
            first = (await session.execute(select(FormRecord.id).limit(1))).first()
        return first is not None

    async def search_forms(self, query: str) -> list[DynamicForm]:
        needle = query.strip().lower()
        forms = await self.get_all_forms()
        return [f for f in forms if needle in f.title.lower()]

    async def get_forms_in_date_range(
        self, start: datetime, end: datetime,
    ) -> list[DynamicForm]:
        return await self._select(
            select(FormRecord)
            .where(FormRecord.created_at >= _utc(start), FormRecord.created_at <= _utc(end))
            .order_by(FormRecord.created_at)
        )

    def _publish(self, form_id: str) -> None:
        self.feed.publish(ChangeEvent("form", form_id, form_id))

    def _failed(self, operation: str, error: FormsError, form_id: str | None = None) -> RepoResult:
        logger.error(
            f"{operation} failed: {error.message}",
            extra={"form_id": form_id, "error_code": error.code},
        )
        return RepoResult.failure(error)


# ─── Entries ─────────────────────────────────────────────────────

class SqlFormEntryRepository:
    """FormEntryRepository backed by the form_entries table."""

    def __init__(self, db: DatabaseSessionManager, feed: ChangeFeed | None = None):
        self.db = db
        self.feed = feed or ChangeFeed()

    async def _select(self, stmt) -> list[FormEntry]:
        async with self.db.session() as session:
            records = (await session.execute(stmt)).scalars().all()
        return [entry_from_record(r) for r in records]

    async def _first(self, stmt) -> FormEntry | None:
        entries = await self._select(stmt.limit(1))
        return entries[0] if entries else None

    @staticmethod
    def _for_form(form_id: str):
        return (
            select(FormEntryRecord)
            .where(FormEntryRecord.form_id == form_id)
            .order_by(FormEntryRecord.created_at)
        )

    async def get_entries_for_form(self, form_id: str) -> list[FormEntry]:
        return await self._select(self._for_form(form_id))

    async def get_entry_by_id(self, entry_id: str) -> FormEntry | None:
        return await self._first(select(FormEntryRecord).where(FormEntryRecord.id == entry_id))

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
        try:
            async with self.db.session() as session:
                if await session.get(FormEntryRecord, entry.id) is not None:
                    return RepoResult.failure(ConflictError(f"entry '{entry.id}' already exists"))
                session.add(apply_entry(FormEntryRecord(id=entry.id), entry))
                await session.commit()
        except FormsError as e:
            return self._failed("insert_entry", e, entry.id)
        self._publish(entry.id, entry.form_id)
        return RepoResult.success(entry.id)

    async def update_entry(self, entry: FormEntry) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                record = await session.get(FormEntryRecord, entry.id)
                if record is None:
                    return RepoResult.failure(NotFoundError("Entry", entry.id))
                apply_entry(record, entry)
                await session.commit()
        except FormsError as e:
            return self._failed("update_entry", e, entry.id)
        self._publish(entry.id, entry.form_id)
        return RepoResult.success()

    async def delete_entry(self, entry_id: str) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                record = await session.get(FormEntryRecord, entry_id)
                if record is None:
                    return RepoResult.failure(NotFoundError("Entry", entry_id))
                form_id = record.form_id
                await session.delete(record)
                await session.commit()
        except FormsError as e:
            return self._failed("delete_entry", e, entry_id)
        self._publish(entry_id, form_id)
        return RepoResult.success()

    async def save_entry_draft(self, entry: FormEntry) -> RepoResult[None]:
        draft = replace(entry, is_draft=True, is_complete=False)
        try:
            async with self.db.session() as session:
                record = await session.get(FormEntryRecord, draft.id)
                if record is None:
                    session.add(apply_entry(FormEntryRecord(id=draft.id), draft))
                else:
                    apply_entry(record, draft)
                await session.commit()
        except FormsError as e:
            return self._failed("save_entry_draft", e, draft.id)
        self._publish(draft.id, draft.form_id)
        return RepoResult.success()

    async def get_draft_entry(self, form_id: str) -> FormEntry | None:
        return await self._first(
            select(FormEntryRecord)
            .where(FormEntryRecord.form_id == form_id, FormEntryRecord.is_draft.is_(True))
            .order_by(FormEntryRecord.updated_at.desc())
        )

    async def get_new_draft_entry(self, form_id: str) -> FormEntry | None:
        return await self._first(
            select(FormEntryRecord)
            .where(
                FormEntryRecord.form_id == form_id,
                FormEntryRecord.is_draft.is_(True),
                FormEntryRecord.source_entry_id.is_(None),
            )
            .order_by(FormEntryRecord.updated_at.desc())
        )

    async def get_edit_draft_for_entry(self, entry_id: str) -> FormEntry | None:
        return await self._first(
            select(FormEntryRecord)
            .where(
                FormEntryRecord.source_entry_id == entry_id,
                FormEntryRecord.is_draft.is_(True),
            )
            .order_by(FormEntryRecord.updated_at.desc())
        )

    async def get_all_drafts_for_form(self, form_id: str) -> list[FormEntry]:
        return await self._select(
            self._for_form(form_id).where(FormEntryRecord.is_draft.is_(True))
        )

    async def delete_draft_entry(self, form_id: str) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                records = (await session.execute(
                    select(FormEntryRecord).where(
                        FormEntryRecord.form_id == form_id,
                        FormEntryRecord.is_draft.is_(True),
                        FormEntryRecord.source_entry_id.is_(None),
                    )
                )).scalars().all()
                if not records:
                    return RepoResult.failure(NotFoundError("Draft", form_id))
                removed = [r.id for r in records]
                for record in records:
                    await session.delete(record)
                await session.commit()
        except FormsError as e:
            return self._failed("delete_draft_entry", e)
        for entry_id in removed:
            self._publish(entry_id, form_id)
        return RepoResult.success()

    async def delete_edit_drafts_for_entry(self, entry_id: str) -> RepoResult[None]:
        try:
            async with self.db.session() as session:
                records = (await session.execute(
                    select(FormEntryRecord).where(
                        FormEntryRecord.source_entry_id == entry_id,
                        FormEntryRecord.is_draft.is_(True),
                    )
                )).scalars().all()
                removed = [(r.id, r.form_id) for r in records]
                for record in records:
                    await session.delete(record)
                await session.commit()
        except FormsError as e:
            return self._failed("delete_edit_drafts_for_entry", e, entry_id)
        for draft_id, form_id in removed:
            self._publish(draft_id, form_id)
        return RepoResult.success()

    async def get_entries_by_status(
        self, form_id: str, is_draft: bool | None = None, is_complete: bool | None = None,
    ) -> list[FormEntry]:
        stmt = self._for_form(form_id)
        if is_draft is not None:
            stmt = stmt.where(FormEntryRecord.is_draft.is_(is_draft))
        if is_complete is not None:
            stmt = stmt.where(FormEntryRecord.is_complete.is_(is_complete))
        return await self._select(stmt)

    async def get_entries_in_date_range(
        self, form_id: str, start: datetime, end: datetime,
    ) -> list[FormEntry]:
        return await self._select(
            self._for_form(form_id).where(
                FormEntryRecord.created_at >= _utc(start),
                FormEntryRecord.created_at <= _utc(end),
            )
        )

    def _publish(self, entry_id: str, form_id: str) -> None:
        self.feed.publish(ChangeEvent("entry", entry_id, form_id))

    def _failed(self, operation: str, error: FormsError, entry_id: str | None = None) -> RepoResult:
        logger.error(
            f"{operation} failed: {error.message}",
            extra={"entry_id": entry_id, "error_code": error.code},
        )
        return RepoResult.failure(error)
