"""Dynaform - application wiring and startup/shutdown lifecycle.

Invariants:
    - Wiring is explicit: every adapter and service is built here, nowhere else
    - Forms are seeded from the asset directory on startup (idempotent)
    - Pending auto-saves are flushed before the database is disposed

Design Decisions:
    - Lifespan context manager over start()/stop() pairs: cleanup runs even when
      the embedding application fails mid-startup
    - SQL adapters share one ChangeFeed per repository so watch_* subscriptions
      see every write made through this application
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from dynaform.config import Settings, get_settings
from dynaform.infrastructure.asset_source import JsonFormAssetSource
from dynaform.infrastructure.database import DatabaseSessionManager
from dynaform.infrastructure.observability import setup_logging
from dynaform.infrastructure.sql_repositories import SqlFormEntryRepository, SqlFormRepository
from dynaform.services.auto_save import AutoSaveScheduler
from dynaform.services.delete_entry import DeleteEntryService
from dynaform.services.entry_listing import EntryListingService
from dynaform.services.export_entries import ExportEntriesService
from dynaform.services.initialize_forms import InitializeFormsService
from dynaform.services.save_entry import SaveEntryService

logger = logging.getLogger(__name__)


@dataclass
class FormsApplication:
    """Repositories and services built from one Settings instance."""
    db: DatabaseSessionManager
    forms: SqlFormRepository
    entries: SqlFormEntryRepository
    auto_save: AutoSaveScheduler
    save_entry: SaveEntryService
    delete_entry: DeleteEntryService
    listing: EntryListingService
    export: ExportEntriesService
    initialize_forms: InitializeFormsService


def build_application(settings: Settings) -> FormsApplication:
    db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    forms = SqlFormRepository(db, JsonFormAssetSource(settings.forms_asset_dir))
    entries = SqlFormEntryRepository(db)
    auto_save = AutoSaveScheduler.from_settings(entries, settings)
    return FormsApplication(
        db=db,
        forms=forms,
        entries=entries,
        auto_save=auto_save,
        save_entry=SaveEntryService(entries, auto_save=auto_save),
        delete_entry=DeleteEntryService(entries, auto_save=auto_save),
        listing=EntryListingService(entries),
        export=ExportEntriesService(entries),
        initialize_forms=InitializeFormsService(forms),
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[FormsApplication]:
    """Startup/shutdown lifecycle."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    application = build_application(settings)
    try:
        await application.db.create_schema()
        seeded = await application.initialize_forms.execute()
        if not seeded.ok:
            logger.error(
                f"Form initialization failed: {seeded.error.message}",
                extra={"error_code": seeded.error.code},
            )
        logger.info("Dynaform started")
        yield application
    finally:
        logger.info("Dynaform shutting down")
        await application.auto_save.flush_all()
        await application.auto_save.drain()
        await application.db.dispose()
