"""Service test fixtures - in-memory repositories and a fast auto-save scheduler.

Invariants:
    - Every test gets fresh repositories with their own change feed
    - The scheduler fixture uses short intervals and zero backoff so timer
      tests finish in milliseconds

Design Decisions:
    - In-memory adapters over SQLite: services only see the ports, and the
      adapter contract is covered in tests/infrastructure
    - CountingEntryRepository records writes so debounce tests can assert
      how many saves actually happened
"""

import asyncio

import pytest

from dynaform.core.errors import PersistenceError
from dynaform.core.repository_protocols import RepoResult
from dynaform.infrastructure.memory_repositories import (
    InMemoryFormEntryRepository, InMemoryFormRepository,
)
from dynaform.services.auto_save import AutoSaveScheduler
from tests.factories import StaticAssets


class CountingEntryRepository(InMemoryFormEntryRepository):
    """Records draft writes; fails the next `fail_next` writes.

    write_delay stretches every draft write so tests can act while one is in flight.
    """

    def __init__(self):
        super().__init__()
        self.draft_writes = []
        self.fail_next = 0
        self.write_delay = 0.0

    async def save_entry_draft(self, entry):
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_next:
            self.fail_next -= 1
            return RepoResult.failure(PersistenceError("disk full", "save_entry_draft"))
        self.draft_writes.append(entry)
        return await super().save_entry_draft(entry)


@pytest.fixture
def entry_repo():
    return CountingEntryRepository()


@pytest.fixture
def form_repo(contact_form):
    return InMemoryFormRepository(StaticAssets([contact_form]))


@pytest.fixture
def scheduler(entry_repo):
    return AutoSaveScheduler(entry_repo, interval_seconds=0.01, retry_base_delay=0)
