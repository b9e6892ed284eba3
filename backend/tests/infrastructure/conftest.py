"""Infrastructure test fixtures - both repository adapters behind one fixture.

Invariants:
    - Every test gets fresh repositories; the SQL adapter gets a fresh
      in-memory SQLite database
    - Contract tests run once per adapter ("memory", "sql")
"""

import pytest

from dynaform.infrastructure.database import DatabaseSessionManager
from dynaform.infrastructure.memory_repositories import (
    InMemoryFormEntryRepository, InMemoryFormRepository,
)
from dynaform.infrastructure.sql_repositories import (
    SqlFormEntryRepository, SqlFormRepository,
)


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture(params=["memory", "sql"])
async def entry_repo(request, db_manager):
    if request.param == "memory":
        return InMemoryFormEntryRepository()
    return SqlFormEntryRepository(db_manager)


@pytest.fixture(params=["memory", "sql"])
async def form_repo_factory(request, db_manager):
    """Build a form repository of the parametrized kind around an asset source."""
    def build(asset_source=None):
        if request.param == "memory":
            return InMemoryFormRepository(asset_source)
        return SqlFormRepository(db_manager, asset_source)
    return build
