"""Database Infrastructure - SQLAlchemy Base for the reference SQL adapter.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite by default, asyncpg for PostgreSQL (native async drivers)
"""
