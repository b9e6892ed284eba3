"""SQLAlchemy Declarative Base - shared metadata for the form and entry tables.

Invariants:
    - Every ORM model (forms, form_entries) inherits from Base
    - Index and constraint names are derived from NAMING_CONVENTION, so the
      SQLite and PostgreSQL schemas carry identical names

Design Decisions:
    - Separate file for Base: avoids circular imports between models
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for the Dynaform ORM models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
