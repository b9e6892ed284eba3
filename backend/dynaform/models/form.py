"""Form ORM - persists one form definition.

Invariants:
    - id is the form's own string id (primary key, not generated)
    - definition holds the mapper's dict shape (fields and sections included)
    - created_at/updated_at mirror the domain timestamps for range queries

Design Decisions:
    - JSON column for the definition: fields and sections are always read and
      written together, never queried individually
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from dynaform.db.base import Base


class FormRecord(Base):
    """Stored form definition."""
    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    definition: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
