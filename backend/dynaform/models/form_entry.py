"""FormEntry ORM - persists one entry of user-entered values.

Invariants:
    - form_id indexes every per-form listing
    - source_entry_id is set only for edit drafts
    - field_values maps field uuid to string value

Design Decisions:
    - No foreign key to forms: entries outlive form reloads (clear_and_reload_forms)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from dynaform.db.base import Base


class FormEntryRecord(Base):
    """Stored form entry."""
    __tablename__ = "form_entries"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    form_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    source_entry_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True,
    )
    field_values: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
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
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_draft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
