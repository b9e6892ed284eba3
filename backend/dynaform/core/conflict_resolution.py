"""Conflict Resolution - pure decisions for saves racing a newer stored copy.

Invariants:
    - A conflict exists only when the stored copy was updated strictly later
      than the local copy
    - Merge starts from the stored values and overlays every non-blank local value
    - Merge keeps the stored created_at and stamps a fresh updated_at
"""

from dataclasses import replace

from dynaform.core.field_validator import is_blank
from dynaform.core.form_entry import FormEntry
from dynaform.core.timestamps import utc_now


def has_conflict(local: FormEntry, stored: FormEntry | None) -> bool:
    return stored is not None and stored.updated_at > local.updated_at


def merge_entries(local: FormEntry, stored: FormEntry, as_draft: bool | None = None) -> FormEntry:
    """Overlay non-blank local values on the stored ones.

    as_draft forces the draft flag (auto-save always writes drafts); None keeps
    the local flag.
    """
    values = dict(stored.field_values)
    values.update({k: v for k, v in local.field_values.items() if not is_blank(v)})
    return replace(
        local,
        field_values=values,
        created_at=stored.created_at,
        updated_at=utc_now(),
        is_draft=local.is_draft if as_draft is None else as_draft,
    )
