"""Export Entries - serialize entries to the persisted JSON shape.

Invariants:
    - Output uses the mapper's camelCase keys and epoch-millisecond timestamps
    - Bulk export looks up every id and reports each missing or unreadable
      entry without dropping the rest
"""

import json
import logging

from dynaform.core.errors import FormsError, NotFoundError
from dynaform.core.form_entry import FormEntry
from dynaform.core.repository_protocols import FormEntryRepository
from dynaform.core.schema_mapper import entry_to_dict
from dynaform.services.bulk import BulkOutcome


def entries_to_json(entries: list[FormEntry], indent: int | None = 2) -> str:
    return json.dumps([entry_to_dict(e) for e in entries], indent=indent, ensure_ascii=False)


class ExportEntriesService:
    """Exports stored entries by id."""

    def __init__(
        self, entry_repository: FormEntryRepository, logger: logging.Logger | None = None,
    ):
        self.entries = entry_repository
        self.logger = logger or logging.getLogger(__name__)

    async def export(self, entry_ids: list[str]) -> BulkOutcome[dict]:
        outcome: BulkOutcome[dict] = BulkOutcome()
        for entry_id in entry_ids:
            try:
                entry = await self.entries.get_entry_by_id(entry_id)
            except FormsError as e:
                outcome.failed[entry_id] = e
                continue
            if entry is None:
                outcome.failed[entry_id] = NotFoundError("Entry", entry_id)
                continue
            outcome.succeeded[entry_id] = entry_to_dict(entry)
        if outcome.failed:
            self.logger.warning(f"Export skipped {len(outcome.failed)} of {outcome.total} entries")
        return outcome

    async def export_form(self, form_id: str) -> str:
        """All entries of a form as a JSON array, oldest first."""
        return entries_to_json(await self.entries.get_entries_for_form(form_id))
