"""JSON Asset Source - loads bundled form definitions from a directory.

Invariants:
    - Files are read in name order, so load order is deterministic
    - A malformed file is logged and skipped; it never aborts the load
    - A missing directory or a directory yielding no forms is an AssetLoadingError

Design Decisions:
    - File IO runs in a worker thread (asyncio.to_thread): callers stay async
      without an async file library
    - Documents go through form_from_document, so a missing id is derived
      from the title
"""

import asyncio
import json
import logging
from pathlib import Path

from dynaform.core.errors import AssetLoadingError, InvalidDataError
from dynaform.core.form_schema import DynamicForm
from dynaform.core.schema_mapper import form_from_document

logger = logging.getLogger(__name__)


class JsonFormAssetSource:
    """Reads every *.json file in a directory, one form document per file."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    async def load_forms(self) -> list[DynamicForm]:
        return await asyncio.to_thread(self._load_all)

    def _load_all(self) -> list[DynamicForm]:
        if not self.directory.is_dir():
            raise AssetLoadingError(f"asset directory '{self.directory}' does not exist")

        forms = []
        for path in sorted(self.directory.glob("*.json")):
            form = self._load_file(path)
            if form is not None:
                forms.append(form)

        if not forms:
            raise AssetLoadingError(f"no forms found in '{self.directory}'")
        logger.info(f"Loaded {len(forms)} forms from {self.directory}")
        return forms

    def _load_file(self, path: Path) -> DynamicForm | None:
        try:
            with path.open(encoding="utf-8") as fh:
                document = json.load(fh)
            form = form_from_document(document)
        except (OSError, json.JSONDecodeError, InvalidDataError) as e:
            logger.warning(f"Skipping form asset {path.name}: {e}")
            return None
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping form asset {path.name}: malformed document ({e})")
            return None
        logger.debug(
            f"Loaded form '{form.title}' with {len(form.fields)} fields",
            extra={"form_id": form.id},
        )
        return form
