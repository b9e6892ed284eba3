"""Initialize Forms - seed the form repository from its asset source.

Invariants:
    - execute() is idempotent: an initialized repository is left untouched
    - force_reinitialize() updates forms that exist and inserts the rest
    - The first failing insert stops initialization and is returned as-is
    - Progress callbacks receive in_progress updates, then exactly one
      completed or error update
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from dynaform.core.form_schema import DynamicForm
from dynaform.core.repository_protocols import FormRepository, RepoResult
from dynaform.services.repository_helpers import form_exists, forms_count


class InitializationStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class InitializationProgress:
    is_initialized: bool
    forms_count: int
    status: InitializationStatus
    error_message: str | None = None


ProgressHandler = Callable[[InitializationProgress], None]


class InitializeFormsService:
    """Loads bundled definitions into the form repository."""

    def __init__(
        self, form_repository: FormRepository, logger: logging.Logger | None = None,
    ):
        self.forms = form_repository
        self.logger = logger or logging.getLogger(__name__)

    async def execute(self, on_progress: ProgressHandler | None = None) -> RepoResult[None]:
        report = on_progress or (lambda _progress: None)
        report(InitializationProgress(False, 0, InitializationStatus.IN_PROGRESS))

        if await self.forms.is_forms_data_initialized():
            count = await forms_count(self.forms)
            report(InitializationProgress(True, count, InitializationStatus.COMPLETED))
            return RepoResult.success()

        loaded = await self.forms.load_forms_from_assets()
        if not loaded.ok:
            report(InitializationProgress(
                False, 0, InitializationStatus.ERROR, loaded.error.message,
            ))
            return RepoResult.failure(loaded.error)

        forms: list[DynamicForm] = loaded.value or []
        for index, form in enumerate(forms):
            inserted = await self.forms.insert_form(form)
            if not inserted.ok:
                self.logger.error(
                    f"Inserting form {form.id} failed: {inserted.error.message}",
                    extra={"form_id": form.id, "error_code": inserted.error.code},
                )
                report(InitializationProgress(
                    False, index, InitializationStatus.ERROR, inserted.error.message,
                ))
                return RepoResult.failure(inserted.error)
            report(InitializationProgress(False, index + 1, InitializationStatus.IN_PROGRESS))

        self.logger.info(f"Initialized {len(forms)} forms")
        report(InitializationProgress(True, len(forms), InitializationStatus.COMPLETED))
        return RepoResult.success()

    async def force_reinitialize(self) -> RepoResult[None]:
        loaded = await self.forms.load_forms_from_assets()
        if not loaded.ok:
            return RepoResult.failure(loaded.error)
        for form in loaded.value or []:
            if await form_exists(self.forms, form.id):
                result = await self.forms.update_form(form)
            else:
                result = await self.forms.insert_form(form)
            if not result.ok:
                return RepoResult.failure(result.error)
        self.logger.info(f"Reinitialized {len(loaded.value or [])} forms")
        return RepoResult.success()

    async def is_initialized(self) -> bool:
        return await self.forms.is_forms_data_initialized()

    async def progress(self) -> InitializationProgress:
        if not await self.forms.is_forms_data_initialized():
            return InitializationProgress(False, 0, InitializationStatus.NOT_STARTED)
        return InitializationProgress(
            True, await forms_count(self.forms), InitializationStatus.COMPLETED,
        )
