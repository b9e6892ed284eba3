"""Repository Helpers - small queries composed from the port reads."""

from dynaform.core.repository_protocols import FormEntryRepository, FormRepository


async def entry_exists(repository: FormEntryRepository, entry_id: str) -> bool:
    return await repository.get_entry_by_id(entry_id) is not None


async def form_exists(repository: FormRepository, form_id: str) -> bool:
    return await repository.get_form_by_id(form_id) is not None


async def forms_count(repository: FormRepository) -> int:
    return len(await repository.get_all_forms())
