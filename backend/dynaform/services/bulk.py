"""Bulk Outcome - per-item result of an operation applied to many entries.

Invariants:
    - Every requested key lands in exactly one of succeeded / failed
    - A failed item never stops the remaining items
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from dynaform.core.errors import FormsError

T = TypeVar("T")


@dataclass
class BulkOutcome(Generic[T]):
    succeeded: dict[str, T] = field(default_factory=dict)
    failed: dict[str, FormsError] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def failure_messages(self) -> dict[str, str]:
        return {key: error.message for key, error in self.failed.items()}
