"""Error Hierarchy - typed, categorized errors for every Dynaform failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - message is human-readable and safe to display as-is
    - Validation failures are normally returned as maps, ValidationFailedError only
      wraps them when a service must refuse an operation

Design Decisions:
    - Single hierarchy with FormsError base: adapters convert any storage exception
      into one of these before it leaves the port
    - ErrorContext as dataclass: observability details without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL = "external"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    form_id: str | None = None
    entry_id: str | None = None
    field_uuid: str | None = None
    debug_info: dict[str, Any] | None = None


class FormsError(Exception):
    """Base exception for all Dynaform errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_response(self) -> dict:
        """Convert to a serializable error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "form_id": self.context.form_id,
                    "entry_id": self.context.entry_id,
                    "field_uuid": self.context.field_uuid,
                },
            }
        }


# ─── Data & Validation Errors ───────────────────────────────────

class InvalidDataError(FormsError):
    """A required key is missing or malformed in an external record."""
    def __init__(self, key: str, record: str = "record", context: ErrorContext | None = None):
        super().__init__(
            f"Invalid {record} data: missing required key '{key}'",
            "INVALID_DATA", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.key = key
        self.record = record


class ValidationFailedError(FormsError):
    """One or more fields failed validation; errors maps field uuid to message."""
    def __init__(self, errors: dict[str, str], context: ErrorContext | None = None):
        super().__init__(
            f"Validation failed: {', '.join(errors.values())}",
            "VALIDATION_FAILED", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context,
        )
        self.errors = dict(errors)


class NotFoundError(FormsError):
    """Requested form, entry or draft does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ─── Business Rule Errors ───────────────────────────────────────

class HasActiveEditDraftsError(FormsError):
    """Entry cannot be deleted while an edit draft references it."""
    def __init__(self, entry_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot delete entry '{entry_id}' because it has active edit drafts",
            "HAS_ACTIVE_EDIT_DRAFTS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context,
        )
        self.entry_id = entry_id


class DeletionCancelledError(FormsError):
    """Caller declined the deletion confirmation."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Deletion was cancelled by user",
            "DELETION_CANCELLED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.INFO, context,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class PersistenceError(FormsError):
    """Adapter-level storage failure; reason is passed through opaquely."""
    def __init__(self, reason: str, operation: str = "unknown", context: ErrorContext | None = None):
        super().__init__(
            f"Persistence error during {operation}: {reason}",
            "PERSISTENCE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context,
        )
        self.reason = reason
        self.operation = operation


class ConflictError(FormsError):
    """Concurrent modification detected by an adapter or save policy."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Conflict error: {reason}",
            "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context,
        )
        self.reason = reason


class AutoSaveSkippedError(FormsError):
    """Auto-save deliberately skipped because the stored copy is newer."""
    def __init__(self, entry_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Auto-save skipped for entry {entry_id} due to conflict",
            "AUTO_SAVE_SKIPPED", ErrorCategory.CONFLICT,
            ErrorSeverity.INFO, context,
        )
        self.entry_id = entry_id


class AssetLoadingError(FormsError):
    """Form definitions could not be read from the asset source."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Asset loading failed: {reason}",
            "ASSET_LOADING_FAILED", ErrorCategory.EXTERNAL,
            ErrorSeverity.ERROR, context,
        )
        self.reason = reason
