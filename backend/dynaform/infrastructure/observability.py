"""Structured Logging - JSON formatter and setup for form/entry observability.

Invariants:
    - All logs include timestamp, level, logger name, component and message
    - Extra fields (form_id, entry_id, field_uuid, error_code, attempt) surfaced when present
    - Entry values never reach a log line: a field_values extra is reduced to its uuids
    - A logged FormsError contributes its code, category and context ids; explicit
      extras on the record win over them
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter on the standard logging module: no extra dependency
    - timestamp is the record's creation time, not the time it was formatted
    - setup_logging called once by the embedding application on startup
"""

import logging
import json
from datetime import datetime, timezone
from typing import Mapping

from dynaform.core.errors import FormsError

EXTRA_FIELDS: tuple[str, ...] = (
    "form_id", "entry_id", "field_uuid", "error_code", "attempt",
)


def component_of(logger_name: str) -> str:
    """'dynaform.services.save_entry' -> 'services'; foreign loggers keep their root."""
    parts = logger_name.split(".")
    if parts[0] == "dynaform" and len(parts) > 1:
        return parts[1]
    return parts[0]


def _error_fields(error: FormsError) -> dict:
    fields = {
        "error_code": error.code,
        "error_category": error.category.value,
        "form_id": error.context.form_id,
        "entry_id": error.context.entry_id,
        "field_uuid": error.context.field_uuid,
    }
    return {k: v for k, v in fields.items() if v is not None}


class JSONFormatter(logging.Formatter):
    """Format logs as JSON, one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": component_of(record.name),
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val

        values = record.__dict__.get("field_values")
        if isinstance(values, Mapping):
            log["field_uuids"] = sorted(str(k) for k in values)

        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, FormsError):
                for key, val in _error_fields(error).items():
                    log.setdefault(key, val)
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Configure root logging; returns the installed handler."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
