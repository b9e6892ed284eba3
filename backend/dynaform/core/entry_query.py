"""Entry Query - pure filter, search and sort over entry collections.

Invariants:
    - Never mutates or drops entries beyond what the query asks for
    - Sorting is stable: entries with equal keys keep their input order
    - Search is a case-insensitive substring match; an empty query matches all
    - Pipeline order: status -> date range -> search -> sort

Design Decisions:
    - The "drafts" filter includes edit drafts (every is_draft entry); listings
      that want only new drafts combine it with EDIT_DRAFTS themselves
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from dynaform.core.domain_types import EntrySortOption, EntryStatusFilter
from dynaform.core.form_entry import FormEntry


@dataclass(frozen=True)
class EntryQuery:
    """One listing request: status, optional created_at window, text, order."""
    status_filter: EntryStatusFilter = EntryStatusFilter.ALL
    search_text: str = ""
    sort_option: EntrySortOption = EntrySortOption.UPDATED_DESC
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass(frozen=True)
class EntryStatistics:
    total: int
    drafts: int
    edit_drafts: int
    completed: int
    last_updated: datetime | None

    @property
    def new_drafts(self) -> int:
        return self.drafts - self.edit_drafts

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total if self.total else 0.0


# ─── Filtering ───────────────────────────────────────────────────

def matches_status(entry: FormEntry, status_filter: EntryStatusFilter) -> bool:
    match status_filter:
        case EntryStatusFilter.ALL:
            return True
        case EntryStatusFilter.DRAFTS:
            return entry.is_draft
        case EntryStatusFilter.COMPLETED:
            return entry.is_complete and not entry.is_draft
        case EntryStatusFilter.EDIT_DRAFTS:
            return entry.is_edit_draft
    return False


def filter_by_status(
    entries: Iterable[FormEntry], status_filter: EntryStatusFilter,
) -> list[FormEntry]:
    return [e for e in entries if matches_status(e, status_filter)]


def filter_by_created_range(
    entries: Iterable[FormEntry], start: datetime | None, end: datetime | None,
) -> list[FormEntry]:
    """Inclusive on both ends; a missing bound is open."""
    return [
        e for e in entries
        if (start is None or e.created_at >= start)
        and (end is None or e.created_at <= end)
    ]


# ─── Search ──────────────────────────────────────────────────────

def format_search_date(moment: datetime) -> str:
    """Medium date, short time: 'Jan 5, 2024, 3:07 PM'."""
    hour = moment.hour % 12 or 12
    return f"{moment:%b} {moment.day}, {moment:%Y}, {hour}:{moment:%M %p}"


def _search_haystack(entry: FormEntry) -> list[str]:
    haystack = [
        entry.generate_display_title(),
        entry.generate_display_subtitle(),
        entry.id,
        entry.status.display_name,
        format_search_date(entry.created_at),
        format_search_date(entry.updated_at),
    ]
    if entry.source_entry_id is not None:
        haystack.append(entry.source_entry_id)
    haystack.extend(entry.field_values.values())
    haystack.extend(entry.field_values.keys())
    return haystack


def matches_search(entry: FormEntry, text: str) -> bool:
    needle = text.strip().lower()
    if not needle:
        return True
    return any(needle in item.lower() for item in _search_haystack(entry))


def search_entries(entries: Iterable[FormEntry], text: str) -> list[FormEntry]:
    return [e for e in entries if matches_search(e, text)]


# ─── Sorting ─────────────────────────────────────────────────────

def sort_entries(
    entries: Iterable[FormEntry], option: EntrySortOption,
) -> list[FormEntry]:
    # sorted(reverse=True) keeps ties in input order, so every option is stable
    match option:
        case EntrySortOption.UPDATED_DESC:
            return sorted(entries, key=lambda e: e.updated_at, reverse=True)
        case EntrySortOption.UPDATED_ASC:
            return sorted(entries, key=lambda e: e.updated_at)
        case EntrySortOption.CREATED_DESC:
            return sorted(entries, key=lambda e: e.created_at, reverse=True)
        case EntrySortOption.CREATED_ASC:
            return sorted(entries, key=lambda e: e.created_at)
    return list(entries)


def apply_query(entries: Iterable[FormEntry], query: EntryQuery) -> list[FormEntry]:
    result = filter_by_status(entries, query.status_filter)
    if query.created_from is not None or query.created_to is not None:
        result = filter_by_created_range(result, query.created_from, query.created_to)
    result = search_entries(result, query.search_text)
    return sort_entries(result, query.sort_option)


def entry_statistics(entries: Iterable[FormEntry]) -> EntryStatistics:
    items = list(entries)
    return EntryStatistics(
        total=len(items),
        drafts=sum(1 for e in items if e.is_draft),
        edit_drafts=sum(1 for e in items if e.is_edit_draft),
        completed=sum(1 for e in items if e.is_complete and not e.is_draft),
        last_updated=max((e.updated_at for e in items), default=None),
    )
