"""Search, status filter and sort over an in-memory record list."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Sequence

from clubconsole.moderation.kinds import RecordKind
from clubconsole.moderation.models import ALL, FilterSortSpec, ModerationRecord, SortDirection
from clubconsole.store import to_instant


def matches_search(kind: RecordKind, record: ModerationRecord, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    for name in kind.search_fields:
        value = kind.field_value(record, name)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def matches_status(record: ModerationRecord, status_filter: str) -> bool:
    return not status_filter or status_filter == ALL or record.status == status_filter


def _sort_key(value: Any) -> tuple:
    if isinstance(value, datetime):
        return (1, to_instant(value).timestamp(), "")
    if isinstance(value, bool):
        return (0, float(value), "")
    if isinstance(value, (int, float)):
        return (0, float(value), "")
    if isinstance(value, str):
        instant = to_instant(value) if value[:4].isdigit() else None
        if instant is not None:
            return (1, instant.timestamp(), "")
        return (2, 0.0, value.lower())
    return (3, 0.0, str(value).lower())


def sort_records(
    kind: RecordKind,
    records: Iterable[ModerationRecord],
    field_name: str,
    direction: SortDirection = SortDirection.desc,
) -> list[ModerationRecord]:
    """Stable sort by *field_name*; records without a value go last."""
    present: list[ModerationRecord] = []
    missing: list[ModerationRecord] = []
    for record in records:
        value = kind.field_value(record, field_name)
        (missing if value is None or value == "" else present).append(record)
    present.sort(
        key=lambda r: _sort_key(kind.field_value(r, field_name)),
        reverse=direction == SortDirection.desc,
    )
    return present + missing


def apply_filter_sort(
    kind: RecordKind, records: Sequence[ModerationRecord], spec: FilterSortSpec
) -> list[ModerationRecord]:
    """Project *records* through *spec*. The input sequence is not modified."""
    selected = [
        r for r in records
        if matches_search(kind, r, spec.search_term) and matches_status(r, spec.status_filter)
    ]
    return sort_records(kind, selected, spec.sort_field, spec.sort_direction)
