"""Data models for the moderation workflow."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from clubconsole.store import to_instant

# Status-filter sentinel that disables filtering.
ALL = "all"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


@dataclass(frozen=True)
class ModerationRecord:
    """One row managed by the engine.

    ``status`` mirrors the kind's status field (``role`` for users);
    ``payload`` holds every other stored attribute.
    """

    id: str
    status: str
    created_at: Optional[datetime] = None
    payload: dict[str, Any] = field(default_factory=dict)

    def with_status(self, status: str) -> "ModerationRecord":
        return replace(self, status=status)

    def to_dict(self, status_field: str = "status") -> dict:
        return {
            **self.payload,
            "id": self.id,
            status_field: self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_document(cls, doc: dict, status_field: str, default_status: str) -> "ModerationRecord":
        payload = {k: v for k, v in doc.items() if k not in ("id", status_field, "createdAt")}
        return cls(
            id=str(doc["id"]),
            status=str(doc.get(status_field) or default_status),
            created_at=to_instant(doc.get("createdAt")),
            payload=payload,
        )


@dataclass(frozen=True)
class FilterSortSpec:
    """Projection parameters for a record list. Never mutates the records."""

    search_term: str = ""
    status_filter: str = ALL
    sort_field: str = "createdAt"
    sort_direction: SortDirection = SortDirection.desc

    def __post_init__(self) -> None:
        if isinstance(self.sort_direction, str) and not isinstance(self.sort_direction, SortDirection):
            object.__setattr__(self, "sort_direction", SortDirection(self.sort_direction))

