"""Generic moderation workflow over record kinds."""

from clubconsole.moderation.engine import ModerationEngine
from clubconsole.moderation.kinds import APPLICATIONS, EVENT_PROPOSALS, KINDS, MESSAGES, USERS
from clubconsole.moderation.models import FilterSortSpec, ModerationRecord, SortDirection

__all__ = [
    "APPLICATIONS",
    "EVENT_PROPOSALS",
    "KINDS",
    "MESSAGES",
    "USERS",
    "FilterSortSpec",
    "ModerationEngine",
    "ModerationRecord",
    "SortDirection",
]
