"""Record kind declarations: collection, state machine, and field accessors.

Each admin list is one :class:`RecordKind`. The engine never special-cases
a kind; everything kind-specific lives in these declarations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from clubconsole.auth.models import Capability, Role
from clubconsole.errors import InvalidTransition
from clubconsole.moderation.models import ModerationRecord


@dataclass(frozen=True)
class Transition:
    """An edge set for one action.

    ``target`` is the resulting status; ``None`` means the caller supplies
    it and it must be one of ``RecordKind.statuses``.
    """

    action: str
    sources: frozenset[str]
    target: Optional[str] = None


@dataclass(frozen=True)
class Messages:
    """User-facing notification texts for a kind."""

    loaded_failed: str
    transitioned: Mapping[str, str]
    transition_failed: Mapping[str, str]
    deleted: str
    delete_failed: str


@dataclass(frozen=True)
class RecordKind:
    name: str
    collection: str
    statuses: tuple[str, ...]
    initial_status: str
    transitions: Mapping[str, Transition]
    search_fields: tuple[str, ...]
    messages: Messages
    status_field: str = "status"
    # Extra capability checked, with the record id as target, on transition.
    transition_capability: Optional[Capability] = None
    delete_capability: Capability = Capability.mutate_moderation_record
    derived_fields: Mapping[str, Callable[[ModerationRecord], Any]] = field(default_factory=dict)

    def field_value(self, record: ModerationRecord, name: str) -> Any:
        """Read a sortable/searchable field from *record*."""
        if name == "createdAt":
            return record.created_at
        if name in (self.status_field, "status"):
            return record.status
        if name in self.derived_fields:
            return self.derived_fields[name](record)
        return record.payload.get(name)

    def next_status(self, record: ModerationRecord, action: str, target: Optional[str] = None) -> str:
        """Return the status *action* leads to from *record*'s current status.

        Raises :class:`InvalidTransition` when the current status has no
        outgoing edge for *action*.
        """
        transition = self.transitions.get(action)
        if transition is None:
            raise InvalidTransition(f"'{action}' is not an action on {self.name}")
        if record.status not in transition.sources:
            raise InvalidTransition(
                f"Cannot {action} {self.name} record '{record.id}' in status '{record.status}'"
            )
        new_status = transition.target if transition.target is not None else target
        if new_status not in self.statuses:
            raise InvalidTransition(f"'{new_status}' is not a valid {self.status_field} for {self.name}")
        return new_status


def _full_name(record: ModerationRecord) -> str:
    first = record.payload.get("firstName") or ""
    last = record.payload.get("lastName") or ""
    return f"{first} {last}".strip()


PENDING = "pending"

MESSAGES = RecordKind(
    name="messages",
    collection="contactMessages",
    statuses=("pending", "read"),
    initial_status=PENDING,
    transitions={
        "mark_read": Transition("mark_read", frozenset({"pending"}), "read"),
    },
    search_fields=("name", "email", "subject", "message"),
    messages=Messages(
        loaded_failed="Failed to load contact messages",
        transitioned={"mark_read": "Message marked as read"},
        transition_failed={"mark_read": "Failed to update message"},
        deleted="Message deleted successfully",
        delete_failed="Failed to delete message",
    ),
)

APPLICATIONS = RecordKind(
    name="applications",
    collection="membershipApplications",
    statuses=("pending", "approved", "rejected"),
    initial_status=PENDING,
    transitions={
        "approve": Transition("approve", frozenset({"pending"}), "approved"),
        "reject": Transition("reject", frozenset({"pending"}), "rejected"),
    },
    search_fields=("name", "firstName", "lastName", "email"),
    derived_fields={"name": _full_name},
    messages=Messages(
        loaded_failed="Failed to load membership applications. Please try again.",
        transitioned={
            "approve": "Membership application approved successfully!",
            "reject": "Membership application rejected.",
        },
        transition_failed={
            "approve": "Failed to approve application. Please try again.",
            "reject": "Failed to reject application. Please try again.",
        },
        deleted="Membership application deleted successfully.",
        delete_failed="Failed to delete application. Please try again.",
    ),
)

EVENT_PROPOSALS = RecordKind(
    name="proposals",
    collection="eventProposals",
    statuses=("pending", "approved", "rejected"),
    initial_status=PENDING,
    transitions={
        "approve": Transition("approve", frozenset({"pending"}), "approved"),
        "reject": Transition("reject", frozenset({"pending"}), "rejected"),
    },
    search_fields=("title", "organizer", "location", "email"),
    messages=Messages(
        loaded_failed="Failed to load event proposals. Please try again.",
        transitioned={
            "approve": "Event proposal approved.",
            "reject": "Event proposal rejected.",
        },
        transition_failed={
            "approve": "Failed to approve proposal. Please try again.",
            "reject": "Failed to reject proposal. Please try again.",
        },
        deleted="Event proposal deleted.",
        delete_failed="Failed to delete proposal. Please try again.",
    ),
)

_ROLES = tuple(r.value for r in Role)

USERS = RecordKind(
    name="users",
    collection="users",
    statuses=_ROLES,
    initial_status=Role.user.value,
    status_field="role",
    transitions={
        "change_role": Transition("change_role", frozenset(_ROLES)),
    },
    search_fields=("displayName", "email"),
    transition_capability=Capability.change_user_role,
    delete_capability=Capability.delete_user,
    messages=Messages(
        loaded_failed="Failed to load users. Please try again.",
        transitioned={"change_role": "User role updated successfully!"},
        transition_failed={"change_role": "Failed to update user role. Please try again."},
        deleted="User deleted successfully!",
        delete_failed="Failed to delete user. Please try again.",
    ),
)

KINDS: dict[str, RecordKind] = {k.name: k for k in (MESSAGES, APPLICATIONS, EVENT_PROPOSALS, USERS)}
