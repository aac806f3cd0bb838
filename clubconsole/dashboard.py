"""Admin dashboard counters."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

from clubconsole.auth.models import Capability, Role, Session
from clubconsole.auth.permissions import require_capability
from clubconsole.errors import StoreFailure
from clubconsole.moderation.kinds import APPLICATIONS, EVENT_PROPOSALS, MESSAGES, USERS
from clubconsole.notifications import Notification
from clubconsole.store import DocumentStore

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


@dataclass
class DashboardStats:
    total_users: int = 0
    total_members: int = 0
    pending_applications: int = 0
    unread_messages: int = 0
    pending_proposals: int = 0
    recent_users: list[dict] = field(default_factory=list)
    notification: Optional[Notification] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["notification"] = self.notification.to_dict() if self.notification else None
        return data


async def load_dashboard(session: Session, store: DocumentStore) -> DashboardStats:
    """Count records across collections. A failed read leaves zeros and a notification."""
    require_capability(session, Capability.view_admin_console)
    stats = DashboardStats()
    try:
        users = await store.query(USERS.collection, "createdAt", "desc")
        applications = await store.query(APPLICATIONS.collection)
        messages = await store.query(MESSAGES.collection)
        proposals = await store.query(EVENT_PROPOSALS.collection)
    except StoreFailure as exc:
        logger.warning("Dashboard load failed: %s", exc.message)
        stats.notification = Notification.error("Failed to load dashboard data. Please try again.")
        return stats

    stats.total_users = len(users)
    stats.total_members = sum(1 for u in users if u.get("role") == Role.member.value)
    stats.pending_applications = sum(1 for a in applications if a.get("status", "pending") == "pending")
    stats.unread_messages = sum(1 for m in messages if m.get("status", "pending") == "pending")
    stats.pending_proposals = sum(1 for p in proposals if p.get("status", "pending") == "pending")
    stats.recent_users = users[:RECENT_LIMIT]
    return stats
