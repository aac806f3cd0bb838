"""Authorization gate.

Every protected view and every mutating call consults :func:`can_access`
first. The gate is a pure function of the session snapshot: it performs no
I/O and never changes state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from clubconsole.auth.models import Capability, Role, Session
from clubconsole.errors import Unauthorized

ADMIN_CAPABILITIES = frozenset({
    Capability.view_admin_console,
    Capability.mutate_moderation_record,
    Capability.change_user_role,
    Capability.delete_user,
})

# Capabilities an admin may never exercise against their own account.
SELF_PROTECTED = frozenset({Capability.change_user_role, Capability.delete_user})

LOGIN_PATH = "/login"
HOME_PATH = "/"


def can_access(session: Session, capability: Capability, target_id: Optional[str] = None) -> bool:
    """Return True if *session* may exercise *capability*.

    Parameters
    ----------
    session:
        The current session snapshot.
    capability:
        The capability being requested.
    target_id:
        For ``change_user_role`` and ``delete_user``, the id of the user
        being acted on. Acting on one's own id is always denied.
    """
    if not session.ready or session.identity is None:
        return False

    if capability == Capability.view_profile:
        return True

    if capability not in ADMIN_CAPABILITIES or session.role != Role.admin:
        return False

    if capability in SELF_PROTECTED and target_id is not None and target_id == session.identity.uid:
        return False

    return True


def require_capability(
    session: Session, capability: Capability, target_id: Optional[str] = None
) -> None:
    """Raise :class:`Unauthorized` unless :func:`can_access` allows the call."""
    if can_access(session, capability, target_id):
        return
    if capability in SELF_PROTECTED and target_id is not None and target_id == session.uid:
        raise Unauthorized("You cannot change the role of, or delete, your own account.")
    raise Unauthorized(f"Requires capability '{capability.value}'")


@dataclass(frozen=True)
class GateDecision:
    """Outcome of gating a view: render it, or redirect to ``redirect_to``.

    ``allowed`` is False with no redirect while the session is still
    resolving; the boundary shows a loading state and renders nothing
    protected.
    """

    allowed: bool
    redirect_to: Optional[str] = None

    @property
    def pending(self) -> bool:
        return not self.allowed and self.redirect_to is None


def gate_view(session: Session, capability: Capability) -> GateDecision:
    """Decide whether a protected view may render for *session*."""
    if not session.ready:
        return GateDecision(allowed=False)
    if session.identity is None:
        return GateDecision(allowed=False, redirect_to=LOGIN_PATH)
    if not can_access(session, capability):
        return GateDecision(allowed=False, redirect_to=HOME_PATH)
    return GateDecision(allowed=True)
