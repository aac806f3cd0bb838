"""Tests for the authorization gate."""

import pytest

from clubconsole.auth.models import Capability, Role, Session
from clubconsole.auth.permissions import can_access, gate_view, require_capability
from clubconsole.errors import Unauthorized
from conftest import make_session

ADMIN_CAPS = [
    Capability.view_admin_console,
    Capability.mutate_moderation_record,
    Capability.change_user_role,
    Capability.delete_user,
]


@pytest.mark.parametrize("capability", list(Capability))
@pytest.mark.parametrize("role", list(Role))
def test_not_ready_session_is_always_denied(capability, role):
    assert not can_access(make_session(role=role, ready=False), capability)


@pytest.mark.parametrize("capability", ADMIN_CAPS)
def test_admin_capabilities_granted_to_ready_admin(capability):
    assert can_access(make_session(role=Role.admin), capability, target_id="someone-else")


@pytest.mark.parametrize("capability", ADMIN_CAPS)
@pytest.mark.parametrize("role", [Role.user, Role.member])
def test_admin_capabilities_denied_to_other_roles(capability, role):
    assert not can_access(make_session(role=role), capability)


def test_anonymous_session_denied_everything():
    anonymous = Session(identity=None, role=Role.user, ready=True)
    for capability in Capability:
        assert not can_access(anonymous, capability)


@pytest.mark.parametrize("capability", [Capability.change_user_role, Capability.delete_user])
def test_admin_cannot_target_self(capability):
    session = make_session(uid="me")
    assert not can_access(session, capability, target_id="me")
    with pytest.raises(Unauthorized, match="your own account"):
        require_capability(session, capability, target_id="me")


def test_self_target_allowed_for_non_protected_capability():
    session = make_session(uid="me")
    assert can_access(session, Capability.mutate_moderation_record, target_id="me")


def test_view_profile_needs_only_sign_in():
    assert can_access(make_session(role=Role.user), Capability.view_profile)


def test_require_capability_passes_silently():
    require_capability(make_session(), Capability.view_admin_console)


def test_require_capability_raises_for_member():
    with pytest.raises(Unauthorized):
        require_capability(make_session(role=Role.member), Capability.mutate_moderation_record)


# --- View gating ---


def test_gate_pending_while_resolving():
    decision = gate_view(make_session(ready=False), Capability.view_admin_console)
    assert not decision.allowed
    assert decision.pending


def test_gate_redirects_anonymous_to_login():
    decision = gate_view(Session(ready=True), Capability.view_admin_console)
    assert not decision.allowed
    assert decision.redirect_to == "/login"


def test_gate_redirects_non_admin_home():
    decision = gate_view(make_session(role=Role.member), Capability.view_admin_console)
    assert decision.redirect_to == "/"


def test_gate_allows_admin():
    decision = gate_view(make_session(), Capability.view_admin_console)
    assert decision.allowed
    assert decision.redirect_to is None
