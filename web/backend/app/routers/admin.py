"""Admin router -- dashboard and moderation queues.

Read endpoints are gated as views: a denied caller is redirected (307) to
the login page or the home page and receives no protected data. Mutating
endpoints fail with 403 through the console error handler.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from clubconsole.auth.models import Capability, Session
from clubconsole.auth.permissions import gate_view
from clubconsole.dashboard import load_dashboard
from clubconsole.moderation.engine import ModerationEngine
from clubconsole.moderation.models import ALL, FilterSortSpec, ModerationRecord, SortDirection
from clubconsole.notifications import Notification
from web.backend.app.middleware.auth import get_console, get_session
from web.backend.app.models.api import (
    DashboardResponse,
    MutationResponse,
    NotificationResponse,
    RecordListResponse,
    RecordResponse,
    RoleUpdateRequest,
    TransitionRequest,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _gate(session: Session) -> None:
    decision = gate_view(session, Capability.view_admin_console)
    if decision.allowed:
        return
    if decision.pending:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session not ready")
    raise HTTPException(
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        headers={"Location": decision.redirect_to},
    )


def _notification(n: Optional[Notification]) -> Optional[NotificationResponse]:
    return NotificationResponse(**n.to_dict()) if n else None


def _record(r: ModerationRecord) -> RecordResponse:
    return RecordResponse(
        id=r.id,
        status=r.status,
        created_at=r.created_at.isoformat() if r.created_at else None,
        payload=r.payload,
    )


async def _engine(kind: str, session: Session) -> ModerationEngine:
    engine = get_console().engine_for(kind, session)
    await engine.load_all()
    return engine


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_model=DashboardResponse, summary="Admin counters")
async def dashboard(session: Session = Depends(get_session)):
    _gate(session)
    stats = await load_dashboard(session, get_console().store)
    return DashboardResponse(
        total_users=stats.total_users,
        total_members=stats.total_members,
        pending_applications=stats.pending_applications,
        unread_messages=stats.unread_messages,
        pending_proposals=stats.pending_proposals,
        recent_users=stats.recent_users,
        notification=_notification(stats.notification),
    )


@router.get("/{kind}", response_model=RecordListResponse, summary="List records of a kind")
async def list_records(
    kind: str,
    search: str = "",
    status_filter: str = Query(ALL, alias="status"),
    sort: str = "createdAt",
    direction: SortDirection = SortDirection.desc,
    session: Session = Depends(get_session),
):
    _gate(session)
    engine = await _engine(kind, session)
    rows = engine.view(FilterSortSpec(search, status_filter, sort, direction))
    return RecordListResponse(
        kind=kind,
        total=len(engine.records),
        records=[_record(r) for r in rows],
        notification=_notification(engine.notification),
    )


@router.get("/{kind}/{record_id}", response_model=RecordResponse, summary="Get one record")
async def get_record(kind: str, record_id: str, session: Session = Depends(get_session)):
    _gate(session)
    engine = await _engine(kind, session)
    return _record(engine.open_detail(record_id))


@router.post("/{kind}/{record_id}/transition", response_model=MutationResponse, summary="Apply a state transition")
async def transition(
    kind: str, record_id: str, body: TransitionRequest, session: Session = Depends(get_session)
):
    engine = await _engine(kind, session)
    updated = await engine.transition(record_id, body.action, body.target)
    return MutationResponse(
        record=_record(updated) if updated else None,
        notification=_notification(engine.notification),
    )


@router.put("/users/{user_id}/role", response_model=MutationResponse, summary="Change a user's role")
async def change_role(user_id: str, body: RoleUpdateRequest, session: Session = Depends(get_session)):
    engine = await _engine("users", session)
    updated = await engine.change_role(user_id, body.role)
    return MutationResponse(
        record=_record(updated) if updated else None,
        notification=_notification(engine.notification),
    )


@router.delete("/{kind}/{record_id}", response_model=MutationResponse, summary="Delete a record")
async def delete_record(
    kind: str,
    record_id: str,
    confirm: bool = False,
    session: Session = Depends(get_session),
):
    """Delete a record. The caller must pass ``confirm=true``."""
    engine = await _engine(kind, session)
    deleted = await engine.remove(record_id, confirmed=confirm)
    return MutationResponse(deleted=deleted, notification=_notification(engine.notification))
