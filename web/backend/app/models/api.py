"""Pydantic models for API request/response serialization.

These models mirror the console dataclasses and provide JSON serialization
for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Auth models
# ---------------------------------------------------------------------------


class SignUpRequest(BaseModel):
    email: str
    password: str
    display_name: str = ""


class SignInRequest(BaseModel):
    email: str
    password: str


class OAuthSignInRequest(BaseModel):
    provider: str = "google"
    code: str = ""


class PasswordResetRequest(BaseModel):
    email: str


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class IdentityResponse(BaseModel):
    """Public representation of a signed-in identity."""

    uid: str
    email: str
    display_name: str = ""
    photo_url: str = ""
    provider: str = ""


class SessionResponse(BaseModel):
    """Mirrors clubconsole.auth.models.Session."""

    identity: Optional[IdentityResponse] = None
    role: str = "user"
    ready: bool = True
    is_admin: bool = False


class LoginResponse(BaseModel):
    token: str
    session: SessionResponse


# ---------------------------------------------------------------------------
# Moderation models
# ---------------------------------------------------------------------------


class NotificationResponse(BaseModel):
    text: str
    kind: str


class RecordResponse(BaseModel):
    """Mirrors clubconsole.moderation.models.ModerationRecord."""

    id: str
    status: str
    created_at: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)


class RecordListResponse(BaseModel):
    kind: str
    total: int
    records: list[RecordResponse] = Field(default_factory=list)
    notification: Optional[NotificationResponse] = None


class MutationResponse(BaseModel):
    record: Optional[RecordResponse] = None
    deleted: bool = False
    notification: Optional[NotificationResponse] = None


class TransitionRequest(BaseModel):
    action: str
    target: Optional[str] = None


class RoleUpdateRequest(BaseModel):
    """Request body for updating a user's role."""

    role: str


class DashboardResponse(BaseModel):
    total_users: int = 0
    total_members: int = 0
    pending_applications: int = 0
    unread_messages: int = 0
    pending_proposals: int = 0
    recent_users: list[dict[str, Any]] = Field(default_factory=list)
    notification: Optional[NotificationResponse] = None
