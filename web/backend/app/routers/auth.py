"""Auth router -- sign-up, sign-in, sign-out, password reset and profile."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from clubconsole.auth.models import Capability, Identity, Session
from clubconsole.auth.permissions import require_capability
from web.backend.app.middleware.auth import bearer_token, get_console, get_session, resolve_session
from web.backend.app.models.api import (
    IdentityResponse,
    LoginResponse,
    OAuthSignInRequest,
    PasswordResetRequest,
    ProfileUpdateRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _identity_response(identity: Identity) -> IdentityResponse:
    return IdentityResponse(
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        photo_url=identity.photo_url,
        provider=identity.provider,
    )


def session_response(session: Session) -> SessionResponse:
    """Convert a domain Session to a Pydantic SessionResponse."""
    return SessionResponse(
        identity=_identity_response(session.identity) if session.identity else None,
        role=session.role.value,
        ready=session.ready,
        is_admin=session.is_admin,
    )


async def _login(identity: Identity) -> LoginResponse:
    session = await resolve_session(identity)
    token = get_console().auth.provider.issue_token(identity.uid)
    return LoginResponse(token=token, session=session_response(session))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=LoginResponse, summary="Create an account")
async def sign_up(body: SignUpRequest):
    identity = await get_console().auth.provider.sign_up(body.email, body.password, body.display_name)
    return await _login(identity)


@router.post("/login", response_model=LoginResponse, summary="Sign in with email and password")
async def sign_in(body: SignInRequest):
    identity = await get_console().auth.provider.sign_in(body.email, body.password)
    return await _login(identity)


@router.post("/oauth", response_model=LoginResponse, summary="Sign in with an OAuth provider")
async def sign_in_with_oauth(body: OAuthSignInRequest):
    identity = await get_console().auth.provider.sign_in_with_oauth(body.provider, body.code)
    return await _login(identity)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Sign out")
async def sign_out(authorization: Optional[str] = Header(None)):
    token = bearer_token(authorization)
    if token:
        get_console().auth.provider.revoke_token(token)


@router.post("/reset-password", status_code=status.HTTP_202_ACCEPTED, summary="Request a password reset")
async def reset_password(body: PasswordResetRequest):
    await get_console().auth.provider.send_password_reset(body.email)
    return {"detail": "Password reset requested"}


@router.get("/me", response_model=SessionResponse, summary="Current session")
async def me(session: Session = Depends(get_session)):
    return session_response(session)


@router.patch("/me", response_model=IdentityResponse, summary="Update profile")
async def update_profile(body: ProfileUpdateRequest, session: Session = Depends(get_session)):
    if session.identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    require_capability(session, Capability.view_profile)
    identity = await get_console().auth.provider.update_profile(
        session.identity.uid, body.display_name, body.photo_url
    )
    return _identity_response(identity)
