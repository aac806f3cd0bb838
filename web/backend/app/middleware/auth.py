"""Auth middleware -- FastAPI dependencies for resolving the request session.

Requests authenticate with ``Authorization: Bearer <session_token>``. The
token's identity is run through the same role-resolution chain the console
uses; requests without a valid token get an anonymous, ready session.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header

from clubconsole.auth.models import Identity, Session
from clubconsole.auth.resolver import RoleStore, SessionResolver
from clubconsole.console import Console, build_console

# Shared console instance
_console: Optional[Console] = None


def get_console() -> Console:
    """Return the singleton console (server mode, no local sign-in state)."""
    global _console
    if _console is None:
        _console = build_console(remember=False)
    return _console


def set_console(console: Optional[Console]) -> None:
    """Replace the singleton; used by tests to point at a temporary directory."""
    global _console
    _console = console


async def resolve_session(identity: Optional[Identity]) -> Session:
    """Resolve a fresh session snapshot for *identity*."""
    console = get_console()
    resolver = SessionResolver(RoleStore(console.store), console.config.admin_emails)
    return await resolver.on_identity_changed(identity)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    return token if scheme.lower() == "bearer" else ""


async def get_session(authorization: Optional[str] = Header(None)) -> Session:
    """FastAPI dependency: the caller's resolved session (anonymous if no token)."""
    token = bearer_token(authorization)
    identity = get_console().auth.provider.identity_for_token(token) if token else None
    return await resolve_session(identity)
