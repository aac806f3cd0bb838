"""Auth facade used by the boundary layers.

Wires an :class:`IdentityProvider` to a :class:`SessionResolver` and wraps
each provider call so its error message is kept in ``last_error`` before
being re-raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from clubconsole.auth.identity import IdentityProvider
from clubconsole.auth.models import Capability, Identity, Role, Session
from clubconsole.auth.permissions import require_capability
from clubconsole.auth.resolver import SessionResolver
from clubconsole.errors import ConsoleError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthService:
    """Sign-in operations plus the resolved session."""

    def __init__(self, provider: IdentityProvider, resolver: SessionResolver) -> None:
        self.provider = provider
        self.resolver = resolver
        self.last_error = ""
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def session(self) -> Session:
        return self.resolver.session

    async def start(self) -> Session:
        """Subscribe the resolver to identity changes; resolves the startup identity."""
        if self._unsubscribe is None:
            self._unsubscribe = await self.provider.on_identity_changed(self.resolver.on_identity_changed)
        return self.session

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _call(self, op: Callable[[], Awaitable[T]]) -> T:
        self.last_error = ""
        try:
            return await op()
        except ConsoleError as exc:
            self.last_error = exc.message
            raise

    # ------------------------------------------------------------------
    # Provider operations
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, display_name: str) -> Identity:
        return await self._call(lambda: self.provider.sign_up(email, password, display_name))

    async def sign_in(self, email: str, password: str) -> Identity:
        return await self._call(lambda: self.provider.sign_in(email, password))

    async def sign_in_with_oauth(self, provider: str, code: str = "") -> Identity:
        return await self._call(lambda: self.provider.sign_in_with_oauth(provider, code))

    async def sign_out(self) -> None:
        await self._call(self.provider.sign_out)

    async def reset_password(self, email: str) -> None:
        await self._call(lambda: self.provider.send_password_reset(email))

    async def update_profile(
        self, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Identity:
        async def op() -> Identity:
            uid = self.session.uid
            if uid is None:
                raise ProviderError("No user is signed in.")
            require_capability(self.session, Capability.view_profile)
            return await self.provider.update_profile(uid, display_name, photo_url)

        return await self._call(op)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def update_user_role(self, target_uid: str, new_role: Role) -> bool:
        return await self._call(lambda: self.resolver.update_role(self.session, target_uid, new_role))
