"""Identity provider contract and a file-backed local provider.

The provider owns credentials and sign-in state; it knows nothing about
roles. Listeners registered with ``on_identity_changed`` are awaited with
the current identity (or ``None``) once on registration and again on every
sign-in and sign-out.

:class:`LocalIdentityProvider` stores its data under ``<base>/``:

- ``accounts.json`` -- list of account dicts (salted PBKDF2 password hashes)
- ``sessions.json`` -- list of issued session tokens
- ``current.json``  -- the token of the locally signed-in session, if any
- ``password_resets.json`` -- pending reset requests (delivery is external)
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

from clubconsole.auth import oauth
from clubconsole.auth.models import Identity
from clubconsole.config import ConsoleConfig
from clubconsole.errors import ProviderError

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_MIN_PASSWORD_LENGTH = 6
_PBKDF2_ROUNDS = 200_000


class IdentityProvider(Protocol):
    """Sign-in primitives plus an identity-change stream."""

    async def sign_up(self, email: str, password: str, display_name: str) -> Identity: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_in_with_oauth(self, provider: str, code: str = "") -> Identity: ...

    async def sign_out(self) -> None: ...

    async def send_password_reset(self, email: str) -> None: ...

    async def update_profile(
        self, uid: str, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Identity: ...

    async def on_identity_changed(self, listener: IdentityListener) -> Callable[[], None]: ...


class LocalIdentityProvider:
    """File-backed :class:`IdentityProvider` for local use and tests."""

    def __init__(
        self,
        base_dir: str | Path,
        config: Optional[ConsoleConfig] = None,
        remember: bool = True,
    ) -> None:
        self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._config = config or ConsoleConfig(home=self._base)
        self._accounts_path = self._base / "accounts.json"
        self._sessions_path = self._base / "sessions.json"
        self._current_path = self._base / "current.json"
        self._resets_path = self._base / "password_resets.json"
        # When False (server use) sign-ins are not persisted as the local session.
        self._remember = remember
        self._listeners: list[IdentityListener] = []
        self._current: Optional[Identity] = self._restore_current() if remember else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        path.write_text(json.dumps(data, indent=2, default=str))

    @staticmethod
    def _hash_password(password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256", password.encode(), bytes.fromhex(salt), _PBKDF2_ROUNDS
        ).hex()

    @staticmethod
    def _identity_from_dict(d: dict, is_new: bool = False) -> Identity:
        return Identity(
            uid=d["uid"],
            email=d["email"],
            display_name=d.get("display_name", ""),
            photo_url=d.get("photo_url", ""),
            provider=d.get("provider", "password"),
            is_new=is_new,
        )

    def _find_account(self, email: str) -> Optional[dict]:
        for d in self._read_json(self._accounts_path):
            if d.get("email", "").lower() == email.lower():
                return d
        return None

    def _restore_current(self) -> Optional[Identity]:
        if not self._current_path.exists():
            return None
        try:
            token = json.loads(self._current_path.read_text()).get("token", "")
        except (json.JSONDecodeError, OSError, AttributeError):
            return None
        return self.identity_for_token(token) if token else None

    async def _emit(self, identity: Optional[Identity]) -> None:
        self._current = identity
        for listener in list(self._listeners):
            await listener(identity)

    async def _signed_in(self, identity: Identity) -> Identity:
        if self._remember:
            token = self.issue_token(identity.uid)
            self._current_path.write_text(json.dumps({"token": token}))
        await self._emit(identity)
        return identity

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, uid: str, expires_in_hours: int = 24) -> str:
        """Create a session token for *uid*."""
        now = datetime.now(timezone.utc)
        token = secrets.token_urlsafe(32)
        sessions = self._read_json(self._sessions_path)
        sessions.append({
            "token": token,
            "uid": uid,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(hours=expires_in_hours)).isoformat(),
        })
        self._write_json(self._sessions_path, sessions)
        return token

    def identity_for_token(self, token: str) -> Optional[Identity]:
        """Return the identity owning a live *token*, or None."""
        now = datetime.now(timezone.utc).isoformat()
        for d in self._read_json(self._sessions_path):
            if d["token"] == token:
                if d.get("expires_at", "") < now:
                    return None
                for account in self._read_json(self._accounts_path):
                    if account["uid"] == d["uid"]:
                        return self._identity_from_dict(account)
        return None

    def revoke_token(self, token: str) -> bool:
        sessions = self._read_json(self._sessions_path)
        remaining = [d for d in sessions if d["token"] != token]
        if len(remaining) < len(sessions):
            self._write_json(self._sessions_path, remaining)
            return True
        return False

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, display_name: str) -> Identity:
        email = email.strip()
        if not _EMAIL_RE.match(email):
            raise ProviderError("The email address is badly formatted.")
        if len(password) < _MIN_PASSWORD_LENGTH:
            raise ProviderError(f"Password should be at least {_MIN_PASSWORD_LENGTH} characters.")
        if self._find_account(email) is not None:
            raise ProviderError("The email address is already in use by another account.")

        salt = secrets.token_hex(16)
        account = {
            "uid": uuid.uuid4().hex,
            "email": email,
            "display_name": display_name,
            "photo_url": "",
            "provider": "password",
            "provider_id": "",
            "salt": salt,
            "password_hash": self._hash_password(password, salt),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        accounts = self._read_json(self._accounts_path)
        accounts.append(account)
        self._write_json(self._accounts_path, accounts)
        logger.info("Created account %s", account["uid"], extra={"uid": account["uid"]})
        return await self._signed_in(self._identity_from_dict(account, is_new=True))

    async def sign_in(self, email: str, password: str) -> Identity:
        account = self._find_account(email.strip())
        if account is None or not account.get("salt"):
            raise ProviderError("No account matches that email and password.")
        expected = account["password_hash"]
        if not secrets.compare_digest(expected, self._hash_password(password, account["salt"])):
            raise ProviderError("No account matches that email and password.")
        return await self._signed_in(self._identity_from_dict(account))

    async def sign_in_with_oauth(self, provider: str, code: str = "") -> Identity:
        if provider not in oauth.SUPPORTED_PROVIDERS:
            raise ProviderError(f"Unsupported sign-in provider: {provider}")
        profile = await oauth.exchange_google_code(self._config, code)
        if not profile.get("email"):
            raise ProviderError("The sign-in provider did not return an email address.")

        accounts = self._read_json(self._accounts_path)
        for account in accounts:
            if account.get("provider") == profile["provider"] and account.get("provider_id") == profile["provider_id"]:
                return await self._signed_in(self._identity_from_dict(account))
        existing = self._find_account(profile["email"])
        if existing is not None:
            return await self._signed_in(self._identity_from_dict(existing))

        account = {
            "uid": uuid.uuid4().hex,
            "email": profile["email"],
            "display_name": profile["display_name"],
            "photo_url": profile["photo_url"],
            "provider": profile["provider"],
            "provider_id": profile["provider_id"],
            "salt": "",
            "password_hash": "",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        accounts.append(account)
        self._write_json(self._accounts_path, accounts)
        return await self._signed_in(self._identity_from_dict(account, is_new=True))

    async def sign_out(self) -> None:
        if self._current_path.exists():
            try:
                token = json.loads(self._current_path.read_text()).get("token", "")
            except (json.JSONDecodeError, OSError, AttributeError):
                token = ""
            if token:
                self.revoke_token(token)
            self._current_path.unlink()
        await self._emit(None)

    async def send_password_reset(self, email: str) -> None:
        if self._find_account(email.strip()) is None:
            raise ProviderError("There is no account with that email address.")
        resets = self._read_json(self._resets_path)
        resets.append({
            "email": email.strip(),
            "code": secrets.token_urlsafe(16),
            "requested_at": datetime.now(timezone.utc).isoformat(),
        })
        self._write_json(self._resets_path, resets)
        logger.info("Password reset requested")

    async def update_profile(
        self, uid: str, display_name: Optional[str] = None, photo_url: Optional[str] = None
    ) -> Identity:
        accounts = self._read_json(self._accounts_path)
        for account in accounts:
            if account["uid"] == uid:
                if display_name is not None:
                    account["display_name"] = display_name
                if photo_url is not None:
                    account["photo_url"] = photo_url
                self._write_json(self._accounts_path, accounts)
                identity = self._identity_from_dict(account)
                if self._current is not None and self._current.uid == uid:
                    self._current = identity
                return identity
        raise ProviderError("No user is signed in.")

    async def on_identity_changed(self, listener: IdentityListener) -> Callable[[], None]:
        """Register *listener*, await it with the current identity, return an unsubscribe."""
        self._listeners.append(listener)
        await listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
