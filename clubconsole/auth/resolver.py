"""Session resolution: identity-change events to ``(identity, role, ready)``.

Role resolution is an ordered policy chain. Each step either yields a role
or defers to the next one:

1. ``allowlist`` -- the identity's email is a configured administrator
   address. Runs before any store read and wins over everything else.
2. ``stored_role`` -- the role recorded in the identity's role document.
3. ``default`` -- ``user``. Reached when there is no document or the read
   fails; resolution never fails open to an elevated role.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from clubconsole.auth.models import Capability, Identity, Role, Session, role_document
from clubconsole.auth.permissions import require_capability
from clubconsole.errors import ConsoleError, InvalidTransition
from clubconsole.store import DocumentStore, utcnow_iso

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

SessionListener = Callable[[Session], None]


class RoleStore:
    """Role documents kept in the ``users`` collection of a document store."""

    def __init__(self, store: DocumentStore, collection: str = USERS_COLLECTION) -> None:
        self._store = store
        self._collection = collection

    async def get_role_document(self, uid: str) -> Optional[dict]:
        return await self._store.get(self._collection, uid)

    async def create_role_document(self, identity: Identity, role: Role) -> bool:
        """Create the document for *identity* unless one exists. Returns True if created."""
        if await self._store.get(self._collection, identity.uid) is not None:
            return False
        await self._store.set(self._collection, identity.uid, role_document(identity, role, utcnow_iso()))
        return True

    async def set_role(self, uid: str, role: Role) -> None:
        await self._store.update(self._collection, uid, {"role": role.value, "updatedAt": utcnow_iso()})


@dataclass(frozen=True)
class RolePolicy:
    """One step of the resolution chain.

    ``resolve`` returns the role when the step applies to the identity, or
    ``None`` to defer to the next step.
    """

    name: str
    resolve: Callable[[Identity], Awaitable[Optional[Role]]]


def normalize_allowlist(emails: Iterable[str]) -> frozenset[str]:
    return frozenset(e.strip().lower() for e in emails if e and e.strip())


class SessionResolver:
    """Owns the single authoritative session snapshot."""

    def __init__(self, role_store: RoleStore, admin_emails: Iterable[str]) -> None:
        self._role_store = role_store
        self._allowlist = normalize_allowlist(admin_emails)
        self._session = Session()
        self._generation = 0
        self._listeners: list[SessionListener] = []
        self._policies = self._build_policies()

    # ------------------------------------------------------------------
    # Policy chain
    # ------------------------------------------------------------------

    def _build_policies(self) -> list[RolePolicy]:
        async def allowlist(identity: Identity) -> Optional[Role]:
            return Role.admin if self.is_allowlisted(identity.email) else None

        async def stored_role(identity: Identity) -> Optional[Role]:
            try:
                doc = await self._role_store.get_role_document(identity.uid)
            except Exception as exc:
                logger.warning("Role lookup failed for %s: %s", identity.uid, exc, extra={"uid": identity.uid})
                return None
            if doc is None:
                return None
            return Role.parse(doc.get("role"))

        async def default(identity: Identity) -> Optional[Role]:
            return Role.user

        return [
            RolePolicy("allowlist", allowlist),
            RolePolicy("stored_role", stored_role),
            RolePolicy("default", default),
        ]

    def is_allowlisted(self, email: str) -> bool:
        return bool(email) and email.strip().lower() in self._allowlist

    def seed_role(self, identity: Identity) -> Role:
        """Role written to a brand-new account's document."""
        return Role.admin if self.is_allowlisted(identity.email) else Role.user

    async def resolve_role(self, identity: Identity) -> Role:
        """Run the policy chain for *identity*."""
        for policy in self._policies:
            role = await policy.resolve(identity)
            if role is not None:
                logger.debug("Resolved %s via %s -> %s", identity.uid, policy.name, role.value)
                return role
        return Role.user

    # ------------------------------------------------------------------
    # Session snapshot
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with every applied snapshot. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    async def on_identity_changed(self, identity: Optional[Identity]) -> Session:
        """Resolve the session for *identity*.

        A resolution that is overtaken by a newer identity change is
        discarded; the returned snapshot is whatever is current when this
        call finishes.
        """
        self._generation += 1
        generation = self._generation

        if identity is None:
            self._apply(Session(identity=None, role=Role.user, ready=True))
            return self._session

        # Never carry the previous identity's role into the new session.
        self._apply(Session(identity=identity, role=Role.user, ready=False))

        if identity.is_new:
            await self._seed_role_document(identity)

        role = await self.resolve_role(identity)
        if generation != self._generation:
            logger.debug("Discarding stale role resolution for %s", identity.uid)
            return self._session

        self._apply(Session(identity=identity, role=role, ready=True))
        return self._session

    async def _seed_role_document(self, identity: Identity) -> None:
        try:
            created = await self._role_store.create_role_document(identity, self.seed_role(identity))
        except Exception as exc:
            logger.error("Could not create role document for %s: %s", identity.uid, exc, extra={"uid": identity.uid})
            return
        if created:
            logger.info("Created role document for %s", identity.uid, extra={"uid": identity.uid})

    # ------------------------------------------------------------------
    # Capability-gated operations
    # ------------------------------------------------------------------

    async def update_role(self, acting: Session, target_uid: str, new_role: Role) -> bool:
        """Write *new_role* to the target's role document.

        Raises :class:`~clubconsole.errors.Unauthorized` unless *acting* is an
        admin acting on someone else, and :class:`~clubconsole.errors.InvalidTransition`
        when *new_role* is not a known role. Store failures are logged and
        reported as ``False``; there is no retry.
        """
        require_capability(acting, Capability.change_user_role, target_uid)
        try:
            role = Role(new_role)
        except ValueError:
            raise InvalidTransition(f"'{new_role}' is not a valid role") from None
        try:
            await self._role_store.set_role(target_uid, role)
        except ConsoleError as exc:
            logger.error("Role update for %s failed: %s", target_uid, exc.message, extra={"uid": target_uid})
            return False
        logger.info("Role of %s set to %s", target_uid, role.value, extra={"uid": target_uid})
        return True
