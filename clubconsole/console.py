"""Wiring: build the store, identity provider, resolver and engines from config."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from clubconsole.auth.identity import LocalIdentityProvider
from clubconsole.auth.models import Session
from clubconsole.auth.resolver import RoleStore, SessionResolver
from clubconsole.auth.service import AuthService
from clubconsole.config import ConsoleConfig, load_config
from clubconsole.errors import NotFound
from clubconsole.moderation.engine import ModerationEngine
from clubconsole.moderation.kinds import KINDS, RecordKind
from clubconsole.store import DocumentStore, JsonDocumentStore


def _kind(kind_name: str) -> RecordKind:
    if kind_name not in KINDS:
        raise NotFound(f"Unknown record kind '{kind_name}'. Valid kinds: {sorted(KINDS)}")
    return KINDS[kind_name]


@dataclass
class Console:
    config: ConsoleConfig
    store: DocumentStore
    auth: AuthService
    _engines: dict[str, ModerationEngine] = field(default_factory=dict)
    # Ids with a mutation in flight, per kind, shared by every engine this console builds.
    _in_flight: dict[str, set[str]] = field(default_factory=dict)

    def in_flight(self, kind_name: str) -> set[str]:
        return self._in_flight.setdefault(_kind(kind_name).name, set())

    def engine(self, kind_name: str) -> ModerationEngine:
        """Return the (cached) engine for a kind name such as ``applications``."""
        kind = _kind(kind_name)
        if kind_name not in self._engines:
            self._engines[kind_name] = ModerationEngine(
                kind, self.store, lambda: self.auth.session, self.in_flight(kind_name)
            )
        return self._engines[kind_name]

    def engine_for(self, kind_name: str, session: Session) -> ModerationEngine:
        """Build an engine bound to *session* (one per request on the server)."""
        return ModerationEngine(_kind(kind_name), self.store, lambda: session, self.in_flight(kind_name))


def build_console(
    config: Optional[ConsoleConfig] = None,
    remember: bool = True,
    store: Optional[DocumentStore] = None,
) -> Console:
    """Assemble a console. Pass ``remember=False`` for server use."""
    config = config or load_config()
    store = store if store is not None else JsonDocumentStore(config.store_dir)
    provider = LocalIdentityProvider(config.accounts_dir, config, remember=remember)
    resolver = SessionResolver(RoleStore(store), config.admin_emails)
    return Console(config=config, store=store, auth=AuthService(provider, resolver))
