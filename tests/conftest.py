"""Shared fixtures and store doubles."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from clubconsole.auth.models import Identity, Role, Session
from clubconsole.errors import StoreFailure
from clubconsole.store import JsonDocumentStore

ADMIN_EMAILS = ("admin@club.test", "President@Club.test")


def make_session(uid: str = "admin-1", role: Role = Role.admin, ready: bool = True,
                 email: Optional[str] = None) -> Session:
    identity = Identity(uid=uid, email=email or f"{uid}@club.test", display_name=uid)
    return Session(identity=identity, role=role, ready=ready)


class GatedStore(JsonDocumentStore):
    """JsonDocumentStore whose operations can be paused or made to fail."""

    def __init__(self, base_dir) -> None:
        super().__init__(base_dir)
        self.gates: dict[str, asyncio.Event] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple] = []

    def hold(self, op: str) -> asyncio.Event:
        self.gates[op] = asyncio.Event()
        return self.gates[op]

    async def _checkpoint(self, op: str, *args) -> None:
        self.calls.append((op, *args))
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()
        if op in self.failing:
            raise StoreFailure(f"{op} failed")

    async def get(self, collection, doc_id):
        await self._checkpoint("get", collection, doc_id)
        return await super().get(collection, doc_id)

    async def set(self, collection, doc_id, fields):
        await self._checkpoint("set", collection, doc_id)
        return await super().set(collection, doc_id, fields)

    async def update(self, collection, doc_id, fields):
        await self._checkpoint("update", collection, doc_id)
        return await super().update(collection, doc_id, fields)

    async def delete(self, collection, doc_id):
        await self._checkpoint("delete", collection, doc_id)
        return await super().delete(collection, doc_id)

    async def query(self, collection, order_by="createdAt", direction="desc"):
        await self._checkpoint("query", collection)
        return await super().query(collection, order_by, direction)


@pytest.fixture
def store(tmp_path) -> GatedStore:
    return GatedStore(tmp_path / "store")


@pytest.fixture
def admin_session() -> Session:
    return make_session()
