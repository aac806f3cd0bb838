"""Document store contract and a file-backed JSON implementation.

The console core only talks to persistence through :class:`DocumentStore`.
:class:`JsonDocumentStore` keeps one JSON file per collection under a base
directory::

    <base>/users.json
    <base>/membershipApplications.json
    <base>/contactMessages.json
    <base>/eventProposals.json

Every document is a dict with an ``id`` key. Timestamps are stored as ISO
8601 strings and compared by instant.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from clubconsole.errors import NotFound, StoreFailure

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Keyed document store. All operations are async and may fail."""

    async def get(self, collection: str, doc_id: str) -> Optional[dict]: ...

    async def set(self, collection: str, doc_id: str, fields: dict) -> None: ...

    async def update(self, collection: str, doc_id: str, fields: dict) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def query(
        self, collection: str, order_by: str = "createdAt", direction: str = "desc"
    ) -> list[dict]: ...

    async def add(self, collection: str, fields: dict) -> str: ...


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_instant(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp (datetime or ISO string) to an aware datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _order_key(value: Any) -> tuple:
    instant = to_instant(value)
    if instant is not None:
        return (0, instant.timestamp(), "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    if value is None:
        return (2, 0.0, "")
    return (1, 0.0, str(value))


class JsonDocumentStore:
    """File-based :class:`DocumentStore`.

    Read and write errors (missing permissions, corrupt JSON) are raised as
    :class:`StoreFailure`; a missing collection file reads as empty.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, collection: str) -> Path:
        return self._base / f"{collection}.json"

    def _read_json(self, collection: str) -> list[dict]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            raise StoreFailure(f"Could not read collection '{collection}': {exc}") from exc
        return data if isinstance(data, list) else []

    def _write_json(self, collection: str, data: list[dict]) -> None:
        try:
            self._path(collection).write_text(json.dumps(data, indent=2, default=str))
        except OSError as exc:
            raise StoreFailure(f"Could not write collection '{collection}': {exc}") from exc

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        for d in self._read_json(collection):
            if d.get("id") == doc_id:
                return dict(d)
        return None

    async def set(self, collection: str, doc_id: str, fields: dict) -> None:
        """Create or replace a document."""
        docs = [d for d in self._read_json(collection) if d.get("id") != doc_id]
        docs.append({**fields, "id": doc_id})
        self._write_json(collection, docs)

    async def update(self, collection: str, doc_id: str, fields: dict) -> None:
        """Merge *fields* into an existing document. Raises ``NotFound``."""
        docs = self._read_json(collection)
        for d in docs:
            if d.get("id") == doc_id:
                d.update(fields)
                d["id"] = doc_id
                self._write_json(collection, docs)
                return
        raise NotFound(f"No document '{doc_id}' in '{collection}'")

    async def delete(self, collection: str, doc_id: str) -> None:
        docs = self._read_json(collection)
        remaining = [d for d in docs if d.get("id") != doc_id]
        if len(remaining) < len(docs):
            self._write_json(collection, remaining)

    async def query(
        self, collection: str, order_by: str = "createdAt", direction: str = "desc"
    ) -> list[dict]:
        docs = self._read_json(collection)
        return sorted(
            (dict(d) for d in docs),
            key=lambda d: _order_key(d.get(order_by)),
            reverse=direction == "desc",
        )

    async def add(self, collection: str, fields: dict) -> str:
        """Insert a new document with a store-assigned id."""
        doc_id = uuid.uuid4().hex
        doc = {"createdAt": utcnow_iso(), **fields, "id": doc_id}
        docs = self._read_json(collection)
        docs.append(doc)
        self._write_json(collection, docs)
        logger.debug("Added document %s to %s", doc_id, collection)
        return doc_id
