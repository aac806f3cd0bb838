"""Tests for the JSON document store."""

from datetime import datetime, timezone

import pytest

from clubconsole.errors import NotFound, StoreFailure
from clubconsole.store import JsonDocumentStore, to_instant


@pytest.fixture
def json_store(tmp_path) -> JsonDocumentStore:
    return JsonDocumentStore(tmp_path / "docs")


@pytest.mark.asyncio
async def test_missing_collection_reads_empty(json_store):
    assert await json_store.query("users") == []
    assert await json_store.get("users", "nope") is None


@pytest.mark.asyncio
async def test_set_get_and_replace(json_store):
    await json_store.set("users", "u1", {"email": "a@x.com", "role": "user"})
    await json_store.set("users", "u1", {"email": "b@x.com"})
    doc = await json_store.get("users", "u1")
    assert doc == {"id": "u1", "email": "b@x.com"}


@pytest.mark.asyncio
async def test_update_merges_fields(json_store):
    await json_store.set("users", "u1", {"email": "a@x.com", "role": "user"})
    await json_store.update("users", "u1", {"role": "member"})
    assert await json_store.get("users", "u1") == {"id": "u1", "email": "a@x.com", "role": "member"}


@pytest.mark.asyncio
async def test_update_missing_document_raises(json_store):
    with pytest.raises(NotFound):
        await json_store.update("users", "ghost", {"role": "admin"})


@pytest.mark.asyncio
async def test_delete_is_idempotent(json_store):
    await json_store.set("contactMessages", "m1", {"status": "pending"})
    await json_store.delete("contactMessages", "m1")
    await json_store.delete("contactMessages", "m1")
    assert await json_store.get("contactMessages", "m1") is None


@pytest.mark.asyncio
async def test_add_assigns_id_and_created_at(json_store):
    doc_id = await json_store.add("eventProposals", {"title": "Meteor watch"})
    doc = await json_store.get("eventProposals", doc_id)
    assert doc["title"] == "Meteor watch"
    assert to_instant(doc["createdAt"]) is not None


@pytest.mark.asyncio
async def test_query_orders_by_instant(json_store):
    await json_store.set("users", "a", {"createdAt": "2024-01-02T00:00:00Z"})
    await json_store.set("users", "b", {"createdAt": "2024-01-01T23:00:00-05:00"})
    await json_store.set("users", "c", {})
    desc = await json_store.query("users")
    asc = await json_store.query("users", direction="asc")
    # b is 2024-01-02T04:00Z, later than a.
    assert [d["id"] for d in asc] == ["a", "b", "c"]
    assert [d["id"] for d in desc] == ["c", "b", "a"]


@pytest.mark.asyncio
async def test_corrupt_file_raises_store_failure(tmp_path):
    base = tmp_path / "docs"
    store = JsonDocumentStore(base)
    (base / "users.json").write_text("{not json")
    with pytest.raises(StoreFailure):
        await store.query("users")


def test_to_instant_handles_naive_and_invalid_values():
    naive = to_instant("2024-03-01T10:00:00")
    assert naive == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert to_instant("not a date") is None
    assert to_instant(None) is None
    assert to_instant(42) is None
