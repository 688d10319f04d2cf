"""Unit tests for the in-memory document store."""

import pytest

from view_search.adapters.document_store import InMemoryDocumentStore
from view_search.exceptions import DocumentNotFoundError


@pytest.mark.unit
@pytest.mark.asyncio
async def test_put_and_get_return_copies() -> None:
    store = InMemoryDocumentStore()
    original = {"_id": "1", "tags": ["a"]}

    await store.put(original)
    original["tags"].append("b")
    fetched = await store.get("1")
    fetched["tags"].append("c")

    assert (await store.get("1"))["tags"] == ["a"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_put_assigns_missing_id() -> None:
    store = InMemoryDocumentStore()

    doc_id = await store.put({"text": "no id"})

    assert (await store.get(doc_id))["_id"] == doc_id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_missing_document_raises() -> None:
    store = InMemoryDocumentStore()

    with pytest.raises(DocumentNotFoundError) as excinfo:
        await store.get("missing")

    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "Document not found: missing"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_changes_report_latest_state_per_document() -> None:
    store = InMemoryDocumentStore([{"_id": "1", "v": 1}, {"_id": "2", "v": 1}])
    await store.put({"_id": "1", "v": 2})
    assert await store.remove("2") is True
    assert await store.remove("2") is False

    changes = await store.changes()

    assert [(change.seq, change.doc_id, change.deleted) for change in changes] == [(3, "1", False), (4, "2", True)]
    assert changes[0].document == {"_id": "1", "v": 2}
    assert await store.update_seq() == 4
    assert await store.count() == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_changes_since_sequence() -> None:
    store = InMemoryDocumentStore()
    await store.bulk_docs([{"_id": "a"}, {"_id": "b"}, {"_id": "c"}])

    assert [change.doc_id for change in await store.changes(since=1)] == ["b", "c"]
    assert await store.changes(since=3) == []
