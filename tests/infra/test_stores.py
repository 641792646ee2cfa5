"""Behaviour shared by every DocumentStore implementation."""

import pytest

from docgraph.core.exceptions import DocumentNotFoundError, StoreConflictError
from docgraph.core.ports import DocumentStore
from docgraph.infra.repository.revisions import next_revision, revision_generation


@pytest.fixture(params=["memory", "duckdb"])
def any_store(request):
    fixture_name = "store" if request.param == "memory" else "duckdb_store"
    return request.getfixturevalue(fixture_name)


def test_satisfies_protocol(any_store):
    assert isinstance(any_store, DocumentStore)


def test_put_and_get(any_store):
    # ACT
    result = any_store.put({"_id": "application/json;a.json", "contents": {"x": 1}})

    # ASSERT
    assert result.ok
    assert result.id == "application/json;a.json"
    assert result.rev.startswith("1-")
    doc = any_store.get("application/json;a.json")
    assert doc["contents"] == {"x": 1}
    assert doc["_rev"] == result.rev


def test_get_returns_copies(any_store):
    any_store.put({"_id": "application/json;a.json", "contents": {"x": 1}})
    doc = any_store.get("application/json;a.json")
    doc["contents"]["x"] = 2
    assert any_store.get("application/json;a.json")["contents"] == {"x": 1}


def test_get_missing(any_store):
    with pytest.raises(DocumentNotFoundError):
        any_store.get("application/json;missing.json")


def test_update_requires_current_revision(any_store):
    """Writes carrying a stale or missing revision conflict."""
    # ARRANGE
    first = any_store.put({"_id": "application/json;a.json", "n": 1})
    second = any_store.put({"_id": "application/json;a.json", "_rev": first.rev, "n": 2})

    # ACT & ASSERT
    assert second.rev.startswith("2-")
    with pytest.raises(StoreConflictError):
        any_store.put({"_id": "application/json;a.json", "_rev": first.rev, "n": 3})
    with pytest.raises(StoreConflictError):
        any_store.put({"_id": "application/json;a.json", "n": 3})
    assert any_store.get("application/json;a.json")["n"] == 2


def test_new_documents_cannot_claim_a_revision(any_store):
    with pytest.raises(StoreConflictError):
        any_store.put({"_id": "application/json;a.json", "_rev": "3-abc"})


def test_put_requires_an_id(any_store):
    with pytest.raises(ValueError):
        any_store.put({"contents": {}})


def test_all_docs_range(any_store):
    for doc_id in ("application/json;b.json", "application/json;a.json", "text/csv;c.csv"):
        any_store.put({"_id": doc_id})

    everything = [doc["_id"] for doc in any_store.all_docs()]
    json_only = [doc["_id"] for doc in any_store.all_docs("application/json;", "application/json;\uffff")]

    assert everything == ["application/json;a.json", "application/json;b.json", "text/csv;c.csv"]
    assert json_only == ["application/json;a.json", "application/json;b.json"]


def test_find(any_store):
    any_store.put({"_id": "application/json;a.json", "mimeType": "application/json"})
    any_store.put({"_id": "text/csv;c.csv", "mimeType": "text/csv"})

    assert [doc["_id"] for doc in any_store.find({"mimeType": "text/csv"})] == ["text/csv;c.csv"]
    assert [doc["_id"] for doc in any_store.find({"_id": "text/csv;c.csv"})] == ["text/csv;c.csv"]
    assert any_store.find({"_id": "text/csv;missing.csv"}) == []
    assert len(any_store.find({}, limit=1)) == 1


def test_remove_is_a_soft_delete(any_store):
    # ARRANGE
    result = any_store.put({"_id": "application/json;a.json"})

    # ACT
    removed = any_store.remove("application/json;a.json", result.rev)

    # ASSERT
    assert removed.rev.startswith("2-")
    with pytest.raises(DocumentNotFoundError):
        any_store.get("application/json;a.json")
    assert any_store.all_docs() == []
    assert any_store.find({}) == []


def test_deleted_ids_can_be_reused(any_store):
    result = any_store.put({"_id": "application/json;a.json"})
    any_store.remove("application/json;a.json", result.rev)

    again = any_store.put({"_id": "application/json;a.json", "n": 1})

    assert again.rev.startswith("3-")
    assert any_store.get("application/json;a.json")["n"] == 1


def test_revisions_depend_on_content():
    doc = {"_id": "a", "n": 1}
    assert next_revision(None, doc) == next_revision(None, {**doc, "_rev": "9-x"})
    assert next_revision(None, doc) != next_revision(None, {"_id": "a", "n": 2})
    assert revision_generation("12-abc") == 12
    assert revision_generation(None) == 0
