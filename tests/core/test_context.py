from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from docgraph.core.config import DocGraphConfig
from docgraph.core.context import GraphContext, build_context
from docgraph.core.exceptions import StoreConflictError
from docgraph.infra.repository.duckdb import DuckDBDocumentStore
from docgraph.infra.repository.memory import InMemoryDocumentStore


def test_context_defaults(store):
    """A context only needs a store."""
    ctx = GraphContext(store=store)
    assert ctx.run_id
    assert isinstance(ctx.config, DocGraphConfig)
    assert ctx.observers == ()
    assert ctx.metadata == {}


def test_context_is_frozen(store):
    """Neither fields nor metadata can be changed."""
    ctx = GraphContext(store=store, metadata={"key": "value"})
    assert ctx.metadata["key"] == "value"

    with pytest.raises(FrozenInstanceError):
        ctx.store = InMemoryDocumentStore()
    with pytest.raises(TypeError):
        ctx.metadata["key"] = "other"


def test_report_notifies_every_observer(store):
    """Reported errors reach each observer in order."""
    # Arrange
    first, second = [], []
    ctx = GraphContext(store=store, observers=(first.append,)).with_observer(second.append)
    error = StoreConflictError("application/json;a.json", "1-a", "2-b")

    # Act
    ctx.report(error)

    # Assert
    assert first == [error]
    assert second == [error]


def test_build_context_memory_backend():
    """The default backend is the in-memory store."""
    ctx = build_context(DocGraphConfig())
    assert isinstance(ctx.store, InMemoryDocumentStore)


def test_build_context_duckdb_backend(tmp_path: Path):
    """The duckdb backend opens a database file under the site root."""
    # Arrange
    config = DocGraphConfig.model_validate(
        {"store": {"backend": "duckdb", "site_root": tmp_path, "db_path": "graph.duckdb"}}
    )

    # Act
    ctx = build_context(config)

    # Assert
    assert isinstance(ctx.store, DuckDBDocumentStore)
    assert (tmp_path / "graph.duckdb").exists()
