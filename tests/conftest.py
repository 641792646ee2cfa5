"""Shared fixtures for docgraph tests."""

from __future__ import annotations

import sys
from pathlib import Path

import ibis
import pytest

# Add src to path for imports without an editable install
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from docgraph.core.config import DocGraphConfig  # noqa: E402
from docgraph.core.context import GraphContext  # noqa: E402
from docgraph.core.graph import DocGraph  # noqa: E402
from docgraph.infra.repository.duckdb import DuckDBDocumentStore  # noqa: E402
from docgraph.infra.repository.memory import InMemoryDocumentStore  # noqa: E402

SAMPLE_ID = "application/json;f.json"
SAMPLE_QUERY = '{"_id":"application/json;f.json"}'


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def duckdb_store() -> DuckDBDocumentStore:
    """Provides an in-memory DuckDB store for testing."""
    conn = ibis.duckdb.connect()
    duckdb_store = DuckDBDocumentStore(conn)
    duckdb_store.initialize()
    return duckdb_store


@pytest.fixture
def reported() -> list[Exception]:
    """Errors broadcast to the graph's observer."""
    return []


@pytest.fixture
def graph(store: InMemoryDocumentStore, reported: list[Exception]) -> DocGraph:
    context = GraphContext(store=store, config=DocGraphConfig(), observers=(reported.append,))
    return DocGraph(context)


@pytest.fixture
def sample_tree(graph: DocGraph):
    """A saved document with an array of hands, a title and a reference."""
    return graph.upload_doc(
        "f.json",
        "application/json",
        {
            "hands": [{"name": "left"}, {"name": "right"}],
            "title": "cards",
            "ref": "@$.contents.title",
        },
    )


@pytest.fixture
def scratch_tree(graph: DocGraph):
    """An unsaved, empty document."""
    return graph.get_doc("application/json;scratch.json")
