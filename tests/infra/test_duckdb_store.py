import ibis

from docgraph.core.config import DocGraphConfig
from docgraph.core.context import GraphContext
from docgraph.core.graph import DocGraph
from docgraph.infra.repository.duckdb import DuckDBDocumentStore


def test_count_skips_deleted(duckdb_store):
    first = duckdb_store.put({"_id": "application/json;a.json"})
    duckdb_store.put({"_id": "application/json;b.json"})
    duckdb_store.remove("application/json;a.json", first.rev)

    assert duckdb_store.count() == 1


def test_documents_survive_reconnecting(tmp_path):
    """A file-backed store keeps documents across connections."""
    # ARRANGE
    db_path = str(tmp_path / "graph.duckdb")
    writer = DuckDBDocumentStore(ibis.duckdb.connect(db_path))
    writer.initialize()
    writer.put({"_id": "application/json;a.json", "contents": {"x": 1}})
    writer.conn.disconnect()

    # ACT
    reader = DuckDBDocumentStore(ibis.duckdb.connect(db_path))
    reader.initialize()

    # ASSERT
    assert reader.get("application/json;a.json")["contents"] == {"x": 1}


def test_custom_table_name(duckdb_store):
    other = DuckDBDocumentStore(duckdb_store.conn, table_name="graphs")
    other.initialize()
    other.put({"_id": "application/json;a.json"})

    assert other.count() == 1
    assert duckdb_store.count() == 0


def test_graph_over_duckdb(duckdb_store):
    graph = DocGraph(GraphContext(store=duckdb_store, config=DocGraphConfig()))
    graph.upload_doc("f.json", "application/json", {"hands": [{"name": "left"}, {"name": "right"}]})

    selection = graph.select_all('@{"_id":"application/json;f.json"}$.contents.hands[*].name')

    assert [item.value for item in selection] == ["left", "right"]
