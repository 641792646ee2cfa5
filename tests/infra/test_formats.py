import io
import json
import zipfile

import pytest
from lxml import etree

from docgraph.core.exceptions import ParseFailure, StructuralPreconditionError, UnknownFormatError
from docgraph.infra.formats.csvzip import CsvZip
from docgraph.infra.formats.d3json import D3Json
from docgraph.infra.formats.gexf import Gexf
from docgraph.infra.formats.registry import get_format
from docgraph.items.kinds import ItemKind

LES_MIS = {
    "nodes": [
        {"name": "Myriel", "group": 1},
        {"name": "Napoleon", "group": 1},
        {"name": "Cosette", "group": 2, "class": "heroes"},
    ],
    "links": [
        {"source": 1, "target": 0, "value": 1},
        {"source": 2, "target": 0, "value": 8},
    ],
}


@pytest.fixture
def imported(graph):
    """A document populated from D3 JSON."""
    return graph.import_into("application/json;lesmis.json", "d3json", json.dumps(LES_MIS), class_attribute="class")


def test_registry_lookup():
    assert isinstance(get_format("d3json"), D3Json)
    assert isinstance(get_format("D3"), D3Json)
    assert isinstance(get_format("gexf"), Gexf)
    assert isinstance(get_format("zip"), CsvZip)
    with pytest.raises(UnknownFormatError, match="Available: csvzip, d3json, gexf"):
        get_format("graphml")


def test_d3_import_builds_nodes_edges_and_classes(imported):
    """Nodes land in contents.nodes, links in contents.links, each classed."""
    # ARRANGE
    contents = imported.item(("contents",))

    # ACT
    nodes = list(contents.child("nodes").contents())
    edges = list(contents.child("links").contents())

    # ASSERT
    assert [node.kind for node in nodes] == [ItemKind.NODE] * 3
    assert [node.child("name").value for node in nodes] == ["Myriel", "Napoleon", "Cosette"]
    assert [edge.kind for edge in edges] == [ItemKind.EDGE] * 2
    assert edges[0].nodes(forward=False) == [nodes[1]]
    assert edges[0].nodes(forward=True) == [nodes[0]]
    assert edges[1].child("value").value == 8
    assert sorted(imported.raw["classes"]) == ["_id", "heroes", "links", "nodes", "none"]
    assert nodes[2].classes == ["heroes"]
    assert imported.rev is not None


def test_d3_import_with_node_attribute(graph):
    data = {
        "Nodes": [{"id": "a"}, {"id": "b"}],
        "Edges": [{"from": "a", "to": "b"}],
    }
    tree = graph.import_into(
        "application/json;ids.json",
        "d3json",
        json.dumps(data),
        node_attribute="id",
        source_attribute="from",
        target_attribute="to",
    )
    edge = tree.item(("contents", "Edges", "0"))
    assert [node.child("id").value for node in edge.nodes(forward=True)] == ["b"]
    assert "from" not in edge.value


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[]",
        '{"nodes": []}',
        '{"nodes": {}, "links": []}',
        '{"nodes": [{"name": "a"}], "links": [{"source": 0, "target": 5}]}',
        '{"nodes": ["a"], "links": []}',
    ],
)
def test_d3_import_failures(graph, text):
    with pytest.raises(ParseFailure, match="Failed to parse format: D3Json"):
        graph.import_into("application/json;bad.json", "d3json", text, save=False)


def test_d3_export(graph, imported):
    # ACT
    result = graph.export_doc("application/json;lesmis.json", "d3json")
    data = json.loads(result.text())

    # ASSERT
    assert result.type == "text/json"
    assert result.extension == "json"
    names = [node["name"] for node in data["nodes"]]
    assert sorted(names) == ["Cosette", "Myriel", "Napoleon"]
    by_index = {index: node["name"] for index, node in enumerate(data["nodes"])}
    pairs = sorted((by_index[link["source"]], by_index[link["target"]]) for link in data["links"])
    assert pairs == [("Cosette", "Myriel"), ("Napoleon", "Myriel")]
    assert {link["class"] for link in data["links"]} == {"links"}
    assert "other" not in data


def test_d3_export_selected_classes(graph, imported):
    result = graph.export_doc("application/json;lesmis.json", "d3json", include_classes=["heroes"], pretty=False)
    data = json.loads(result.data)
    assert data == {"nodes": [{"class": "heroes", "group": 2, "name": "Cosette"}], "links": []}


def test_d3_export_generic_classes_go_to_other(graph, scratch_tree):
    card = scratch_tree.item(("contents",)).create_new_item({"rank": "ace"}, label="card", kind=ItemKind.TAGGABLE)
    card.add_class("cards")
    graph.save_doc(scratch_tree)

    data = json.loads(graph.export_doc(scratch_tree.doc_id, "d3json").data)

    assert data["other"] == {"cards": [{"rank": "ace"}]}


def test_formats_need_a_document(imported):
    with pytest.raises(StructuralPreconditionError):
        D3Json().format_data(imported.item(("contents",)))


def test_gexf_export(graph, imported):
    """The rendered XML parses and carries every node and edge."""
    # ACT
    result = graph.export_doc("application/json;lesmis.json", "gexf")
    root = etree.fromstring(result.data)

    # ASSERT
    assert result.extension == "gexf"
    assert etree.QName(root).localname == "gexf"
    nodes = root.findall("{*}graph/{*}nodes/{*}node")
    edges = root.findall("{*}graph/{*}edges/{*}edge")
    assert sorted(node.get("label") for node in nodes) == ["0", "1", "2"]
    assert len(edges) == 2
    assert all(edge.get("type") is None for edge in edges)


def test_gexf_escapes_text(graph, scratch_tree):
    node = scratch_tree.item(("contents",)).create_new_item({"label": "<Tom & Jerry>"}, label="n", kind=ItemKind.NODE)
    node.add_class("toons")
    graph.save_doc(scratch_tree)

    root = etree.fromstring(graph.export_doc(scratch_tree.doc_id, "gexf").data)

    assert root.find("{*}graph/{*}nodes/{*}node").get("label") == "<Tom & Jerry>"


GEXF_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<gexf xmlns="http://www.gexf.net/1.2draft" version="1.2">
  <graph defaultedgetype="directed">
    <attributes class="node">
      <attribute id="0" title="class" type="string"/>
      <attribute id="1" title="weight" type="float"/>
    </attributes>
    <nodes>
      <node id="n0" label="Hello"><attvalues><attvalue for="0" value="greeting"/></attvalues></node>
      <node id="n1" label="World"><attvalues><attvalue for="1" value="2.5"/></attvalues></node>
    </nodes>
    <edges>
      <edge id="e0" source="n0" target="n1"/>
      <edge id="e1" source="n1" target="n0" type="undirected"/>
    </edges>
  </graph>
</gexf>
"""


def test_gexf_import(graph):
    # ACT
    tree = graph.import_into("application/json;hello.json", "gexf", GEXF_DOC)

    # ASSERT
    nodes = list(tree.item(("contents", "nodes")).contents())
    edges = list(tree.item(("contents", "edges")).contents())
    assert [node.child("label").value for node in nodes] == ["Hello", "World"]
    assert nodes[0].classes == ["greeting"]
    assert nodes[1].classes == ["nodes"]
    assert nodes[1].child("weight").value == 2.5
    assert edges[0].nodes(forward=True) == [nodes[1]]
    assert edges[1].nodes(forward=True) == []
    assert edges[1].value["$nodes"][nodes[0].unique_selector] == {"undirected": 1}


def test_gexf_import_drops_structural_attributes(graph):
    """XML ids, edge labels and endpoints are not stored as children."""
    # ARRANGE
    text = GEXF_DOC.replace('<edge id="e0" source="n0" target="n1"/>', '<edge id="e0" label="knows" source="n0" target="n1"/>')

    # ACT
    tree = graph.import_into("application/json;hello.json", "gexf", text)

    # ASSERT
    node, _ = tree.item(("contents", "nodes")).contents()
    edge = next(iter(tree.item(("contents", "edges")).contents()))
    assert [item.label for item in node.contents()] == ["label"]
    assert list(edge.contents()) == []


@pytest.mark.parametrize("text", ["<gexf", "<graphml/>", '<gexf xmlns="http://www.gexf.net/1.2draft"/>'])
def test_gexf_import_failures(graph, text):
    with pytest.raises(ParseFailure, match="GEXF"):
        graph.import_into("application/json;bad.json", "gexf", text, save=False)


def test_gexf_unknown_endpoint(graph):
    text = GEXF_DOC.replace('target="n1"/>', 'target="n9"/>')
    with pytest.raises(ParseFailure, match="unknown node"):
        graph.import_into("application/json;bad.json", "gexf", text, save=False)


def test_csvzip_export(graph, imported):
    # ACT
    result = graph.export_doc("application/json;lesmis.json", "csvzip")

    # ASSERT
    assert result.type == "application/zip"
    with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
        assert sorted(archive.namelist()) == ["heroes.csv", "links.csv", "nodes.csv"]
        heroes = archive.read("heroes.csv").decode("utf-8").splitlines()
    assert heroes == ["index,group,name", "2,2,Cosette"]


def test_csvzip_import(graph):
    # ARRANGE
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("people.csv", "index,name,age\nann,Ann,31\n,Bob,27\n")
        archive.writestr("README.md", "ignored")

    # ACT
    tree = graph.import_into("application/json;people.json", "csvzip", buffer.getvalue())

    # ASSERT
    table = tree.item(("contents", "people"))
    rows = list(table.contents())
    assert [row.label for row in rows] == ["0", "ann"]
    assert rows[1].child("age").value == 31
    assert all(row.kind is ItemKind.TAGGABLE and row.classes == ["people"] for row in rows)


def test_csvzip_import_failures(graph):
    with pytest.raises(ParseFailure, match="CsvZip"):
        graph.import_into("application/json;bad.json", "csvzip", b"not a zip", save=False)
    with pytest.raises(ParseFailure, match="bytes"):
        graph.import_into("application/json;bad.json", "csvzip", "text", save=False)
