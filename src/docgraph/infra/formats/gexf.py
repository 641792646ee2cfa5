"""GEXF graph exchange XML."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape
from lxml import etree

from docgraph.core.types import ExportResult
from docgraph.infra.formats.base import EDGE_CLASS, NODE_CLASS, FileFormat
from docgraph.items.bookkeeping import Direction
from docgraph.items.item import Item
from docgraph.items.kinds import ItemKind

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "gexf.xml.jinja2"


class Gexf(FileFormat):
    name = "GEXF"
    mime_type = "text/xml"
    extension = "gexf"

    def __init__(self) -> None:
        self.jinja_env = Environment(
            loader=PackageLoader("docgraph.infra.formats", "templates"),
            autoescape=select_autoescape(enabled_extensions=("jinja", "jinja2", "xml")),
        )

    def format_data(
        self,
        model: Item,
        include_classes: Sequence[str] | None = None,
        class_attribute: str = "class",
        **options: Any,
    ) -> ExportResult:
        classes = self.export_classes(model, include_classes)
        nodes: list[dict[str, Any]] = []
        ids: dict[str, str] = {}
        for export_class in (c for c in classes if c.kind == NODE_CLASS):
            for node in export_class.items:
                if node.unique_selector in ids:
                    continue
                ids[node.unique_selector] = str(len(nodes))
                row = self.build_row(node)
                nodes.append(
                    {
                        "id": ids[node.unique_selector],
                        "label": row.get("label", node.label),
                        "class_name": export_class.name,
                    }
                )

        edges: list[dict[str, Any]] = []
        for export_class in (c for c in classes if c.kind == EDGE_CLASS):
            for edge in export_class.items:
                directed = bool(edge.node_selectors(forward=True))
                for source, target in edge.endpoint_pairs():
                    if source.unique_selector not in ids or target.unique_selector not in ids:
                        continue
                    edges.append(
                        {
                            "id": str(len(edges)),
                            "source": ids[source.unique_selector],
                            "target": ids[target.unique_selector],
                            "undirected": not directed,
                            "class_name": export_class.name,
                        }
                    )

        template = self.jinja_env.get_template(TEMPLATE_NAME)
        rendered = template.render(
            description=model.doc_id,
            default_edge_type="directed",
            class_attribute=class_attribute,
            nodes=nodes,
            edges=edges,
        )
        return self.result(rendered)

    def import_data(
        self,
        model: Item,
        text: str | bytes,
        class_attribute: str = "class",
        **options: Any,
    ) -> None:
        self.require_document(model)
        parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
        data = text.encode("utf-8") if isinstance(text, str) else text
        try:
            root = etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise self.fail(str(exc)) from exc
        graph = root.find("{*}graph")
        if etree.QName(root).localname != "gexf" or graph is None:
            raise self.fail("no <gexf><graph> element")

        default_type = graph.get("defaultedgetype", "undirected")
        titles = {
            attribute.get("id"): attribute.get("title") or attribute.get("id")
            for attribute in graph.iterfind("{*}attributes/{*}attribute")
        }

        contents = self.contents_of(model)
        nodes_container = self.ensure_child_container(contents, "nodes")
        edges_container = self.ensure_child_container(contents, "edges")

        nodes: dict[str, Item] = {}
        for element in graph.iterfind("{*}nodes/{*}node"):
            attributes = self._attributes(element, titles, skip=("id",))
            class_name = attributes.pop(class_attribute, None) or "nodes"
            node = nodes_container.create_new_item(attributes, kind=ItemKind.NODE)
            node.add_class(str(class_name))
            nodes[element.get("id")] = node

        count = 0
        for element in graph.iterfind("{*}edges/{*}edge"):
            source, target = nodes.get(element.get("source")), nodes.get(element.get("target"))
            if source is None or target is None:
                raise self.fail(f"edge {element.get('id')!r} references an unknown node")
            edge_type = element.get("type", default_type)
            direction = Direction.UNDIRECTED if edge_type == "undirected" else Direction.SOURCE
            edge = source.link_to(target, edges_container, direction)
            attributes = self._attributes(element, titles, skip=("id", "label", "source", "target", "type"))
            class_name = attributes.pop(class_attribute, None) or "edges"
            for key, value in attributes.items():
                edge.create_new_item(value, label=key)
            edge.add_class(str(class_name))
            count += 1
        logger.info("Imported %d nodes and %d edges from GEXF", len(nodes), count)

    @staticmethod
    def _attributes(
        element: etree._Element, titles: dict[str | None, str | None], skip: tuple[str, ...] = ()
    ) -> dict[str, Any]:
        # XML attributes in `skip` are structural; attvalues are always kept.
        attributes: dict[str, Any] = {key: value for key, value in element.attrib.items() if key not in skip}
        for attvalue in element.iterfind("{*}attvalues/{*}attvalue"):
            key = attvalue.get("for") or attvalue.get("id")
            attributes[titles.get(key) or key] = attvalue.get("value")
        return attributes
