"""D3 force-layout JSON (``{"nodes": [...], "links": [...]}``)."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from docgraph.core.types import ExportResult
from docgraph.infra.formats.base import EDGE_CLASS, NODE_CLASS, FileFormat
from docgraph.items.bookkeeping import Direction
from docgraph.items.item import Item
from docgraph.items.kinds import ItemKind
from docgraph.items.paths import is_reserved

logger = logging.getLogger(__name__)

NODE_KEYS = ("nodes", "Nodes")
EDGE_KEYS = ("edges", "links", "Edges", "Links")


class D3Json(FileFormat):
    name = "D3Json"
    mime_type = "text/json"
    extension = "json"

    def import_data(
        self,
        model: Item,
        text: str | bytes,
        node_attribute: str | None = None,
        source_attribute: str = "source",
        target_attribute: str = "target",
        class_attribute: str | None = None,
        **options: Any,
    ) -> None:
        self.require_document(model)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise self.fail(str(exc)) from exc
        if not isinstance(data, dict):
            raise self.fail("expected a JSON object")
        nodes_key = next((key for key in NODE_KEYS if key in data), None)
        edges_key = next((key for key in EDGE_KEYS if key in data), None)
        if nodes_key is None or edges_key is None:
            raise self.fail("missing nodes or edges list")
        if not isinstance(data[nodes_key], list) or not isinstance(data[edges_key], list):
            raise self.fail("nodes and edges must be lists")

        contents = self.contents_of(model)
        nodes_container = self.ensure_child_container(contents, nodes_key)
        edges_container = self.ensure_child_container(contents, edges_key)

        nodes: list[Item] = []
        by_attribute: dict[Any, Item] = {}
        for raw_node in data[nodes_key]:
            if not isinstance(raw_node, dict):
                raise self.fail("nodes must be objects")
            attributes = {
                key: value for key, value in raw_node.items() if key != class_attribute and not is_reserved(key)
            }
            node = nodes_container.create_new_item(attributes, kind=ItemKind.NODE)
            node.add_class(self._class_name(raw_node, class_attribute, nodes_key))
            nodes.append(node)
            if node_attribute is not None and node_attribute in raw_node:
                by_attribute[raw_node[node_attribute]] = node

        def lookup(reference: Any) -> Item:
            if isinstance(reference, dict):
                reference = reference.get(node_attribute) if node_attribute else reference.get("index")
            if node_attribute is not None:
                node = by_attribute.get(reference)
            elif isinstance(reference, int) and not isinstance(reference, bool) and 0 <= reference < len(nodes):
                node = nodes[reference]
            else:
                node = None
            if node is None:
                raise self.fail(f"link endpoint {reference!r} matches no node")
            return node

        for raw_edge in data[edges_key]:
            if not isinstance(raw_edge, dict):
                raise self.fail("edges must be objects")
            source = lookup(raw_edge.get(source_attribute))
            target = lookup(raw_edge.get(target_attribute))
            edge = source.link_to(target, edges_container, Direction.SOURCE)
            for key, value in raw_edge.items():
                if key not in (source_attribute, target_attribute, class_attribute) and not is_reserved(key):
                    edge.create_new_item(value, label=key)
            edge.add_class(self._class_name(raw_edge, class_attribute, edges_key))
        logger.info("Imported %d nodes and %d edges", len(nodes), len(data[edges_key]))

    @staticmethod
    def _class_name(raw: dict[str, Any], class_attribute: str | None, default: str) -> str:
        if class_attribute and raw.get(class_attribute) is not None:
            return str(raw[class_attribute])
        return default

    def format_data(
        self,
        model: Item,
        include_classes: Sequence[str] | None = None,
        pretty: bool = True,
        node_attribute: str | None = None,
        class_attribute: str = "class",
        **options: Any,
    ) -> ExportResult:
        classes = self.export_classes(model, include_classes)
        nodes: list[dict[str, Any]] = []
        references: dict[str, Any] = {}
        for export_class in (c for c in classes if c.kind == NODE_CLASS):
            for node in export_class.items:
                if node.unique_selector in references:
                    continue
                row = self.build_row(node)
                row[class_attribute] = export_class.name
                if node_attribute is not None:
                    row.setdefault(node_attribute, node.label)
                    references[node.unique_selector] = row[node_attribute]
                else:
                    references[node.unique_selector] = len(nodes)
                nodes.append(row)

        links: list[dict[str, Any]] = []
        for export_class in (c for c in classes if c.kind == EDGE_CLASS):
            for edge in export_class.items:
                for source, target in edge.endpoint_pairs():
                    if source.unique_selector not in references or target.unique_selector not in references:
                        continue
                    row = self.build_row(edge)
                    row[class_attribute] = export_class.name
                    row["source"] = references[source.unique_selector]
                    row["target"] = references[target.unique_selector]
                    links.append(row)

        data: dict[str, Any] = {"nodes": nodes, "links": links}
        other = {c.name: [self.build_row(item) for item in c.items] for c in classes if c.kind not in (NODE_CLASS, EDGE_CLASS)}
        if other:
            data["other"] = other
        return self.result(json.dumps(data, indent=2 if pretty else None, ensure_ascii=False, default=str))
