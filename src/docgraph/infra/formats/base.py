"""Contract shared by file format adapters.

An adapter reads and writes a Document item (the "model"). Export works class by
class: each class in the document's ``classes`` collection becomes a table of
nodes, edges or generic rows depending on its members.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from docgraph.core.exceptions import ParseFailure, StructuralPreconditionError
from docgraph.core.types import ExportResult
from docgraph.items.dates import is_date_value
from docgraph.items.item import Item
from docgraph.items.kinds import NODE_KINDS, ItemKind
from docgraph.items.paths import is_reserved, sorted_keys

logger = logging.getLogger(__name__)

NODE_CLASS = "Node"
EDGE_CLASS = "Edge"
GENERIC_CLASS = "Generic"


@dataclass(frozen=True)
class ExportClass:
    name: str
    kind: str
    items: tuple[Item, ...]


class FileFormat(ABC):
    """Base class for import/export adapters."""

    name: ClassVar[str]
    mime_type: ClassVar[str]
    extension: ClassVar[str]

    @abstractmethod
    def import_data(self, model: Item, text: str | bytes, **options: Any) -> None:
        """Populate ``model`` from ``text``; raise ParseFailure when it does not fit."""

    @abstractmethod
    def format_data(self, model: Item, include_classes: Sequence[str] | None = None, **options: Any) -> ExportResult:
        """Serialize the selected classes of ``model``."""

    def fail(self, reason: str | None = None) -> ParseFailure:
        return ParseFailure(self.name, reason)

    def result(self, data: str | bytes) -> ExportResult:
        payload = data.encode("utf-8") if isinstance(data, str) else data
        return ExportResult(data=payload, type=self.mime_type, extension=self.extension)

    @staticmethod
    def require_document(model: Item) -> None:
        if model.kind is not ItemKind.DOCUMENT:
            raise StructuralPreconditionError(model.kind, model.path, detail="file formats read and write documents")

    def export_classes(self, model: Item, include_classes: Sequence[str] | None = None) -> list[ExportClass]:
        """Non-empty classes of the document, typed by their members."""
        self.require_document(model)
        classes = model.doc.get("classes", {})
        exported = []
        for name in sorted_keys(classes):
            if include_classes is not None and name not in include_classes:
                continue
            members = tuple(model.tree.item(("classes", name), ItemKind.SET).members())
            if not members:
                continue
            if all(member.kind in NODE_KINDS for member in members):
                kind = NODE_CLASS
            elif all(member.kind is ItemKind.EDGE for member in members):
                kind = EDGE_CLASS
            else:
                kind = GENERIC_CLASS
            exported.append(ExportClass(name=name, kind=kind, items=members))
        return exported

    @staticmethod
    def build_row(item: Item) -> dict[str, Any]:
        """Primitive attributes of a container item; dates as their ISO string."""
        row: dict[str, Any] = {}
        value = item.value
        if not isinstance(value, dict):
            return row
        for key in sorted_keys(value):
            child = value[key]
            if is_date_value(child):
                row[key] = child.get("str")
            elif not isinstance(child, dict):
                row[key] = child
        return row

    @staticmethod
    def ensure_child_container(parent: Item, label: str) -> Item:
        existing = parent.value.get(label)
        if isinstance(existing, dict) and not is_reserved(label):
            return parent.child(label)
        return parent.create_new_item(label=label, kind=ItemKind.CONTAINER)

    @staticmethod
    def contents_of(model: Item) -> Item:
        return model.tree.ensure_container("contents")

