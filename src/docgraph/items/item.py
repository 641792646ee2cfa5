"""Typed, addressable views over locations in a document tree."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import datetime
from typing import TYPE_CHECKING, Any

from docgraph.core.exceptions import (
    ConversionUnsupportedError,
    StructuralPreconditionError,
)
from docgraph.items import bookkeeping
from docgraph.items.bookkeeping import Direction
from docgraph.items.coercion import to_string
from docgraph.items.dates import parse_date
from docgraph.items.ids import extract_class_info_from_id
from docgraph.items.kinds import (
    CONTAINER_KINDS,
    NODE_KINDS,
    SET_KINDS,
    TAGGABLE_KINDS,
    ItemKind,
    infer_kind,
)
from docgraph.items.paths import Path, is_index, is_reserved, sorted_keys, stringify
from docgraph.items.variants import (
    StandardizeContext,
    allowed_conversions,
    boilerplate_value,
    check_shape,
    standardize_value,
)

if TYPE_CHECKING:
    from docgraph.core.graph import DocGraph
    from docgraph.items.tree import DocumentTree, RootView

logger = logging.getLogger(__name__)


class Item:
    """A ``(owner, path, kind)`` triple.

    The raw value is never cached: every accessor resolves ``path`` through the owning
    tree. Construction fails with ``StructuralPreconditionError`` when the value at
    ``path`` cannot back the requested kind.
    """

    __slots__ = ("kind", "owner", "path")

    def __init__(self, owner: DocumentTree | RootView, path: Path = (), kind: ItemKind | None = None) -> None:
        self.owner = owner
        self.path = tuple(path)
        raw = owner.resolve(self.path)
        if kind is None:
            kind = self._infer(raw)
        self.kind = ItemKind(kind)
        if self.kind not in (ItemKind.DOCUMENT, ItemKind.ROOT) and not self.path:
            raise StructuralPreconditionError(self.kind, self.path, detail="typed items live below the document root")
        check_shape(self.kind, raw, self.path)

    def _infer(self, raw: Any) -> ItemKind:
        if not self.path:
            return ItemKind.ROOT if self.owner.doc_id is None else ItemKind.DOCUMENT
        return infer_kind(raw)

    def __repr__(self) -> str:
        return f"<{self.kind.value} {self.unique_selector}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.unique_selector == other.unique_selector

    def __hash__(self) -> int:
        return hash(self.unique_selector)

    def equals(self, other: Item) -> bool:
        return self == other

    def exists(self) -> bool:
        """False once this item (or an ancestor) has been removed from its document."""
        if self.kind is ItemKind.ROOT:
            return True
        return self.tree.exists(self.path)

    # Addressing

    @property
    def tree(self) -> DocumentTree:
        if self.kind is ItemKind.ROOT:
            raise StructuralPreconditionError(self.kind, self.path, detail="the root spans several documents")
        return self.owner  # type: ignore[return-value]

    @property
    def graph(self) -> DocGraph | None:
        return self.owner.graph

    @property
    def doc(self) -> dict[str, Any]:
        return self.tree.raw

    @property
    def doc_id(self) -> str | None:
        return self.owner.doc_id

    @property
    def label(self) -> str | None:
        if self.path:
            return self.path[-1]
        return self.owner.doc_id

    @property
    def unique_selector(self) -> str:
        return self.owner.unique_selector(self.path)

    @property
    def local_selector(self) -> str:
        return self.owner.local_selector(self.path)

    @property
    def type_name(self) -> str:
        return self.kind.value

    @property
    def parent(self) -> Item | None:
        if not self.path:
            return None
        return Item(self.owner, self.path[:-1])

    @property
    def parent_value(self) -> Any:
        if not self.path:
            return None
        return self.owner.resolve(self.path[:-1])

    def _context(self, path: Path | None = None) -> StandardizeContext:
        owner_doc = self.owner.raw if self.owner.doc_id is not None else None
        return StandardizeContext(
            path=self.path if path is None else path,
            doc=owner_doc,
            doc_id=self.owner.doc_id,
        )

    # Values

    @property
    def value(self) -> Any:
        return self.owner.resolve(self.path)

    @value.setter
    def value(self, new_value: Any) -> None:
        if self.kind in (ItemKind.DOCUMENT, ItemKind.ROOT):
            raise StructuralPreconditionError(self.kind, self.path, detail="value is read-only")
        self.owner.assign(self.path, standardize_value(self.kind, new_value, self._context()))

    def boilerplate_value(self) -> Any:
        return boilerplate_value(self.kind)

    def string_value(self) -> str:
        value = self.value
        if self.kind in CONTAINER_KINDS:
            return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
        return to_string(value)

    def as_datetime(self) -> datetime | None:
        if self.kind is not ItemKind.DATE:
            raise StructuralPreconditionError(self.kind, self.path, detail="only Date items have a datetime")
        return parse_date(self.value["str"])

    def is_current(self) -> bool:
        if self.kind is ItemKind.ROOT:
            return all(tree.is_current() for tree in self.owner.trees)  # type: ignore[union-attr]
        return self.tree.is_current()

    # Conversion

    def can_convert_to(self, kind: ItemKind) -> bool:
        return ItemKind(kind) in allowed_conversions(self.kind)

    def convert_to(self, kind: ItemKind) -> Item:
        kind = ItemKind(kind)
        if kind is self.kind:
            return self
        if not self.can_convert_to(kind):
            raise ConversionUnsupportedError(self.kind.value, kind.value)
        converted = standardize_value(kind, self.value, self._context())
        self.owner.assign(self.path, converted)
        return Item(self.owner, self.path, kind)

    # Containers

    def _require(self, kinds: frozenset[ItemKind], capability: str) -> None:
        if self.kind not in kinds:
            raise StructuralPreconditionError(self.kind, self.path, detail=f"{self.kind.value} items have no {capability}")

    def child(self, label: str, kind: ItemKind | None = None) -> Item:
        return Item(self.owner, (*self.path, str(label)), kind)

    def content_selectors(self) -> list[str]:
        self._require(CONTAINER_KINDS, "contents")
        return [self.owner.unique_selector((*self.path, key)) for key in sorted_keys(self.value)]

    def contents(self) -> Iterator[Item]:
        """Restartable iteration over child items, reserved keys skipped."""
        self._require(CONTAINER_KINDS, "contents")
        if self.kind is ItemKind.ROOT:
            for tree in self.owner.trees:  # type: ignore[union-attr]
                yield tree.document_item()
            return
        for key in sorted_keys(self.value):
            yield Item(self.owner, (*self.path, key))

    def content_count(self) -> int:
        self._require(CONTAINER_KINDS, "contents")
        return len(sorted_keys(self.value))

    def next_label(self) -> str:
        self._require(CONTAINER_KINDS, "contents")
        value = self.value
        numbered = [int(key) for key in value if is_index(key)]
        candidate = max(numbered) + 1 if numbered else 0
        stored = value.get("$nextLabel")
        if isinstance(stored, int) and not isinstance(stored, bool):
            candidate = max(candidate, stored)
        return str(candidate)

    def create_new_item(self, value: Any = None, label: str | int | None = None, kind: ItemKind | None = None) -> Item:
        """Add a child and return its item.

        Without ``value`` the child starts from ``kind``'s boilerplate (a plain
        Container when neither is given). Generated labels are integers and are not
        reused after removals.
        """
        self._require(CONTAINER_KINDS - {ItemKind.ROOT}, "contents")
        generated = label is None
        label = self.next_label() if generated else str(label)
        if is_reserved(label):
            raise StructuralPreconditionError(self.kind, self.path, detail=f"{label!r} is a reserved key")
        if kind is None:
            kind = ItemKind.CONTAINER if value is None else infer_kind(value)
        raw = boilerplate_value(kind) if value is None else value
        child_path = (*self.path, label)
        standardized = standardize_value(kind, raw, self._context(child_path))
        container = self.value
        container[label] = standardized
        if generated:
            container["$nextLabel"] = int(label) + 1
        self.owner.touch()
        return Item(self.owner, child_path, kind)

    def add_item(self, item: Item, label: str | int | None = None) -> Item:
        """Copy another item's value into this container."""
        return self.create_new_item(json.loads(json.dumps(item.value)), label, item.kind)

    def remove(self) -> None:
        """Delete this item, detaching it and its descendants from sets and edges."""
        if self.kind in (ItemKind.DOCUMENT, ItemKind.ROOT):
            raise StructuralPreconditionError(self.kind, self.path, detail="use DocGraph.delete_doc to remove documents")
        for item in self._self_and_descendants():
            item._detach()
        self.owner.discard(self.path)

    def _self_and_descendants(self) -> Iterator[Item]:
        stack = [self.path]
        while stack:
            path = stack.pop()
            raw = self.owner.resolve(path)
            if not isinstance(raw, dict) or raw.get("$isDate"):
                continue
            yield Item(self.owner, path)
            stack.extend((*path, key) for key in reversed(sorted_keys(raw)))

    def _detach(self) -> None:
        if self.kind in TAGGABLE_KINDS:
            for set_item in self.containing_sets():
                set_item._unpair_member(self)
        if self.kind in SET_KINDS:
            for member in self.members():
                self._unpair_member(member)
        if self.kind in NODE_KINDS:
            for edge in self.edges():
                bookkeeping.remove_endpoint(edge.value, self.value, edge.unique_selector, self.unique_selector)
                edge.owner.touch()
        if self.kind is ItemKind.EDGE:
            for node in self.nodes():
                bookkeeping.remove_endpoint(self.value, node.value, self.unique_selector, node.unique_selector)
                node.owner.touch()

    # Cross-references

    def _key_for(self, other: Item) -> str:
        """How ``other`` is addressed from this item's document."""
        if other.doc_id == self.doc_id:
            return other.local_selector
        return other.unique_selector

    def resolve_selector(self, selector: str) -> Item | None:
        item = self.tree.resolve_selector(selector)
        if item is None:
            logger.warning("Dangling reference %s in %s", selector, self.unique_selector)
        return item

    def _resolve_all(self, selectors: list[str]) -> Iterator[Item]:
        for selector in selectors:
            item = self.resolve_selector(selector)
            if item is not None:
                yield item

    # Tags and sets

    @property
    def classes(self) -> list[str]:
        if self.kind not in TAGGABLE_KINDS:
            return []
        names = []
        for tag in self.value["$tags"]:
            doc_id, class_name = extract_class_info_from_id(tag)
            if class_name is not None and doc_id in (None, self.doc_id):
                names.append(class_name)
        return names

    def tag_selectors(self) -> list[str]:
        self._require(TAGGABLE_KINDS, "$tags")
        return list(self.value["$tags"])

    def containing_sets(self) -> list[Item]:
        return list(self._resolve_all(self.tag_selectors()))

    def member_selectors(self) -> list[str]:
        self._require(SET_KINDS, "$members")
        return list(self.value["$members"])

    def members(self) -> list[Item]:
        return list(self._resolve_all(self.member_selectors()))

    def add_to_set(self, set_item: Item) -> None:
        self._require(TAGGABLE_KINDS, "$tags")
        set_item._require(SET_KINDS, "$members")
        bookkeeping.add_tag_pair(self.value, set_item.value, set_item._key_for(self), self._key_for(set_item))
        self.owner.touch()
        set_item.owner.touch()

    def remove_from_set(self, set_item: Item) -> None:
        set_item._unpair_member(self)

    def add_member(self, item: Item) -> None:
        item.add_to_set(self)

    def _unpair_member(self, member: Item) -> None:
        bookkeeping.remove_tag_pair(member.value, self.value, self._key_for(member), member._key_for(self))
        self.owner.touch()
        member.owner.touch()

    def class_item(self, class_name: str) -> Item:
        """The document's ``classes[class_name]`` set, created when absent."""
        classes = self.tree.ensure_container("classes")
        raw = classes.value
        if not isinstance(raw.get(class_name), dict):
            raw[class_name] = {"_id": "@" + stringify(("classes", class_name)), "$members": {}}
            self.tree.touch()
        return classes.child(class_name, ItemKind.SET)

    def add_class(self, class_name: str) -> None:
        self._require(TAGGABLE_KINDS, "$tags")
        self.add_to_set(self.class_item(class_name))

    def remove_class(self, class_name: str) -> None:
        self._require(TAGGABLE_KINDS, "$tags")
        if class_name in self.classes:
            self.remove_from_set(self.class_item(class_name))

    # Graph structure

    def link_to(
        self,
        other: Item,
        container: Item | None = None,
        direction: Direction | str = Direction.UNDIRECTED,
    ) -> Item:
        """Create an edge between this node and ``other``.

        ``direction`` is this node's role; ``other`` is recorded with the opposite
        role. The edge is created in ``container``, or the document's ``orphanEdges``.
        """
        self._require(NODE_KINDS, "$edges")
        other._require(NODE_KINDS, "$edges")
        direction = Direction(direction)
        if container is None:
            container = self.tree.ensure_container("orphanEdges")
        edge = container.create_new_item(kind=ItemKind.EDGE)
        edge.attach_to(self, direction)
        edge.attach_to(other, bookkeeping.opposite_direction(direction))
        return edge

    def attach_to(self, node: Item, direction: Direction | str = Direction.UNDIRECTED) -> int:
        self._require(frozenset({ItemKind.EDGE}), "$nodes")
        node._require(NODE_KINDS, "$edges")
        count = bookkeeping.add_endpoint(self.value, node.value, self.unique_selector, node.unique_selector, direction)
        self.owner.touch()
        node.owner.touch()
        return count

    def node_selectors(self, forward: bool | None = None) -> list[str]:
        """Endpoints of this edge: all (None), targets (True) or sources (False)."""
        self._require(frozenset({ItemKind.EDGE}), "$nodes")
        return bookkeeping.endpoint_keys(self.value, forward)

    def nodes(self, forward: bool | None = None) -> list[Item]:
        return list(self._resolve_all(self.node_selectors(forward)))

    def endpoint_pairs(self) -> list[tuple[Item, Item]]:
        self._require(frozenset({ItemKind.EDGE}), "$nodes")
        pairs = []
        for source_key, target_key in bookkeeping.endpoint_pairs(self.value):
            source, target = self.resolve_selector(source_key), self.resolve_selector(target_key)
            if source is not None and target is not None:
                pairs.append((source, target))
        return pairs

    def edge_selectors(self, forward: bool | None = None) -> list[str]:
        """Edges of this node: all (None), outgoing (True) or incoming (False)."""
        self._require(NODE_KINDS, "$edges")

        def lookup(key: str) -> dict[str, Any] | None:
            edge = self.resolve_selector(key)
            return edge.value if edge is not None else None

        return bookkeeping.edge_keys(self.value, self.unique_selector, lookup, forward)

    def edges(self, forward: bool | None = None) -> list[Item]:
        return list(self._resolve_all(self.edge_selectors(forward)))

    def neighbours(self, forward: bool | None = None) -> list[Item]:
        found: dict[str, Item] = {}
        for edge in self.edges(forward):
            for node in edge.nodes(forward):
                if node != self:
                    found.setdefault(node.unique_selector, node)
        return list(found.values())

    # References and documents

    def follow(self) -> Item | None:
        self._require(frozenset({ItemKind.REFERENCE}), "target")
        return self.resolve_selector(self.value)

    def meta_items(self) -> list[Item]:
        self._require(frozenset({ItemKind.DOCUMENT}), "metadata collections")
        return [self.tree.ensure_container(key) for key in ("classes", "orphanNodes", "orphanEdges")]
