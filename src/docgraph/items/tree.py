"""Owned document trees.

A ``DocumentTree`` holds one raw document. Items never keep raw values themselves;
they keep ``(owner, path)`` and resolve through the owner on every access, so two
items addressing overlapping paths always observe the same state.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from docgraph.core.exceptions import PathNotFoundError, StructuralPreconditionError
from docgraph.items.ids import doc_query
from docgraph.items.kinds import ItemKind
from docgraph.items.paths import Path, get_at, stringify
from docgraph.selection.parser import parse_selector
from docgraph.selection.resolver import resolve_paths, shift_path

if TYPE_CHECKING:
    from docgraph.core.graph import DocGraph
    from docgraph.items.item import Item

logger = logging.getLogger(__name__)


class DocumentTree:
    """A single standardized document addressed by path."""

    def __init__(self, raw: dict[str, Any], graph: DocGraph | None = None) -> None:
        self.raw = raw
        self.graph = graph
        self.revision = 0
        self._saved_revision = 0

    def __repr__(self) -> str:
        return f"DocumentTree({self.doc_id!r}, rev={self.rev!r})"

    @property
    def doc_id(self) -> str:
        return self.raw["_id"]

    @property
    def rev(self) -> str | None:
        return self.raw.get("_rev")

    @property
    def dirty(self) -> bool:
        return self.revision != self._saved_revision

    def touch(self) -> None:
        self.revision += 1

    def mark_saved(self, rev: str) -> None:
        self.raw["_rev"] = rev
        self._saved_revision = self.revision

    def resolve(self, path: Sequence[str]) -> Any:
        try:
            return get_at(self.raw, path)
        except KeyError:
            raise PathNotFoundError(tuple(path), self.raw.get("_id")) from None

    def exists(self, path: Sequence[str]) -> bool:
        try:
            get_at(self.raw, path)
        except KeyError:
            return False
        return True

    def assign(self, path: Sequence[str], value: Any) -> None:
        if not path:
            raise StructuralPreconditionError(ItemKind.DOCUMENT, (), detail="the document root cannot be replaced")
        parent = self.resolve(path[:-1])
        if not isinstance(parent, dict):
            raise PathNotFoundError(tuple(path), self.doc_id)
        parent[path[-1]] = value
        self.touch()

    def discard(self, path: Sequence[str]) -> None:
        if not path:
            raise StructuralPreconditionError(ItemKind.DOCUMENT, (), detail="the document root cannot be removed")
        parent = self.resolve(path[:-1])
        if isinstance(parent, dict) and parent.pop(path[-1], None) is not None:
            self.touch()

    def unique_selector(self, path: Path = ()) -> str:
        return "@" + doc_query(self.doc_id) + stringify(path)

    def local_selector(self, path: Path = ()) -> str:
        return "@" + stringify(path)

    def item(self, path: Sequence[str] = (), kind: ItemKind | None = None) -> Item:
        from docgraph.items.item import Item

        return Item(self, tuple(path), kind)

    def document_item(self) -> Item:
        return self.item((), ItemKind.DOCUMENT)

    def ensure_container(self, key: str) -> Item:
        """Return the top-level container ``key``, creating it when absent."""
        if not isinstance(self.raw.get(key), dict):
            self.raw[key] = {"_id": "@" + stringify((key,))}
            self.touch()
        return self.item((key,))

    def resolve_selector(self, text: str) -> Item | None:
        """Resolve a stored selector (local or qualified) to its first item."""
        selector = parse_selector(text)
        if selector.anchored and selector.doc_query != {"_id": self.doc_id}:
            if self.graph is None:
                logger.warning("Cannot resolve %s outside %s without a graph", text, self.doc_id)
                return None
            return self.graph.resolve_item(text)
        paths = resolve_paths(self.raw, (), selector.expression)
        if not paths:
            return None
        path = shift_path(paths[0], selector.parent_shift)
        if path is None:
            return None
        item = self.item(path)
        return item.follow() if selector.follow_links and item.kind is ItemKind.REFERENCE else item

    def is_current(self) -> bool:
        if self.graph is None:
            return True
        return self.graph.is_current(self)


class RootView:
    """Read-only owner presenting several trees as one container keyed by doc id."""

    doc_id = None

    def __init__(self, trees: Sequence[DocumentTree], graph: DocGraph | None = None) -> None:
        self.trees = tuple(trees)
        self.graph = graph

    def __repr__(self) -> str:
        return f"RootView({[tree.doc_id for tree in self.trees]!r})"

    @property
    def raw(self) -> dict[str, Any]:
        return {tree.doc_id: tree.raw for tree in self.trees}

    def tree(self, doc_id: str) -> DocumentTree:
        for tree in self.trees:
            if tree.doc_id == doc_id:
                return tree
        raise PathNotFoundError((doc_id,))

    def resolve(self, path: Sequence[str]) -> Any:
        if not path:
            return self.raw
        return self.tree(path[0]).resolve(path[1:])

    def assign(self, path: Sequence[str], value: Any) -> None:
        raise StructuralPreconditionError(ItemKind.ROOT, tuple(path), detail="the root is read-only")

    def discard(self, path: Sequence[str]) -> None:
        raise StructuralPreconditionError(ItemKind.ROOT, tuple(path), detail="the root is read-only")

    def touch(self) -> None:
        return None

    def unique_selector(self, path: Path = ()) -> str:
        query = {"_id": {"$in": [tree.doc_id for tree in self.trees]}}
        return "@" + json.dumps(query, ensure_ascii=False, separators=(",", ":"))

    local_selector = unique_selector
