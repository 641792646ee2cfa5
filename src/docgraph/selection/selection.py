"""Selections: lazy, restartable sequences of items matched by selectors."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from docgraph.core.exceptions import ContextResolutionError
from docgraph.core.types import ClassSchema, EdgeSignature, PutResult
from docgraph.items.bookkeeping import Direction
from docgraph.items.ids import id_to_unique_selector
from docgraph.items.item import Item
from docgraph.items.kinds import NODE_KINDS, SET_KINDS, TAGGABLE_KINDS, ItemKind
from docgraph.items.tree import DocumentTree, RootView
from docgraph.selection.parser import Selector, parse_selector
from docgraph.selection.resolver import resolve_paths, shift_path

if TYPE_CHECKING:
    from docgraph.core.graph import DocGraph

logger = logging.getLogger(__name__)

Operation = Callable[[Item], Any]


class Selection:
    """Items matched by one or more selectors.

    Iterating re-walks the current state of the fetched documents, so results reflect
    the latest mutations. Documents are fetched from the store once per selection;
    ``refresh()`` fetches them again. Operations queued with ``each``, ``attr``,
    ``remove`` and ``add_class`` run when ``save()`` is called.
    """

    def __init__(
        self,
        graph: DocGraph,
        selectors: str | Sequence[str],
        context: Item | Selection | None = None,
        *,
        single: bool = False,
    ) -> None:
        self.graph = graph
        self.selectors = (selectors,) if isinstance(selectors, str) else tuple(selectors)
        self.parsed: tuple[Selector, ...] = tuple(parse_selector(text) for text in self.selectors)
        self.context = context
        self.single = single
        self._pending: list[Operation] = []
        self._fetched: dict[str, list[DocumentTree]] = {}

    def __repr__(self) -> str:
        return f"Selection({list(self.selectors)!r})"

    def __iter__(self) -> Iterator[Item]:
        seen: set[str] = set()
        for selector in self.parsed:
            for item in self._resolve(selector):
                key = item.unique_selector
                if key in seen:
                    continue
                seen.add(key)
                yield item
                if self.single:
                    return

    def __len__(self) -> int:
        return len(self.items())

    def __bool__(self) -> bool:
        return self.first() is not None

    def items(self) -> list[Item]:
        # Not list(self): list() asks __len__ for a length hint.
        return [item for item in self]

    def first(self) -> Item | None:
        return next(iter(self), None)

    def unique_selectors(self) -> list[str]:
        return [item.unique_selector for item in self]

    # Resolution

    def _trees_for(self, query: dict[str, Any]) -> list[DocumentTree]:
        key = json.dumps(query, sort_keys=True, ensure_ascii=False)
        if key not in self._fetched:
            self._fetched[key] = self.graph.query_docs(query)
        return self._fetched[key]

    def _context_items(self) -> list[Item] | None:
        if self.context is None:
            return None
        if isinstance(self.context, Selection):
            return self.context.items()
        return [self.context]

    def _finish(self, tree: DocumentTree, path: tuple[str, ...], selector: Selector, trees: Sequence[DocumentTree]) -> Iterator[Item]:
        shifted = shift_path(path, selector.parent_shift)
        if shifted is None:
            yield Item(RootView(trees or (tree,), self.graph), (), ItemKind.ROOT)
            return
        item = tree.item(shifted)
        if selector.follow_links and item.kind is ItemKind.REFERENCE:
            target = item.follow()
            if target is not None:
                yield target
            return
        yield item

    def _resolve(self, selector: Selector) -> Iterator[Item]:
        if selector.anchored:
            trees = self._trees_for(selector.doc_query)
            if not selector.has_path:
                if trees:
                    yield Item(RootView(trees, self.graph), (), ItemKind.ROOT)
                return
            for tree in trees:
                for path in resolve_paths(tree.raw, (), selector.expression):
                    yield from self._finish(tree, path, selector, trees)
            return

        contexts = self._context_items()
        if contexts is None:
            self.graph.context.report(ContextResolutionError(selector.text))
            return
        for context in contexts:
            if isinstance(context.owner, RootView):
                root = context.owner
                for path in resolve_paths(root.raw, (), selector.expression):
                    if not path:
                        yield context
                        continue
                    yield from self._finish(root.tree(path[0]), path[1:], selector, root.trees)
            else:
                tree = context.tree
                for path in resolve_paths(tree.raw, context.path, selector.expression):
                    yield from self._finish(tree, path, selector, (tree,))

    def refresh(self) -> Selection:
        """Drop fetched documents so the next iteration reads the store again."""
        self._fetched.clear()
        if isinstance(self.context, Selection):
            self.context.refresh()
        return self

    def is_current(self) -> bool:
        return all(tree.is_current() for trees in self._fetched.values() for tree in trees)

    # Sub-selection

    def select(self, selector: str) -> Selection:
        return Selection(self.graph, selector, context=self, single=True)

    def select_all(self, selector: str | Sequence[str]) -> Selection:
        return Selection(self.graph, selector, context=self)

    def _union(self, selectors: list[str]) -> Selection:
        return Selection(self.graph, list(dict.fromkeys(selectors)))

    def select_all_set_members(self) -> Selection:
        selectors = [
            id_to_unique_selector(member, item.doc_id)
            for item in self
            if item.kind in SET_KINDS
            for member in item.member_selectors()
        ]
        return self._union(selectors)

    def select_all_containing_sets(self) -> Selection:
        selectors = [
            id_to_unique_selector(tag, item.doc_id)
            for item in self
            if item.kind in TAGGABLE_KINDS
            for tag in item.tag_selectors()
        ]
        return self._union(selectors)

    def select_all_edges(self, forward: bool | None = None) -> Selection:
        selectors = [edge for item in self if item.kind in NODE_KINDS for edge in item.edge_selectors(forward)]
        return self._union(selectors)

    def select_all_nodes(self, forward: bool | None = None) -> Selection:
        selectors = [node for item in self if item.kind is ItemKind.EDGE for node in item.node_selectors(forward)]
        return self._union(selectors)

    # Deferred operations

    def each(self, operation: Operation) -> Selection:
        self._pending.append(operation)
        return self

    def attr(self, key: str, value: Any) -> Selection:
        """Set ``key`` on every container item; ``value`` may be a callable of the item."""

        def assign(item: Item) -> None:
            new_value = value(item) if callable(value) else value
            item.create_new_item(new_value, label=key)

        return self.each(assign)

    def remove(self) -> Selection:
        return self.each(lambda item: item.remove())

    def add_class(self, class_name: str) -> Selection:
        def tag(item: Item) -> None:
            if item.kind is ItemKind.CONTAINER:
                item = item.convert_to(ItemKind.TAGGABLE)
            item.add_class(class_name)

        return self.each(tag)

    def save(self) -> list[PutResult]:
        """Apply queued operations, then save every document they changed."""
        items = self.items()
        for operation in self._pending:
            for item in items:
                if item.exists():
                    operation(item)
        self._pending.clear()
        results = [self.graph.save_doc(tree) for tree in self.graph.dirty_trees()]
        logger.info("Saved %d document(s) for %s", len(results), self)
        return results

    # Schema

    def flat_graph_schema(self) -> ClassSchema:
        """Class counts of the selected items and the signatures of the selected edges.

        An edge signature groups edges by their own classes and the classes of their
        source, target and undirected endpoints. Endpoints outside the selection are
        skipped.
        """
        schema = ClassSchema()
        selected = {item.unique_selector: item for item in self}
        edges: list[Item] = []
        for item in selected.values():
            if item.kind in NODE_KINDS:
                bucket = schema.node_classes
            elif item.kind is ItemKind.EDGE:
                bucket = schema.edge_classes
                edges.append(item)
            elif item.kind in TAGGABLE_KINDS:
                bucket = schema.set_classes
            else:
                continue
            for name in item.classes:
                bucket[name] = bucket.get(name, 0) + 1

        signatures: dict[tuple[tuple[str, ...], ...], EdgeSignature] = {}
        for edge in edges:
            endpoint_classes: dict[str, list[str]] = {direction.value: [] for direction in Direction}
            for node_key, directions in edge.value["$nodes"].items():
                node = selected.get(id_to_unique_selector(node_key, edge.doc_id))
                if node is None:
                    logger.warning("Edge %s refers to a node outside the selection; skipping", edge.unique_selector)
                    continue
                for direction, count in directions.items():
                    if count:
                        endpoint_classes[direction].extend(node.classes)
            key = (
                tuple(sorted(edge.classes)),
                *(tuple(sorted(endpoint_classes[direction.value])) for direction in Direction),
            )
            signature = signatures.get(key)
            if signature is None:
                signature = EdgeSignature(
                    edge_classes=list(key[0]),
                    source_classes=list(key[1]),
                    target_classes=list(key[2]),
                    undirected_classes=list(key[3]),
                )
                signatures[key] = signature
            signature.count += 1
        schema.edge_sets = list(signatures.values())
        return schema
