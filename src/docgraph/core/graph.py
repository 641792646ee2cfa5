"""The DocGraph facade: documents, selections and file formats over one store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from docgraph.core.config import DocGraphConfig
from docgraph.core.context import ErrorObserver, GraphContext, build_context
from docgraph.core.exceptions import DocumentNotFoundError
from docgraph.core.ports import DocumentStore
from docgraph.core.types import ExportResult, PutResult
from docgraph.infra.repository.mango import matches
from docgraph.items.documents import standardize_document
from docgraph.items.ids import doc_query
from docgraph.items.item import Item
from docgraph.items.paths import stringify
from docgraph.items.tree import DocumentTree
from docgraph.selection.parser import parse_selector
from docgraph.selection.selection import Selection

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Every document except design documents (ids starting with "_").
DEFAULT_DOC_QUERY: dict[str, Any] = {"_id": {"$gt": "_\uffff"}}


class DocGraph:
    """Entry point tying a document store to items and selections.

    Loaded documents are kept in an identity map so every item over the same
    document shares one ``DocumentTree``. A cached tree is reused only while its
    revision matches the store's.
    """

    def __init__(self, context: GraphContext) -> None:
        self.context = context
        self._trees: dict[str, DocumentTree] = {}

    @classmethod
    def from_config(cls, config: DocGraphConfig | None = None, observers: tuple[ErrorObserver, ...] = ()) -> DocGraph:
        return cls(build_context(config, observers))

    @property
    def store(self) -> DocumentStore:
        return self.context.store

    @property
    def config(self) -> DocGraphConfig:
        return self.context.config

    def _call_store(self, operation: Callable[..., T], *args: Any) -> T:
        """Run a store call; unexpected failures are also broadcast to observers."""
        try:
            return operation(*args)
        except DocumentNotFoundError:
            raise
        except Exception as exc:
            self.context.report(exc)
            raise

    # Documents

    def standardize(self, doc: Mapping[str, Any]) -> dict[str, Any]:
        return standardize_document(doc, self.store, self.config.standardize)

    def _adopt(self, raw: dict[str, Any]) -> DocumentTree:
        cached = self._trees.get(raw["_id"])
        if cached is not None and cached.rev == raw.get("_rev"):
            return cached
        standardized = self.standardize(raw)
        tree = DocumentTree(standardized, graph=self)
        if standardized != raw:
            tree.touch()
        self._trees[tree.doc_id] = tree
        return tree

    def _normalize_query(self, query: str | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(query, str):
            if query.lstrip().startswith("@"):
                return dict(parse_selector(query).doc_query or {})
            return {"_id": query}
        return dict(query)

    def get_doc(self, query: str | Mapping[str, Any], init: bool = True) -> DocumentTree:
        """Fetch one document by id, ``@{...}`` selector or Mango query.

        A missing document is created from the query's literal fields when ``init``
        is set (it is not saved), otherwise DocumentNotFoundError is raised.
        """
        selector = self._normalize_query(query)
        doc_id = selector.get("_id") if len(selector) == 1 else None
        if isinstance(doc_id, str):
            cached = self._trees.get(doc_id)
            if cached is not None and cached.rev is None:
                return cached
            try:
                return self._adopt(self._call_store(self.store.get, doc_id))
            except DocumentNotFoundError:
                if not init:
                    raise
        else:
            found = self.query_docs(selector)
            if found:
                return found[0]
            if not init:
                raise DocumentNotFoundError(str(selector))

        template = {key: value for key, value in selector.items() if not key.startswith("$") and not isinstance(value, dict)}
        tree = DocumentTree(self.standardize(template), graph=self)
        tree.touch()
        self._trees[tree.doc_id] = tree
        logger.info("Initialized new document %s", tree.doc_id)
        return tree

    def query_docs(self, query: str | Mapping[str, Any] | None = None) -> list[DocumentTree]:
        """Documents matching a Mango query, ordered by id; unsaved documents last."""
        selector = self._normalize_query(query) if query else {}
        if not selector:
            selector = DEFAULT_DOC_QUERY
        trees = [self._adopt(raw) for raw in self._call_store(self.store.find, selector)]
        found = {tree.doc_id for tree in trees}
        unsaved = [
            tree
            for doc_id, tree in sorted(self._trees.items())
            if tree.rev is None and doc_id not in found and matches(tree.raw, selector)
        ]
        return trees + unsaved

    def dirty_trees(self) -> list[DocumentTree]:
        return [tree for tree in self._trees.values() if tree.dirty or tree.rev is None]

    def save_doc(self, doc: DocumentTree | Mapping[str, Any]) -> PutResult:
        tree = doc if isinstance(doc, DocumentTree) else None
        raw = tree.raw if tree is not None else doc
        standardized = self.standardize(raw)
        result = self._call_store(self.store.put, standardized)
        if tree is None:
            tree = DocumentTree(standardized, graph=self)
        else:
            self._trees.pop(tree.doc_id, None)
            tree.raw = standardized
        tree.mark_saved(result.rev)
        self._trees[tree.doc_id] = tree
        logger.debug("Saved %s at %s", result.id, result.rev)
        return result

    def upload_doc(self, filename: str, mime_type: str | None, contents: Any) -> DocumentTree:
        """Store ``contents`` as a document, replacing one with the same id."""
        raw: dict[str, Any] = {"filename": filename, "contents": contents}
        if mime_type:
            raw["mimeType"] = mime_type
        standardized = self.standardize(raw)
        try:
            standardized["_rev"] = self._call_store(self.store.get, standardized["_id"])["_rev"]
        except DocumentNotFoundError:
            pass
        self.save_doc(standardized)
        return self._trees[standardized["_id"]]

    def upload_string(self, filename: str, mime_type: str | None, text: str | bytes) -> DocumentTree:
        from docgraph.infra.adapters.text import parse_text

        return self.upload_doc(filename, mime_type, parse_text(text, mime_type=mime_type, filename=filename))

    def delete_doc(self, doc_id: str) -> PutResult:
        """Soft-delete through the store's deletion marker."""
        current = self._call_store(self.store.get, doc_id)
        result = self._call_store(self.store.remove, doc_id, current["_rev"])
        self._trees.pop(doc_id, None)
        logger.info("Deleted %s", doc_id)
        return result

    def is_current(self, tree: DocumentTree) -> bool:
        try:
            stored = self._call_store(self.store.get, tree.doc_id)
        except DocumentNotFoundError:
            return tree.rev is None
        return stored.get("_rev") == tree.rev

    # Selection

    def select(self, selector: str | Sequence[str], context: Item | Selection | None = None) -> Selection:
        return Selection(self, selector, context, single=True)

    def select_all(self, selector: str | Sequence[str], context: Item | Selection | None = None) -> Selection:
        return Selection(self, selector, context)

    def select_doc(self, doc_id: str) -> Selection:
        return self.select(f"@{doc_query(doc_id)}$")

    def path_to_selector(self, path: Sequence[str], doc_id: str | None = None) -> str:
        prefix = doc_query(doc_id) if doc_id is not None else ""
        return f"@{prefix}{stringify(path)}"

    def resolve_item(self, selector: str) -> Item | None:
        return self.select(selector).first()

    # File formats

    def export_doc(
        self,
        doc_id: str,
        format_name: str,
        include_classes: Sequence[str] | None = None,
        **options: Any,
    ) -> ExportResult:
        from docgraph.infra.formats.registry import get_format

        model = self.get_doc(doc_id, init=False).document_item()
        return get_format(format_name).format_data(model, include_classes=include_classes, **options)

    def import_into(self, doc_id: str, format_name: str, text: str | bytes, save: bool = True, **options: Any) -> DocumentTree:
        from docgraph.infra.formats.registry import get_format

        tree = self.get_doc(doc_id)
        get_format(format_name).import_data(tree.document_item(), text, **options)
        if save:
            self.save_doc(tree)
        return tree
