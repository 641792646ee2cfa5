"""In-memory document store."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from docgraph.core.exceptions import DocumentNotFoundError, StoreConflictError
from docgraph.core.types import PutResult
from docgraph.infra.repository.mango import matches
from docgraph.infra.repository.revisions import next_revision

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Dict-backed store with revisions and soft deletes.

    Documents are held as JSON text so callers never share structure with the store.
    """

    def __init__(self) -> None:
        self._docs: dict[str, str] = {}

    def _load(self, doc_id: str) -> dict[str, Any] | None:
        text = self._docs.get(doc_id)
        return json.loads(text) if text is not None else None

    def _live(self) -> list[dict[str, Any]]:
        docs = (self._load(doc_id) for doc_id in sorted(self._docs))
        return [doc for doc in docs if doc is not None and not doc.get("_deleted")]

    def get(self, doc_id: str) -> dict[str, Any]:
        doc = self._load(doc_id)
        if doc is None or doc.get("_deleted"):
            raise DocumentNotFoundError(doc_id)
        return doc

    def put(self, doc: Mapping[str, Any]) -> PutResult:
        doc_id = doc.get("_id")
        if not isinstance(doc_id, str) or not doc_id:
            raise ValueError("Documents need a string _id")
        existing = self._load(doc_id)
        current_rev = existing.get("_rev") if existing else None
        given_rev = doc.get("_rev")
        if existing is not None and not existing.get("_deleted") and given_rev != current_rev:
            raise StoreConflictError(doc_id, given_rev, current_rev)
        if existing is None and given_rev is not None:
            raise StoreConflictError(doc_id, given_rev, None)

        stored = dict(doc)
        stored["_rev"] = next_revision(current_rev, stored)
        self._docs[doc_id] = json.dumps(stored, ensure_ascii=False)
        logger.debug("Stored %s at %s", doc_id, stored["_rev"])
        return PutResult(id=doc_id, rev=stored["_rev"])

    def all_docs(self, start_key: str | None = None, end_key: str | None = None) -> list[dict[str, Any]]:
        return [
            doc
            for doc in self._live()
            if (start_key is None or doc["_id"] >= start_key) and (end_key is None or doc["_id"] <= end_key)
        ]

    def find(self, selector: Mapping[str, Any], limit: int | None = None) -> list[dict[str, Any]]:
        found = [doc for doc in self._live() if matches(doc, selector)]
        return found[:limit] if limit is not None else found

    def remove(self, doc_id: str, rev: str) -> PutResult:
        self.get(doc_id)
        return self.put({"_id": doc_id, "_rev": rev, "_deleted": True})

    def __len__(self) -> int:
        return len(self._live())
