"""Core ports (interfaces) for docgraph.

Defines abstract interfaces for the collaborators the core calls into.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from docgraph.core.types import PutResult


@runtime_checkable
class DocumentStore(Protocol):
    """Key-value document database.

    Documents are plain JSON-compatible dicts keyed by ``_id`` and versioned by ``_rev``.
    Returned documents are copies; mutating them never changes the store.
    """

    def get(self, doc_id: str) -> dict[str, Any]:
        """Return the live document or raise DocumentNotFoundError."""
        ...

    def put(self, doc: Mapping[str, Any]) -> PutResult:
        """Insert or update a document; a stale ``_rev`` raises StoreConflictError."""
        ...

    def all_docs(self, start_key: str | None = None, end_key: str | None = None) -> list[dict[str, Any]]:
        """Return live documents whose ids fall in ``[start_key, end_key]``, ordered by id."""
        ...

    def find(self, selector: Mapping[str, Any], limit: int | None = None) -> list[dict[str, Any]]:
        """Return live documents matching a Mango selector, ordered by id."""
        ...

    def remove(self, doc_id: str, rev: str) -> PutResult:
        """Soft-delete a document by writing a ``_deleted`` marker."""
        ...
