import json
import logging
from collections.abc import Mapping
from typing import Any

import ibis
from ibis.expr.types import Table

from docgraph.core.exceptions import DocumentNotFoundError, StoreConflictError
from docgraph.core.types import PutResult
from docgraph.infra.repository.mango import matches
from docgraph.infra.repository.revisions import next_revision

logger = logging.getLogger(__name__)


class DuckDBDocumentStore:
    """DuckDB-backed document storage."""

    def __init__(self, conn: ibis.BaseBackend, table_name: str = "documents") -> None:
        if not hasattr(conn, "con"):
            msg = "DuckDBDocumentStore requires a raw DuckDB connection via the '.con' attribute."
            raise ValueError(msg)
        self.conn = conn
        self.table_name = table_name

    def initialize(self) -> None:
        """Creates the documents table with a primary key if it doesn't exist."""
        self.conn.con.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                id VARCHAR PRIMARY KEY,
                rev VARCHAR,
                deleted BOOLEAN,
                json_data JSON
            )
        """)

    def _get_table(self) -> Table:
        return self.conn.table(self.table_name)

    @staticmethod
    def _hydrate(json_val: str | dict) -> dict[str, Any]:
        if isinstance(json_val, dict):
            return json_val
        return json.loads(json_val)

    def _row(self, doc_id: str) -> tuple[str | None, bool, dict[str, Any]] | None:
        t = self._get_table()
        result = t.filter(t.id == doc_id).select("rev", "deleted", "json_data").execute()
        if result.empty:
            return None
        row = result.iloc[0]
        return row["rev"], bool(row["deleted"]), self._hydrate(row["json_data"])

    def _upsert_record(self, doc_id: str, rev: str, deleted: bool, json_data: str) -> None:
        """Helper to perform a raw SQL upsert (INSERT OR REPLACE)."""
        query = f"""
            INSERT OR REPLACE INTO {self.table_name} (id, rev, deleted, json_data)
            VALUES (?, ?, ?, ?)
        """
        self.conn.con.execute(query, [doc_id, rev, deleted, json_data])

    def get(self, doc_id: str) -> dict[str, Any]:
        row = self._row(doc_id)
        if row is None or row[1]:
            raise DocumentNotFoundError(doc_id)
        return row[2]

    def put(self, doc: Mapping[str, Any]) -> PutResult:
        doc_id = doc.get("_id")
        if not isinstance(doc_id, str) or not doc_id:
            raise ValueError("Documents need a string _id")
        row = self._row(doc_id)
        current_rev = row[0] if row else None
        given_rev = doc.get("_rev")
        if row is not None and not row[1] and given_rev != current_rev:
            raise StoreConflictError(doc_id, given_rev, current_rev)
        if row is None and given_rev is not None:
            raise StoreConflictError(doc_id, given_rev, None)

        stored = dict(doc)
        stored["_rev"] = next_revision(current_rev, stored)
        self._upsert_record(doc_id, stored["_rev"], bool(stored.get("_deleted")), json.dumps(stored, ensure_ascii=False))
        logger.debug("Stored %s at %s", doc_id, stored["_rev"])
        return PutResult(id=doc_id, rev=stored["_rev"])

    def all_docs(self, start_key: str | None = None, end_key: str | None = None) -> list[dict[str, Any]]:
        t = self._get_table()
        query = t.filter(~t.deleted)
        if start_key is not None:
            query = query.filter(query.id >= start_key)
        if end_key is not None:
            query = query.filter(query.id <= end_key)
        result = query.order_by("id").select("json_data").execute()
        return [self._hydrate(row["json_data"]) for _, row in result.iterrows()]

    def find(self, selector: Mapping[str, Any], limit: int | None = None) -> list[dict[str, Any]]:
        doc_id = selector.get("_id")
        if isinstance(doc_id, str) and len(selector) == 1:
            try:
                return [self.get(doc_id)]
            except DocumentNotFoundError:
                return []
        found = [doc for doc in self.all_docs() if matches(doc, selector)]
        return found[:limit] if limit is not None else found

    def remove(self, doc_id: str, rev: str) -> PutResult:
        self.get(doc_id)
        return self.put({"_id": doc_id, "_rev": rev, "_deleted": True})

    def count(self) -> int:
        t = self._get_table()
        return int(t.filter(~t.deleted).count().execute())
