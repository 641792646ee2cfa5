"""CouchDB-style ``"<generation>-<digest>"`` revisions."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def revision_generation(rev: str | None) -> int:
    if not rev:
        return 0
    head, _, _ = rev.partition("-")
    return int(head) if head.isdigit() else 0


def canonical_json(doc: Mapping[str, Any]) -> str:
    body = {key: value for key, value in doc.items() if key != "_rev"}
    return json.dumps(body, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def next_revision(previous: str | None, doc: Mapping[str, Any]) -> str:
    digest = hashlib.sha1(canonical_json(doc).encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{revision_generation(previous) + 1}-{digest[:16]}"
