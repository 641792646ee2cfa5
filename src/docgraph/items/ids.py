"""Document and item identifier helpers.

A document id is ``"<mimeType>;<filename>"``. Items are addressed either locally
(``@$.contents.a``) or fully qualified by a document query
(``@{"_id":"application/json;f.json"}$.contents.a``).
"""

from __future__ import annotations

import json
import mimetypes
import re

RESERVED_ID_PREFIXES = ("_", "$")

_CLASS_INFO = re.compile(r"@(?P<query>\{[^$]*\})?\s*\$\.classes(?:\.(?P<name>[^\s↑→.\[]+)|\[\"(?P<quoted>[^\"]+)\"\])?")


def doc_query(doc_id: str) -> str:
    """JSON document query selecting a single document."""
    return json.dumps({"_id": doc_id}, ensure_ascii=False, separators=(",", ":"))


def is_known_mime_type(mime_type: str) -> bool:
    return mimetypes.guess_extension(mime_type, strict=False) is not None


def mime_type_for(filename: str) -> str | None:
    guessed, _encoding = mimetypes.guess_type(filename, strict=False)
    return guessed


def build_doc_id(mime_type: str, filename: str) -> str:
    return f"{mime_type.lower()};{filename}"


def parse_doc_id(doc_id: str) -> tuple[str, str]:
    mime_type, _, filename = doc_id.partition(";")
    return mime_type, filename


def is_valid_id(doc_id: object) -> bool:
    """A valid id starts lowercase, has exactly one ``;`` and a known mime type."""
    if not isinstance(doc_id, str) or not doc_id:
        return False
    if not doc_id[0].islower() or doc_id.count(";") != 1:
        return False
    mime_type, filename = parse_doc_id(doc_id)
    return bool(filename) and is_known_mime_type(mime_type)


def id_to_unique_selector(selector: str, doc_id: str) -> str:
    """Qualify a local ``@$...`` selector with the document that owns it."""
    if not selector.startswith("@"):
        raise ValueError(f"Not a selector: {selector!r}")
    body = selector[1:].lstrip()
    if body.startswith("{"):
        return selector
    return f"@{doc_query(doc_id)}{body}"


def extract_class_info_from_id(selector: str) -> tuple[str | None, str | None]:
    """Return ``(doc_id, class_name)`` for a selector pointing into ``$.classes``.

    ``doc_id`` is None for local selectors; both are None when the selector does not
    address the classes collection.
    """
    match = _CLASS_INFO.match(selector)
    if match is None:
        return None, None
    doc_id = None
    if match.group("query"):
        try:
            query = json.loads(match.group("query"))
        except json.JSONDecodeError:
            return None, None
        doc_id = query.get("_id") if isinstance(query, dict) else None
        if not isinstance(doc_id, str):
            doc_id = None
    return doc_id, match.group("name") or match.group("quoted")
