"""Document standardization.

Gives a raw document a valid ``"<mimeType>;<filename>"`` id, canonical metadata
fields, the reserved top-level collections and a standardized ``contents`` tree.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping
from typing import Any

from docgraph.core.config import StandardizeSettings
from docgraph.core.exceptions import InvalidIdentifierError
from docgraph.core.ports import DocumentStore
from docgraph.items.ids import (
    RESERVED_ID_PREFIXES,
    build_doc_id,
    is_known_mime_type,
    is_valid_id,
    mime_type_for,
    parse_doc_id,
)
from docgraph.items.kinds import ItemKind
from docgraph.items.paths import is_reserved, stringify
from docgraph.items.variants import StandardizeContext, standardize_value

logger = logging.getLogger(__name__)

META_CONTAINERS = ("orphanEdges", "orphanNodes")


def next_untitled_name(store: DocumentStore | None, mime_type: str, prefix: str = "Untitled") -> str:
    """``"<prefix> N"`` with N one past the highest existing for ``mime_type``."""
    highest = 0
    if store is not None:
        stem = f"{mime_type};{prefix} "
        pattern = re.compile(re.escape(prefix) + r" ([0-9]+)")
        for doc in store.all_docs(start_key=stem, end_key=stem + "\uffff"):
            _mime, filename = parse_doc_id(doc["_id"])
            found = pattern.fullmatch(filename)
            if found:
                highest = max(highest, int(found.group(1)))
    return f"{prefix} {highest + 1}"


def _derive_id(doc: dict[str, Any], store: DocumentStore | None, settings: StandardizeSettings) -> str:
    raw_id = doc.get("_id")
    id_mime_type, filename = None, None
    if isinstance(raw_id, str) and raw_id:
        if ";" in raw_id:
            id_mime_type, filename = parse_doc_id(raw_id)
        else:
            filename = raw_id
    filename = filename or doc.get("filename")

    mime_type = doc.get("mimeType") or id_mime_type
    if not mime_type and filename:
        mime_type = mime_type_for(filename)
    mime_type = (mime_type or settings.default_mime_type).lower()

    if not filename:
        filename = next_untitled_name(store, mime_type, settings.untitled_prefix)
    return build_doc_id(mime_type, filename)


def _standardize_classes(doc: dict[str, Any], ctx: StandardizeContext) -> None:
    raw = doc.get("classes")
    classes = {str(key): value for key, value in raw.items()} if isinstance(raw, Mapping) else {}
    classes["_id"] = "@" + stringify(("classes",))
    classes.setdefault("none", {})
    for name in list(classes):
        if is_reserved(name):
            continue
        classes[name] = standardize_value(ItemKind.SET, classes[name] or {}, ctx.child("classes").child(name))
    doc["classes"] = classes


def standardize_document(
    doc: Mapping[str, Any],
    store: DocumentStore | None = None,
    settings: StandardizeSettings | None = None,
) -> dict[str, Any]:
    """Return a standardized copy of ``doc``; applying it twice changes nothing.

    Raises InvalidIdentifierError for ids starting with ``_`` or ``$``. An unknown
    mime type is only logged.
    """
    settings = settings or StandardizeSettings()
    doc = copy.deepcopy(dict(doc))

    raw_id = doc.get("_id")
    if isinstance(raw_id, str) and raw_id.startswith(RESERVED_ID_PREFIXES):
        raise InvalidIdentifierError(raw_id, "ids may not start with '_' or '$'")
    if not is_valid_id(raw_id):
        doc["_id"] = _derive_id(doc, store, settings)

    mime_type, filename = parse_doc_id(doc["_id"])
    if mime_type != mime_type.lower():
        mime_type = mime_type.lower()
        doc["_id"] = build_doc_id(mime_type, filename)
    if not is_known_mime_type(mime_type):
        logger.warning("Unknown mimeType %r for document %s", mime_type, doc["_id"])
    doc["mimeType"] = mime_type
    doc["filename"] = filename
    doc["charset"] = str(doc.get("charset") or settings.default_charset).upper()

    ctx = StandardizeContext(doc=doc, doc_id=doc["_id"], aggressive=settings.aggressive)
    _standardize_classes(doc, ctx)
    for key in META_CONTAINERS:
        doc[key] = standardize_value(ItemKind.CONTAINER, doc.get(key) or {}, ctx.child(key))

    contents = doc.get("contents")
    if contents is None:
        contents = {}
    elif not isinstance(contents, dict | list | tuple):
        contents = [contents]
    doc["contents"] = standardize_value(ItemKind.CONTAINER, contents, ctx.child("contents"))
    return doc
