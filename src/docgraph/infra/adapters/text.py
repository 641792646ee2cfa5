"""Parse uploaded text into raw document contents."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import PurePath
from typing import Any

from lxml import etree

from docgraph.core.exceptions import ParseFailure

logger = logging.getLogger(__name__)

_FORMAT_BY_MIME = {
    "application/json": "json",
    "text/json": "json",
    "text/csv": "csv",
    "text/tab-separated-values": "tsv",
    "application/xml": "xml",
    "text/xml": "xml",
    "image/svg+xml": "xml",
}
_FORMAT_BY_EXTENSION = {
    ".json": "json",
    ".csv": "csv",
    ".tsv": "tsv",
    ".xml": "xml",
    ".svg": "xml",
    ".gexf": "xml",
}


def detect_format(mime_type: str | None = None, filename: str | None = None) -> str | None:
    if mime_type and mime_type.lower() in _FORMAT_BY_MIME:
        return _FORMAT_BY_MIME[mime_type.lower()]
    if filename:
        return _FORMAT_BY_EXTENSION.get(PurePath(filename).suffix.lower())
    return None


def _parse_delimited(text: str, delimiter: str) -> list[dict[str, Any]]:
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    return [dict(row) for row in reader]


def element_to_dict(element: etree._Element) -> dict[str, Any]:
    """Map an XML element onto plain containers: tag, attributes, text, children."""
    value: dict[str, Any] = {"tag": etree.QName(element).localname}
    if element.attrib:
        value["attributes"] = {etree.QName(key).localname: val for key, val in element.attrib.items()}
    if element.text and element.text.strip():
        value["text"] = element.text.strip()
    children = [element_to_dict(child) for child in element if isinstance(child.tag, str)]
    if children:
        value["children"] = children
    return value


def _parse_xml(text: str | bytes) -> dict[str, Any]:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    data = text.encode("utf-8") if isinstance(text, str) else text
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ParseFailure("XML", str(exc)) from exc
    return element_to_dict(root)


def parse_text(text: str | bytes, mime_type: str | None = None, filename: str | None = None) -> Any:
    """Turn uploaded text into raw contents according to its format.

    Unknown formats are kept as a single string.
    """
    fmt = detect_format(mime_type, filename)
    if fmt == "xml":
        return _parse_xml(text)
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    if fmt == "json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseFailure("JSON", str(exc)) from exc
    if fmt == "csv":
        return _parse_delimited(text, ",")
    if fmt == "tsv":
        return _parse_delimited(text, "\t")
    logger.debug("No parser for %s (%s); storing raw text", filename, mime_type)
    return text
