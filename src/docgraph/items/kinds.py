"""Item kinds and type inference over raw values."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from docgraph.core.exceptions import StructuralPreconditionError
from docgraph.items.coercion import NUMERIC_PATTERN
from docgraph.items.dates import looks_like_date


class ItemKind(StrEnum):
    BOOLEAN = "Boolean"
    NUMBER = "Number"
    STRING = "String"
    DATE = "Date"
    NULL = "Null"
    REFERENCE = "Reference"
    CONTAINER = "Container"
    TAGGABLE = "Taggable"
    NODE = "Node"
    EDGE = "Edge"
    SET = "Set"
    SUPERNODE = "Supernode"
    DOCUMENT = "Document"
    ROOT = "Root"


PRIMITIVE_KINDS = frozenset(
    {ItemKind.BOOLEAN, ItemKind.NUMBER, ItemKind.STRING, ItemKind.DATE, ItemKind.NULL, ItemKind.REFERENCE}
)
CONTAINER_KINDS = frozenset(
    {
        ItemKind.CONTAINER,
        ItemKind.TAGGABLE,
        ItemKind.NODE,
        ItemKind.EDGE,
        ItemKind.SET,
        ItemKind.SUPERNODE,
        ItemKind.DOCUMENT,
        ItemKind.ROOT,
    }
)
TAGGABLE_KINDS = frozenset({ItemKind.TAGGABLE, ItemKind.NODE, ItemKind.EDGE, ItemKind.SUPERNODE})
NODE_KINDS = frozenset({ItemKind.NODE, ItemKind.SUPERNODE})
SET_KINDS = frozenset({ItemKind.SET, ItemKind.SUPERNODE})


def _infer_marked(value: dict[str, Any]) -> ItemKind:
    if value.get("$isDate"):
        return ItemKind.DATE
    if "$nodes" in value:
        return ItemKind.EDGE
    if "$edges" in value:
        return ItemKind.SUPERNODE if "$members" in value else ItemKind.NODE
    if "$members" in value:
        return ItemKind.SET
    if "$tags" in value:
        return ItemKind.TAGGABLE
    return ItemKind.CONTAINER


def _infer_string(value: str, aggressive: bool) -> ItemKind:
    from docgraph.selection.parser import is_selector

    if value.startswith("@") and is_selector(value):
        return ItemKind.REFERENCE
    if aggressive:
        text = value.strip()
        if text and NUMERIC_PATTERN.fullmatch(text):
            return ItemKind.NUMBER
        if text in ("true", "false"):
            return ItemKind.BOOLEAN
        if text == "null":
            return ItemKind.NULL
        if looks_like_date(text):
            return ItemKind.DATE
    return ItemKind.STRING


def infer_kind(value: Any, aggressive: bool = False) -> ItemKind:
    """Pick the item kind for a raw value.

    Explicit markers (``$isDate``, ``$nodes``, ``$edges``, ``$members``, ``$tags``)
    win over inspection of the Python type. With ``aggressive`` set, strings that
    look like numbers, booleans, null or ISO dates are promoted.
    """
    if value is None:
        return ItemKind.NULL
    if isinstance(value, bool):
        return ItemKind.BOOLEAN
    if isinstance(value, int | float):
        return ItemKind.NUMBER
    if isinstance(value, str):
        return _infer_string(value, aggressive)
    if isinstance(value, datetime):
        return ItemKind.DATE
    if isinstance(value, dict):
        return _infer_marked(value)
    if isinstance(value, list | tuple):
        return ItemKind.CONTAINER
    raise StructuralPreconditionError("unknown", detail=f"cannot infer an item kind for {type(value).__name__}")
