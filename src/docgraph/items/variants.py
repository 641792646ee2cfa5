"""Capability table for the closed set of item kinds.

Each ``Variant`` declares its boilerplate value, how to standardize a raw value into
its canonical shape, which kinds it may convert to and which reserved keys must be
present. Conversion is standardization under the target variant.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any

from docgraph.core.exceptions import StructuralPreconditionError
from docgraph.items.coercion import to_boolean, to_date, to_number, to_string
from docgraph.items.dates import is_date_value, now_date
from docgraph.items.ids import extract_class_info_from_id
from docgraph.items.kinds import ItemKind, infer_kind
from docgraph.items.paths import Path, is_reserved, stringify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StandardizeContext:
    """Where a value lives while it is standardized.

    ``doc`` is the raw document being built; taggable values mirror their class
    tags into its ``classes`` collection.
    """

    path: Path = ()
    doc: dict[str, Any] | None = None
    doc_id: str | None = None
    aggressive: bool = False

    def child(self, key: str) -> StandardizeContext:
        return replace(self, path=(*self.path, key))


Standardizer = Callable[[Any, StandardizeContext], Any]


@dataclass(frozen=True)
class Variant:
    kind: ItemKind
    boilerplate: Callable[[], Any]
    standardize: Standardizer
    accepts: Callable[[Any], bool]
    supertype: ItemKind | None = None
    conversions: frozenset[ItemKind] = field(default_factory=frozenset)
    inherits_conversions: bool = True
    required_keys: tuple[str, ...] = ()


# Standardizers


def _standardize_null(raw: Any, ctx: StandardizeContext) -> None:
    return None


def _standardize_date(raw: Any, ctx: StandardizeContext) -> dict[str, Any]:
    return to_date(raw)


def convert_array(raw: list[Any] | tuple[Any, ...]) -> dict[str, Any]:
    """Turn a list into an index-keyed dict marked with ``$wasArray``."""
    value: dict[str, Any] = {str(index): element for index, element in enumerate(raw)}
    value["$wasArray"] = True
    return value


def _as_container(raw: Any, ctx: StandardizeContext, kind: ItemKind) -> dict[str, Any]:
    if isinstance(raw, list | tuple):
        return convert_array(raw)
    if isinstance(raw, dict):
        return {str(key): value for key, value in raw.items()}
    raise StructuralPreconditionError(kind, ctx.path, detail=f"expected an object, got {type(raw).__name__}")


def _reserved_mapping(value: dict[str, Any], key: str, kind: ItemKind, ctx: StandardizeContext) -> dict[str, Any]:
    existing = value.get(key)
    if existing is None:
        return {}
    if not isinstance(existing, dict):
        raise StructuralPreconditionError(kind, ctx.path, missing_key=key, detail="must be an object")
    return copy.deepcopy(existing)


def _standardize_container(raw: Any, ctx: StandardizeContext, kind: ItemKind = ItemKind.CONTAINER) -> dict[str, Any]:
    value = _as_container(raw, ctx, kind)
    value["_id"] = "@" + stringify(ctx.path)
    for key in list(value):
        if is_reserved(key):
            continue
        child = value[key]
        child_kind = infer_kind(child, ctx.aggressive)
        if child_kind is ItemKind.BOOLEAN and isinstance(child, str):
            # Promoted literal; conversion of other strings uses truthiness.
            child = child.strip() == "true"
        value[key] = standardize_value(child_kind, child, ctx.child(key))
    return value


def _mirror_class_tags(value: dict[str, Any], ctx: StandardizeContext) -> None:
    if ctx.doc is None:
        return
    for tag in value["$tags"]:
        doc_id, class_name = extract_class_info_from_id(tag)
        if class_name is None or (doc_id is not None and doc_id != ctx.doc_id):
            continue
        classes = ctx.doc.setdefault("classes", {"_id": "@$.classes"})
        class_obj = classes.get(class_name)
        if not isinstance(class_obj, dict):
            class_obj = {"_id": "@" + stringify(("classes", class_name)), "$members": {}}
            classes[class_name] = class_obj
        class_obj.setdefault("$members", {})[value["_id"]] = True


def _standardize_taggable(raw: Any, ctx: StandardizeContext, kind: ItemKind = ItemKind.TAGGABLE) -> dict[str, Any]:
    value = _standardize_container(raw, ctx, kind)
    value["$tags"] = _reserved_mapping(value, "$tags", kind, ctx)
    _mirror_class_tags(value, ctx)
    return value


def _standardize_node(raw: Any, ctx: StandardizeContext) -> dict[str, Any]:
    value = _standardize_taggable(raw, ctx, ItemKind.NODE)
    value["$edges"] = _reserved_mapping(value, "$edges", ItemKind.NODE, ctx)
    return value


def _standardize_edge(raw: Any, ctx: StandardizeContext) -> dict[str, Any]:
    value = _standardize_taggable(raw, ctx, ItemKind.EDGE)
    value["$nodes"] = _reserved_mapping(value, "$nodes", ItemKind.EDGE, ctx)
    return value


def _standardize_set(raw: Any, ctx: StandardizeContext) -> dict[str, Any]:
    value = _standardize_container(raw, ctx, ItemKind.SET)
    value["$members"] = _reserved_mapping(value, "$members", ItemKind.SET, ctx)
    return value


def _standardize_supernode(raw: Any, ctx: StandardizeContext) -> dict[str, Any]:
    value = _standardize_node(raw, ctx)
    value["$members"] = _reserved_mapping(value, "$members", ItemKind.SUPERNODE, ctx)
    return value


def _read_only(kind: ItemKind) -> Standardizer:
    def standardize(raw: Any, ctx: StandardizeContext) -> Any:
        raise StructuralPreconditionError(kind, ctx.path, detail="cannot be standardized as a value")

    return standardize


# Shape checks


def _is_number(raw: Any) -> bool:
    return isinstance(raw, int | float) and not isinstance(raw, bool)


def _is_plain_container(raw: Any) -> bool:
    return isinstance(raw, dict) and not is_date_value(raw)


PRIMITIVE_TARGETS = frozenset(
    {ItemKind.BOOLEAN, ItemKind.NUMBER, ItemKind.STRING, ItemKind.DATE, ItemKind.NULL}
)

_VARIANT_LIST = (
    Variant(
        kind=ItemKind.BOOLEAN,
        boilerplate=lambda: False,
        standardize=lambda raw, ctx: to_boolean(raw),
        accepts=lambda raw: isinstance(raw, bool),
        conversions=PRIMITIVE_TARGETS,
    ),
    Variant(
        kind=ItemKind.NUMBER,
        boilerplate=lambda: 0,
        standardize=lambda raw, ctx: to_number(raw),
        accepts=_is_number,
        conversions=PRIMITIVE_TARGETS,
    ),
    Variant(
        kind=ItemKind.STRING,
        boilerplate=lambda: "",
        standardize=lambda raw, ctx: to_string(raw),
        accepts=lambda raw: isinstance(raw, str),
        conversions=PRIMITIVE_TARGETS,
    ),
    Variant(
        kind=ItemKind.NULL,
        boilerplate=lambda: None,
        standardize=_standardize_null,
        accepts=lambda raw: raw is None,
        conversions=PRIMITIVE_TARGETS,
    ),
    Variant(
        kind=ItemKind.DATE,
        boilerplate=now_date,
        standardize=_standardize_date,
        accepts=lambda raw: is_date_value(raw) or isinstance(raw, datetime),
        conversions=PRIMITIVE_TARGETS,
    ),
    Variant(
        kind=ItemKind.REFERENCE,
        boilerplate=lambda: "@$",
        standardize=lambda raw, ctx: to_string(raw),
        accepts=lambda raw: isinstance(raw, str) and raw.startswith("@"),
        supertype=ItemKind.STRING,
        inherits_conversions=False,
    ),
    Variant(
        kind=ItemKind.CONTAINER,
        boilerplate=dict,
        standardize=_standardize_container,
        accepts=_is_plain_container,
        conversions=frozenset({ItemKind.NODE, ItemKind.EDGE, ItemKind.TAGGABLE, ItemKind.SET}),
    ),
    Variant(
        kind=ItemKind.TAGGABLE,
        boilerplate=lambda: {"$tags": {}},
        standardize=_standardize_taggable,
        accepts=_is_plain_container,
        supertype=ItemKind.CONTAINER,
        required_keys=("$tags",),
    ),
    Variant(
        kind=ItemKind.NODE,
        boilerplate=lambda: {"$tags": {}, "$edges": {}},
        standardize=_standardize_node,
        accepts=_is_plain_container,
        supertype=ItemKind.TAGGABLE,
        conversions=frozenset({ItemKind.SUPERNODE}),
        inherits_conversions=False,
        required_keys=("$tags", "$edges"),
    ),
    Variant(
        kind=ItemKind.EDGE,
        boilerplate=lambda: {"$tags": {}, "$nodes": {}},
        standardize=_standardize_edge,
        accepts=_is_plain_container,
        supertype=ItemKind.TAGGABLE,
        inherits_conversions=False,
        required_keys=("$tags", "$nodes"),
    ),
    Variant(
        kind=ItemKind.SET,
        boilerplate=lambda: {"$members": {}},
        standardize=_standardize_set,
        accepts=_is_plain_container,
        supertype=ItemKind.CONTAINER,
        inherits_conversions=False,
        required_keys=("$members",),
    ),
    Variant(
        kind=ItemKind.SUPERNODE,
        boilerplate=lambda: {"$tags": {}, "$members": {}, "$edges": {}},
        standardize=_standardize_supernode,
        accepts=_is_plain_container,
        supertype=ItemKind.NODE,
        inherits_conversions=False,
        required_keys=("$tags", "$members", "$edges"),
    ),
    Variant(
        kind=ItemKind.DOCUMENT,
        boilerplate=dict,
        standardize=_read_only(ItemKind.DOCUMENT),
        accepts=lambda raw: isinstance(raw, dict),
        inherits_conversions=False,
    ),
    Variant(
        kind=ItemKind.ROOT,
        boilerplate=dict,
        standardize=_read_only(ItemKind.ROOT),
        accepts=lambda raw: isinstance(raw, dict),
        inherits_conversions=False,
    ),
)

VARIANTS: Mapping[ItemKind, Variant] = MappingProxyType({variant.kind: variant for variant in _VARIANT_LIST})


def variant_for(kind: ItemKind) -> Variant:
    return VARIANTS[ItemKind(kind)]


def allowed_conversions(kind: ItemKind) -> frozenset[ItemKind]:
    """Declared targets plus the supertype chain's, and the kind itself."""
    variant = variant_for(kind)
    allowed = set(variant.conversions)
    current = variant
    while current.inherits_conversions and current.supertype is not None:
        current = variant_for(current.supertype)
        allowed |= current.conversions
    allowed.add(variant.kind)
    return frozenset(allowed)


def boilerplate_value(kind: ItemKind) -> Any:
    return variant_for(kind).boilerplate()


def standardize_value(kind: ItemKind, raw: Any, ctx: StandardizeContext | None = None) -> Any:
    """Return ``raw`` in the canonical shape of ``kind``; re-applying is a no-op."""
    return variant_for(kind).standardize(raw, ctx or StandardizeContext())


def check_shape(kind: ItemKind, raw: Any, path: Path = ()) -> None:
    """Fail fast when ``raw`` cannot back an item of ``kind``."""
    variant = variant_for(kind)
    if not variant.accepts(raw):
        raise StructuralPreconditionError(kind, path, detail=f"got {type(raw).__name__}")
    for key in variant.required_keys:
        if not isinstance(raw.get(key), dict):
            raise StructuralPreconditionError(kind, path, missing_key=key)
