"""Path resolution over raw document trees."""

from __future__ import annotations

from typing import Any

from jsonpath_ng.jsonpath import DatumInContext, Fields, Index, JSONPath

from docgraph.items.dates import is_date_value
from docgraph.items.paths import Path, get_at, is_reserved, path_sort_key
from docgraph.selection.expressions import index_positions, literal_keys, project


def _literal_path(value: Any, keys: Path) -> Path | None:
    for key in keys:
        if not isinstance(value, dict) or is_date_value(value) or is_reserved(key) or key not in value:
            return None
        value = value[key]
    return keys


def _datum_keys(datum: DatumInContext, projection: Any) -> Path | None:
    """Map a match back to the keys that reach it from the top of ``projection``."""
    steps = []
    while datum.context is not None:
        steps.append(datum.path)
        datum = datum.context
    node = projection
    keys = []
    for step in reversed(steps):
        if not isinstance(node, dict):
            return None
        if isinstance(step, Fields) and len(step.fields) == 1:
            key = step.fields[0]
        elif isinstance(step, Index):
            # Filters list an object's values; positions follow its key order.
            labels = list(node)
            position = index_positions(step)[0]
            if not -len(labels) <= position < len(labels):
                return None
            key = labels[position]
        else:
            return None
        if key not in node:
            return None
        keys.append(key)
        node = node[key]
    return tuple(keys)


def resolve_paths(raw: Any, start: Path, expression: JSONPath | None) -> list[Path]:
    """Resolve ``expression`` against ``raw`` starting at ``start``.

    The result holds each matching path once, in natural path order, never ending on
    a reserved key. Without an expression the start itself is the only match.
    """
    try:
        base = get_at(raw, start)
    except KeyError:
        return []
    start = tuple(start)
    if expression is None:
        return [start]

    keys = literal_keys(expression)
    if keys is not None:
        found = _literal_path(base, keys)
        return [] if found is None else [(*start, *found)]

    projection = project(base)
    results: dict[Path, None] = {}
    for datum in expression.find(projection):
        relative = _datum_keys(datum, projection)
        if relative is not None:
            results[(*start, *relative)] = None
    return sorted(results, key=path_sort_key)


def shift_path(path: Path, shift: int) -> Path | None:
    """Trim ``shift`` trailing segments; None once the shift leaves the document."""
    if shift <= 0:
        return path
    if shift > len(path):
        return None
    return path[: len(path) - shift]
