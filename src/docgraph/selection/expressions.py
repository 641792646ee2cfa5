"""JSONPath expressions over standardized documents.

Paths are parsed with ``jsonpath_ng.ext``. Standardized documents store arrays as
objects keyed ``"0"``, ``"1"``, ..., so the subscript nodes the parser produces for
``[n]``, ``[a:b]`` and ``[*]`` are swapped for nodes that address those keys.
"""

from __future__ import annotations

from typing import Any

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath
from jsonpath_ng.jsonpath import Child, DatumInContext, Fields, Index, JSONPath, Root, Slice

from docgraph.items.dates import is_date_value
from docgraph.items.paths import Path, index_keys, is_reserved, sorted_keys

__all__ = ["JSONPathError", "compile_path", "index_positions", "literal_keys", "project"]


def index_positions(node: Index) -> tuple[int, ...]:
    indices = getattr(node, "indices", None)
    return tuple(indices) if indices else (node.index,)


class Members(JSONPath):
    """``[*]``: every non-reserved member of an object."""

    def find(self, datum: Any) -> list[DatumInContext]:
        datum = DatumInContext.wrap(datum)
        if not isinstance(datum.value, dict):
            return []
        return [
            DatumInContext(datum.value[key], path=Fields(key), context=datum)
            for key in datum.value
            if not is_reserved(key)
        ]

    def __str__(self) -> str:
        return "[*]"

    def __repr__(self) -> str:
        return "Members()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Members)

    def __hash__(self) -> int:
        return hash("[*]")


class Subscript(JSONPath):
    """``[n]``: the member keyed ``"n"``; negative positions count index keys from the end."""

    def __init__(self, *indices: int) -> None:
        self.indices = indices

    def find(self, datum: Any) -> list[DatumInContext]:
        datum = DatumInContext.wrap(datum)
        value = datum.value
        if not isinstance(value, dict):
            return []
        matches = []
        for index in self.indices:
            if index < 0:
                positions = index_keys(value)
                if -index > len(positions):
                    continue
                key = positions[index]
            else:
                key = str(index)
                if key not in value:
                    continue
            matches.append(DatumInContext(value[key], path=Fields(key), context=datum))
        return matches

    def __str__(self) -> str:
        return "[" + ",".join(str(index) for index in self.indices) + "]"

    def __repr__(self) -> str:
        return f"Subscript{self.indices!r}"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Subscript) and self.indices == other.indices

    def __hash__(self) -> int:
        return hash(self.indices)


class IndexSlice(JSONPath):
    """``[start:end:step]`` over the integer keys of an object, in numeric order."""

    def __init__(self, start: int | None = None, end: int | None = None, step: int | None = None) -> None:
        self.start, self.end, self.step = start, end, step

    def find(self, datum: Any) -> list[DatumInContext]:
        datum = DatumInContext.wrap(datum)
        if not isinstance(datum.value, dict):
            return []
        positions = index_keys(datum.value)
        chosen = range(*slice(self.start, self.end, self.step).indices(len(positions)))
        return [DatumInContext(datum.value[positions[i]], path=Fields(positions[i]), context=datum) for i in chosen]

    def __str__(self) -> str:
        bounds = ["" if bound is None else str(bound) for bound in (self.start, self.end)]
        if self.step is not None:
            bounds.append(str(self.step))
        return "[" + ":".join(bounds) + "]"

    def __repr__(self) -> str:
        return f"IndexSlice({self.start!r}, {self.end!r}, {self.step!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IndexSlice) and (self.start, self.end, self.step) == (other.start, other.end, other.step)

    def __hash__(self) -> int:
        return hash((self.start, self.end, self.step))


def _adapt(node: JSONPath) -> JSONPath:
    if isinstance(node, Slice):
        if node.start is None and node.end is None and node.step is None:
            return Members()
        return IndexSlice(node.start, node.end, node.step)
    if isinstance(node, Index):
        return Subscript(*index_positions(node))
    for attr in ("left", "right"):
        child = getattr(node, attr, None)
        if isinstance(child, JSONPath):
            setattr(node, attr, _adapt(child))
    return node


def compile_path(text: str) -> JSONPath:
    """Parse a ``$...`` path; raises ``JSONPathError`` on malformed input."""
    return _adapt(parse_jsonpath(text))


def literal_keys(expression: JSONPath) -> Path | None:
    """The key path of an expression built only from single keys, else None."""
    if isinstance(expression, Root):
        return ()
    if not isinstance(expression, Child):
        return None
    head = literal_keys(expression.left)
    if head is None:
        return None
    step = expression.right
    if isinstance(step, Fields) and len(step.fields) == 1 and step.fields[0] != "*":
        return (*head, step.fields[0])
    if isinstance(step, Subscript) and len(step.indices) == 1 and step.indices[0] >= 0:
        return (*head, str(step.indices[0]))
    return None


def project(value: Any) -> Any:
    """The value JSONPath sees: reserved keys dropped, dates reduced to their ISO string."""
    if isinstance(value, dict):
        if is_date_value(value):
            return value.get("str")
        return {key: project(value[key]) for key in sorted_keys(value)}
    return value
