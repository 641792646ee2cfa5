"""Selector string parser.

Grammar::

    selector  := '@' doc_query? obj_path? shift? follow?
    doc_query := JSON object (a Mango store query)
    obj_path  := JSONPath expression starting with '$'
    shift     := ('↑' | '^')+
    follow    := '→' | '->'

The path itself is compiled by ``jsonpath_ng``; this module only splits off the
document query and the trailing shift and follow markers.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from jsonpath_ng.jsonpath import JSONPath

from docgraph.core.exceptions import InvalidSelectorError
from docgraph.selection.expressions import JSONPathError, compile_path

_TAIL = re.compile(r"(?P<path>.*?)\s*(?P<shift>[↑^]*)\s*(?P<follow>→|->)?\s*", re.DOTALL)
_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class Selector:
    """A parsed selector."""

    text: str
    doc_query: dict[str, Any] | None = field(default=None, compare=False, hash=False)
    expression: JSONPath | None = field(default=None, compare=False, hash=False)
    parent_shift: int = 0
    follow_links: bool = False

    @property
    def anchored(self) -> bool:
        return self.doc_query is not None

    @property
    def has_path(self) -> bool:
        return self.expression is not None

    def __str__(self) -> str:
        return self.text


@lru_cache(maxsize=1024)
def _parse(text: str) -> Selector:
    rest = text.strip()
    if not rest.startswith("@"):
        raise InvalidSelectorError(text, "selectors start with '@'")
    rest = rest[1:].lstrip()

    doc_query = None
    if rest.startswith("{"):
        try:
            doc_query, end = _DECODER.raw_decode(rest)
        except json.JSONDecodeError as exc:
            raise InvalidSelectorError(text, f"bad document query ({exc.msg})") from exc
        if not isinstance(doc_query, dict):
            raise InvalidSelectorError(text, "document query must be an object")
        rest = rest[end:].lstrip()

    tail = _TAIL.fullmatch(rest)
    path_text = tail.group("path")
    expression = None
    if path_text:
        if not path_text.startswith("$"):
            raise InvalidSelectorError(text, f"unexpected text {path_text!r}")
        try:
            expression = compile_path(path_text)
        except JSONPathError as exc:
            raise InvalidSelectorError(text, str(exc)) from exc

    return Selector(
        text=text,
        doc_query=doc_query,
        expression=expression,
        parent_shift=len(tail.group("shift")),
        follow_links=tail.group("follow") is not None,
    )


def parse_selector(text: str) -> Selector:
    """Parse a selector string, raising InvalidSelectorError on malformed input."""
    if not isinstance(text, str):
        raise InvalidSelectorError(repr(text), "selectors must be strings")
    return _parse(text)


def is_selector(text: str) -> bool:
    try:
        parse_selector(text)
    except InvalidSelectorError:
        return False
    return True
