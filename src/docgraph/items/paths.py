"""Path helpers: reserved keys, JSONPath rendering and natural ordering."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Sequence
from typing import Any

RESERVED_KEYS = frozenset(
    {
        "_id",
        "_rev",
        "_deleted",
        "$wasArray",
        "$tags",
        "$members",
        "$edges",
        "$nodes",
        "$nextLabel",
        "$isDate",
    }
)

Path = tuple[str, ...]

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INDEX = re.compile(r"0|[1-9][0-9]*")


def is_reserved(key: Any) -> bool:
    return key in RESERVED_KEYS


def is_index(key: str) -> bool:
    """True for canonical non-negative integer keys ("0", "12", not "01")."""
    return bool(_INDEX.fullmatch(key))


def format_segment(key: str) -> str:
    if is_index(key):
        return f"[{key}]"
    if _IDENTIFIER.fullmatch(key):
        return f".{key}"
    return f"[{json.dumps(key, ensure_ascii=False)}]"


def stringify(path: Iterable[Any]) -> str:
    """Render a path as a JSONPath expression rooted at ``$``.

    >>> stringify(("contents", "hands", "0"))
    '$.contents.hands[0]'
    """
    return "$" + "".join(format_segment(str(key)) for key in path)


def segment_sort_key(key: str) -> tuple[int, int, str]:
    if is_index(key):
        return (0, int(key), "")
    return (1, 0, key)


def path_sort_key(path: Sequence[str]) -> tuple[tuple[int, int, str], ...]:
    """Order paths segment-wise, comparing integer-like segments numerically."""
    return tuple(segment_sort_key(key) for key in path)


def sorted_keys(value: dict[str, Any]) -> list[str]:
    """Non-reserved keys of a container in natural order."""
    return sorted((key for key in value if not is_reserved(key)), key=segment_sort_key)


def get_at(raw: Any, path: Sequence[str]) -> Any:
    """Walk ``path`` from ``raw``; raises KeyError when a segment is missing."""
    value = raw
    for key in path:
        if not isinstance(value, dict) or key not in value:
            raise KeyError(key)
        value = value[key]
    return value


def index_keys(value: dict[str, Any]) -> list[str]:
    """Integer-like keys in numeric order."""
    return sorted((key for key in value if is_index(key)), key=int)
