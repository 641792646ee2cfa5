"""Mango selector matching for document stores without a query engine."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_MISSING = object()


def _field(doc: Any, dotted: str) -> Any:
    value = doc
    for part in dotted.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _ordered(left: Any, right: Any, compare: Any) -> bool:
    if left is _MISSING or left is None or isinstance(left, bool) != isinstance(right, bool):
        return False
    try:
        return compare(left, right)
    except TypeError:
        return False


_OPERATORS = {
    "$eq": lambda value, arg: value is not _MISSING and value == arg,
    "$ne": lambda value, arg: value is _MISSING or value != arg,
    "$gt": lambda value, arg: _ordered(value, arg, lambda a, b: a > b),
    "$gte": lambda value, arg: _ordered(value, arg, lambda a, b: a >= b),
    "$lt": lambda value, arg: _ordered(value, arg, lambda a, b: a < b),
    "$lte": lambda value, arg: _ordered(value, arg, lambda a, b: a <= b),
    "$in": lambda value, arg: value is not _MISSING and value in arg,
    "$nin": lambda value, arg: value is _MISSING or value not in arg,
    "$exists": lambda value, arg: (value is not _MISSING) == bool(arg),
    "$regex": lambda value, arg: isinstance(value, str) and re.search(arg, value) is not None,
}


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, Mapping) and condition and all(key.startswith("$") for key in condition):
        for operator, argument in condition.items():
            if operator == "$not":
                if _matches_condition(value, argument):
                    return False
                continue
            if operator not in _OPERATORS:
                raise ValueError(f"Unsupported Mango operator: {operator}")
            if not _OPERATORS[operator](value, argument):
                return False
        return True
    return value is not _MISSING and value == condition


def matches(doc: Mapping[str, Any], selector: Mapping[str, Any]) -> bool:
    """True when ``doc`` satisfies the Mango ``selector``.

    ``{}`` matches everything.
    """
    for key, condition in selector.items():
        if key == "$and":
            if not all(matches(doc, part) for part in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, part) for part in condition):
                return False
        elif key == "$not":
            if matches(doc, condition):
                return False
        elif not _matches_condition(_field(doc, key), condition):
            return False
    return True
