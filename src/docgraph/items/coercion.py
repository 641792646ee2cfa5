"""Native-style coercions between primitive raw values.

These follow ECMAScript ``Boolean()``, ``Number()`` and ``String()`` so documents
authored elsewhere keep the same primitive semantics.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any

from docgraph.items.dates import (
    INVALID_DATE,
    canonical_date,
    date_millis,
    from_millis,
    is_date_value,
    parse_date,
)

NUMERIC_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def to_number(value: Any) -> int | float:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        return value
    if is_date_value(value):
        return date_millis(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if not NUMERIC_PATTERN.fullmatch(text):
            return math.nan
        try:
            return int(text)
        except ValueError:
            return float(text)
    return math.nan


def to_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if is_date_value(value):
        return str(value.get("str", INVALID_DATE))
    if isinstance(value, str):
        return value
    return str(value)


def to_boolean(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    if is_date_value(value):
        return True
    if isinstance(value, dict | list):
        return True
    return bool(value)


def to_date(value: Any) -> dict[str, Any]:
    if is_date_value(value):
        return {"$isDate": True, "str": str(value.get("str", INVALID_DATE))}
    if isinstance(value, datetime):
        return canonical_date(value)
    if value is None or isinstance(value, bool | int | float):
        return from_millis(float(to_number(value)))
    if isinstance(value, str):
        moment = parse_date(value)
        return canonical_date(moment) if moment is not None else canonical_date(INVALID_DATE)
    return canonical_date(INVALID_DATE)
