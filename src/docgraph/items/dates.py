"""Canonical ``{"$isDate": true, "str": ...}`` date values."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

INVALID_DATE = "Invalid Date"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def is_date_value(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("$isDate"))


def canonical_date(moment: datetime | str) -> dict[str, Any]:
    text = moment if isinstance(moment, str) else moment.isoformat()
    return {"$isDate": True, "str": text}


def now_date() -> dict[str, Any]:
    return canonical_date(datetime.now(UTC))


def parse_date(text: str) -> datetime | None:
    """Parse an ISO-8601 string, returning None for anything else."""
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        return None


def looks_like_date(text: str) -> bool:
    return len(text) >= 10 and text[4:5] == "-" and parse_date(text) is not None


def to_millis(moment: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    millis = (moment - _EPOCH) / timedelta(milliseconds=1)
    return int(millis) if millis == int(millis) else millis


def from_millis(millis: float) -> dict[str, Any]:
    if math.isnan(millis) or math.isinf(millis):
        return canonical_date(INVALID_DATE)
    try:
        return canonical_date(_EPOCH + timedelta(milliseconds=millis))
    except OverflowError:
        return canonical_date(INVALID_DATE)


def date_millis(value: dict[str, Any]) -> float:
    moment = parse_date(str(value.get("str", "")))
    if moment is None:
        return math.nan
    return to_millis(moment)
