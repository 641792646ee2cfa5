from datetime import datetime

import pytest

from docgraph.core.exceptions import StructuralPreconditionError
from docgraph.items.kinds import ItemKind, infer_kind


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ItemKind.NULL),
        (True, ItemKind.BOOLEAN),
        (1, ItemKind.NUMBER),
        (1.5, ItemKind.NUMBER),
        ("x", ItemKind.STRING),
        ("12", ItemKind.STRING),
        ("@$.contents.a", ItemKind.REFERENCE),
        ('@{"_id":"application/json;f.json"}$.contents', ItemKind.REFERENCE),
        ("@ mention", ItemKind.STRING),
        (datetime(2020, 1, 1), ItemKind.DATE),
        ([1, 2], ItemKind.CONTAINER),
        ({}, ItemKind.CONTAINER),
        ({"$isDate": True, "str": "2020-01-01"}, ItemKind.DATE),
        ({"$tags": {}}, ItemKind.TAGGABLE),
        ({"$tags": {}, "$edges": {}}, ItemKind.NODE),
        ({"$tags": {}, "$nodes": {}}, ItemKind.EDGE),
        ({"$members": {}}, ItemKind.SET),
        ({"$tags": {}, "$edges": {}, "$members": {}}, ItemKind.SUPERNODE),
    ],
)
def test_infer_kind(raw, expected):
    assert infer_kind(raw) is expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12", ItemKind.NUMBER),
        (" -1.5e3 ", ItemKind.NUMBER),
        ("true", ItemKind.BOOLEAN),
        ("null", ItemKind.NULL),
        ("2020-01-02", ItemKind.DATE),
        ("twelve", ItemKind.STRING),
    ],
)
def test_aggressive_promotion(raw, expected):
    assert infer_kind(raw, aggressive=True) is expected


def test_markers_win_over_aggressive_heuristics():
    """A marked value keeps its marker's kind whatever else it holds."""
    raw = {"$nodes": {}, "0": "1", "1": "2"}
    assert infer_kind(raw, aggressive=True) is ItemKind.EDGE


def test_unknown_python_type_is_rejected():
    with pytest.raises(StructuralPreconditionError):
        infer_kind(object())
