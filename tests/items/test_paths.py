import pytest

from docgraph.items.paths import (
    get_at,
    index_keys,
    is_index,
    is_reserved,
    path_sort_key,
    sorted_keys,
    stringify,
)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ((), "$"),
        (("contents", "hands", "0"), "$.contents.hands[0]"),
        (("contents", "a b"), '$.contents["a b"]'),
        (("01",), '$["01"]'),
        (("_private",), "$._private"),
    ],
)
def test_stringify(path, expected):
    assert stringify(path) == expected


def test_is_index_only_accepts_canonical_integers():
    assert is_index("0")
    assert is_index("12")
    assert not is_index("01")
    assert not is_index("-1")
    assert not is_index("a")


def test_reserved_keys():
    assert is_reserved("$tags")
    assert is_reserved("_id")
    assert not is_reserved("tags")


def test_sorted_keys_orders_indices_numerically_and_skips_reserved():
    """Integer-like keys come first in numeric order, then names."""
    value = {"10": 1, "2": 2, "b": 3, "a": 4, "_id": "@$", "$wasArray": True}
    assert sorted_keys(value) == ["2", "10", "a", "b"]


def test_path_sort_key_is_natural():
    paths = [("contents", "10"), ("contents", "9"), ("contents", "a"), ("classes",)]
    assert sorted(paths, key=path_sort_key) == [
        ("classes",),
        ("contents", "9"),
        ("contents", "10"),
        ("contents", "a"),
    ]


def test_get_at_walks_and_raises_on_missing():
    raw = {"contents": {"a": {"b": 1}}}
    assert get_at(raw, ("contents", "a", "b")) == 1
    with pytest.raises(KeyError):
        get_at(raw, ("contents", "x"))
    with pytest.raises(KeyError):
        get_at(raw, ("contents", "a", "b", "c"))


def test_index_keys():
    assert index_keys({"1": 0, "0": 0, "x": 0, "$wasArray": True}) == ["0", "1"]
