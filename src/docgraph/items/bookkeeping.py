"""Paired bookkeeping over raw tree values.

Tags and members are always written as a pair: ``$members[item] = True`` on the set
and ``$tags[set] = True`` on the item. Edges record each endpoint in ``$nodes`` with a
per-direction multiplicity, and each node records the edge in ``$edges``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import StrEnum
from itertools import combinations
from typing import Any


class Direction(StrEnum):
    SOURCE = "source"
    TARGET = "target"
    UNDIRECTED = "undirected"


def opposite_direction(direction: Direction | str) -> Direction:
    direction = Direction(direction)
    if direction is Direction.SOURCE:
        return Direction.TARGET
    if direction is Direction.TARGET:
        return Direction.SOURCE
    return Direction.UNDIRECTED


# Tag / member pairs


def add_tag_pair(item_raw: dict[str, Any], set_raw: dict[str, Any], item_key: str, set_key: str) -> None:
    item_raw.setdefault("$tags", {})[set_key] = True
    set_raw.setdefault("$members", {})[item_key] = True


def remove_tag_pair(item_raw: dict[str, Any], set_raw: dict[str, Any], item_key: str, set_key: str) -> None:
    item_raw.get("$tags", {}).pop(set_key, None)
    set_raw.get("$members", {}).pop(item_key, None)


# Edge / node endpoints


def add_endpoint(
    edge_raw: dict[str, Any],
    node_raw: dict[str, Any],
    edge_key: str,
    node_key: str,
    direction: Direction | str = Direction.UNDIRECTED,
) -> int:
    """Record one more ``direction`` endpoint; returns the new multiplicity."""
    direction = Direction(direction)
    directions = edge_raw.setdefault("$nodes", {}).setdefault(node_key, {})
    directions[direction.value] = directions.get(direction.value, 0) + 1
    node_raw.setdefault("$edges", {})[edge_key] = True
    return directions[direction.value]


def remove_endpoint(edge_raw: dict[str, Any], node_raw: dict[str, Any], edge_key: str, node_key: str) -> None:
    edge_raw.get("$nodes", {}).pop(node_key, None)
    node_raw.get("$edges", {}).pop(edge_key, None)


def endpoint_keys(edge_raw: dict[str, Any], forward: bool | None = None) -> list[str]:
    """Node keys of an edge: all (None), targets (True) or sources (False)."""
    nodes = edge_raw.get("$nodes", {})
    if forward is None:
        return list(nodes)
    wanted = Direction.TARGET if forward else Direction.SOURCE
    return [key for key, directions in nodes.items() if directions.get(wanted.value)]


def edge_keys(
    node_raw: dict[str, Any],
    node_key: str,
    lookup: Callable[[str], dict[str, Any] | None],
    forward: bool | None = None,
) -> list[str]:
    """Edge keys of a node: all (None), outgoing (True) or incoming (False).

    ``lookup`` maps an edge key to the edge's raw value, or None when it is gone.
    """
    edges = list(node_raw.get("$edges", {}))
    if forward is None:
        return edges
    wanted = Direction.SOURCE if forward else Direction.TARGET
    found = []
    for key in edges:
        edge_raw = lookup(key)
        if edge_raw is None:
            continue
        if edge_raw.get("$nodes", {}).get(node_key, {}).get(wanted.value):
            found.append(key)
    return found


def multiplicity(edge_raw: dict[str, Any], node_key: str) -> int:
    return sum(edge_raw.get("$nodes", {}).get(node_key, {}).values())


def endpoint_pairs(edge_raw: dict[str, Any]) -> Iterator[tuple[str, str]]:
    """Every source×target pair, then every pair of undirected endpoints."""
    sources = endpoint_keys(edge_raw, forward=False)
    targets = endpoint_keys(edge_raw, forward=True)
    for source in sources:
        for target in targets:
            yield source, target
    undirected = [
        key
        for key, directions in edge_raw.get("$nodes", {}).items()
        if directions.get(Direction.UNDIRECTED.value)
    ]
    if len(undirected) == 1 and edge_raw["$nodes"][undirected[0]][Direction.UNDIRECTED.value] > 1:
        yield undirected[0], undirected[0]
    yield from combinations(undirected, 2)
