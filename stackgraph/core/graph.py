"""
Graph Connectivity — Undirected adjacency and connected-component discovery.

Used by the scoring engine to find the component a mutation ripples
through. Traversal order never affects results; only the visited set is
returned.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable

from stackgraph.models.graph_models import Edge


def build_adjacency(edges: Iterable[Edge]) -> dict[str, set[str]]:
    """Map every endpoint to the set of its neighbours."""
    adjacency: dict[str, set[str]] = {}
    for e in edges:
        adjacency.setdefault(e.source, set()).add(e.target)
        adjacency.setdefault(e.target, set()).add(e.source)
    return adjacency


def connected_component(
    adjacency: dict[str, set[str]], seeds: Iterable[str]
) -> set[str]:
    """
    BFS from every seed and return all reachable node ids.

    Seeds are always part of the result, even when they have no edges.
    """
    seen: set[str] = set()
    queue: deque[str] = deque()

    for s in seeds:
        if s not in seen:
            seen.add(s)
            queue.append(s)

    while queue:
        current = queue.popleft()
        for nb in adjacency.get(current, ()):
            if nb not in seen:
                seen.add(nb)
                queue.append(nb)

    return seen


def connected_components(
    node_ids: Iterable[str], adjacency: dict[str, set[str]]
) -> list[set[str]]:
    """Partition node ids into their connected components."""
    components: list[set[str]] = []
    assigned: set[str] = set()
    for nid in node_ids:
        if nid in assigned:
            continue
        component = connected_component(adjacency, [nid])
        assigned |= component
        components.append(component)
    return components
