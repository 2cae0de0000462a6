# -*- coding: utf-8 -*-
"""
Dependency Graphs - Acyclicity and ordering over node dependency lists.

Thin wrapper over NetworkX directed graphs. Edges point from a dependency
to its dependent, so a topological order lists every node after all of
its dependencies.

Dependencies
------------
networkx

Author
------
UOR Engine contributors

License
-------
MIT License
Copyright (c) 2026 UOR Engine contributors
See LICENSE file for full text.

Created
-------
2026-10-16

Modified
--------
2026-10-16
"""

# Standard library
from typing import Dict, List, Mapping, Optional, Sequence, Set

# Third-party
import networkx as nx


def dependency_graph(dependencies: Mapping[str, Sequence[str]]) -> nx.DiGraph:
    """Build a directed graph from ``{node_id: [dependency ids]}``.

    Insertion order of ``dependencies`` is preserved for nodes. Dependency
    ids that are not keys still appear as nodes; callers check references
    before building.

    Parameters
    ----------
    dependencies : Mapping[str, Sequence[str]]

    Returns
    -------
    nx.DiGraph
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(dependencies)
    for node_id, deps in dependencies.items():
        for dep in deps:
            graph.add_edge(dep, node_id)
    return graph


def find_cycle(graph: nx.DiGraph) -> Optional[List[str]]:
    """Return the node ids of one cycle in edge order, or None.

    Parameters
    ----------
    graph : nx.DiGraph

    Returns
    -------
    Optional[List[str]]
    """
    try:
        edges = nx.find_cycle(graph, orientation='original')
    except nx.NetworkXNoCycle:
        return None
    return [edge[0] for edge in edges]


def topological_order(graph: nx.DiGraph) -> List[str]:
    """Deterministic topological order, ties broken by insertion order.

    Raises
    ------
    nx.NetworkXUnfeasible
        If the graph has a cycle.
    """
    position = {node: i for i, node in enumerate(graph.nodes)}
    return list(nx.lexicographical_topological_sort(
        graph, key=position.__getitem__,
    ))


def descendants(graph: nx.DiGraph, node_id: str) -> Set[str]:
    """All nodes reachable from ``node_id`` along dependency edges."""
    return set(nx.descendants(graph, node_id))


def undeclared(dependencies: Mapping[str, Sequence[str]]) -> List[str]:
    """Referenced dependency ids that are not declared, sorted."""
    missing: Dict[str, None] = {}
    for deps in dependencies.values():
        for dep in deps:
            if dep not in dependencies:
                missing[dep] = None
    return sorted(missing)
