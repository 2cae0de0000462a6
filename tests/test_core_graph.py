# -*- coding: utf-8 -*-
"""
Tests for uor.core.graph - Dependency graph helpers.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

from uor.core.graph import (
    dependency_graph,
    descendants,
    find_cycle,
    topological_order,
    undeclared,
)


class TestDependencyGraph:
    def test_edges_point_from_dependency(self):
        graph = dependency_graph({'a': [], 'b': ['a']})
        assert list(graph.edges) == [('a', 'b')]

    def test_topological_order_respects_insertion(self):
        graph = dependency_graph({'z': [], 'y': [], 'x': ['z', 'y']})
        assert topological_order(graph) == ['z', 'y', 'x']

    def test_descendants(self):
        graph = dependency_graph({'a': [], 'b': ['a'], 'c': ['b'], 'd': []})
        assert descendants(graph, 'a') == {'b', 'c'}

    def test_undeclared_sorted(self):
        assert undeclared({'a': ['q', 'b'], 'b': ['p']}) == ['p', 'q']


class TestFindCycle:
    def test_acyclic(self):
        assert find_cycle(dependency_graph({'a': [], 'b': ['a']})) is None

    def test_empty(self):
        assert find_cycle(dependency_graph({})) is None

    def test_cycle_members(self):
        cycle = find_cycle(dependency_graph({
            'a': ['c'], 'b': ['a'], 'c': ['b'], 'd': [],
        }))
        assert sorted(cycle) == ['a', 'b', 'c']
