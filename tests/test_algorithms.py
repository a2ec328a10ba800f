"""Tests for graph traversal helpers."""

import math

from molscape import Atom, MolGraph, parse_smiles
from molscape.algorithms import (
    collect_component,
    connected_components,
    shortest_path_edges,
    subgraph_distance_matrix,
    subgraph_size,
    traverse_tree,
    tree_depth,
)


def _two_fragments():
    graph = MolGraph()
    for _ in range(5):
        graph.add_vertex(Atom(element="C"))
    graph.add_edge(0, 1)
    graph.add_edge(2, 3)
    graph.add_edge(3, 4)
    return graph


def test_tree_depth():
    graph = parse_smiles("CC(C)CCC")
    assert tree_depth(graph, 1, 0) == 4
    assert tree_depth(graph, 2, 1) == 1
    assert tree_depth(graph, None, 0) == 0


def test_traverse_tree_preorder():
    graph = parse_smiles("CC(C)CC")
    assert traverse_tree(graph, 0, None) == [0, 1, 2, 3, 4]
    assert traverse_tree(graph, 0, None, ignore_first=True) == [1, 2, 3, 4]
    assert traverse_tree(graph, 0, None, max_depth=1) == [0, 1]


def test_traverse_tree_leaves_parent_side():
    graph = parse_smiles("CCCC")
    assert traverse_tree(graph, 2, 1) == [2, 3]


def test_distance_matrix_on_ring():
    graph = parse_smiles("C1CCCCC1")
    distances = subgraph_distance_matrix(graph, list(range(6)))
    assert distances[0, 3] == 3
    assert distances[0, 5] == 1
    assert distances[2, 2] == 0


def test_distance_matrix_is_restricted_to_subgraph():
    graph = parse_smiles("C1CCCCC1")
    distances = subgraph_distance_matrix(graph, [0, 1, 2])
    assert distances[0, 2] == 2
    chain = parse_smiles("CCC")
    assert math.isinf(subgraph_distance_matrix(chain, [0, 2])[0, 1])


def test_shortest_path_edges():
    graph = parse_smiles("C1CCCCC1")
    path = shortest_path_edges(graph, 0, 3)
    assert len(path) == 3
    assert shortest_path_edges(graph, 2, 2) == []
    assert shortest_path_edges(_two_fragments(), 0, 4) == []


def test_components_and_sizes():
    graph = _two_fragments()
    assert connected_components(graph) == [[0, 1], [2, 3, 4]]
    assert collect_component(graph, 3) == {2, 3, 4}
    assert collect_component(graph, 3, blocked=[3]) == set()
    assert subgraph_size(graph, 4, blocked=[3]) == 1


def test_subgraph_size_skips_hidden_atoms():
    graph = parse_smiles("CCCC")
    graph.vertices[3].atom.is_drawn = False
    assert subgraph_size(graph, 2, blocked=[1]) == 1

