"""Tests for tree positioning and ring placement."""

import math

import pytest

from molscape import Atom, LayoutOptions, MolGraph, layout_molecule, parse_smiles
from molscape.export import snapshot_json
from molscape.geometry import centroid, poly_circumradius


def distance(graph, a, b):
    return graph.vertices[a].position.distance(graph.vertices[b].position)


MOLECULES = [
    "C",
    "CC",
    "CCO",
    "CC(C)(C)C",
    "CCCCCCCCCC",
    "C1CCCCC1",
    "CC1=CC=CC=C1",
    "c1ccc2ccccc2c1",
    "C1CCC2(CC1)CCCC2",
    "C1CC2CCC1C2",
    "C1CC2CCC1CC2",
    "Cn1cnc2c1c(=O)n(C)c(=O)n2C",
    "CC(=O)Oc1ccccc1C(=O)O",
    "C1CCCCCCCCCCC1",
    "[NH4+].[Cl-]",
    "F/C=C/C=C/F",
]


@pytest.mark.parametrize("smiles", MOLECULES)
def test_every_vertex_positioned_and_finite(smiles):
    result = layout_molecule(parse_smiles(smiles))
    for vertex in result.state.graph.vertices:
        assert vertex.positioned, (smiles, vertex.id)
        assert math.isfinite(vertex.position.x)
        assert math.isfinite(vertex.position.y)


@pytest.mark.parametrize("smiles", ["CCCC", "CC(C)(C)CCO", "CC(=O)N", "C#CC=C"])
def test_acyclic_bonds_have_bond_length(smiles):
    result = layout_molecule(parse_smiles(smiles))
    graph = result.state.graph
    for edge in graph.edges:
        assert distance(graph, edge.source_id, edge.target_id) == pytest.approx(30.0)


@pytest.mark.parametrize("smiles, size", [
    ("C1CC1", 3),
    ("C1CCC1", 4),
    ("C1CCCC1", 5),
    ("C1CCCCC1", 6),
    ("CC1CCCCC1C", 6),
    ("C1CCCCCC1", 7),
])
def test_simple_ring_members_on_circumcircle(smiles, size):
    result = layout_molecule(parse_smiles(smiles))
    graph = result.state.graph
    (ring,) = result.state.rings
    assert ring.size == size
    center = centroid(graph.vertices[vid].position for vid in ring.members)
    radius = poly_circumradius(30.0, size)
    for vid in ring.members:
        assert graph.vertices[vid].position.distance(center) == pytest.approx(radius, rel=1e-6)


def test_bond_length_option_scales_drawing():
    small = layout_molecule(parse_smiles("C1CCCCC1"), LayoutOptions(bond_length=10.0))
    graph = small.state.graph
    for edge in graph.edges:
        assert distance(graph, edge.source_id, edge.target_id) == pytest.approx(10.0)


def test_first_atom_starts_on_x_axis():
    result = layout_molecule(parse_smiles("CC"))
    first = result.state.graph.vertices[0]
    assert first.position.as_tuple() == pytest.approx((30.0, 0.0))


def test_chain_zigzags():
    result = layout_molecule(parse_smiles("CCCC"))
    graph = result.state.graph
    # 1-3 distances in a zigzag chain are 2·L·sin(60°).
    assert distance(graph, 0, 2) == pytest.approx(2 * 30.0 * math.sin(math.pi / 3), rel=1e-3)
    assert distance(graph, 1, 3) == pytest.approx(2 * 30.0 * math.sin(math.pi / 3), rel=1e-3)


def test_disconnected_components_are_placed_side_by_side():
    graph = MolGraph()
    for _ in range(4):
        graph.add_vertex(Atom(element="C"))
    graph.add_edge(0, 1)
    graph.add_edge(2, 3)
    result = layout_molecule(graph)
    vertices = result.state.graph.vertices
    right = max(vertices[0].position.x, vertices[1].position.x)
    left = min(vertices[2].position.x, vertices[3].position.x)
    assert left > right


def test_identical_input_gives_identical_snapshot():
    smiles = "CC(C)Cc1ccc(cc1)[C@@H](C)C(=O)O"
    a = layout_molecule(parse_smiles(smiles))
    b = layout_molecule(parse_smiles(smiles))
    assert snapshot_json(a.snapshot) == snapshot_json(b.snapshot)


def test_runs_do_not_share_state():
    first = layout_molecule(parse_smiles("C1CCCCC1"))
    layout_molecule(parse_smiles("c1ccc2ccccc2c1"))
    again = layout_molecule(parse_smiles("C1CCCCC1"))
    assert snapshot_json(first.snapshot) == snapshot_json(again.snapshot)
