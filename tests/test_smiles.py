"""Tests for the SMILES reader."""

import pytest

from molscape.smiles import SmilesSyntaxError, parse_smiles


def test_acetic_acid_graph():
    graph = parse_smiles("CC(=O)O")
    assert [v.atom.element for v in graph.vertices] == ["C", "C", "O", "O"]
    assert [(e.source_id, e.target_id, e.bond_type) for e in graph.edges] == [
        (0, 1, "-"),
        (1, 2, "="),
        (1, 3, "-"),
    ]
    assert graph.vertices[1].neighbours == [0, 2, 3]
    assert graph.vertices[2].atom.branch_bond == "="
    assert graph.edges[1].weight == 2


def test_spanning_tree_follows_input():
    graph = parse_smiles("CC(C)C")
    assert graph.vertices[1].parent_id == 0
    assert graph.vertices[1].children == [2, 3]
    assert graph.vertices[0].parent_id is None


def test_ring_closure_fills_reserved_slot():
    graph = parse_smiles("C1CCCCC1")
    assert len(graph.vertices) == 6
    assert len(graph.edges) == 6
    closure = graph.edges[-1]
    assert {closure.source_id, closure.target_id} == {0, 5}
    assert graph.vertices[0].neighbours == [5, 1]
    assert graph.validate() == []


def test_percent_ring_numbers():
    graph = parse_smiles("C%10CCCCC%10")
    assert graph.has_edge(0, 5)


def test_bracket_atom_fields():
    graph = parse_smiles("[13CH3+:2]")
    atom = graph.vertices[0].atom
    assert atom.element == "C"
    assert atom.bracket.isotope == 13
    assert atom.bracket.hcount == 3
    assert atom.bracket.charge == 1
    assert atom.bracket.atom_class == 2
    assert not atom.is_stereo_center
    assert len(graph.vertices) == 1


def test_chiral_bracket_adds_explicit_hydrogen():
    graph = parse_smiles("[C@@H](F)(Cl)Br")
    centre = graph.vertices[0]
    assert centre.atom.is_stereo_center
    assert centre.atom.chirality_marker == "@@"
    assert graph.vertices[1].atom.element == "H"
    assert centre.neighbours == [1, 2, 3, 4]


def test_aromatic_atoms_and_bonds():
    graph = parse_smiles("c1ccccc1")
    assert all(v.atom.aromatic for v in graph.vertices)
    assert all(v.atom.element == "C" for v in graph.vertices)
    assert all(e.is_part_of_aromatic_ring for e in graph.edges)


def test_directional_bonds_record_stereo_source():
    graph = parse_smiles("F/C=C/F")
    first, double, last = graph.edges
    assert first.stereo_symbol == "/"
    assert first.stereo_source_id == 0
    assert double.bond_type == "="
    assert double.stereo_symbol is None
    assert last.stereo_source_id == 2


def test_dot_is_a_zero_weight_edge():
    graph = parse_smiles("C.C")
    assert len(graph.edges) == 1
    assert graph.edges[0].bond_type == "."
    assert graph.edges[0].weight == 0


def test_aromatic_colon_bond_is_single():
    graph = parse_smiles("c:c")
    assert graph.edges[0].bond_type == "-"


def test_metadata_keeps_source():
    assert parse_smiles(" CCO ").metadata == {"smiles": "CCO"}


@pytest.mark.parametrize(
    "smiles",
    ["", "C(", "C)", "C1CC", "C==C", "=C", "C=", "[Xx]", "C()C", "C11", "[C"],
)
def test_malformed_input_raises(smiles):
    with pytest.raises(SmilesSyntaxError) as info:
        parse_smiles(smiles)
    assert isinstance(info.value.position, int)
    assert isinstance(info.value, ValueError)
