"""Tests for overlap scoring and the resolution passes."""

import pytest

from molscape import LayoutOptions, LayoutState, parse_smiles
from molscape.overlap import (
    is_edge_rotatable,
    overlap_score,
    resolve_finetune_overlaps,
    resolve_iterative_overlaps,
    resolve_overlaps,
    resolve_primary_overlaps,
    resolve_secondary_overlaps,
    subtree_overlap_score,
)
from molscape.pipeline import DepictionPipeline, PositioningStep, RestoreStep, RingStep


CROWDED = [
    "CC(C)(C)c1ccccc1C(C)(C)C",
    "CC1(C)CCCC(C)(C)C1(C)C",
    "OC(=O)C1=C(C(=O)O)C(C(=O)O)=C(C(=O)O)C1C(=O)O",
    "CCCCC(CC)(CCCC)C(CCCC)(CCCC)CCCC",
    "c1ccc(cc1)C(c1ccccc1)(c1ccccc1)c1ccccc1",
]


def _positioned(smiles, **overrides):
    state = LayoutState(graph=parse_smiles(smiles), options=LayoutOptions().with_overrides(**overrides))
    DepictionPipeline([RingStep(), PositioningStep(), RestoreStep()]).run(state)
    return state


def _two_atoms(distance):
    state = LayoutState(graph=parse_smiles("C.C"))
    state.graph.vertices[0].set_position(0.0, 0.0)
    state.graph.vertices[1].set_position(distance, 0.0)
    return state


# ── scoring ─────────────────────────────────────────────────────────


def test_score_of_close_pair():
    score = overlap_score(_two_atoms(15.0))
    assert score.total == pytest.approx(0.5)
    assert list(score.vertex_scores) == pytest.approx([0.5, 0.5])
    assert score.ranked[0][1] == pytest.approx(0.5)


def test_pairs_at_bond_length_do_not_count():
    assert overlap_score(_two_atoms(30.0)).total == 0.0
    assert overlap_score(_two_atoms(45.0)).total == 0.0


def test_hidden_atoms_do_not_count():
    state = _two_atoms(5.0)
    state.graph.vertices[1].atom.is_drawn = False
    assert overlap_score(state).total == 0.0


def test_subtree_score_is_zero_without_clashes():
    state = _positioned("CCCC")
    scores = overlap_score(state).vertex_scores
    result = subtree_overlap_score(state, 2, 1, scores)
    assert result.value == 0.0
    assert result.count == 0


def test_rotatable_edges():
    state = _positioned("CC(C)C1CCCCC1")
    graph = state.graph
    # Terminal bond.
    assert not is_edge_rotatable(state, graph.get_edge(0, 1))
    # Chain to ring.
    assert is_edge_rotatable(state, graph.get_edge(1, 3))
    # Ring bond.
    assert not is_edge_rotatable(state, graph.get_edge(3, 4))


def test_double_bonds_are_not_rotatable():
    state = _positioned("CC=CC")
    assert not is_edge_rotatable(state, state.graph.get_edge(1, 2))


# ── passes ──────────────────────────────────────────────────────────


@pytest.mark.parametrize("smiles", CROWDED)
def test_iterative_pass_never_increases_total(smiles):
    state = _positioned(smiles)
    resolve_primary_overlaps(state)
    before = overlap_score(state).total
    after = resolve_iterative_overlaps(state)
    assert after.total <= before + 1e-9
    assert state.total_overlap_score == pytest.approx(after.total)


@pytest.mark.parametrize("smiles", CROWDED)
def test_secondary_pass_never_increases_total(smiles):
    state = _positioned(smiles)
    resolve_primary_overlaps(state)
    score = resolve_iterative_overlaps(state)
    before = overlap_score(state).total
    resolve_secondary_overlaps(state, score.ranked)
    assert overlap_score(state).total <= before + 1e-9


@pytest.mark.parametrize("smiles", CROWDED)
def test_finetune_never_increases_total(smiles):
    state = _positioned(smiles, finetune_overlap=True)
    resolve_primary_overlaps(state)
    score = resolve_iterative_overlaps(state)
    resolve_secondary_overlaps(state, score.ranked)
    before = overlap_score(state).total
    examined = resolve_finetune_overlaps(state)
    assert examined <= state.options.finetune_max_steps
    assert overlap_score(state).total <= before + 1e-6


def test_finetune_disabled_by_default():
    state = _positioned(CROWDED[0])
    assert resolve_finetune_overlaps(state) == 0


def test_primary_pass_spreads_gem_substituents():
    state = _positioned("CC1(C)CCCCC1")
    assert resolve_primary_overlaps(state) == 1


def test_resolve_overlaps_records_total():
    state = _positioned(CROWDED[0])
    final = resolve_overlaps(state)
    assert state.total_overlap_score == pytest.approx(final.total)
    assert final.total >= 0.0


def test_bond_lengths_survive_resolution():
    state = _positioned(CROWDED[3])
    resolve_overlaps(state)
    graph = state.graph
    for edge in graph.edges:
        a = graph.vertices[edge.source_id].position
        b = graph.vertices[edge.target_id].position
        assert a.distance(b) == pytest.approx(30.0, rel=1e-6)
