"""Tests for the Kamada-Kawai bridged-ring layout."""

import math

import numpy as np
import pytest

from molscape import LayoutOptions, LayoutState, parse_smiles
from molscape.bridged import process_bridged_rings
from molscape.geometry import Vector2
from molscape.kamada_kawai import kamada_kawai_layout, spring_matrices
from molscape.ring_manager import init_rings


def _bridged_state(smiles="C1CC2CCC1C2", **overrides):
    state = LayoutState(graph=parse_smiles(smiles), options=LayoutOptions().with_overrides(**overrides))
    init_rings(state)
    process_bridged_rings(state)
    return state


def _pairwise(state, ids):
    vertices = state.graph.vertices
    return sorted(
        vertices[a].position.distance(vertices[b].position)
        for i, a in enumerate(ids)
        for b in ids[i + 1:]
    )


def test_spring_matrices():
    distances = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, np.inf], [2.0, np.inf, 0.0]])
    lengths, strengths = spring_matrices(distances, 10.0)
    assert lengths[0, 2] == pytest.approx(20.0)
    assert strengths[0, 2] == pytest.approx(10.0 / 4.0)
    assert lengths[1, 2] == 0.0
    assert strengths[1, 2] == 0.0
    assert strengths[0, 0] == 0.0


def test_layout_positions_every_member():
    state = _bridged_state()
    members = list(state.rings[0].members)
    result = kamada_kawai_layout(state, members, Vector2(0.0, 0.0))
    assert result.iterations <= state.options.kk_max_iteration
    for vid in members:
        vertex = state.graph.vertices[vid]
        assert vertex.positioned and vertex.force_positioned
        assert vertex.position.is_finite()


def test_bonds_come_out_near_bond_length():
    state = _bridged_state()
    members = list(state.rings[0].members)
    kamada_kawai_layout(state, members, Vector2(0.0, 0.0))
    graph = state.graph
    for edge in graph.edges:
        length = graph.vertices[edge.source_id].position.distance(
            graph.vertices[edge.target_id].position
        )
        assert 0.6 * 30.0 < length < 1.4 * 30.0


def test_rigid_motion_keeps_distance_multiset():
    state = _bridged_state()
    members = list(state.rings[0].members)
    kamada_kawai_layout(state, members, Vector2(0.0, 0.0))
    before = _pairwise(state, members)

    for vid in members:
        position = state.graph.vertices[vid].position
        position.rotate(math.pi / 3).add(Vector2(125.0, -40.0))
    result = kamada_kawai_layout(state, members, Vector2(0.0, 0.0))

    assert result.converged
    assert _pairwise(state, members) == pytest.approx(before, rel=1e-9)


def test_fixed_anchor_is_not_moved():
    state = _bridged_state()
    members = list(state.rings[0].members)
    anchor = state.graph.vertices[members[0]]
    anchor.set_position(7.0, 11.0)
    anchor.positioned = True
    kamada_kawai_layout(state, members, Vector2(0.0, 0.0))
    assert anchor.position.as_tuple() == (7.0, 11.0)


def test_iteration_cap_keeps_finite_positions():
    state = _bridged_state(kk_max_iteration=1)
    members = list(state.rings[0].members)
    result = kamada_kawai_layout(state, members, Vector2(0.0, 0.0))
    assert result.iterations == 1
    assert not result.converged
    assert all(state.graph.vertices[vid].position.is_finite() for vid in members)


def test_empty_vertex_list():
    state = _bridged_state()
    result = kamada_kawai_layout(state, [], Vector2(0.0, 0.0))
    assert result.converged
    assert result.iterations == 0
