"""Tests for ``molscape.diagnostics`` — layout quality reports."""

from __future__ import annotations

import json

import pytest

from molscape import LayoutState, diagnostics_report, parse_smiles
from molscape.diagnostics import (
    bond_length_deviation,
    overlap_summary,
    ring_diagnostics,
    ring_regularity,
    stereobond_analysis,
)


# ── overlap ─────────────────────────────────────────────────────────


def test_overlap_summary_flags_clashing_pair():
    state = LayoutState(graph=parse_smiles("C.C"))
    state.graph.vertices[1].set_position(5.0, 0.0)
    summary = overlap_summary(state)
    assert summary["total"] == pytest.approx(25.0 / 30.0)
    assert summary["max_vertex_score"] == pytest.approx(25.0 / 30.0)
    assert sorted(summary["clashing_vertices"]) == [0, 1]


def test_overlap_summary_of_clean_layout(layout):
    summary = overlap_summary(layout("c1ccccc1").state)
    assert summary["total"] == pytest.approx(0.0, abs=1e-9)
    assert summary["clashing_vertices"] == []


# ── bond lengths ────────────────────────────────────────────────────


def test_bond_length_deviation_of_chain(layout):
    stats = bond_length_deviation(layout("CCCCO").state)
    assert stats["count"] == 4
    assert stats["mean"] == pytest.approx(0.0, abs=1e-9)
    assert stats["max"] == pytest.approx(0.0, abs=1e-9)


def test_dot_bonds_are_not_measured(layout):
    stats = bond_length_deviation(layout("[Na+].[Cl-]").state)
    assert stats["count"] == 0
    assert stats["mean"] == 0.0


# ── rings ───────────────────────────────────────────────────────────


@pytest.mark.parametrize("smiles", ["C1CCCCC1", "c1ccc2ccccc2c1", "C1CCC2(CC1)CCCC2"])
def test_plain_rings_are_regular(layout, smiles):
    state = layout(smiles).state
    stats = ring_diagnostics(state)
    assert len(stats) == len(state.rings)
    for ring_stats in stats.values():
        assert len(ring_stats.radii) == ring_stats.size
        assert len(ring_stats.bond_lengths) == ring_stats.size
        assert ring_regularity(state, ring_stats)["passed"] is True


def test_bridged_rings_are_reported_without_verdict(layout):
    state = layout("C1CC2CCC1C2").state
    for ring_stats in ring_diagnostics(state).values():
        ring = state.find_ring(ring_stats.ring)
        verdict = ring_regularity(state, ring_stats)["passed"]
        if ring.is_bridged or ring.is_part_of_bridged:
            assert verdict is None
        else:
            assert verdict in (True, False)


# ── stereo bonds ────────────────────────────────────────────────────


def test_stereobond_analysis(layout):
    result = layout("F/C=C/F")
    (entry,) = stereobond_analysis(result.state)
    assert entry["edge"] == 1
    assert entry["correct"] is True
    assert entry["fixed"] is True
    assert entry["checks"] == [{"left": 0, "right": 3, "expected": "trans", "actual": "trans"}]


def test_no_stereobonds_without_markers(layout):
    assert stereobond_analysis(layout("FC=CF").state) == []


# ── report ──────────────────────────────────────────────────────────


def test_report_is_json_ready(layout):
    result = layout("CC(C)(C)c1ccccc1C(C)(C)C")
    report = diagnostics_report(result.state)
    assert set(report) == {"overlap", "bond_lengths", "rings", "stereobonds", "warnings"}
    assert list(report["rings"]) == ["0"]
    assert report["rings"]["0"]["size"] == 6
    assert report["rings"]["0"]["mean_bond_length"] == pytest.approx(30.0, rel=1e-6)
    json.dumps(report)


def test_report_carries_warnings(layout):
    result = layout("[C@H]C")
    report = diagnostics_report(result.state)
    assert report["warnings"] == result.warnings
    assert report["warnings"]
