"""Tests for the matplotlib snapshot preview."""

from __future__ import annotations

import copy

import pytest

from molscape.visualize import _bond_offsets, _label, _offset_segment, render_png


def test_labels():
    assert _label({"id": 0, "element": "C", "neighbours": [1]}, False) is None
    assert _label({"id": 0, "element": "C", "neighbours": []}, False) == "C"
    assert _label({"id": 2, "element": "O", "neighbours": [1]}, False) == "O"
    assert _label({"id": 3, "element": "C", "neighbours": [1]}, True) == "3"
    assert _label({"id": 4, "element": "N", "neighbours": [1]}, True) == "N4"


def test_bond_offsets():
    assert _bond_offsets("-", 4.0) == (0.0,)
    assert _bond_offsets("/", 4.0) == (0.0,)
    assert _bond_offsets("=", 4.0) == (-2.0, 2.0)
    assert len(_bond_offsets("#", 4.0)) == 3
    assert len(_bond_offsets("$", 4.0)) == 4


def test_offset_segment_is_perpendicular():
    (p, q) = _offset_segment((0.0, 0.0), (10.0, 0.0), 2.0)
    assert p == pytest.approx((0.0, 2.0))
    assert q == pytest.approx((10.0, 2.0))
    assert _offset_segment((1.0, 1.0), (1.0, 1.0), 2.0) == ((1.0, 1.0), (1.0, 1.0))


def test_invalid_snapshot_is_rejected(layout, tmp_path):
    snapshot = copy.deepcopy(layout("CC").snapshot)
    del snapshot["edges"]
    with pytest.raises(ValueError, match="Invalid snapshot"):
        render_png(snapshot, tmp_path / "x.png")


@pytest.mark.parametrize("smiles", [
    "CC(=O)Oc1ccccc1C(=O)O",
    "[C@@H](F)(Cl)Br",
    "C#CC=C",
    "[Na+].[Cl-]",
])
def test_render_png(layout, tmp_path, smiles):
    pytest.importorskip("matplotlib")
    out = tmp_path / "nested" / "mol.png"
    render_png(layout(smiles, explicit_hydrogens=False).snapshot, out, show_ids=True)
    assert out.exists()
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
