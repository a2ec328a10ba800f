"""Tests for snapshot export, validation and JSON round-trips."""

from __future__ import annotations

import copy
import json

import pytest

from molscape import (
    LayoutState,
    export_snapshot,
    export_snapshot_json,
    load_json,
    parse_smiles,
    save_json,
    snapshot_to_graph,
    validate_snapshot,
)
from molscape.export import SNAPSHOT_VERSION, snapshot_json

jsonschema = pytest.importorskip("jsonschema")


SAMPLES = [
    "CCO",
    "c1ccccc1",
    "C1CC2CCC1C2",
    "[C@@H](F)(Cl)Br",
    "F/C=C/C=C/F",
    "[Na+].[Cl-]",
]


@pytest.fixture()
def snapshot(layout):
    return layout("C[C@@H](O)c1ccccc1").snapshot


# ═══════════════════════════════════════════════════════════════════
# Payload shape
# ═══════════════════════════════════════════════════════════════════


def test_top_level_keys(snapshot):
    assert set(snapshot) == {"version", "metadata", "vertices", "edges", "rings"}
    assert snapshot["version"] == SNAPSHOT_VERSION


def test_metadata(snapshot):
    meta = snapshot["metadata"]
    assert meta["atom_count"] == 10
    assert meta["bond_count"] == 10
    assert meta["ring_count"] == 1
    assert meta["isomeric"] is True
    assert meta["options"]["bond_length"] == 30.0
    assert meta["source"] == {"smiles": "C[C@@H](O)c1ccccc1"}
    assert meta["total_overlap_score"] >= 0.0


def test_vertex_entries(snapshot):
    centre = snapshot["vertices"][1]
    assert centre["is_stereo_center"] is True
    assert centre["chirality"] in ("R", "S")
    assert centre["bracket"]["chirality"] == "@@"
    for vertex in snapshot["vertices"]:
        assert set(vertex["position"]) == {"x", "y"}
        assert vertex["positioned"] is True


def test_edge_entries(snapshot):
    wedges = [e["wedge"] for e in snapshot["edges"] if e["wedge"] is not None]
    assert wedges
    ring_edges = [e for e in snapshot["edges"] if e["is_in_ring"]]
    assert len(ring_edges) == 6
    assert all(e["is_part_of_aromatic_ring"] for e in ring_edges)


def test_ring_entries(snapshot):
    (ring,) = snapshot["rings"]
    assert sorted(ring["members"]) == [4, 5, 6, 7, 8, 9]
    assert ring["is_fused"] is False


def test_cis_trans_keys_are_strings(layout):
    snap = layout("F/C=C/C=C/F").snapshot
    edges = [e for e in snap["edges"] if e["cis_trans"]]
    assert len(edges) == 2
    assert all(e["sequence"] == 1 for e in edges)
    first = edges[0]["cis_trans_neighbours"]
    assert first["0"]["3"] == "trans"


def test_snapshot_is_json_serialisable(snapshot):
    text = snapshot_json(snapshot)
    assert json.loads(text) == json.loads(json.dumps(snapshot))


# ═══════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("smiles", SAMPLES)
def test_snapshot_passes_both_validators(layout, schema, smiles):
    snap = layout(smiles).snapshot
    assert validate_snapshot(snap) == []
    jsonschema.validate(snap, schema)


def test_missing_keys_are_reported():
    errors = validate_snapshot({"metadata": {}})
    assert "Missing top-level key: version" in errors
    assert "Missing metadata key: atom_count" in errors


def test_count_mismatch(snapshot):
    broken = copy.deepcopy(snapshot)
    broken["metadata"]["atom_count"] += 1
    assert any("atom_count mismatch" in e for e in validate_snapshot(broken))


def test_unknown_edge_endpoint(snapshot):
    broken = copy.deepcopy(snapshot)
    broken["edges"][0]["target"] = 99
    assert any("unknown target vertex 99" in e for e in validate_snapshot(broken))


def test_invalid_wedge(snapshot, schema):
    broken = copy.deepcopy(snapshot)
    broken["edges"][0]["wedge"] = "sideways"
    assert any("invalid wedge" in e for e in validate_snapshot(broken))
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(broken, schema)


def test_non_finite_position(snapshot):
    broken = copy.deepcopy(snapshot)
    broken["vertices"][0]["position"]["x"] = float("nan")
    assert "Vertex 0: non-finite position x" in validate_snapshot(broken)


def test_short_ring(snapshot):
    broken = copy.deepcopy(snapshot)
    broken["rings"][0]["members"] = [4, 5]
    assert "Ring 0: fewer than 3 members" in validate_snapshot(broken)


# ═══════════════════════════════════════════════════════════════════
# Round-trips
# ═══════════════════════════════════════════════════════════════════


def test_snapshot_to_graph_restores_layout(layout):
    result = layout("[C@@H](F)(Cl)Br")
    graph = snapshot_to_graph(result.snapshot)
    original = result.state.graph
    assert len(graph) == len(original)
    assert graph.metadata == original.metadata
    for a, b in zip(graph.vertices, original.vertices):
        assert a.atom.element == b.atom.element
        assert a.position.as_tuple() == pytest.approx(b.position.as_tuple())
        assert a.atom.chirality == b.atom.chirality
    assert [e.wedge for e in graph.edges] == [e.wedge for e in original.edges]
    assert graph.validate() == []


def test_snapshot_to_graph_rejects_invalid(snapshot):
    broken = copy.deepcopy(snapshot)
    del broken["vertices"]
    with pytest.raises(ValueError, match="Invalid snapshot"):
        snapshot_to_graph(broken)


def test_export_of_unlaid_state_is_valid():
    state = LayoutState(graph=parse_smiles("CC"))
    snap = export_snapshot(state)
    assert validate_snapshot(snap) == []
    assert all(v["positioned"] is False for v in snap["vertices"])


def test_export_snapshot_json_writes_file(tmp_path, layout):
    result = layout("CCO")
    path = export_snapshot_json(result.state, tmp_path / "out" / "ethanol.json")
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == json.loads(snapshot_json(result.snapshot))


def test_save_and_load(tmp_path, snapshot):
    path = tmp_path / "nested" / "snap.json"
    save_json(snapshot, path)
    loaded = load_json(path)
    assert loaded == json.loads(snapshot_json(snapshot))


def test_load_rejects_invalid(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"version": "1.0"}), encoding="utf-8")
    with pytest.raises(ValueError, match="bad.json"):
        load_json(path)
