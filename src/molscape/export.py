"""Depiction snapshot export — a versioned JSON payload for renderers.

The snapshot is the complete, immutable result of a layout: atom
positions and flags, bonds with wedges and cis/trans data, rings with
their centres, and run metadata.  Vertex and edge entries are a superset
of :meth:`MolGraph.to_dict`, so a snapshot can be loaded back as a graph.

Functions
---------
- :func:`export_snapshot` — build the payload dict
- :func:`export_snapshot_json` — write the payload to a JSON file
- :func:`validate_snapshot` — structural check of a payload
- :func:`snapshot_to_graph` — rebuild a positioned :class:`MolGraph`
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Union

from .molecule import MolGraph

if TYPE_CHECKING:
    from .state import LayoutState

SNAPSHOT_VERSION = "1.0"


def _point(vector) -> Dict[str, float]:
    return {"x": float(vector.x), "y": float(vector.y)}


def export_snapshot(state: "LayoutState") -> Dict[str, Any]:
    """Build the JSON-serialisable snapshot of a finished layout.

    The returned dict has five top-level keys:

    ``version``
        Payload format version.
    ``metadata``
        Atom, bond and ring counts, the isomeric flag, the total overlap
        score, the options used and any warnings raised.
    ``vertices``
        One entry per atom with position, drawing and stereo flags.
    ``edges``
        One entry per bond with wedge, ring and cis/trans data.
    ``rings``
        One entry per ring with members and centre.
    """
    graph = state.graph
    base = graph.to_dict()

    vertices = []
    for entry, vertex in zip(base["vertices"], graph.vertices):
        atom = vertex.atom
        entry = dict(entry)
        entry.update({
            "position": _point(vertex.position),
            "positioned": vertex.positioned,
            "angle": None if vertex.angle is None else float(vertex.angle),
            "is_drawn": atom.is_drawn,
            "is_stereo_center": atom.is_stereo_center,
            "has_hydrogen": atom.has_hydrogen,
            "chirality": atom.chirality,
            "hydrogen_direction": atom.hydrogen_direction,
            "rings": list(atom.rings),
        })
        vertices.append(entry)

    edges = []
    for entry, edge in zip(base["edges"], graph.edges):
        source = graph.vertices[edge.source_id].atom
        target = graph.vertices[edge.target_id].atom
        entry = dict(entry)
        entry.update({
            "weight": edge.weight,
            "wedge": edge.wedge,
            "center": edge.center,
            "stereo_symbol": edge.stereo_symbol,
            "is_part_of_aromatic_ring": edge.is_part_of_aromatic_ring,
            "is_in_ring": any(r in target.rings for r in source.rings),
            "cis_trans": edge.cis_trans,
            "cis_trans_neighbours": {
                str(a): {str(b): value for b, value in sorted(inner.items())}
                for a, inner in sorted(edge.cis_trans_neighbours.items())
            },
            "sequence": state.stereo_sequences.get(edge.id),
        })
        edges.append(entry)

    rings = [
        {
            "id": ring.id,
            "members": list(ring.members),
            "center": _point(ring.center),
            "is_fused": ring.is_fused,
            "is_spiro": ring.is_spiro,
            "is_part_of_bridged": ring.is_part_of_bridged,
        }
        for ring in state.rings
    ]

    return {
        "version": SNAPSHOT_VERSION,
        "metadata": {
            "atom_count": len(graph.vertices),
            "bond_count": len(graph.edges),
            "ring_count": len(rings),
            "isomeric": state.options.isomeric,
            "total_overlap_score": float(state.total_overlap_score),
            "options": state.options.to_dict(),
            "warnings": list(state.warnings),
            "source": dict(graph.metadata),
        },
        "vertices": vertices,
        "edges": edges,
        "rings": rings,
    }


def export_snapshot_json(state: "LayoutState", path: Union[str, Path], indent: int = 2) -> Path:
    """Write the snapshot of *state* to *path* and return the path."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(snapshot_json(export_snapshot(state), indent=indent), encoding="utf-8")
    return out


def snapshot_json(payload: Dict[str, Any], indent: int = 2) -> str:
    """Serialise a payload with sorted keys, so equal snapshots give equal text."""
    return json.dumps(payload, indent=indent, sort_keys=True, allow_nan=False)


def validate_snapshot(payload: Dict[str, Any]) -> List[str]:
    """Validate a snapshot payload against the expected structure.

    Returns a list of error messages (empty = valid).

    This is a lightweight structural validator — not a full JSON Schema
    check.  Use ``schemas/depiction.schema.json`` for formal validation
    with ``jsonschema``.
    """
    errors: List[str] = []

    for key in ("version", "metadata", "vertices", "edges", "rings"):
        if key not in payload:
            errors.append(f"Missing top-level key: {key}")

    meta = payload.get("metadata", {})
    for key in ("atom_count", "bond_count", "ring_count", "isomeric"):
        if key not in meta:
            errors.append(f"Missing metadata key: {key}")

    vertices = payload.get("vertices", [])
    if not isinstance(vertices, list):
        errors.append("'vertices' must be a list")
        vertices = []
    elif "atom_count" in meta and len(vertices) != meta["atom_count"]:
        errors.append(f"atom_count mismatch: metadata says {meta['atom_count']}, got {len(vertices)}")

    ids = set()
    for i, vertex in enumerate(vertices):
        for key in ("id", "element", "position", "is_drawn", "neighbours"):
            if key not in vertex:
                errors.append(f"Vertex {i}: missing '{key}'")
        ids.add(vertex.get("id"))
        position = vertex.get("position")
        if isinstance(position, dict):
            for axis in ("x", "y"):
                value = position.get(axis)
                if not isinstance(value, (int, float)) or not math.isfinite(value):
                    errors.append(f"Vertex {i}: non-finite position {axis}")

    edges = payload.get("edges", [])
    if not isinstance(edges, list):
        errors.append("'edges' must be a list")
        edges = []
    elif "bond_count" in meta and len(edges) != meta["bond_count"]:
        errors.append(f"bond_count mismatch: metadata says {meta['bond_count']}, got {len(edges)}")

    for i, edge in enumerate(edges):
        for key in ("id", "source", "target", "bond_type"):
            if key not in edge:
                errors.append(f"Edge {i}: missing '{key}'")
        for end in ("source", "target"):
            if end in edge and edge[end] not in ids:
                errors.append(f"Edge {i}: unknown {end} vertex {edge[end]}")
        if edge.get("wedge") not in (None, "up", "down"):
            errors.append(f"Edge {i}: invalid wedge {edge.get('wedge')!r}")

    rings = payload.get("rings", [])
    if not isinstance(rings, list):
        errors.append("'rings' must be a list")
    else:
        for i, ring in enumerate(rings):
            members = ring.get("members", [])
            if len(members) < 3:
                errors.append(f"Ring {i}: fewer than 3 members")
            for vid in members:
                if vid not in ids:
                    errors.append(f"Ring {i}: unknown member {vid}")

    return errors


def snapshot_to_graph(payload: Dict[str, Any]) -> MolGraph:
    """Rebuild a positioned :class:`MolGraph` from a snapshot.

    Raises ``ValueError`` if the payload fails :func:`validate_snapshot`.
    """
    errors = validate_snapshot(payload)
    if errors:
        raise ValueError("Invalid snapshot: " + "; ".join(errors))

    graph = MolGraph.from_dict(payload)
    graph.metadata = dict(payload["metadata"].get("source", {}))
    for data, vertex in zip(payload["vertices"], graph.vertices):
        atom = vertex.atom
        atom.is_drawn = data.get("is_drawn", True)
        atom.has_hydrogen = data.get("has_hydrogen", False)
        atom.chirality = data.get("chirality")
        atom.hydrogen_direction = data.get("hydrogen_direction", "down")
        vertex.angle = data.get("angle")
    for data, edge in zip(payload["edges"], graph.edges):
        edge.wedge = data.get("wedge")
        edge.center = data.get("center", False)
        edge.cis_trans = data.get("cis_trans", False)
        edge.cis_trans_neighbours = {
            int(a): {int(b): value for b, value in inner.items()}
            for a, inner in data.get("cis_trans_neighbours", {}).items()
        }
    return graph
