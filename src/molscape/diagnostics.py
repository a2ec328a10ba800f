from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List

from .cis_trans import analyze_bond
from .geometry import centroid, poly_circumradius
from .overlap import overlap_score

if TYPE_CHECKING:
    from .state import LayoutState


@dataclass(frozen=True)
class RingStats:
    ring: int
    size: int
    radii: List[float]
    bond_lengths: List[float]


def overlap_summary(state: "LayoutState") -> Dict[str, object]:
    """Total clash score plus the vertices above ``overlap_sensitivity``."""
    score = overlap_score(state)
    threshold = state.options.overlap_sensitivity
    clashing = [vid for vid, value in score.ranked if value > threshold]
    return {
        "total": score.total,
        "max_vertex_score": score.ranked[0][1] if score.ranked else 0.0,
        "clashing_vertices": clashing,
    }


def bond_length_deviation(state: "LayoutState") -> Dict[str, float]:
    """Relative deviation of drawn bond lengths from ``bond_length``."""
    graph = state.graph
    target = state.options.bond_length
    deviations = []
    for edge in graph.edges:
        if edge.weight == 0:
            continue
        a = graph.vertices[edge.source_id]
        b = graph.vertices[edge.target_id]
        if not (a.atom.is_drawn and b.atom.is_drawn):
            continue
        length = math.sqrt(a.position.distance_sq(b.position))
        deviations.append(abs(length - target) / target)
    return {
        "count": float(len(deviations)),
        "mean": _mean(deviations),
        "max": _max(deviations),
    }


def ring_diagnostics(state: "LayoutState") -> Dict[int, RingStats]:
    """Member radii about the recomputed centroid and bond lengths, per ring."""
    graph = state.graph
    stats: Dict[int, RingStats] = {}
    for ring in state.rings:
        positions = [graph.vertices[vid].position for vid in ring.members]
        center = centroid(positions)
        radii = [math.sqrt(p.distance_sq(center)) for p in positions]
        lengths = []
        for i, vid in enumerate(ring.members):
            nxt = ring.members[(i + 1) % len(ring.members)]
            if graph.has_edge(vid, nxt):
                lengths.append(_edge_length(state, vid, nxt))
        stats[ring.id] = RingStats(ring.id, ring.size, radii, lengths)
    return stats


def ring_regularity(state: "LayoutState", stats: RingStats, tolerance: float = 0.05) -> Dict[str, object]:
    """Compare a ring with the regular polygon of its size.

    Bridged members are never regular, so only the numbers are reported
    for them; ``passed`` is then ``None``.
    """
    expected = poly_circumradius(state.options.bond_length, stats.size)
    spread = (_max(stats.radii) - _min(stats.radii)) / expected if stats.radii else 0.0
    radius_error = abs(_mean(stats.radii) - expected) / expected if stats.radii else 0.0
    ring = state.find_ring(stats.ring)
    regular = ring is not None and not ring.is_bridged and not ring.is_part_of_bridged
    return {
        "expected_radius": expected,
        "radius_spread": spread,
        "radius_error": radius_error,
        "passed": (spread <= tolerance and radius_error <= tolerance) if regular else None,
    }


def stereobond_analysis(state: "LayoutState") -> List[Dict[str, object]]:
    """Current cis/trans verdict of every stereogenic double bond."""
    results = []
    for edge in state.graph.edges:
        if edge.bond_type != "=" or not edge.cis_trans:
            continue
        analysis = analyze_bond(state, edge)
        results.append({
            "edge": edge.id,
            "correct": analysis.is_correct,
            "fixed": edge.id in state.fixed_stereo_bonds,
            "checks": [
                {"left": c.left_id, "right": c.right_id, "expected": c.expected, "actual": c.actual}
                for c in analysis.checks
            ],
        })
    return results


def diagnostics_report(state: "LayoutState") -> Dict[str, object]:
    """Build a structured diagnostics report suitable for JSON export."""
    rings = ring_diagnostics(state)
    ring_payload = {}
    for ring_id in sorted(rings):
        stats = rings[ring_id]
        ring_payload[str(ring_id)] = {
            "size": stats.size,
            "mean_bond_length": _mean(stats.bond_lengths),
            "regularity": ring_regularity(state, stats),
        }

    return {
        "overlap": overlap_summary(state),
        "bond_lengths": bond_length_deviation(state),
        "rings": ring_payload,
        "stereobonds": stereobond_analysis(state),
        "warnings": list(state.warnings),
    }


def _edge_length(state: "LayoutState", a: int, b: int) -> float:
    vertices = state.graph.vertices
    return math.sqrt(vertices[a].position.distance_sq(vertices[b].position))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _min(values: List[float]) -> float:
    return min(values) if values else 0.0


def _max(values: List[float]) -> float:
    return max(values) if values else 0.0
