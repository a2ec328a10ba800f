"""Double-bond (cis/trans) stereochemistry.

:func:`build_metadata` turns the ``/`` and ``\\`` markers around every
double bond into a symmetric orientation map stored on the edge.
:func:`correct_orientations` checks the finished drawing against those
maps and mirrors substituents or ring branches until each bond agrees.

Ring-branch flips are evaluated on a candidate position map first; only
a flip that makes the bond verify is written back to the graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Set, Tuple

from networkx.utils import UnionFind

from .algorithms import collect_component
from .geometry import Vector2, side_of_line
from .models import Edge, Vertex
from .ring_manager import are_in_same_ring

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

SINGLE_BONDS = ("-", "/", "\\")

Positions = Mapping[int, Vector2]


@dataclass
class SideResolution:
    anchor: int
    partner: Optional[int]
    anchor_symbol: str
    partner_symbol: Optional[str]


@dataclass
class OrientationCheck:
    """One substituent pair checked against its expected orientation.

    *actual* is ``"cis"``, ``"trans"``, ``"collinear"`` or ``"undrawn"``.
    """

    left_id: int
    right_id: int
    expected: str
    actual: str


@dataclass
class BondAnalysis:
    edge_id: int
    is_correct: bool
    checks: List[OrientationCheck] = field(default_factory=list)


@dataclass(frozen=True)
class RingFlipPlan:
    """Mirror the branch reachable from *central* about the line through *flanking*."""

    central: int
    flanking: Tuple[int, int]

    def same_as(self, other: "RingFlipPlan") -> bool:
        return self.central == other.central and set(self.flanking) == set(other.flanking)


# ═══════════════════════════════════════════════════════════════════
# Orientation maps
# ═══════════════════════════════════════════════════════════════════


def build_metadata(state: "LayoutState") -> int:
    """Attach an orientation map to every double bond with usable markers.

    Returns the number of stereogenic double bonds found.
    """
    graph = state.graph
    for edge in graph.edges:
        edge.cis_trans = False
        edge.cis_trans_neighbours = {}

    count = 0
    for edge in graph.edges:
        if edge.bond_type != "=":
            continue
        mapping = orientation_map(state, edge)
        if mapping:
            edge.cis_trans = True
            edge.cis_trans_neighbours = mapping
            count += 1
    return count


def orientation_map(state: "LayoutState", edge: Edge) -> Dict[int, Dict[int, str]]:
    """Symmetric ``{a: {b: "cis"|"trans"}}`` map across *edge*; empty when unmarked."""
    side_a = resolve_side(state, edge.source_id, edge.target_id)
    side_b = resolve_side(state, edge.target_id, edge.source_id)
    if side_a is None or side_b is None:
        return {}

    same = side_a.anchor_symbol == side_b.anchor_symbol
    near, far = ("cis", "trans") if same else ("trans", "cis")
    mapping: Dict[int, Dict[int, str]] = {}

    def register(a: Optional[int], b: Optional[int], orientation: str) -> None:
        if a is None or b is None:
            return
        mapping.setdefault(a, {})[b] = orientation
        mapping.setdefault(b, {})[a] = orientation

    register(side_a.anchor, side_b.anchor, near)
    register(side_a.partner, side_b.partner, near)
    register(side_a.anchor, side_b.partner, far)
    register(side_a.partner, side_b.anchor, far)
    return mapping


def resolve_side(state: "LayoutState", center_id: int, opposite_id: int) -> Optional[SideResolution]:
    """Pick the marked substituent on one end of a double bond."""
    neighbours = state.graph.vertices[center_id].neighbours_except(opposite_id)
    if not neighbours:
        return None

    anchor: Optional[int] = neighbours[0]
    partner: Optional[int] = neighbours[1] if len(neighbours) > 1 else None
    anchor_symbol = relative_symbol(state, center_id, anchor)
    partner_symbol = relative_symbol(state, center_id, partner) if partner is not None else None

    if anchor_symbol is None and partner_symbol is not None:
        anchor, partner = partner, anchor
        anchor_symbol, partner_symbol = partner_symbol, anchor_symbol
    if anchor is None or anchor_symbol is None:
        return None

    if partner is not None and partner_symbol is None:
        partner_symbol = infer_symbol(center_id, anchor, partner, anchor_symbol)
    return SideResolution(anchor, partner, anchor_symbol, partner_symbol)


def relative_symbol(state: "LayoutState", center_id: int, neighbour_id: int) -> Optional[str]:
    """Directional marker of a bond as read from *center_id*."""
    edge = state.graph.get_edge(center_id, neighbour_id)
    if edge is None or edge.stereo_symbol is None:
        return None
    if edge.stereo_source_id is None or edge.stereo_source_id == center_id:
        return edge.stereo_symbol
    return "\\" if edge.stereo_symbol == "/" else "/"


def infer_symbol(center_id: int, defined_id: int, other_id: int, defined_symbol: str) -> str:
    both_same_side = (defined_id > center_id and other_id > center_id) or (
        defined_id < center_id and other_id < center_id
    )
    if defined_symbol == "/":
        return "\\" if both_same_side else "/"
    return "/" if both_same_side else "\\"


# ═══════════════════════════════════════════════════════════════════
# Sequences
# ═══════════════════════════════════════════════════════════════════


def find_sequences(state: "LayoutState") -> List[List[int]]:
    """Stereogenic double bonds linked through single bonds, as sorted edge-id groups.

    Only groups of two or more bonds are returned, ordered by their
    smallest edge id.
    """
    graph = state.graph
    groups = UnionFind()
    for edge in graph.edges:
        if edge.bond_type not in SINGLE_BONDS:
            continue
        first = _adjacent_stereo_bond(state, edge.source_id, edge.target_id)
        second = _adjacent_stereo_bond(state, edge.target_id, edge.source_id)
        if first is not None and second is not None:
            groups.union(first.id, second.id)
    return sorted(sorted(group) for group in groups.to_sets() if len(group) > 1)


def _adjacent_stereo_bond(state: "LayoutState", vertex_id: int, exclude_id: int) -> Optional[Edge]:
    graph = state.graph
    for nid in graph.vertices[vertex_id].neighbours:
        if nid == exclude_id:
            continue
        edge = graph.get_edge(vertex_id, nid)
        if edge is not None and edge.bond_type == "=" and edge.cis_trans:
            return edge
    return None


# ═══════════════════════════════════════════════════════════════════
# Verification
# ═══════════════════════════════════════════════════════════════════


def analyze_bond(state: "LayoutState", edge: Edge, positions: Optional[Positions] = None) -> BondAnalysis:
    """Compare the drawn geometry around *edge* with its orientation map.

    *positions* overrides vertex positions by id, so candidate geometries
    can be checked without touching the graph.
    """
    graph = state.graph
    vertex_a = graph.vertices[edge.source_id]
    vertex_b = graph.vertices[edge.target_id]
    pos_a = _position(vertex_a, positions)
    pos_b = _position(vertex_b, positions)

    analysis = BondAnalysis(edge.id, True)
    seen: Set[Tuple[int, int]] = set()
    for source_id, targets in edge.cis_trans_neighbours.items():
        for target_id, expected in targets.items():
            key = (min(source_id, target_id), max(source_id, target_id))
            if key in seen:
                continue
            if source_id in vertex_a.neighbours and target_id in vertex_b.neighbours:
                left, right = graph.vertices[source_id], graph.vertices[target_id]
            elif source_id in vertex_b.neighbours and target_id in vertex_a.neighbours:
                left, right = graph.vertices[target_id], graph.vertices[source_id]
            else:
                continue

            if not left.atom.is_drawn or not right.atom.is_drawn:
                analysis.checks.append(OrientationCheck(left.id, right.id, expected, "undrawn"))
                continue
            seen.add(key)

            side_left = side_of_line(pos_a, pos_b, _position(left, positions))
            side_right = side_of_line(pos_a, pos_b, _position(right, positions))
            same_side = side_left == side_right
            if side_left == 0 or side_right == 0:
                actual = "collinear"
            else:
                actual = "cis" if same_side else "trans"
            analysis.checks.append(OrientationCheck(left.id, right.id, expected, actual))

            if (expected == "cis") != same_side:
                analysis.is_correct = False
    return analysis


def _position(vertex: Vertex, positions: Optional[Positions]) -> Vector2:
    if positions is not None and vertex.id in positions:
        return positions[vertex.id]
    return vertex.position


# ═══════════════════════════════════════════════════════════════════
# Correction
# ═══════════════════════════════════════════════════════════════════


def correct_orientations(state: "LayoutState") -> int:
    """Fix every stereogenic double bond that is drawn the wrong way round.

    Bonds in sequences go first, then all remaining bonds in id order.
    Returns the number of bonds marked fixed.
    """
    graph = state.graph
    state.fixed_stereo_bonds = []
    state.stereo_sequences = {}

    sequences = find_sequences(state)
    for index, sequence in enumerate(sequences, start=1):
        for edge_id in sequence:
            state.stereo_sequences[edge_id] = index
    for sequence in sequences:
        for edge_id in sequence:
            _ensure_orientation(state, graph.edges[edge_id])
    for edge in graph.edges:
        _ensure_orientation(state, edge)
    return len(state.fixed_stereo_bonds)


def _ensure_orientation(state: "LayoutState", edge: Edge) -> None:
    if edge.bond_type != "=" or not edge.cis_trans or edge.id in state.fixed_stereo_bonds:
        return
    if analyze_bond(state, edge).is_correct:
        state.fixed_stereo_bonds.append(edge.id)
        return

    graph = state.graph
    vertex_a = graph.vertices[edge.source_id]
    vertex_b = graph.vertices[edge.target_id]
    if vertex_a.atom.rings and vertex_b.atom.rings and are_in_same_ring(vertex_a, vertex_b):
        corrected = flip_bond_in_ring(state, edge)
    else:
        corrected = flip_bond_outside_ring(state, vertex_a, vertex_b)

    if corrected and analyze_bond(state, edge).is_correct:
        state.fixed_stereo_bonds.append(edge.id)
    else:
        state.warn(f"Cis/trans stereochemistry could not be resolved for bond {edge.id}")


def mirrored_positions(state: "LayoutState", root_id: int, anchor_a: int, anchor_b: int) -> Dict[int, Vector2]:
    """Positions of the component around *root_id* mirrored about ``anchor_a``-``anchor_b``.

    The two anchors block the search.  The graph is not modified.
    """
    vertices = state.graph.vertices
    line_a = vertices[anchor_a].position
    line_b = vertices[anchor_b].position
    return {
        vid: vertices[vid].position.clone().mirror_about_line(line_a, line_b)
        for vid in collect_component(state.graph, root_id, (anchor_a, anchor_b))
    }


def apply_mirror(state: "LayoutState", positions: Dict[int, Vector2], anchor_a: int, anchor_b: int) -> None:
    """Commit *positions* and mirror the ring centres anchored on them."""
    vertices = state.graph.vertices
    line_a = vertices[anchor_a].position.clone()
    line_b = vertices[anchor_b].position.clone()
    for vid, position in positions.items():
        vertices[vid].position.set_from(position)
        for ring_id in vertices[vid].atom.anchored_rings:
            ring = state.find_ring(ring_id)
            if ring is not None:
                ring.center.mirror_about_line(line_a, line_b)


def flip_subtree(state: "LayoutState", root_id: int, anchor_a: int, anchor_b: int) -> None:
    apply_mirror(state, mirrored_positions(state, root_id, anchor_a, anchor_b), anchor_a, anchor_b)


def flip_bond_outside_ring(state: "LayoutState", vertex_a: Vertex, vertex_b: Vertex) -> bool:
    """Mirror the substituents of the non-ring end about the bond axis."""
    graph = state.graph
    parent, root = (vertex_b, vertex_a) if vertex_a.atom.rings else (vertex_a, vertex_b)
    neighbours = graph.drawn_neighbours(parent.id, exclude=(root.id,))
    if not neighbours:
        return False

    if len(neighbours) == 2 and _share_ring(graph.vertices[neighbours[0]], graph.vertices[neighbours[1]]):
        neighbours = neighbours[:1]
    for nid in neighbours:
        flip_subtree(state, nid, root.id, parent.id)
    return True


def _share_ring(a: Vertex, b: Vertex) -> bool:
    return any(r in b.atom.rings for r in a.atom.rings)


# ── ring flips ──────────────────────────────────────────────────────


def flip_bond_in_ring(state: "LayoutState", edge: Edge) -> bool:
    """Try the ranked ring-flip plans and commit the first one that verifies."""
    for plan in ring_flip_plans(state, edge):
        candidate = mirrored_positions(state, plan.central, *plan.flanking)
        if analyze_bond(state, edge, candidate).is_correct:
            apply_mirror(state, candidate, *plan.flanking)
            return True
    return False


def ring_flip_plans(state: "LayoutState", edge: Edge) -> List[RingFlipPlan]:
    """Primary plan first, then one plan per ring end; duplicates dropped."""
    graph = state.graph
    atom1, atom2 = edge.source_id, edge.target_id
    neighbours1 = graph.drawn_neighbours(atom1, exclude=(atom2,))
    neighbours2 = graph.drawn_neighbours(atom2, exclude=(atom1,))

    plans: List[RingFlipPlan] = []
    primary = _primary_plan(state, edge, neighbours1, neighbours2)
    if primary is not None:
        plans.append(primary)
    for central, other in ((atom1, atom2), (atom2, atom1)):
        ring_neighbour = find_ring_neighbour(state, central, edge)
        if ring_neighbour is None:
            continue
        plan = RingFlipPlan(central, (other, ring_neighbour))
        if not any(plan.same_as(existing) for existing in plans):
            plans.append(plan)
    return plans


def _primary_plan(state: "LayoutState", edge: Edge, neighbours1: List[int],
                  neighbours2: List[int]) -> Optional[RingFlipPlan]:
    atom1, atom2 = edge.source_id, edge.target_id
    adjacent1 = any(_next_to_stereo_bond(state, n, edge.id) for n in neighbours1)
    adjacent2 = any(_next_to_stereo_bond(state, n, edge.id) for n in neighbours2)
    fixed1 = any(_next_to_stereo_bond(state, n, edge.id, fixed_only=True) for n in neighbours1)
    fixed2 = any(_next_to_stereo_bond(state, n, edge.id, fixed_only=True) for n in neighbours2)

    if not adjacent1 and not adjacent2:
        return _branch_plan(state, edge, neighbours1, neighbours2)
    if adjacent1 and not adjacent2:
        return _plan_around(state, edge, atom2, atom1)
    if adjacent2 and not adjacent1:
        return _plan_around(state, edge, atom1, atom2)
    if fixed1 and not fixed2:
        return _plan_around(state, edge, atom2, atom1)
    if fixed2 and not fixed1:
        return _plan_around(state, edge, atom1, atom2)
    if not fixed1 and not fixed2:
        return _branch_plan(state, edge, neighbours1, neighbours2)
    return None


def _plan_around(state: "LayoutState", edge: Edge, central: int, other: int) -> Optional[RingFlipPlan]:
    ring_neighbour = find_ring_neighbour(state, central, edge)
    if ring_neighbour is None:
        return None
    return RingFlipPlan(central, (other, ring_neighbour))


def _next_to_stereo_bond(state: "LayoutState", vertex_id: int, exclude_edge_id: int,
                         fixed_only: bool = False) -> bool:
    for edge in state.graph.edges_of(vertex_id):
        if edge is None or edge.id == exclude_edge_id:
            continue
        if edge.bond_type == "=" and edge.cis_trans:
            if not fixed_only or edge.id in state.fixed_stereo_bonds:
                return True
    return False


def find_ring_neighbour(state: "LayoutState", vertex_id: int, edge: Edge) -> Optional[int]:
    """First drawn neighbour of *vertex_id* off *edge* inside a ring *edge* belongs to."""
    graph = state.graph
    shared = [
        r for r in graph.vertices[edge.source_id].atom.rings
        if r in graph.vertices[edge.target_id].atom.rings
    ]
    for nid in graph.vertices[vertex_id].neighbours:
        if nid in (edge.source_id, edge.target_id):
            continue
        neighbour = graph.vertices[nid]
        if not neighbour.atom.is_drawn:
            continue
        if any(r in shared for r in neighbour.atom.rings):
            return nid
    return None


def _branch_plan(state: "LayoutState", edge: Edge, neighbours1: List[int],
                 neighbours2: List[int]) -> Optional[RingFlipPlan]:
    atom1, atom2 = edge.source_id, edge.target_id
    if len(neighbours1) == 1:
        return RingFlipPlan(atom1, (neighbours1[0], atom2))
    if len(neighbours2) == 1:
        return RingFlipPlan(atom2, (neighbours2[0], atom1))

    shared = {
        r for r in state.graph.vertices[atom1].atom.rings
        if r in state.graph.vertices[atom2].atom.rings
    }
    pick1, in_cycle1, size1 = _pick_branch(state, atom1, neighbours1, shared)
    pick2, in_cycle2, size2 = _pick_branch(state, atom2, neighbours2, shared)
    if pick1 is None or pick2 is None:
        return None

    if not in_cycle1 and not in_cycle2:
        central = atom1 if size2 > size1 else atom2
        other = atom2 if central == atom1 else atom1
        return _plan_around(state, edge, central, other)
    if in_cycle1 and not in_cycle2:
        return _plan_around(state, edge, atom2, atom1)
    if in_cycle2 and not in_cycle1:
        return _plan_around(state, edge, atom1, atom2)
    return None


def _pick_branch(state: "LayoutState", atom_id: int, neighbours: List[int],
                 shared: Set[int]) -> Tuple[Optional[int], bool, int]:
    """Smallest exocyclic branch of *atom_id*, else its first ring neighbour.

    The in-cycle flag reflects the last neighbour examined.
    """
    graph = state.graph
    pick: Optional[int] = None
    in_cycle = False
    size: Optional[int] = None
    for nid in neighbours:
        if not any(r in shared for r in graph.vertices[nid].atom.rings):
            branch = len(collect_component(graph, nid, (atom_id,)))
            if pick is None or (size is not None and branch < size):
                pick = nid
                size = branch
            in_cycle = False
        elif pick is None:
            pick = nid
            in_cycle = True
    return pick, in_cycle, size if size is not None else 2 ** 53 - 1
