"""Overlap scoring and resolution.

Four passes run after positioning, in order:

1. **primary** — two substituents leaving the same ring atom are spread
   apart by a ring-derived angle;
2. **iterative** — the shallower side of each rotatable bond is swung by
   120° when its subtree clashes;
3. **secondary** — clashing terminal atoms are nudged by 20°;
4. **finetune** (optional) — a 30° grid search around the bond that sits
   in the middle of each remaining clash.

Every rotation moves the anchored ring centres along with the atoms.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import numpy as np

from .algorithms import shortest_path_edges, subgraph_size, traverse_tree, tree_depth
from .geometry import Vector2, to_rad
from .models import Edge, Vertex
from .ring_manager import are_in_same_ring

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

FINETUNE_STEP_DEGREES = 30
FINETUNE_STEPS = 12
CLASH_FACTOR = 0.8


@dataclass
class OverlapScore:
    """Result of :func:`overlap_score`.

    Attributes
    ----------
    total : float
        Sum of the weighted clashes over all vertex pairs.
    vertex_scores : numpy.ndarray
        Per-vertex sum of the clashes it takes part in.
    ranked : list of (int, float)
        ``(vertex_id, score)`` sorted by descending score; ties keep id order.
    """

    total: float
    vertex_scores: np.ndarray
    ranked: List[Tuple[int, float]]


@dataclass
class SubtreeScore:
    value: float
    count: int


# ═══════════════════════════════════════════════════════════════════
# Scoring
# ═══════════════════════════════════════════════════════════════════


def overlap_score(state: "LayoutState") -> OverlapScore:
    """Weighted clash score: every drawn pair closer than one bond adds
    ``(L - d) / L``."""
    vertices = state.graph.vertices
    n = len(vertices)
    bond_length = state.options.bond_length
    scores = np.zeros(n)
    total = 0.0

    drawn = np.array([v.id for v in vertices if v.atom.is_drawn], dtype=int)
    if drawn.size > 1:
        coords = np.array([vertices[i].position.as_tuple() for i in drawn])
        delta = coords[:, None, :] - coords[None, :, :]
        dist_sq = (delta * delta).sum(axis=2)
        upper = np.triu(np.ones_like(dist_sq, dtype=bool), k=1)
        close = upper & (dist_sq < bond_length * bond_length)
        rows, cols = np.nonzero(close)
        weighted = (bond_length - np.sqrt(dist_sq[rows, cols])) / bond_length
        total = float(weighted.sum())
        np.add.at(scores, drawn[rows], weighted)
        np.add.at(scores, drawn[cols], weighted)

    ranked = sorted(((i, float(scores[i])) for i in range(n)), key=lambda item: -item[1])
    return OverlapScore(total, scores, ranked)


def subtree_overlap_score(
    state: "LayoutState", vertex_id: int, parent_id: int, vertex_scores: np.ndarray,
) -> SubtreeScore:
    """Mean score of the clashing drawn vertices behind *vertex_id*; 0 if none clash."""
    sensitivity = state.options.overlap_sensitivity
    vertices = state.graph.vertices
    score = 0.0
    count = 0
    for vid in traverse_tree(state.graph, vertex_id, parent_id):
        if not vertices[vid].atom.is_drawn:
            continue
        s = float(vertex_scores[vid])
        if s > sensitivity:
            score += s
            count += 1
    return SubtreeScore(score / count if count else 0.0, count)


# ═══════════════════════════════════════════════════════════════════
# Rotation helpers
# ═══════════════════════════════════════════════════════════════════


def rotate_subtree(
    state: "LayoutState", vertex_id: int, parent_id: int, angle: float, center: Vector2,
) -> None:
    """Rotate everything behind *vertex_id* (seen from *parent_id*) about *center*."""
    vertices = state.graph.vertices
    pivot = center.clone()
    for vid in traverse_tree(state.graph, vertex_id, parent_id):
        if vid == parent_id:
            continue
        vertex = vertices[vid]
        vertex.position.rotate_around(angle, pivot)
        for ring_id in vertex.atom.anchored_rings:
            ring = state.find_ring(ring_id)
            if ring is not None:
                ring.center.rotate_around(angle, pivot)


def is_edge_rotatable(state: "LayoutState", edge: Edge) -> bool:
    """Single, non-terminal bonds that are not part of a ring."""
    if edge.bond_type != "-":
        return False
    a = state.graph.vertices[edge.source_id]
    b = state.graph.vertices[edge.target_id]
    if a.is_terminal() or b.is_terminal():
        return False
    if a.atom.rings and b.atom.rings and are_in_same_ring(a, b):
        return False
    return True


def non_ring_neighbours(state: "LayoutState", vertex_id: int) -> List[Vertex]:
    vertices = state.graph.vertices
    vertex = vertices[vertex_id]
    result = []
    for nid in vertex.neighbours:
        neighbour = vertices[nid]
        shared = [r for r in vertex.atom.rings if r in neighbour.atom.rings]
        if not shared and not neighbour.atom.is_bridge:
            result.append(neighbour)
    return result


def closest_vertex(state: "LayoutState", vertex: Vertex) -> Optional[Vertex]:
    best: Optional[Vertex] = None
    best_distance = 99999.0
    for other in state.graph.vertices:
        if other.id == vertex.id:
            continue
        distance = vertex.position.distance_sq(other.position)
        if distance < best_distance:
            best_distance = distance
            best = other
    return best


# ═══════════════════════════════════════════════════════════════════
# Passes
# ═══════════════════════════════════════════════════════════════════


def resolve_primary_overlaps(state: "LayoutState") -> int:
    """Spread pairs of substituents that leave one ring atom in the same direction.

    Returns the number of pairs that were rotated.
    """
    graph = state.graph
    overlaps: List[Tuple[Vertex, List[int], List[Vertex]]] = []
    done = set()
    for ring in state.rings:
        for vid in ring.members:
            if vid in done:
                continue
            done.add(vid)
            vertex = graph.vertices[vid]
            outside = non_ring_neighbours(state, vid)
            if len(outside) > 1 or (len(outside) == 1 and len(vertex.atom.rings) == 2):
                overlaps.append((vertex, list(vertex.atom.rings), outside))

    rotated = 0
    for common, rings, pair in overlaps:
        # A single substituent between two fused rings is left alone.
        if len(pair) != 2:
            continue
        a, b = pair
        if not a.atom.is_drawn or not b.atom.is_drawn:
            continue

        angle = (2.0 * math.pi - state.get_ring(rings[0]).interior_angle()) / 6.0
        rotate_subtree(state, a.id, common.id, angle, common.position)
        rotate_subtree(state, b.id, common.id, -angle, common.position)
        first = _pair_score(state, a.id, b.id, common.id)

        rotate_subtree(state, a.id, common.id, -2.0 * angle, common.position)
        rotate_subtree(state, b.id, common.id, 2.0 * angle, common.position)
        second = _pair_score(state, a.id, b.id, common.id)

        if second >= first:
            rotate_subtree(state, a.id, common.id, 2.0 * angle, common.position)
            rotate_subtree(state, b.id, common.id, -2.0 * angle, common.position)
        rotated += 1
    return rotated


def _pair_score(state: "LayoutState", a: int, b: int, common: int) -> float:
    scores = overlap_score(state).vertex_scores
    return (subtree_overlap_score(state, a, common, scores).value
            + subtree_overlap_score(state, b, common, scores).value)


def resolve_iterative_overlaps(state: "LayoutState") -> OverlapScore:
    """Swing clashing subtrees around rotatable bonds.

    A rotation is kept only when the total score does not increase.
    Returns the score after the last pass.
    """
    graph = state.graph
    sensitivity = state.options.overlap_sensitivity
    score = overlap_score(state)
    state.total_overlap_score = score.total

    for _ in range(state.options.overlap_resolution_iterations):
        for edge in graph.edges:
            if not is_edge_rotatable(state, edge):
                continue
            depth_a = tree_depth(graph, edge.source_id, edge.target_id)
            depth_b = tree_depth(graph, edge.target_id, edge.source_id)
            a, b = edge.target_id, edge.source_id
            if depth_a > depth_b:
                a, b = edge.source_id, edge.target_id

            if subtree_overlap_score(state, b, a, score.vertex_scores).value <= sensitivity:
                continue

            vertex_a = graph.vertices[a]
            vertex_b = graph.vertices[b]
            around = vertex_b.neighbours_except(a)
            if len(around) == 1:
                _try_rotations(state, vertex_a, vertex_b, around)
            elif len(around) == 2:
                if vertex_b.atom.rings and vertex_a.atom.rings:
                    continue
                first = graph.vertices[around[0]]
                second = graph.vertices[around[1]]
                if len(first.atom.rings) == 1 and len(second.atom.rings) == 1:
                    if first.atom.rings[0] != second.atom.rings[0]:
                        continue
                elif first.atom.rings or second.atom.rings:
                    continue
                else:
                    _try_rotations(state, vertex_a, vertex_b, around)

            score = overlap_score(state)
    return score


def _try_rotations(state: "LayoutState", vertex_a: Vertex, vertex_b: Vertex, ids: List[int]) -> None:
    graph = state.graph
    angles: Dict[int, float] = {}
    for nid in ids:
        angles[nid] = graph.vertices[nid].position.rotate_away_from_angle(
            vertex_a.position, vertex_b.position, to_rad(120),
        )
    for nid in ids:
        rotate_subtree(state, nid, vertex_b.id, angles[nid], vertex_b.position)

    total = overlap_score(state).total
    if total > state.total_overlap_score:
        for nid in ids:
            rotate_subtree(state, nid, vertex_b.id, -angles[nid], vertex_b.position)
    else:
        state.total_overlap_score = total


def resolve_secondary_overlaps(state: "LayoutState", ranked: List[Tuple[int, float]]) -> int:
    """Nudge clashing terminal atoms 20° away from their closest neighbour.

    A nudge that raises the total score is undone.  Returns how many
    nudges were kept.
    """
    vertices = state.graph.vertices
    sensitivity = state.options.overlap_sensitivity
    current = overlap_score(state).total
    kept = 0
    for vid, value in ranked:
        if value <= sensitivity:
            continue
        vertex = vertices[vid]
        if not vertex.is_terminal():
            continue
        closest = closest_vertex(state, vertex)
        if closest is None:
            continue

        # Vertex 0 has a virtual previous position, so use its successor instead.
        if closest.id == 0 and len(vertices) > 1:
            target = vertices[1].position
        elif closest.is_terminal():
            target = closest.previous_position
        else:
            target = closest.position
        if vertex.id == 0 and len(vertices) > 1:
            pivot = vertices[1].position
        else:
            pivot = vertex.previous_position

        before = vertex.position.clone()
        vertex.position.rotate_away_from(target, pivot, to_rad(20))
        total = overlap_score(state).total
        if total > current:
            vertex.position.set_from(before)
        else:
            current = total
            kept += 1
    state.total_overlap_score = current
    return kept


# ── finetune ────────────────────────────────────────────────────────


def clashing_pairs(state: "LayoutState", threshold: float) -> List[Tuple[int, int]]:
    """Drawn, non-bonded pairs whose squared distance is below *threshold*."""
    graph = state.graph
    drawn = [v for v in graph.vertices if v.atom.is_drawn]
    pairs = []
    for i, a in enumerate(drawn):
        for b in drawn[i + 1:]:
            if graph.has_edge(a.id, b.id):
                continue
            if a.position.distance_sq(b.position) < threshold:
                pairs.append((a.id, b.id))
    return pairs


def central_rotatable_edge(state: "LayoutState", path: List[Edge]) -> Optional[Edge]:
    """Rotatable bond of *path* closest to its middle; earliest wins ties."""
    middle = len(path) / 2.0
    best: Optional[Edge] = None
    best_metric = math.inf
    for i, edge in enumerate(path):
        if not is_edge_rotatable(state, edge):
            continue
        metric = abs(middle - i) + abs(middle - (len(path) - i))
        if metric < best_metric:
            best_metric = metric
            best = edge
    return best


def resolve_finetune_overlaps(state: "LayoutState") -> int:
    """Grid-search rotations about the bonds in the middle of remaining clashes.

    Bounded by ``finetune_max_steps`` bonds and ``finetune_timeout``
    seconds.  Returns the number of bonds examined.
    """
    opts = state.options
    if not opts.finetune_overlap:
        return 0
    if state.total_overlap_score <= opts.overlap_sensitivity:
        return 0

    graph = state.graph
    threshold = CLASH_FACTOR * opts.bond_length * opts.bond_length
    candidates: Dict[int, None] = {}
    for a, b in clashing_pairs(state, threshold):
        path = shortest_path_edges(graph, a, b)
        if not path:
            continue
        edge = central_rotatable_edge(state, path)
        if edge is not None:
            candidates[edge.id] = None

    step_angle = to_rad(FINETUNE_STEP_DEGREES)
    deadline = time.perf_counter() + opts.finetune_timeout
    examined = 0
    for edge_id in candidates:
        if state.total_overlap_score <= opts.overlap_sensitivity:
            break
        if examined >= opts.finetune_max_steps or time.perf_counter() > deadline:
            logger.debug("Finetune stopped after %d bonds", examined)
            break

        edge = graph.edges[edge_id]
        rotating, parent = edge.source_id, edge.target_id
        source_size = subgraph_size(graph, edge.source_id, {edge.target_id})
        target_size = subgraph_size(graph, edge.target_id, {edge.source_id})
        if source_size >= target_size:
            rotating, parent = edge.target_id, edge.source_id
        if not graph.vertices[rotating].atom.is_drawn:
            continue
        examined += 1

        pivot = graph.vertices[parent].position
        best_score = overlap_score(state).total
        best_step = 0
        for step in range(FINETUNE_STEPS):
            rotate_subtree(state, rotating, parent, step_angle, pivot)
            candidate = overlap_score(state).total
            if candidate < best_score:
                best_score = candidate
                best_step = step + 1
        rotate_subtree(state, rotating, parent, -step_angle * FINETUNE_STEPS, pivot)
        if best_step:
            rotate_subtree(state, rotating, parent, step_angle * best_step, pivot)
        state.total_overlap_score = overlap_score(state).total
    return examined


def resolve_overlaps(state: "LayoutState") -> OverlapScore:
    """Run the primary, iterative, secondary and finetune passes in order."""
    resolve_primary_overlaps(state)
    score = resolve_iterative_overlaps(state)
    resolve_secondary_overlaps(state, score.ranked)
    resolve_finetune_overlaps(state)
    final = overlap_score(state)
    state.total_overlap_score = final.total
    logger.debug("Overlap score after resolution: %.4f", final.total)
    return final
