"""Tetrahedral stereochemistry: hydrogen visibility and wedge assignment."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import numpy as np

from .geometry import Vector2, parity_of_permutation, subtract
from .ring_manager import are_in_same_ring

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

# Number of bond levels walked when ranking the neighbours of a stereocentre.
PRIORITY_DEPTH = 10

# Out-of-plane height of a wedged bond end.
WEDGE_HEIGHT = {"up": 1.0, "down": -1.0}


def init_hydrogens(state: "LayoutState") -> int:
    """Hide explicit hydrogens unless they sit on a stereocentre shared by two rings.

    Does nothing when ``options.explicit_hydrogens`` is set.  Returns the
    number of hydrogens hidden.
    """
    if state.options.explicit_hydrogens:
        return 0

    graph = state.graph
    hidden = 0
    for vertex in graph.vertices:
        if vertex.atom.element != "H" or not vertex.neighbours:
            continue
        neighbour = graph.vertices[vertex.neighbours[0]].atom
        neighbour.has_hydrogen = True

        if neighbour.bridged_ring is None:
            keep = neighbour.is_stereo_center and len(neighbour.rings) >= 2
        else:
            keep = neighbour.is_stereo_center and len(neighbour.original_rings) >= 2
        if not keep:
            vertex.atom.is_drawn = False
            hidden += 1
    return hidden


# ═══════════════════════════════════════════════════════════════════
# Priorities
# ═══════════════════════════════════════════════════════════════════


def priority_levels(state: "LayoutState", vertex_id: int, center_id: int,
                    max_depth: int = PRIORITY_DEPTH) -> List[List[int]]:
    """Per-depth values of every self-avoiding walk leaving *center_id* via *vertex_id*.

    Each visited atom contributes ``parent_atomic_number * 1000 +
    atomic_number`` once per unit of bond order.  Missing valence is
    padded with hydrogen placeholders one level deeper.  Every level is
    sorted in descending order.
    """
    graph = state.graph
    levels: List[List[int]] = []
    stack: List[Tuple[int, int, int, int, frozenset]] = [
        (vertex_id, center_id, 0, 0, frozenset((center_id,)))
    ]
    while stack:
        current, previous, depth, parent_number, visited = stack.pop()
        visited = visited | {current}
        vertex = graph.vertices[current]
        number = vertex.atom.atomic_number

        while len(levels) <= depth:
            levels.append([])
        levels[depth].extend(
            [parent_number * 1000 + number] * graph.get_edge(current, previous).weight
        )

        if depth >= max_depth - 1:
            continue
        for nid in vertex.neighbours:
            if nid not in visited:
                stack.append((nid, current, depth + 1, number, visited))

        max_bonds = vertex.atom.max_bonds
        if max_bonds is None:
            continue
        bonds = sum(graph.get_edge(current, nid).weight for nid in vertex.neighbours)
        if max_bonds > bonds:
            while len(levels) <= depth + 1:
                levels.append([])
            levels[depth + 1].extend([number * 1000 + 1] * (max_bonds - bonds))

    for level in levels:
        level.sort(reverse=True)
    return levels


def rank_neighbours(state: "LayoutState", vertex_id: int) -> List[int]:
    """Indices into the neighbour list of *vertex_id*, highest priority first.

    Ties are broken by input order.
    """
    neighbours = state.graph.vertices[vertex_id].neighbours
    walks = [priority_levels(state, nid, vertex_id) for nid in neighbours]
    if not walks:
        return []

    depth = max(len(w) for w in walks)
    width = max([len(level) for w in walks for level in w] + [1])
    keys = []
    for index, walk in enumerate(walks):
        levels = walk + [[] for _ in range(depth - len(walk))]
        levels.append([neighbours[index]])
        flat: List[int] = []
        for level in levels:
            flat.extend(level + [0] * (width - len(level)))
        keys.append((flat, index))

    # Python's sort is stable, so equal vectors keep input order.
    keys.sort(key=lambda item: [-value for value in item[0]])
    return [index for _, index in keys]


# ═══════════════════════════════════════════════════════════════════
# Wedges
# ═══════════════════════════════════════════════════════════════════


def assign_wedges(state: "LayoutState") -> int:
    """Annotate R/S and choose the wedged bond of every stereocentre.

    One neighbour bond is wedged, plus the bond to the hydrogen when the
    hydrogen is implicit in the drawing.  The wedge kinds are picked so
    that the drawn handedness (see :func:`wedge_handedness`) agrees with
    the R/S label.  Returns the number of centres annotated.  Centres with
    fewer than three neighbours are skipped with a warning.
    """
    graph = state.graph
    annotated = 0
    for vertex in graph.vertices:
        atom = vertex.atom
        if not atom.is_stereo_center or atom.chirality_marker is None:
            continue
        neighbours = vertex.neighbours
        if len(neighbours) < 3:
            state.warn(f"Stereocentre {vertex.id} has {len(neighbours)} neighbours; no wedge drawn")
            continue

        order = rank_neighbours(state, vertex.id)
        atom.priority = [neighbours[i] for i in order]

        rotation = -1 if atom.chirality_marker == "@" else 1
        rs = "R" if parity_of_permutation(order) * rotation == 1 else "S"

        lifted: Dict[int, float] = {}
        if atom.has_hydrogen:
            lifted[neighbours[order[-1]]] = WEDGE_HEIGHT["down"]

        offset = 1 if atom.has_hydrogen else 0
        candidates: List[Tuple[int, int]] = []
        for index in order[:len(order) - offset]:
            neighbour = graph.vertices[neighbours[index]]
            score = 0 if neighbour.atom.is_stereo_center else 100000
            score += 0 if are_in_same_ring(neighbour, vertex) else 10000
            score += 1000 if neighbour.atom.is_hetero_atom() else 0
            score -= 1000 if neighbour.atom.subtree_depth == 0 else 0
            score += 1000 - neighbour.atom.subtree_depth
            candidates.append((score, neighbour.id))
        candidates.sort(key=lambda item: -item[0])

        show_hydrogen = len(atom.rings) > 1 and atom.has_hydrogen
        if not show_hydrogen:
            lifted[candidates[0][1]] = WEDGE_HEIGHT["up"]

        # A negative volume reads as R.
        volume = wedge_handedness(state, vertex.id, lifted)
        if volume != 0.0 and (volume < 0.0) != (rs == "R"):
            lifted = {nid: -z for nid, z in lifted.items()}

        for nid, z in lifted.items():
            graph.get_edge(vertex.id, nid).wedge = "up" if z > 0 else "down"
        if atom.has_hydrogen:
            atom.hydrogen_direction = "up" if lifted[neighbours[order[-1]]] > 0 else "down"

        atom.chirality = rs
        annotated += 1
    logger.debug("Annotated %d stereocentres", annotated)
    return annotated


def wedge_handedness(state: "LayoutState", vertex_id: int,
                     lifted: Optional[Dict[int, float]] = None) -> float:
    """Signed volume spanned by the ranked neighbours of a stereocentre as drawn.

    Bond directions are unit vectors in the drawing plane, with hidden
    neighbours placed on the centre.  They are lifted out of the plane by
    *lifted*: ``+1`` for a wedge towards the viewer, ``-1`` for one
    pointing away.  Without *lifted* the heights come from the wedges
    already on the edges.  With three neighbours the centre stands in for
    the lowest priority one.

    The three highest priorities running clockwise, seen from the viewer
    with the lowest one behind, give a negative volume.  Requires
    :attr:`Atom.priority` to be set.
    """
    graph = state.graph
    vertex = graph.vertices[vertex_id]
    points = []
    for nid in vertex.atom.priority:
        neighbour = graph.vertices[nid]
        direction = Vector2(0.0, 0.0)
        if neighbour.atom.is_drawn:
            direction = subtract(neighbour.position, vertex.position).normalize()
        if lifted is None:
            z = WEDGE_HEIGHT.get(graph.get_edge(vertex_id, nid).wedge, 0.0)
        else:
            z = lifted.get(nid, 0.0)
        points.append((direction.x, direction.y, z))

    if len(points) < 3:
        return 0.0
    lowest = points[-1] if len(points) > 3 else (0.0, 0.0, 0.0)
    return float(np.linalg.det(np.array(points[:3]) - np.array(lowest)))
