"""Consolidation of bridged ring systems.

Rings joined through a bridge (more than two shared atoms, or a shared
atom in more than two rings) cannot be drawn as regular polygons.  They
are merged into a single synthetic ring that the layout places with
Kamada-Kawai; the merge is undone by
:func:`molscape.ring_manager.restore_ring_information`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from .models import Ring
from .ring_manager import edge_ring_count, is_bridge_connection

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)


def is_bridge(state: "LayoutState", ring_a: int, ring_b: int) -> bool:
    for connection in state.ring_connections:
        if connection.contains_ring(ring_a) and connection.contains_ring(ring_b):
            return is_bridge_connection(state, connection)
    return False


def is_part_of_bridged_ring(state: "LayoutState", ring_id: int) -> bool:
    return any(
        c.contains_ring(ring_id) and is_bridge_connection(state, c)
        for c in state.ring_connections
    )


def bridged_group(state: "LayoutState", ring_id: int) -> List[int]:
    """All rings reachable from *ring_id* through bridge connections, in visit order."""
    involved: List[int] = []
    stack = [ring_id]
    while stack:
        current = stack.pop()
        if current in involved:
            continue
        involved.append(current)
        ring = state.get_ring(current)
        candidates = [
            n for n in ring.neighbours
            if n not in involved and n != current and is_bridge(state, current, n)
        ]
        stack.extend(reversed(candidates))
    return involved


def consolidate(state: "LayoutState", ring_ids: List[int]) -> Ring:
    """Merge *ring_ids* into one bridged ring and rewire the bookkeeping.

    The source rings stay registered; the caller removes them.
    """
    graph = state.graph
    vertices: List[int] = []
    neighbours: List[int] = []
    for ring_id in ring_ids:
        ring = state.get_ring(ring_id)
        ring.is_part_of_bridged = True
        for vid in ring.members:
            if vid not in vertices:
                vertices.append(vid)
        for nb in ring.neighbours:
            if nb not in ring_ids and nb not in neighbours:
                neighbours.append(nb)

    members: List[int] = []
    leftovers: List[int] = []
    for vid in vertices:
        rings = graph.vertices[vid].atom.rings
        shared = [r for r in ring_ids if r in rings]
        if len(rings) == 1 or len(shared) == 1:
            members.append(vid)
        else:
            leftovers.append(vid)

    for vid in leftovers:
        atom = graph.vertices[vid].atom
        on_perimeter = any(edge_ring_count(state, e.id) == 1 for e in graph.edges_of(vid))
        if on_perimeter:
            atom.is_bridge_node = True
        else:
            atom.is_bridge = True
        members.append(vid)

    bridged = Ring(id=-1, members=members)
    state.add_ring(bridged)
    bridged.is_bridged = True
    bridged.neighbours = list(neighbours)
    bridged.rings = [state.get_ring(r).clone() for r in ring_ids]

    for vid in members:
        atom = graph.vertices[vid].atom
        atom.bridged_ring = bridged.id
        atom.rings = [r for r in atom.rings if r not in ring_ids]
        atom.rings.append(bridged.id)

    for i, first in enumerate(ring_ids):
        for second in ring_ids[i + 1:]:
            state.remove_ring_connections_between(first, second)

    for nb in neighbours:
        for connection_id in state.ring_connections_to(nb, ring_ids):
            state.get_ring_connection(connection_id).update_other(bridged.id, nb)
        state.get_ring(nb).neighbours.append(bridged.id)

    logger.debug("Merged rings %s into bridged ring %d (%d members)",
                 ring_ids, bridged.id, len(members))
    return bridged


def process_bridged_rings(state: "LayoutState") -> int:
    """Consolidate bridged systems until none is left; return how many were built."""
    built = 0
    while state.rings:
        candidate = -1
        for ring in state.rings:
            if is_part_of_bridged_ring(state, ring.id) and not ring.is_bridged:
                candidate = ring.id
        if candidate == -1:
            break

        involved = bridged_group(state, candidate)
        consolidate(state, involved)
        built += 1
        for ring_id in involved:
            state.remove_ring(ring_id)
    return built
