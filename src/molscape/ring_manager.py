"""Ring bookkeeping: perception into :class:`Ring` objects, connections,
the reversible backup taken before bridged rings are merged, and small
membership queries used by the layout stages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from .geometry import Vector2, centroid
from .models import Ring, RingConnection, Vertex
from .rings import find_rings
from .state import RingSnapshot

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Perception
# ═══════════════════════════════════════════════════════════════════


def init_rings(state: "LayoutState") -> None:
    """Create rings and connections, anchor each ring and take the backup.

    Bridged systems are *not* merged here; see
    :func:`molscape.bridged.process_bridged_rings`.
    """
    graph = state.graph
    for members in find_rings(graph):
        ring_id = state.add_ring(Ring(id=-1, members=list(members)))
        for vid in members:
            graph.vertices[vid].atom.rings.append(ring_id)

    for i, first in enumerate(state.rings[:-1]):
        for second in state.rings[i + 1:]:
            second_members = set(second.members)
            shared = [vid for vid in first.members if vid in second_members]
            if shared:
                state.add_ring_connection(
                    RingConnection(id=-1, first_ring_id=first.id,
                                   second_ring_id=second.id, vertices=shared)
                )

    for ring in state.rings:
        ring.neighbours = ring_neighbours(state, ring.id)
        graph.vertices[ring.members[0]].atom.add_anchored_ring(ring.id)

    backup_ring_information(state)
    logger.debug("Perceived %d rings with %d connections",
                 len(state.rings), len(state.ring_connections))


def ring_neighbours(state: "LayoutState", ring_id: int) -> List[int]:
    result: List[int] = []
    for connection in state.ring_connections:
        if connection.first_ring_id == ring_id:
            result.append(connection.second_ring_id)
        elif connection.second_ring_id == ring_id:
            result.append(connection.first_ring_id)
    return result


def connection_vertices(state: "LayoutState", ring_a: int, ring_b: int) -> List[int]:
    for connection in state.ring_connections:
        if connection.contains_ring(ring_a) and connection.contains_ring(ring_b):
            return list(connection.vertices)
    return []


def is_bridge_connection(state: "LayoutState", connection: RingConnection) -> bool:
    """More than two shared atoms, or a shared atom sitting in more than two rings."""
    if len(connection.vertices) > 2:
        return True
    return any(len(state.graph.vertices[vid].atom.rings) > 2 for vid in connection.vertices)


def ordered_neighbours(state: "LayoutState", ring: Ring) -> List[int]:
    """Neighbour rings by descending number of shared atoms; ties keep order."""
    counted = [
        (len(connection_vertices(state, ring.id, nb)), nb) for nb in ring.neighbours
    ]
    return [nb for _, nb in sorted(counted, key=lambda item: -item[0])]


# ═══════════════════════════════════════════════════════════════════
# Backup / restore
# ═══════════════════════════════════════════════════════════════════


def backup_ring_information(state: "LayoutState") -> None:
    for vertex in state.graph.vertices:
        vertex.atom.backup_rings()
    state.snapshot = RingSnapshot(
        rings=tuple(r.clone() for r in state.rings),
        connections=tuple(c.clone() for c in state.ring_connections),
        vertex_rings=tuple(tuple(v.atom.rings) for v in state.graph.vertices),
    )


def restore_ring_information(state: "LayoutState") -> None:
    """Swap the pre-merge rings back in, keeping the geometry found during layout.

    Rings that survived consolidation take their live centre and flags.
    Rings consumed by a bridged ring take the centre recomputed for their
    clone inside that bridged ring.
    """
    snapshot = state.snapshot
    if snapshot is None:
        return

    live = {ring.id: ring for ring in state.rings}
    sub_rings = {}
    for bridged in state.bridged_rings():
        for sub in bridged.rings:
            sub_rings[sub.id] = (sub, bridged)

    restored: List[Ring] = []
    for original in snapshot.rings:
        ring = original.clone()
        if ring.id in live:
            current = live[ring.id]
            ring.center = current.center
            ring.positioned = current.positioned
            ring.is_fused = current.is_fused
            ring.is_spiro = current.is_spiro
        elif ring.id in sub_rings:
            sub, bridged = sub_rings[ring.id]
            ring.center = sub.center
            ring.positioned = bridged.positioned
            ring.is_part_of_bridged = True
        restored.append(ring)

    state.rings = restored
    state.ring_connections = [c.clone() for c in snapshot.connections]
    for vertex, rings in zip(state.graph.vertices, snapshot.vertex_rings):
        vertex.atom.rings = list(rings)


# ═══════════════════════════════════════════════════════════════════
# Geometry helpers
# ═══════════════════════════════════════════════════════════════════


def set_ring_center(state: "LayoutState", ring: Ring) -> None:
    ring.center = centroid(state.graph.vertices[vid].position for vid in ring.members)


def get_subring_center(ring: Ring, vertex: Vertex) -> Vector2:
    """Centre of the smallest original ring of *vertex* inside bridged *ring*."""
    center = ring.center
    smallest: Optional[int] = None
    for ring_id in vertex.atom.original_rings:
        for sub in ring.rings:
            if sub.id == ring_id and (smallest is None or sub.size < smallest):
                center = sub.center
                smallest = sub.size
    return center


# ═══════════════════════════════════════════════════════════════════
# Membership queries
# ═══════════════════════════════════════════════════════════════════


def edge_ring_count(state: "LayoutState", edge_id: int) -> int:
    edge = state.graph.edges[edge_id]
    a = state.graph.vertices[edge.source_id].atom
    b = state.graph.vertices[edge.target_id].atom
    return min(len(a.rings), len(b.rings))


def common_rings(vertex_a: Vertex, vertex_b: Vertex) -> List[int]:
    rings_b = vertex_b.atom.rings
    return [r for r in vertex_a.atom.rings if r in rings_b]


def are_in_same_ring(vertex_a: Vertex, vertex_b: Vertex) -> bool:
    rings_b = vertex_b.atom.rings
    return any(r in rings_b for r in vertex_a.atom.rings)


def common_ringbond_neighbour(state: "LayoutState", vertex: Vertex) -> Optional[Vertex]:
    """First neighbour that belongs to every ring *vertex* belongs to."""
    for nid in vertex.neighbours:
        neighbour = state.graph.vertices[nid]
        if all(r in neighbour.atom.rings for r in vertex.atom.rings):
            return neighbour
    return None


def is_ring_aromatic(state: "LayoutState", ring: Ring) -> bool:
    return all(state.graph.vertices[vid].atom.aromatic for vid in ring.members)
