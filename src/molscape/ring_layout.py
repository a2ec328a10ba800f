"""Placement of ring members.

Simple rings go on a regular polygon; bridged rings are handed to
:func:`~molscape.kamada_kawai.kamada_kawai_layout`.  Fused and spiro
neighbours and exocyclic substituents are not placed here directly:
:func:`create_ring` returns follow-up tasks that the positioning engine
runs in order on its work stack.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Union

from .geometry import Vector2, apothem, midpoint, normals, poly_circumradius, subtract
from .kamada_kawai import kamada_kawai_layout
from .models import Ring
from .ring_manager import connection_vertices, ordered_neighbours, set_ring_center

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

# Guard against malformed ring membership when walking a ring.
MAX_RING_WALK = 100


# ── follow-up tasks ─────────────────────────────────────────────────


@dataclass
class RingTask:
    """Lay out *ring_id* around *center*, entering at *start_id*."""

    ring_id: int
    center: Optional[Vector2]
    start_id: Optional[int]
    previous_id: Optional[int] = None


@dataclass
class JunctionTask:
    """Place the neighbour ring sharing one or two atoms with a placed ring.

    The centre is computed when the task runs, from the positions at
    that moment.
    """

    ring_id: int
    neighbour_id: int


@dataclass
class ExocyclicTask:
    """Grow the substituent *vertex_id* off ring member *member_id*."""

    vertex_id: int
    member_id: int


Task = Union[RingTask, JunctionTask, ExocyclicTask]


# ── ring walking ────────────────────────────────────────────────────


def next_in_ring(state: "LayoutState", vertex_id: int, ring_id: int,
                 previous_id: Optional[int]) -> Optional[int]:
    """First neighbour of *vertex_id* in *ring_id* that is not *previous_id*."""
    for nid in state.graph.vertices[vertex_id].neighbours:
        if nid != previous_id and ring_id in state.graph.vertices[nid].atom.rings:
            return nid
    return None


def walk_ring(state: "LayoutState", ring: Ring, start_id: int,
              previous_id: Optional[int] = None) -> List[int]:
    """Members of *ring* in walking order from *start_id*, leaving away from *previous_id*."""
    order: List[int] = []
    current: Optional[int] = start_id
    while current is not None and len(order) < MAX_RING_WALK:
        order.append(current)
        following = next_in_ring(state, current, ring.id, previous_id)
        previous_id = current
        current = None if following == start_id else following
    return order


# ═══════════════════════════════════════════════════════════════════
# Ring creation
# ═══════════════════════════════════════════════════════════════════


def create_ring(
    state: "LayoutState",
    ring: Ring,
    center: Optional[Vector2] = None,
    start_id: Optional[int] = None,
    previous_id: Optional[int] = None,
) -> List[Task]:
    """Position the members of *ring* and return the follow-up tasks.

    Parameters
    ----------
    state : LayoutState
        Run state.
    ring : Ring
        Ring to lay out; already positioned rings are skipped.
    center : Vector2, optional
        Centre of the polygon.  Defaults to the origin.
    start_id : int, optional
        Member the polygon starts from; its current position fixes the
        starting angle.  A non-member start is reset and ``members[0]``
        is used instead.
    previous_id : int, optional
        Member the walk must not leave through.

    Returns
    -------
    list of task
        Junction tasks for unplaced neighbour rings (most shared atoms
        first), then one exocyclic task per unplaced substituent.
    """
    if ring.positioned:
        return []

    graph = state.graph
    bond_length = state.options.bond_length
    center = center if center is not None else Vector2(0.0, 0.0)
    neighbours = ordered_neighbours(state, ring)

    starting_angle = 0.0
    if start_id is not None:
        starting_angle = subtract(graph.vertices[start_id].position, center).angle()

    radius = poly_circumradius(bond_length, ring.size)
    step = ring.central_angle()

    walk_start = start_id
    if start_id not in ring.members:
        if start_id is not None:
            graph.vertices[start_id].positioned = False
        walk_start = ring.members[0]

    if ring.is_bridged:
        kamada_kawai_layout(state, list(ring.members), center)
        ring.positioned = True
        set_ring_center(state, ring)
        center = ring.center
        for sub in ring.rings:
            set_ring_center(state, sub)
    else:
        angle = starting_angle
        for vid in walk_ring(state, ring, walk_start, previous_id):
            vertex = graph.vertices[vid]
            if not vertex.positioned:
                vertex.set_position(center.x + math.cos(angle) * radius,
                                    center.y + math.sin(angle) * radius)
            angle += step
            vertex.angle = angle
            vertex.positioned = True

    ring.positioned = True
    ring.center = center

    tasks: List[Task] = [JunctionTask(ring.id, nb) for nb in neighbours]
    for member_id in ring.members:
        for nid in graph.vertices[member_id].neighbours:
            tasks.append(ExocyclicTask(nid, member_id))
    return tasks


def resolve_junction(state: "LayoutState", task: JunctionTask) -> List[Task]:
    """Compute the centre of a fused or spiro neighbour and schedule it."""
    ring = state.get_ring(task.ring_id)
    neighbour = state.get_ring(task.neighbour_id)
    if neighbour.positioned:
        return []

    graph = state.graph
    bond_length = state.options.bond_length
    shared = connection_vertices(state, ring.id, neighbour.id)
    center = ring.center

    if len(shared) == 2:
        ring.is_fused = True
        neighbour.is_fused = True
        vertex_a = graph.vertices[shared[0]]
        vertex_b = graph.vertices[shared[1]]
        mid = midpoint(vertex_a.position, vertex_b.position)
        normal_a, normal_b = normals(vertex_a.position, vertex_b.position)
        distance = apothem(poly_circumradius(bond_length, neighbour.size), neighbour.size)
        normal_a.normalize().multiply_scalar(distance).add(mid)
        normal_b.normalize().multiply_scalar(distance).add(mid)

        next_center = normal_a
        if subtract(center, normal_b).length_sq() > subtract(center, normal_a).length_sq():
            next_center = normal_b

        pos_a = subtract(vertex_a.position, next_center)
        pos_b = subtract(vertex_b.position, next_center)
        if pos_a.clockwise(pos_b) == -1:
            return [RingTask(neighbour.id, next_center, vertex_a.id, vertex_b.id)]
        return [RingTask(neighbour.id, next_center, vertex_b.id, vertex_a.id)]

    if len(shared) == 1:
        ring.is_spiro = True
        neighbour.is_spiro = True
        vertex_a = graph.vertices[shared[0]]
        next_center = subtract(center, vertex_a.position).invert().normalize()
        next_center.multiply_scalar(poly_circumradius(bond_length, neighbour.size))
        next_center.add(vertex_a.position)
        return [RingTask(neighbour.id, next_center, vertex_a.id)]

    logger.debug("Rings %d and %d share %d atoms; not placed as a junction",
                 ring.id, neighbour.id, len(shared))
    return []
