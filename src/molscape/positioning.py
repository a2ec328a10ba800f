"""Tree-walking placement of every atom.

Placement starts at a ring atom when there is one, walks the graph bond by
bond and delegates ring interiors to :mod:`molscape.ring_layout`.  The
walk runs from an explicit work stack; each handler returns its follow-up
tasks in the order they must run, which reproduces a depth-first
recursion without its depth limit.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from .algorithms import connected_components, tree_depth
from .geometry import Vector2, poly_circumradius, subtract, to_rad
from .models import Vertex
from .ring_layout import (
    ExocyclicTask,
    JunctionTask,
    RingTask,
    create_ring,
    resolve_junction,
)
from .ring_manager import are_in_same_ring

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

# 60 degrees, the default turn of a zig-zag chain.
CHAIN_ANGLE = 1.0472


@dataclass
class BondTask:
    """Place *vertex_id* one bond away from *previous_id* at the running *angle*.

    *assign* holds ``(vertex_id, angle)`` pairs written to ``Vertex.angle``
    just before the task runs.
    """

    vertex_id: int
    previous_id: Optional[int] = None
    angle: float = 0.0
    origin_shortest: bool = False
    skip_positioning: bool = False
    assign: Tuple[Tuple[int, float], ...] = field(default_factory=tuple)


Task = Union[BondTask, RingTask, JunctionTask, ExocyclicTask]


# ═══════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════


def position(state: "LayoutState") -> None:
    """Assign coordinates to every vertex of ``state.graph``.

    Each connected component is seeded separately; later components are
    shifted to the right of what has been drawn so far.
    """
    graph = state.graph
    if not graph.vertices:
        return

    components = connected_components(graph)
    for index, component in enumerate(components):
        start = _start_vertex(state, component)
        _run(state, [BondTask(start)])
        if index > 0:
            _shift_component(state, component, components[:index])
    logger.debug("Positioned %d vertices in %d component(s)", len(graph.vertices), len(components))


def _start_vertex(state: "LayoutState", component: List[int]) -> int:
    members = set(component)
    start: Optional[int] = None
    for vid in component:
        if state.graph.vertices[vid].atom.bridged_ring is not None:
            start = vid
            break
    for ring in state.rings:
        if ring.is_bridged and ring.members[0] in members:
            start = ring.members[0]
    if start is None:
        for ring in state.rings:
            if ring.members[0] in members:
                start = ring.members[0]
                break
    if start is None:
        start = component[0]
    return start


def _shift_component(state: "LayoutState", component: List[int], placed: List[List[int]]) -> None:
    vertices = state.graph.vertices
    gap = 2.0 * state.options.bond_length
    right = max(vertices[vid].position.x for group in placed for vid in group)
    left = min(vertices[vid].position.x for vid in component)
    offset = Vector2(right + gap - left, 0.0)

    members = set(component)
    moved = set()
    for vid in component:
        position = vertices[vid].position
        if id(position) not in moved:
            position.add(offset)
            moved.add(id(position))
    for ring in state.rings:
        if ring.members[0] in members and id(ring.center) not in moved:
            ring.center.add(offset)
            moved.add(id(ring.center))


def _run(state: "LayoutState", stack: List[Task]) -> None:
    graph = state.graph
    while stack:
        task = stack.pop()
        if isinstance(task, BondTask):
            follow = create_next_bond(state, task)
        elif isinstance(task, RingTask):
            start = task.start_id
            follow = create_ring(state, state.get_ring(task.ring_id), task.center,
                                 start, task.previous_id)
        elif isinstance(task, JunctionTask):
            follow = resolve_junction(state, task)
        else:
            vertex = graph.vertices[task.vertex_id]
            if vertex.positioned:
                continue
            vertex.atom.is_connected_to_ring = True
            follow = [BondTask(task.vertex_id, task.member_id, 0.0)]
        stack.extend(reversed(follow))


# ═══════════════════════════════════════════════════════════════════
# One bond
# ═══════════════════════════════════════════════════════════════════


def create_next_bond(state: "LayoutState", task: BondTask) -> List[Task]:
    """Place one vertex and return the tasks that grow the drawing from it."""
    graph = state.graph
    for vid, angle in task.assign:
        graph.vertices[vid].angle = angle

    vertex = graph.vertices[task.vertex_id]
    previous = graph.vertices[task.previous_id] if task.previous_id is not None else None
    if vertex.positioned and not task.skip_positioning:
        return []

    config_set = _track_double_bond_config(state, vertex, previous)

    if not task.skip_positioning:
        _place_vertex(state, vertex, previous, task.angle)

    atom = vertex.atom
    if atom.bridged_ring is not None:
        return _enter_ring(state, vertex, atom.bridged_ring)
    if atom.rings:
        return _enter_ring(state, vertex, atom.rings[0])
    return _branch(state, vertex, previous, task.origin_shortest, config_set)


def _track_double_bond_config(state: "LayoutState", vertex: Vertex, previous: Optional[Vertex]) -> bool:
    if previous is None:
        return False
    edge = state.graph.get_edge(vertex.id, previous.id)
    if edge.bond_type not in ("/", "\\"):
        return False
    state.double_bond_config_count += 1
    if state.double_bond_config_count % 2 != 1 or state.double_bond_config is not None:
        return False

    state.double_bond_config = edge.bond_type
    # A branch hanging off the very first atom is read in reverse.
    if previous.parent_id is None and vertex.atom.branch_bond:
        state.double_bond_config = "\\" if edge.bond_type == "/" else "/"
    return True


def _place_vertex(state: "LayoutState", vertex: Vertex, previous: Optional[Vertex], angle: float) -> None:
    graph = state.graph
    bond_length = state.options.bond_length

    if previous is None:
        vertex.previous_position = Vector2(bond_length, 0.0).rotate(to_rad(-60))
        vertex.set_position(bond_length, 0.0)
        vertex.angle = to_rad(-60)
        if vertex.atom.bridged_ring is None:
            vertex.positioned = True
        return

    if previous.atom.rings:
        joined: Optional[Vertex] = None
        if previous.atom.bridged_ring is None and len(previous.atom.rings) > 1:
            for nid in previous.neighbours:
                neighbour = graph.vertices[nid]
                if all(r in neighbour.atom.rings for r in previous.atom.rings):
                    joined = neighbour
                    break

        if joined is None:
            outward = Vector2(0.0, 0.0)
            for nid in previous.neighbours:
                neighbour = graph.vertices[nid]
                if neighbour.positioned and are_in_same_ring(neighbour, previous):
                    outward.add(subtract(neighbour.position, previous.position))
            outward.invert().normalize().multiply_scalar(bond_length).add(previous.position)
            target = outward
        else:
            target = joined.position.clone().rotate_around(math.pi, previous.position)
    else:
        target = Vector2(bond_length, 0.0).rotate(angle).add(previous.position)

    vertex.previous_position = previous.position
    vertex.position.set_from(target)
    vertex.positioned = True


def _enter_ring(state: "LayoutState", vertex: Vertex, ring_id: int) -> List[Task]:
    ring = state.get_ring(ring_id)
    if ring.positioned:
        return []
    direction = subtract(vertex.previous_position, vertex.position).invert().normalize()
    direction.multiply_scalar(poly_circumradius(state.options.bond_length, ring.size))
    center = direction.add(vertex.position)
    return [RingTask(ring.id, center, vertex.id)]


# ── non-ring branching ──────────────────────────────────────────────


def _branch(
    state: "LayoutState",
    vertex: Vertex,
    previous: Optional[Vertex],
    origin_shortest: bool,
    config_set: bool,
) -> List[Task]:
    graph = state.graph
    neighbours = graph.drawn_neighbours(vertex.id)
    if previous is not None:
        neighbours = [n for n in neighbours if n != previous.id]
    previous_angle = vertex.incoming_angle()

    if len(neighbours) == 1:
        return _one_neighbour(state, vertex, previous, neighbours[0], previous_angle,
                              origin_shortest, config_set)
    if len(neighbours) == 2:
        return _two_neighbours(state, vertex, previous, neighbours, previous_angle)
    if neighbours:
        return _many_neighbours(state, vertex, previous, neighbours, previous_angle)
    return []


def _one_neighbour(
    state: "LayoutState",
    vertex: Vertex,
    previous: Optional[Vertex],
    next_id: int,
    previous_angle: float,
    origin_shortest: bool,
    config_set: bool,
) -> List[Task]:
    graph = state.graph
    next_vertex = graph.vertices[next_id]
    prev_edge = graph.get_edge(vertex.id, previous.id) if previous is not None else None
    next_edge = graph.get_edge(vertex.id, next_id)

    if prev_edge is not None and prev_edge.weight + next_edge.weight >= 4:
        # Cumulated or triple bonds continue straight.
        prev_edge.center = True
        next_edge.center = True
        vertex.atom.draw_explicit = False
        next_vertex.atom.draw_explicit = True
        next_vertex.angle = 0.0
        return [BondTask(next_id, vertex.id, previous_angle)]

    if previous is not None and previous.atom.rings:
        bond_length = state.options.bond_length
        proposed_a = Vector2(bond_length, 0.0).rotate(to_rad(60)).add(vertex.position)
        proposed_b = Vector2(bond_length, 0.0).rotate(-to_rad(60)).add(vertex.position)
        com = center_of_mass(state)
        if proposed_a.distance_sq(com) < proposed_b.distance_sq(com):
            next_vertex.angle = -to_rad(60)
        else:
            next_vertex.angle = to_rad(60)
        return [BondTask(next_id, vertex.id, previous_angle + next_vertex.angle)]

    a = vertex.angle
    if previous is not None and len(previous.neighbours) > 3:
        if a is not None and a > 0:
            a = min(CHAIN_ANGLE, a)
        elif a is not None and a < 0:
            a = max(-CHAIN_ANGLE, a)
        else:
            a = CHAIN_ANGLE
    elif not a:
        a = last_angle(state, vertex.id) or CHAIN_ANGLE

    if previous is not None and not config_set:
        bond_type = next_edge.bond_type
        if bond_type == "/":
            if state.double_bond_config == "\\":
                a = -a
            state.double_bond_config = None
        elif bond_type == "\\":
            if state.double_bond_config == "/":
                a = -a
            state.double_bond_config = None

    next_vertex.angle = a if origin_shortest else -a
    return [BondTask(next_id, vertex.id, previous_angle + next_vertex.angle)]


def _two_neighbours(
    state: "LayoutState",
    vertex: Vertex,
    previous: Optional[Vertex],
    neighbours: List[int],
    previous_angle: float,
) -> List[Task]:
    graph = state.graph
    a = vertex.angle or CHAIN_ANGLE

    depth_a = tree_depth(graph, neighbours[0], vertex.id)
    depth_b = tree_depth(graph, neighbours[1], vertex.id)
    left = graph.vertices[neighbours[0]]
    right = graph.vertices[neighbours[1]]
    left.atom.subtree_depth = depth_a
    right.atom.subtree_depth = depth_b

    depth_c = tree_depth(graph, previous.id if previous is not None else None, vertex.id)
    if previous is not None:
        previous.atom.subtree_depth = depth_c

    cis, trans = 0, 1
    if right.atom.element == "C" and left.atom.element != "C" and depth_b > 1 and depth_a < 5:
        cis, trans = 1, 0
    elif right.atom.element != "C" and left.atom.element == "C" and depth_a > 1 and depth_b < 5:
        cis, trans = 0, 1
    elif depth_b > depth_a:
        cis, trans = 1, 0

    cis_vertex = graph.vertices[neighbours[cis]]
    trans_vertex = graph.vertices[neighbours[trans]]
    origin_shortest = depth_c < depth_a and depth_c < depth_b

    trans_vertex.angle = a
    cis_vertex.angle = -a
    config = state.double_bond_config
    if config is not None and trans_vertex.atom.branch_bond == config:
        trans_vertex.angle = -a
        cis_vertex.angle = a

    return [
        BondTask(trans_vertex.id, vertex.id, previous_angle + trans_vertex.angle, origin_shortest),
        BondTask(cis_vertex.id, vertex.id, previous_angle + cis_vertex.angle, origin_shortest),
    ]


def _many_neighbours(
    state: "LayoutState",
    vertex: Vertex,
    previous: Optional[Vertex],
    neighbours: List[int],
    previous_angle: float,
) -> List[Task]:
    graph = state.graph
    ordered: List[Vertex] = []
    for nid in neighbours:
        neighbour = graph.vertices[nid]
        neighbour.atom.subtree_depth = tree_depth(graph, nid, vertex.id)
        ordered.append(neighbour)
    # Longest subtree first; ties keep input order.
    ordered.sort(key=lambda v: -v.atom.subtree_depth)

    if (
        len(ordered) == 3
        and previous is not None
        and not previous.atom.rings
        and not any(v.atom.rings for v in ordered)
        and ordered[2].atom.subtree_depth == 1
        and ordered[1].atom.subtree_depth == 1
        and ordered[0].atom.subtree_depth > 1
    ):
        base = vertex.angle or 0.0
        sign = 1.0 if base >= 0 else -1.0
        ordered[0].angle = -base
        ordered[1].angle = sign * to_rad(30)
        ordered[2].angle = sign * to_rad(90)
        return [BondTask(v.id, vertex.id, previous_angle + v.angle) for v in ordered]

    total = len(ordered) + (1 if previous is not None else 0)
    delta = 2.0 * math.pi / total
    angle = delta
    tasks: List[Task] = []
    index = 0
    if len(ordered) % 2 != 0:
        tasks.append(BondTask(ordered[0].id, vertex.id, previous_angle,
                              assign=((ordered[0].id, 0.0),)))
        index = 1
    else:
        angle /= 2.0

    while index < len(ordered):
        first = ordered[index]
        second = ordered[index + 1]
        pair = ((first.id, angle), (second.id, -angle))
        tasks.append(BondTask(first.id, vertex.id, previous_angle + angle, assign=pair))
        tasks.append(BondTask(second.id, vertex.id, previous_angle - angle))
        angle += delta
        index += 2
    return tasks


# ── helpers ─────────────────────────────────────────────────────────


def last_angle(state: "LayoutState", vertex_id: Optional[int]) -> float:
    """Most recent non-zero chain angle walking up the input tree; 0 at a ring."""
    vertices = state.graph.vertices
    while vertex_id:
        vertex = vertices[vertex_id]
        if vertex.atom.rings:
            return 0.0
        if vertex.angle:
            return vertex.angle
        vertex_id = vertex.parent_id
    return 0.0


def center_of_mass(state: "LayoutState") -> Vector2:
    total = Vector2(0.0, 0.0)
    count = 0
    for vertex in state.graph.vertices:
        if vertex.positioned:
            total.add(vertex.position)
            count += 1
    return total.divide(count)
