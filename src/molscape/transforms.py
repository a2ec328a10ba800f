"""Whole-drawing transforms applied after layout.

Each transform mutates the positions in a :class:`LayoutState` in place
and moves ring centres with the atoms.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional, Tuple

from .geometry import subtract

if TYPE_CHECKING:
    from .state import LayoutState

# Rotations snap to multiples of 30 degrees.
SNAP_ANGLE = 0.523599


def farthest_pair(state: "LayoutState") -> Optional[Tuple[int, int]]:
    """The two drawn vertices farthest apart, lowest ids first on ties."""
    vertices = [v for v in state.graph.vertices if v.atom.is_drawn]
    best: Optional[Tuple[int, int]] = None
    best_distance = 0.0
    for i, a in enumerate(vertices):
        for b in vertices[i + 1:]:
            distance = a.position.distance_sq(b.position)
            if distance > best_distance:
                best_distance = distance
                best = (a.id, b.id)
    return best


def snap_angle(angle: float) -> float:
    """Round *angle* to a multiple of :data:`SNAP_ANGLE`."""
    remainder = math.fmod(angle, SNAP_ANGLE)
    if remainder < SNAP_ANGLE / 2.0:
        return angle - remainder
    return angle + SNAP_ANGLE - remainder


def rotate_drawing(state: "LayoutState") -> float:
    """Turn the drawing so its longest extent lies horizontally.

    The rotation is about the second vertex of the farthest pair and snaps
    to 30° steps.  Returns the applied angle in radians (0 when fewer than
    two vertices are drawn).
    """
    pair = farthest_pair(state)
    if pair is None:
        return 0.0

    vertices = state.graph.vertices
    a, b = pair
    angle = -subtract(vertices[a].position, vertices[b].position).angle()
    if not math.isfinite(angle):
        return 0.0
    angle = snap_angle(angle)

    pivot = vertices[b].position.clone()
    for vertex in vertices:
        if vertex.id != b:
            vertex.position.rotate_around(angle, pivot)
    for ring in state.rings:
        ring.center.rotate_around(angle, pivot)
    return angle

