"""Kamada-Kawai spring layout for bridged ring systems.

T. Kamada, S. Kawai, "An Algorithm for Drawing General Undirected Graphs",
Information Processing Letters 31(1), 1989.  Only the sub-graph of one
bridged ring is optimised; vertices that already have coordinates are
kept fixed and act as anchors.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np

from .algorithms import subgraph_distance_matrix
from .geometry import Vector2, central_angle, poly_circumradius

if TYPE_CHECKING:
    from .state import LayoutState

logger = logging.getLogger(__name__)

# Radius of the circle the free vertices start on, as a polygon side length.
INITIAL_SIDE_LENGTH = 500.0


@dataclass(frozen=True)
class KKResult:
    iterations: int
    energy: float
    converged: bool


def spring_matrices(distances: np.ndarray, bond_length: float) -> Tuple[np.ndarray, np.ndarray]:
    """Ideal lengths ``l = L·d`` and strengths ``k = L/d²`` from graph distances.

    Unreachable pairs (``inf``) and the diagonal get zero length and strength.
    """
    d = np.where(np.isfinite(distances), distances, 0.0)
    lengths = bond_length * d
    safe = np.where(d > 0, d, 1.0)
    strengths = np.where(d > 0, bond_length / (safe * safe), 0.0)
    return lengths, strengths


def _row_forces(
    index: int,
    positions: np.ndarray,
    lengths: np.ndarray,
    strengths: np.ndarray,
) -> np.ndarray:
    """Spring force exerted on vertex *index* by every other vertex."""
    delta = positions[index] - positions
    dist = np.hypot(delta[:, 0], delta[:, 1])
    valid = (dist > 0) & (strengths[index] > 0)
    valid[index] = False
    inv = np.zeros_like(dist)
    inv[valid] = 1.0 / dist[valid]
    k = strengths[index][:, None]
    l = lengths[index][:, None]
    forces = k * (delta - l * delta * inv[:, None])
    forces[~valid] = 0.0
    return forces


def _newton_step(
    index: int,
    gradient: np.ndarray,
    positions: np.ndarray,
    lengths: np.ndarray,
    strengths: np.ndarray,
) -> np.ndarray:
    delta = positions[index] - positions
    d2 = (delta * delta).sum(axis=1)
    mask = d2 > 0
    mask[index] = False

    dx = delta[mask, 0]
    dy = delta[mask, 1]
    k = strengths[index][mask]
    l = lengths[index][mask]
    inv3 = d2[mask] ** -1.5

    dxx = float(np.sum(k * (1.0 - l * dy * dy * inv3)))
    dyy = float(np.sum(k * (1.0 - l * dx * dx * inv3)))
    dxy = float(np.sum(k * (l * dx * dy * inv3)))
    dxx = dxx or 0.1
    dyy = dyy or 0.1
    dxy = dxy or 0.1

    gx, gy = float(gradient[0]), float(gradient[1])
    denominator = dxy / dxx - dyy / dxy
    if denominator == 0:
        return np.zeros(2)
    step_y = (gx / dxx + gy / dxy) / denominator
    step_x = -(dxy * step_y + gx) / dxx
    return np.array([step_x, step_y])


def kamada_kawai_layout(
    state: "LayoutState",
    vertex_ids: Sequence[int],
    center: Vector2,
) -> KKResult:
    """Lay out *vertex_ids* by minimising the Kamada-Kawai spring energy.

    Parameters
    ----------
    state : LayoutState
        Run state; thresholds and caps come from ``state.options``.
    vertex_ids : sequence of int
        Members of the bridged ring.  Distances are measured over the
        bonds among these vertices only.
    center : Vector2
        Centre of the starting circle for vertices without coordinates.

    Returns
    -------
    KKResult
        Iterations used, the final largest squared gradient and whether
        the outer threshold was reached.  Hitting a cap is not an error.
    """
    graph = state.graph
    opts = state.options
    n = len(vertex_ids)
    if n == 0:
        return KKResult(0, 0.0, True)

    lengths, strengths = spring_matrices(
        subgraph_distance_matrix(graph, vertex_ids), opts.bond_length,
    )

    radius = poly_circumradius(INITIAL_SIDE_LENGTH, max(n, 3))
    step = central_angle(n)
    positions = np.zeros((n, 2))
    fixed = np.zeros(n, dtype=bool)
    angle = 0.0
    for idx in range(n - 1, -1, -1):
        vertex = graph.vertices[vertex_ids[idx]]
        if vertex.positioned:
            positions[idx] = (vertex.position.x, vertex.position.y)
            fixed[idx] = True
        else:
            positions[idx] = (center.x + math.cos(angle) * radius,
                              center.y + math.sin(angle) * radius)
        angle += step
    movable = np.flatnonzero(~fixed)

    forces = np.stack([_row_forces(i, positions, lengths, strengths) for i in range(n)])
    gradients = forces.sum(axis=1)

    energy = opts.kk_max_energy
    iteration = 0
    while energy > opts.kk_threshold and iteration < opts.kk_max_iteration:
        iteration += 1
        if movable.size == 0:
            energy = 0.0
            break
        magnitudes = (gradients[movable] ** 2).sum(axis=1)
        best = int(np.argmax(magnitudes))
        index = int(movable[best])
        energy = float(magnitudes[best])
        gradient = gradients[index].copy()

        delta = energy
        inner = 0
        while delta > opts.kk_inner_threshold and inner < opts.kk_max_inner_iteration:
            inner += 1
            displacement = _newton_step(index, gradient, positions, lengths, strengths)
            if not np.all(np.isfinite(displacement)):
                break
            positions[index] += displacement

            row = _row_forces(index, positions, lengths, strengths)
            forces[index] = row
            forces[:, index] = -row
            gradients = forces.sum(axis=1)
            gradient = gradients[index].copy()
            delta = float(gradient @ gradient)

    converged = energy <= opts.kk_threshold
    if not converged:
        logger.debug(
            "Kamada-Kawai stopped after %d iterations with energy %.4g", iteration, energy,
        )

    for idx, vid in enumerate(vertex_ids):
        vertex = graph.vertices[vid]
        vertex.position.set(positions[idx, 0], positions[idx, 1])
        vertex.positioned = True
        vertex.force_positioned = True

    return KKResult(iteration, energy, converged)
