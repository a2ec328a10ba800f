"""Planar vector maths used by every layout stage.

Positions are mutable :class:`Vector2` instances.  A vertex keeps a
reference to its predecessor's position object, so rotating a subtree in
place is visible through every holder of that reference.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple


class Vector2:
    """A mutable 2-D vector.  In-place operations return ``self``."""

    __slots__ = ("x", "y")

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        self.x = float(x)
        self.y = float(y)

    def __repr__(self) -> str:
        return f"Vector2({self.x:.4f}, {self.y:.4f})"

    def __iter__(self):
        yield self.x
        yield self.y

    # ── construction ────────────────────────────────────────────────

    def clone(self) -> "Vector2":
        return Vector2(self.x, self.y)

    def set(self, x: float, y: float) -> "Vector2":
        self.x = float(x)
        self.y = float(y)
        return self

    def set_from(self, other: "Vector2") -> "Vector2":
        self.x = other.x
        self.y = other.y
        return self

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    # ── arithmetic (in place) ───────────────────────────────────────

    def add(self, other: "Vector2") -> "Vector2":
        self.x += other.x
        self.y += other.y
        return self

    def subtract(self, other: "Vector2") -> "Vector2":
        self.x -= other.x
        self.y -= other.y
        return self

    def multiply_scalar(self, scalar: float) -> "Vector2":
        self.x *= scalar
        self.y *= scalar
        return self

    def divide(self, scalar: float) -> "Vector2":
        """Divide by *scalar*; dividing by zero leaves the vector unchanged."""
        if scalar == 0:
            return self
        self.x /= scalar
        self.y /= scalar
        return self

    def invert(self) -> "Vector2":
        self.x = -self.x
        self.y = -self.y
        return self

    def normalize(self) -> "Vector2":
        """Scale to unit length.  A zero vector stays zero."""
        length = self.length()
        if length > 0:
            self.x /= length
            self.y /= length
        return self

    # ── measurements ────────────────────────────────────────────────

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def length_sq(self) -> float:
        return self.x * self.x + self.y * self.y

    def distance(self, other: "Vector2") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def distance_sq(self, other: "Vector2") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def clockwise(self, other: "Vector2") -> int:
        """Return -1 if *other* lies clockwise of this vector, 1 if
        anticlockwise and 0 if the two are collinear."""
        a = self.y * other.x
        b = self.x * other.y
        if a > b:
            return -1
        if a == b:
            return 0
        return 1

    def same_side_as(self, a: "Vector2", b: "Vector2", other: "Vector2") -> bool:
        """True when this point and *other* lie on the same side of line *ab*."""
        return side_of_line(a, b, self) == side_of_line(a, b, other)

    # ── rotations / reflections (in place) ──────────────────────────

    def rotate(self, angle: float) -> "Vector2":
        c = math.cos(angle)
        s = math.sin(angle)
        x = self.x * c - self.y * s
        y = self.x * s + self.y * c
        self.x = x
        self.y = y
        return self

    def rotate_around(self, angle: float, center: "Vector2") -> "Vector2":
        c = math.cos(angle)
        s = math.sin(angle)
        dx = self.x - center.x
        dy = self.y - center.y
        self.x = dx * c - dy * s + center.x
        self.y = dx * s + dy * c + center.y
        return self

    def rotate_away_from(self, other: "Vector2", center: "Vector2", angle: float) -> None:
        """Rotate around *center* by ±*angle*, whichever ends farther from *other*."""
        self.rotate_around(angle, center)
        dist_a = self.distance_sq(other)
        self.rotate_around(-2.0 * angle, center)
        dist_b = self.distance_sq(other)
        if dist_b < dist_a:
            self.rotate_around(2.0 * angle, center)

    def rotate_away_from_angle(self, other: "Vector2", center: "Vector2", angle: float) -> float:
        """Return ``angle`` or ``-angle``: the rotation that moves away from *other*."""
        tmp = self.clone()
        tmp.rotate_around(angle, center)
        dist_a = tmp.distance_sq(other)
        tmp.rotate_around(-2.0 * angle, center)
        dist_b = tmp.distance_sq(other)
        return angle if dist_b < dist_a else -angle

    def mirror_about_line(self, a: "Vector2", b: "Vector2") -> "Vector2":
        """Reflect across the line through *a* and *b*.  No-op if a == b."""
        x, y = mirror_point((self.x, self.y), (a.x, a.y), (b.x, b.y))
        self.x = x
        self.y = y
        return self


# ═══════════════════════════════════════════════════════════════════
# Free functions
# ═══════════════════════════════════════════════════════════════════


def subtract(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def add(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x + b.x, a.y + b.y)


def midpoint(a: Vector2, b: Vector2) -> Vector2:
    return Vector2((a.x + b.x) / 2.0, (a.y + b.y) / 2.0)


def normals(a: Vector2, b: Vector2) -> Tuple[Vector2, Vector2]:
    """Return the two (unnormalised) normals of the segment *ab*."""
    delta = subtract(b, a)
    return Vector2(-delta.y, delta.x), Vector2(delta.y, -delta.x)


def side_of_line(a: Vector2, b: Vector2, point: Vector2) -> int:
    """Sign of the cross product (b - a) × (point - a): 1, -1 or 0."""
    cross = (b.x - a.x) * (point.y - a.y) - (b.y - a.y) * (point.x - a.x)
    if cross > 0:
        return 1
    if cross < 0:
        return -1
    return 0


def mirror_point(
    point: Tuple[float, float],
    a: Tuple[float, float],
    b: Tuple[float, float],
) -> Tuple[float, float]:
    """Reflect *point* across the line through *a* and *b*."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return point
    t = ((point[0] - a[0]) * dx + (point[1] - a[1]) * dy) / length_sq
    foot_x = a[0] + t * dx
    foot_y = a[1] + t * dy
    return (2.0 * foot_x - point[0], 2.0 * foot_y - point[1])


def centroid(points: Iterable[Vector2]) -> Vector2:
    total = Vector2(0.0, 0.0)
    count = 0
    for p in points:
        total.add(p)
        count += 1
    return total.divide(count)


# ── polygon helpers ─────────────────────────────────────────────────


def to_rad(degrees: float) -> float:
    return degrees * math.pi / 180.0


def poly_circumradius(side_length: float, n_sides: int) -> float:
    """Circumradius of a regular polygon with *n_sides* of *side_length*."""
    if n_sides < 3:
        raise ValueError(f"a polygon needs at least 3 sides, got {n_sides}")
    return side_length / (2.0 * math.sin(math.pi / n_sides))


def apothem(circumradius: float, n_sides: int) -> float:
    return circumradius * math.cos(math.pi / n_sides)


def central_angle(n_sides: int) -> float:
    return 2.0 * math.pi / n_sides


def parity_of_permutation(order: Sequence[int]) -> int:
    """Return 1 for an even permutation of ``0..n-1`` and -1 for an odd one."""
    visited: List[bool] = [False] * len(order)
    even_cycles = 0
    for start in range(len(order)):
        if visited[start]:
            continue
        length = 0
        i = start
        while not visited[i]:
            visited[i] = True
            i = order[i]
            length += 1
        even_cycles += 1 - length % 2
    return -1 if even_cycles % 2 else 1
