"""Tests for planar vector helpers."""

import math

import pytest

from molscape.geometry import (
    Vector2,
    centroid,
    mirror_point,
    parity_of_permutation,
    poly_circumradius,
    side_of_line,
    to_rad,
)


def test_in_place_operations_chain():
    v = Vector2(1, 2)
    result = v.add(Vector2(1, 1)).multiply_scalar(2).subtract(Vector2(4, 0))
    assert result is v
    assert (v.x, v.y) == (0.0, 6.0)


def test_divide_by_zero_is_noop():
    v = Vector2(3, 4)
    v.divide(0)
    assert v.as_tuple() == (3.0, 4.0)


def test_normalize_zero_vector_stays_zero():
    assert Vector2().normalize().as_tuple() == (0.0, 0.0)
    assert Vector2(3, 4).normalize().length() == pytest.approx(1.0)


def test_rotate_around_quarter_turn():
    v = Vector2(2, 1).rotate_around(math.pi / 2, Vector2(1, 1))
    assert v.x == pytest.approx(1.0)
    assert v.y == pytest.approx(2.0)


def test_rotate_away_from_picks_farther_side():
    center = Vector2(0, 0)
    other = Vector2(0, 1)
    v = Vector2(1, 0)
    v.rotate_away_from(other, center, math.pi / 2)
    assert v.y == pytest.approx(-1.0)
    assert Vector2(1, 0).rotate_away_from_angle(other, center, 0.5) == -0.5


def test_side_of_line_and_mirror():
    a, b = Vector2(0, 0), Vector2(1, 0)
    assert side_of_line(a, b, Vector2(0.5, 1)) == 1
    assert side_of_line(a, b, Vector2(0.5, -1)) == -1
    assert side_of_line(a, b, Vector2(2, 0)) == 0
    assert mirror_point((0.5, 1.0), (0.0, 0.0), (1.0, 0.0)) == pytest.approx((0.5, -1.0))
    assert mirror_point((0.5, 1.0), (0.0, 0.0), (0.0, 0.0)) == (0.5, 1.0)


def test_mirror_about_line_in_place():
    v = Vector2(2, 3).mirror_about_line(Vector2(0, 0), Vector2(1, 1))
    assert v.x == pytest.approx(3.0)
    assert v.y == pytest.approx(2.0)


def test_centroid():
    c = centroid([Vector2(0, 0), Vector2(2, 0), Vector2(2, 2), Vector2(0, 2)])
    assert c.as_tuple() == (1.0, 1.0)


@pytest.mark.parametrize("n", [3, 4, 5, 6, 7, 8])
def test_circumradius_gives_unit_sides(n):
    r = poly_circumradius(1.0, n)
    side = 2.0 * r * math.sin(math.pi / n)
    assert side == pytest.approx(1.0)


def test_circumradius_rejects_degenerate_polygon():
    with pytest.raises(ValueError):
        poly_circumradius(1.0, 2)


def test_hexagon_circumradius_equals_side():
    assert poly_circumradius(30.0, 6) == pytest.approx(30.0)


def test_to_rad():
    assert to_rad(180) == pytest.approx(math.pi)


@pytest.mark.parametrize(
    "order, parity",
    [
        ([0, 1, 2, 3], 1),
        ([1, 0, 2, 3], -1),
        ([1, 2, 0, 3], 1),
        ([3, 2, 1, 0], 1),
        ([1, 2, 3, 0], -1),
    ],
)
def test_parity_of_permutation(order, parity):
    assert parity_of_permutation(order) == parity
