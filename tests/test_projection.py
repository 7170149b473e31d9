"""Tests for the canvas projections."""

import pytest

from route_lanes.projection import fit_projection, local_projection, mercator


def test_mercator_origin():
    assert mercator(0.0, 0.0) == pytest.approx((0.5, 0.5))
    # North is up on screen
    assert mercator(10.0, 0.0)[1] < 0.5


def test_fit_projection_fills_canvas_with_padding():
    points = [(0.0, 0.0), (0.01, 0.02)]
    project = fit_projection(points, 600, 400, padding=20)
    xs = [project(*p)[0] for p in points]
    ys = [project(*p)[1] for p in points]
    assert min(xs) >= 20 - 1e-6 and max(xs) <= 580 + 1e-6
    assert min(ys) >= 20 - 1e-6 and max(ys) <= 380 + 1e-6
    # Wider than tall, so the width is the binding extent
    assert max(xs) - min(xs) == pytest.approx(560)
    # South-west point is bottom-left
    assert project(0.0, 0.0)[1] > project(0.01, 0.02)[1]


def test_fit_projection_single_point_is_centred():
    project = fit_projection([(45.0, 7.0)], 300, 200)
    assert project(45.0, 7.0) == pytest.approx((150.0, 100.0))


def test_local_projection():
    project = local_projection((0.0, 0.0), px_per_degree=1000)
    assert project(0.0, 0.0) == (0.0, 0.0)
    assert project(0.001, 0.002) == pytest.approx((2.0, -1.0))
