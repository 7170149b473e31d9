"""Tests for planar geometry helpers."""

import math

import pytest

from route_lanes.layout.geometry import (
    cumulative_lengths,
    direction,
    ease,
    nearest_point_on_polyline,
    offset_polyline,
    remove_offset_noise,
    sample_polyline,
    signed_angle,
    walk_along,
    wrap_angle,
)


def test_direction_of_zero_length_segment_is_none():
    assert direction((1.0, 1.0), (1.0, 1.0)) is None
    assert direction((0.0, 0.0), (0.0, 5.0)) == (0.0, 1.0)


def test_signed_angle_positive_turns_right():
    east = (1.0, 0.0)
    south = (0.0, 1.0)  # screen y grows downward
    assert signed_angle(east, south) == pytest.approx(math.pi / 2)
    assert signed_angle(east, (0.0, -1.0)) == pytest.approx(-math.pi / 2)


def test_wrap_angle_range():
    assert wrap_angle(3 * math.pi) == pytest.approx(math.pi)
    assert wrap_angle(-3 * math.pi / 2) == pytest.approx(math.pi / 2)


def test_ease_is_smoothstep():
    assert ease(0.0) == 0.0
    assert ease(1.0) == 1.0
    assert ease(0.5) == pytest.approx(0.5)
    assert ease(-1.0) == 0.0
    assert ease(0.25) < 0.25


def test_walk_along_forward_and_backward():
    pts = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]
    assert walk_along(pts, 0, 15.0) == pytest.approx((10.0, 5.0))
    assert walk_along(pts, 2, -15.0) == pytest.approx((5.0, 0.0))
    # Stops at the end of the line
    assert walk_along(pts, 0, 100.0) == (10.0, 10.0)
    assert walk_along(pts, 2, 5.0) is None


def test_nearest_point_on_polyline():
    pts = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]
    point, dist, seg, arc = nearest_point_on_polyline(pts, (12.0, 4.0))
    assert point == pytest.approx((10.0, 4.0))
    assert dist == pytest.approx(2.0)
    assert seg == 1
    assert arc == pytest.approx(14.0)


def test_sample_polyline_keeps_vertices_and_skips_zero_length():
    pts = [(0.0, 0.0), (0.0, 0.0), (10.0, 0.0)]
    samples = sample_polyline(pts, 4.0)
    xs = [p[0] for p, _ in samples]
    assert xs[0] == 0.0 and xs[-1] == 10.0
    assert len(samples) == 4
    arcs = [s for _, s in samples]
    assert arcs == sorted(arcs)
    assert arcs[-1] == pytest.approx(cumulative_lengths(pts)[-1])


def test_offset_polyline_straight_line():
    pts = [(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)]
    out = offset_polyline(pts, [2.0, 2.0, 2.0])
    # Right of eastward travel is screen-down
    assert out == pytest.approx([(0.0, 2.0), (10.0, 2.0), (20.0, 2.0)])


def test_offset_polyline_miter_corner():
    pts = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]
    out = offset_polyline(pts, [-1.0, -1.0, -1.0])
    # Outer corner of a right turn sits diagonally out by sqrt(2)
    assert out[1] == pytest.approx((11.0, -1.0))


def test_offset_polyline_reversal_uses_incoming_normal():
    pts = [(0.0, 0.0), (10.0, 0.0), (0.0, 0.0)]
    out = offset_polyline(pts, [1.0, 1.0, 1.0])
    assert out[1] == pytest.approx((10.0, 1.0))


def test_remove_offset_noise_drops_micro_zigzag():
    pts = [(0.0, 0.0), (10.0, 0.0), (9.0, 0.2), (10.5, 0.0), (20.0, 0.0)]
    widths = [5.0] * len(pts)
    out, out_widths = remove_offset_noise(pts, widths)
    assert out[0] == (0.0, 0.0) and out[-1] == (20.0, 0.0)
    assert len(out) < len(pts)
    assert len(out) == len(out_widths)


def test_remove_offset_noise_keeps_clean_line():
    pts = [(0.0, 0.0), (10.0, 0.0), (20.0, 5.0)]
    out, _ = remove_offset_noise(pts, [1.0, 1.0, 1.0])
    assert out == pts
