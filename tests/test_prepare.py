"""Tests for segment preparation helpers."""

import pytest

from route_lanes.prepare import (
    DEFAULT_ROUTE_COLOR,
    build_active_hours_text,
    build_grouped_active_hours_text,
    build_route_segment,
    clip_shape_to_stop,
    format_clock_time,
    normalize_color,
    pick_text_color,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("ff0000", "#ff0000"),
        ("#00FF00", "#00FF00"),
        ("abc", "#aabbcc"),
        ("", DEFAULT_ROUTE_COLOR),
        (None, DEFAULT_ROUTE_COLOR),
        ("red", DEFAULT_ROUTE_COLOR),
        ("12345", DEFAULT_ROUTE_COLOR),
    ],
)
def test_normalize_color(value, expected):
    assert normalize_color(value) == expected


def test_normalize_color_custom_fallback():
    assert normalize_color("nope", "#333333") == "#333333"


def test_pick_text_color():
    assert pick_text_color("#000080") == "#ffffff"
    assert pick_text_color("#ffff00") == "#111111"


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "12:00am"),
        (6 * 3600 + 5 * 60, "6:05am"),
        (12 * 3600, "12:00pm"),
        (23 * 3600 + 59 * 60, "11:59pm"),
        (25 * 3600 + 10 * 60, "1:10am+1"),
        (-60, "11:59pm"),
        (float("nan"), ""),
    ],
)
def test_format_clock_time(seconds, expected):
    assert format_clock_time(seconds) == expected


def test_build_active_hours_text():
    assert build_active_hours_text([]) == ""
    assert build_active_hours_text([7 * 3600]) == "7:00am"
    assert (
        build_active_hours_text([22 * 3600, 6 * 3600, 12 * 3600]) == "6:00am-10:00pm"
    )


def test_active_hours_ignore_non_finite_times():
    assert build_active_hours_text([float("nan"), 3600, float("inf")]) == "1:00am"


def test_grouped_active_hours_text():
    text = build_grouped_active_hours_text(
        {"weekday": [6 * 3600, 23 * 3600], "sunday": [9 * 3600]}
    )
    assert text == "Mon-Fri (6:00am-11:00pm), Sun (9:00am)"


def test_grouped_active_hours_falls_back_to_all_days():
    assert (
        build_grouped_active_hours_text({}, [8 * 3600, 20 * 3600])
        == "All days (8:00am-8:00pm)"
    )
    assert build_grouped_active_hours_text({}) == ""


def test_clip_shape_starts_at_stop():
    shape = [(0.0, -0.002), (0.0, -0.001), (0.0, 0.001), (0.0, 0.002)]
    clipped = clip_shape_to_stop(shape, (0.0001, 0.0))
    assert clipped[0] == pytest.approx((0.0, 0.0))
    assert clipped[1:] == [(0.0, 0.001), (0.0, 0.002)]


def test_clip_shape_at_vertex_does_not_duplicate():
    shape = [(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)]
    clipped = clip_shape_to_stop(shape, (0.0, 0.001))
    assert clipped == [(0.0, 0.001), (0.0, 0.002)]


def test_build_route_segment():
    shape = [(0.0, -0.001), (0.0, 0.0), (0.0, 0.001)]
    seg = build_route_segment(
        "12", shape, (0.0, 0.0), shape_id="s1", color="e11d48", label="12"
    )
    assert seg.overlap_route_id == "12:s1"
    assert seg.color == "#e11d48"
    assert seg.points == ((0.0, 0.0), (0.0, 0.001))


def test_build_route_segment_too_short_after_clip():
    shape = [(0.0, -0.002), (0.0, -0.001)]
    assert build_route_segment("12", shape, (0.0, 0.0)) is None
