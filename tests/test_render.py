"""Tests for SVG rendering."""

import xml.etree.ElementTree as ET

from conftest import layout_for, trunk_segments

from route_lanes.render import DARK_THEME, LIGHT_THEME, render_svg


def _render_trunk(theme=LIGHT_THEME):
    layout = layout_for(trunk_segments())
    marker = layout.place_marker("A", 0.0, 0.0015)
    return render_svg(layout, theme, 200, 120, stop_xy=(0.0, 0.0), markers=[marker])


def test_render_produces_valid_svg():
    root = ET.fromstring(_render_trunk())
    assert root.tag.endswith("svg")


def test_render_contains_route_colors():
    svg = _render_trunk()
    assert "#e11d48" in svg
    assert "#2563eb" in svg


def test_render_contains_legend_labels():
    svg = _render_trunk()
    assert ">A<" in svg
    assert ">B<" in svg


def test_render_dark_theme_background():
    svg = _render_trunk(DARK_THEME)
    assert DARK_THEME.background_color in svg


def test_render_groups_ribbons_per_route():
    svg = _render_trunk()
    assert 'id="ribbon-A"' in svg
    assert 'id="ribbon-B"' in svg


def test_render_empty_layout():
    svg = render_svg(layout_for([]))
    assert "svg" in svg
    ET.fromstring(svg)
