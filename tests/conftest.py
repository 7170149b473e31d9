"""Shared test fixtures and scenario builders for the route-lanes test suite.

Scenarios use a 0.001 degree grid and a flat projection of 10 px per grid
step (x east, y south), so one grid step is one 10 px edge.
"""

from __future__ import annotations

import pytest

from route_lanes.layout.components import build_adjacency, build_components
from route_lanes.layout.context import LaneContext
from route_lanes.layout.engine import build_context, compute_lane_layout
from route_lanes.model import LaneLayout, RouteSegment

STOP = (0.0, 0.0)


def flat_project(lat: float, lon: float) -> tuple[float, float]:
    return (lon * 10000, -lat * 10000)


def grid(*cells: tuple[int, int]) -> tuple[tuple[float, float], ...]:
    """(lat, lon) points from integer (north, east) grid steps."""
    return tuple((n / 1000, e / 1000) for n, e in cells)


def segment(
    rid: str, cells: list[tuple[int, int]], color: str = "#ff0000", **kwargs
) -> RouteSegment:
    kwargs.setdefault("label", rid)
    return RouteSegment(overlap_route_id=rid, points=grid(*cells), color=color, **kwargs)


# --- Scenario builders ---


def trunk_segments() -> list[RouteSegment]:
    """A and B run east together for three edges, then A bears NE and B SE."""
    trunk = [(0, 0), (0, 1), (0, 2), (0, 3)]
    return [
        segment("A", trunk + [(1, 4), (2, 5), (3, 6)], "#e11d48"),
        segment("B", trunk + [(-1, 4), (-2, 5), (-3, 6)], "#2563eb"),
    ]


def diamond_segments() -> list[RouteSegment]:
    """A and B leave the stop apart, meet in an east corridor, then part.

    A goes north then east; B goes east then north and joins the corridor
    from the south. Past the corridor A bears NE and B SE.
    """
    return [
        segment(
            "A",
            [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2), (2, 3), (3, 4), (4, 5)],
            "#e11d48",
        ),
        segment(
            "B",
            [(0, 0), (0, 1), (1, 1), (2, 1), (2, 2), (2, 3), (1, 4), (0, 5)],
            "#2563eb",
        ),
    ]


def three_way_segments() -> list[RouteSegment]:
    """A, B and C share a trunk, then fan out NE, E and SE."""
    trunk = [(0, 0), (0, 1), (0, 2), (0, 3)]
    return [
        segment("A", trunk + [(1, 4), (2, 5), (3, 6)], "#e11d48"),
        segment("B", trunk + [(0, 4), (0, 5), (0, 6)], "#16a34a"),
        segment("C", trunk + [(-1, 4), (-2, 5), (-3, 6)], "#2563eb"),
    ]


def two_stage_segments() -> list[RouteSegment]:
    """A, B, C share a trunk; C leaves SE, then A and B share more and part."""
    trunk = [(0, 0), (0, 1), (0, 2), (0, 3)]
    return [
        segment("A", trunk + [(0, 4), (0, 5), (1, 6), (2, 7)], "#e11d48"),
        segment("B", trunk + [(0, 4), (0, 5), (-1, 6), (-2, 7)], "#16a34a"),
        segment("C", trunk + [(-1, 4), (-2, 5), (-3, 6)], "#2563eb"),
    ]


def branching_segments() -> list[RouteSegment]:
    """Four routes share a NE stub, then fork into sibling corridors.

    R0 and R2 continue north together while R1 and R4 keep going NE, so the
    stub has two neighbouring components of equal overlap.
    """
    return [
        segment(
            "R0",
            [(0, 0), (1, 1), (2, 1), (3, 2), (2, 2), (1, 3), (1, 4), (1, 5), (2, 5)],
        ),
        segment("R1", [(0, 0), (1, 1), (2, 2), (2, 3), (2, 4), (3, 5), (4, 6)]),
        segment("R2", [(0, 0), (1, 1), (2, 1), (2, 2), (3, 3), (4, 4), (4, 5)]),
        segment("R4", [(0, 0), (1, 1), (2, 2), (3, 3)]),
    ]


def disjoint_segments() -> list[RouteSegment]:
    """Two routes leaving the stop in opposite directions."""
    return [
        segment("A", [(0, 0), (0, 1), (0, 2), (0, 3)], "#e11d48"),
        segment("B", [(0, 0), (0, -1), (0, -2), (0, -3)], "#2563eb"),
    ]


def layout_for(segments: list[RouteSegment], **kwargs) -> LaneLayout:
    return compute_lane_layout(STOP, segments, flat_project, **kwargs)


def context_for(segments: list[RouteSegment], **settings) -> LaneContext:
    """Indexed context with components and adjacency built, not yet ordered."""
    ctx = build_context(STOP, segments, flat_project, **settings)
    build_components(ctx)
    build_adjacency(ctx)
    return ctx


# --- Fixtures ---


@pytest.fixture
def project():
    return flat_project


@pytest.fixture
def trunk_layout() -> LaneLayout:
    return layout_for(trunk_segments())


@pytest.fixture
def diamond_layout() -> LaneLayout:
    return layout_for(diamond_segments())


@pytest.fixture
def disjoint_layout() -> LaneLayout:
    return layout_for(disjoint_segments())
