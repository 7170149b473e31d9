"""Snap downstream stop markers onto the lane a route is drawn in."""

from __future__ import annotations

__all__ = ["make_marker_placer", "place_marker"]

import math
from functools import partial
from typing import Callable

from route_lanes.layout.constants import MARKER_DISTANCE_SLACK, MARKER_WIDTH_TOLERANCE
from route_lanes.layout.context import LaneContext
from route_lanes.layout.geometry import direction, nearest_point_on_polyline, right_normal
from route_lanes.model import LaneChain, MarkerPlacement

Projection = Callable[[float, float], tuple[float, float]]


def _segment_direction(points: list[tuple[float, float]], index: int):
    """Direction of segment ``index``, skipping zero-length neighbours."""
    for j in list(range(index, len(points) - 1)) + list(range(index - 1, -1, -1)):
        d = direction(points[j], points[j + 1])
        if d is not None:
            return d
    return None


def place_marker(
    ctx: LaneContext,
    project: Projection,
    route_id: str,
    lat: float,
    lon: float,
) -> MarkerPlacement:
    """Position a stop marker for ``route_id`` at (``lat``, ``lon``).

    The marker is first snapped to the route's own centreline. If a lane
    chain carrying the route passes close to that point, the marker moves
    onto the route's lane within the chain and takes the lane width.
    Otherwise the snapped centreline point is returned with the single-route
    width. Unknown routes get the projected point unchanged.
    """
    p = project(lat, lon)
    default_width = ctx.grouped_width(1)
    path = ctx.paths.get(route_id)
    if path is None or len(path.xy) < 2:
        return MarkerPlacement(p[0], p[1], default_width)

    q, raw_dist, _, _ = nearest_point_on_polyline(path.xy, p)

    best: tuple[float, int, LaneChain, tuple[float, float], int] | None = None
    for i, chain in enumerate(ctx.chains):
        if route_id not in chain.order or len(chain.points) < 2:
            continue
        c, d_chain, seg_index, _ = nearest_point_on_polyline(chain.points, q)
        if d_chain > chain.grouped_width * MARKER_WIDTH_TOLERANCE:
            continue
        if math.dist(c, p) > raw_dist + chain.grouped_width / 2 + MARKER_DISTANCE_SLACK:
            continue
        if best is None or d_chain < best[0]:
            best = (d_chain, i, chain, c, seg_index)

    if best is None:
        return MarkerPlacement(q[0], q[1], default_width)

    _, _, chain, c, seg_index = best
    d = _segment_direction(chain.points, seg_index)
    if d is None:
        return MarkerPlacement(q[0], q[1], default_width)
    nx, ny = right_normal(d)
    off = chain.offset_for(route_id)
    return MarkerPlacement(c[0] + nx * off, c[1] + ny * off, chain.lane_step, on_lane=True)


def make_marker_placer(
    ctx: LaneContext, project: Projection
) -> Callable[[str, float, float], MarkerPlacement]:
    return partial(place_marker, ctx, project)
