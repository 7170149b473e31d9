"""Lane layout coordinator: runs the pipeline for one stop render.

Edge index -> overlap components -> lane orders -> lane chains -> ribbons,
plus the legend and a marker placer bound to the request's context.
"""

from __future__ import annotations

__all__ = ["build_context", "build_legend", "compute_lane_layout"]

import warnings
from typing import Callable, Iterable

from route_lanes.layout.components import build_adjacency, build_components
from route_lanes.layout.constants import (
    GROUPED_WIDTH_RULES,
    LOOKAHEAD_PX,
    MAX_PERMUTATION_ROUTES,
    MAX_REFINE_PASSES,
    MAX_TRIANGLE_PX,
    MIN_LANE_STEP,
    MITER_LIMIT,
    QUANT_PRECISION,
    SAMPLE_STEP_PX,
    TERMINAL_EPSILON,
    TERMINAL_SAMPLE_PX,
    TRANSITION_PX,
    WidthRule,
)
from route_lanes.layout.context import LaneContext
from route_lanes.layout.edges import build_edge_index
from route_lanes.layout.geometry import cumulative_lengths
from route_lanes.layout.lanes import build_chain_ribbons, build_chains, build_edge_ribbons
from route_lanes.layout.markers import make_marker_placer
from route_lanes.layout.ordering import assign_lane_orders
from route_lanes.model import LaneLayout, LegendEntry, RouteSegment
from route_lanes.projection import local_projection

Projection = Callable[[float, float], tuple[float, float]]

LANE_MODES = ("edge", "chain")


def compute_lane_layout(
    stop: tuple[float, float],
    segments: Iterable[RouteSegment],
    project: Projection | None = None,
    *,
    lane_mode: str = "edge",
    precision: int = QUANT_PRECISION,
    lookahead_px: float = LOOKAHEAD_PX,
    max_refine_passes: int = MAX_REFINE_PASSES,
    max_permutation_routes: int = MAX_PERMUTATION_ROUTES,
    terminal_epsilon: float = TERMINAL_EPSILON,
    terminal_sample_px: float = TERMINAL_SAMPLE_PX,
    width_rules: tuple[WidthRule, ...] = GROUPED_WIDTH_RULES,
    min_lane_step: float = MIN_LANE_STEP,
    sample_step_px: float = SAMPLE_STEP_PX,
    transition_px: float = TRANSITION_PX,
    miter_limit: float = MITER_LIMIT,
    max_triangle_px: float = MAX_TRIANGLE_PX,
) -> LaneLayout:
    """Compute lane ribbons, legend and event log for one stop.

    Args:
        stop: (lat, lon) of the stop the segments start from.
        segments: Route segments in display order. Earlier segments lead
            the components they share.
        project: Maps (lat, lon) to canvas pixels (y down). Defaults to a
            local equirectangular projection around the stop.
        lane_mode: ``"edge"`` draws one ribbon per route with eased
            transitions; ``"chain"`` draws constant-offset pieces per lane
            group.

    Returns:
        A LaneLayout. Nothing here raises for bad geometry: unusable
        segments are skipped with a warning.
    """
    if lane_mode not in LANE_MODES:
        raise ValueError(f"Unknown lane mode {lane_mode!r}; expected one of {LANE_MODES}")
    if project is None:
        project = local_projection(stop)

    segments = list(segments)
    ctx = build_context(
        stop,
        segments,
        project,
        precision=precision,
        lookahead_px=lookahead_px,
        max_refine_passes=max_refine_passes,
        max_permutation_routes=max_permutation_routes,
        terminal_epsilon=terminal_epsilon,
        terminal_sample_px=terminal_sample_px,
        width_rules=tuple(width_rules),
        min_lane_step=min_lane_step,
        sample_step_px=sample_step_px,
        transition_px=transition_px,
        miter_limit=miter_limit,
        max_triangle_px=max_triangle_px,
    )

    # Without shared edges every route is a single default lane
    if ctx.shared:
        build_components(ctx)
        build_adjacency(ctx)
        assign_lane_orders(ctx)
        build_chains(ctx)

    if lane_mode == "chain":
        ribbons = build_chain_ribbons(ctx)
    else:
        ribbons = build_edge_ribbons(ctx)

    return LaneLayout(
        ribbons=ribbons,
        legend=build_legend(segments),
        event_log=ctx.event_log,
        snapshots=ctx.snapshots,
        components=sorted(ctx.components.values(), key=lambda c: int(c.id[1:])),
        chains=ctx.chains,
        edges=ctx.edges,
        marker_placer=make_marker_placer(ctx, project),
    )


def build_context(
    stop: tuple[float, float],
    segments: Iterable[RouteSegment],
    project: Projection,
    precision: int = QUANT_PRECISION,
    **settings,
) -> LaneContext:
    """Index and project the segments into a fresh LaneContext.

    Duplicate route ids keep their first geometry, and routes without a
    usable edge are dropped; both cases emit a warning. ``settings`` are
    passed through to LaneContext tunables.
    """
    unique: list[RouteSegment] = []
    seen: set[str] = set()
    for seg in segments:
        if seg.overlap_route_id in seen:
            warnings.warn(
                f"Duplicate route {seg.overlap_route_id!r}: keeping the first geometry",
                stacklevel=3,
            )
            continue
        seen.add(seg.overlap_route_id)
        unique.append(seg)

    edges, paths = build_edge_index(unique, precision)
    for seg in unique:
        if seg.overlap_route_id not in paths:
            warnings.warn(
                f"Route {seg.overlap_route_id!r} has no usable geometry "
                f"({len(seg.points)} point(s)); it will not be drawn",
                stacklevel=3,
            )

    route_order = [s.overlap_route_id for s in unique if s.overlap_route_id in paths]
    by_id = {s.overlap_route_id: s for s in unique}
    node_xy: dict[str, tuple[float, float]] = {}
    node_dist: dict[str, float] = {}
    for rid in route_order:
        path = paths[rid]
        path.xy = [project(lat, lon) for lat, lon in by_id[rid].points]
        path.arc = cumulative_lengths(path.xy)
        for key, xy, s in zip(path.node_keys, path.xy, path.arc):
            node_xy.setdefault(key, xy)
            if s < node_dist.get(key, float("inf")):
                node_dist[key] = s

    return LaneContext(
        segments=by_id,
        route_order=route_order,
        paths=paths,
        edges=edges,
        node_xy=node_xy,
        node_dist=node_dist,
        stop_xy=project(*stop),
        **settings,
    )


def _join_unique(parts: list[str], sep: str) -> str:
    out: list[str] = []
    for part in parts:
        if part and part not in out:
            out.append(part)
    return sep.join(out)


def build_legend(segments: list[RouteSegment]) -> list[LegendEntry]:
    """Legend rows in input order.

    Segments with the same ``overlap_route_id`` collapse into one row, and
    rows with identical (colour, label) are merged. Active-hours texts of
    merged rows are joined with ``"; "``.
    """
    by_route: dict[str, LegendEntry] = {}
    hours: dict[str, list[str]] = {}
    for seg in segments:
        rid = seg.overlap_route_id
        if rid not in by_route:
            by_route[rid] = LegendEntry(color=seg.color, label=seg.label, route_ids=[rid])
            hours[rid] = []
        hours[rid].append(seg.active_hours_text)

    merged: dict[tuple[str, str], LegendEntry] = {}
    merged_hours: dict[tuple[str, str], list[str]] = {}
    for rid, entry in by_route.items():
        key = (entry.color.lower(), entry.label)
        if key not in merged:
            merged[key] = LegendEntry(color=entry.color, label=entry.label)
            merged_hours[key] = []
        merged[key].route_ids.append(rid)
        merged_hours[key].extend(hours[rid])

    for key, entry in merged.items():
        entry.active_hours_text = _join_unique(merged_hours[key], "; ")
    return list(merged.values())
