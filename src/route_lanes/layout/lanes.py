"""Lane geometry: lane chains, per-edge lane states and drawable ribbons.

Within a group of ``g`` routes each lane is ``lane_step`` wide and route
``i`` (left to right) sits ``(i - (g - 1) / 2) * lane_step`` px from the
corridor centreline, negative values lying left of travel.
"""

from __future__ import annotations

__all__ = [
    "build_chain_ribbons",
    "build_chains",
    "build_edge_ribbons",
    "lane_states",
    "ribbon_trapezoids",
]

import bisect

from route_lanes.layout.components import route_run
from route_lanes.layout.context import LaneContext
from route_lanes.layout.geometry import (
    cumulative_lengths,
    direction,
    ease,
    offset_polyline,
    remove_offset_noise,
    right_normal,
    sample_polyline,
)
from route_lanes.model import LaneChain, LaneRibbon, LaneState, RibbonSample

Point = tuple[float, float]


def _consecutive_runs(indices: list[int], edge_keys: list) -> list[list[int]]:
    """Split sorted edge indices into runs, bridging degenerate (None) edges."""
    runs: list[list[int]] = []
    for i in indices:
        if runs and all(edge_keys[j] is None for j in range(runs[-1][-1] + 1, i)):
            runs[-1].append(i)
        else:
            runs.append([i])
    return runs


def build_chains(ctx: LaneContext) -> list[LaneChain]:
    """One chain per maximal run of a component's edges along its lead route."""
    chains: list[LaneChain] = []
    for comp in sorted(ctx.components.values(), key=lambda c: int(c.id[1:])):
        lead = ctx.paths[comp.lead_route]
        g = len(comp.order)
        for run in _consecutive_runs(route_run(ctx, comp, comp.lead_route), lead.edge_keys):
            chains.append(
                LaneChain(
                    component_id=comp.id,
                    order=list(comp.order),
                    points=list(lead.xy[run[0] : run[-1] + 2]),
                    lane_step=ctx.lane_step(g),
                    grouped_width=ctx.grouped_width(g),
                )
            )
    ctx.chains = chains
    return chains


def lane_state_for(ctx: LaneContext, rid: str, edge_index: int) -> LaneState | None:
    """Lane state of one edge, or None for a degenerate edge."""
    if ctx.paths[rid].edge_keys[edge_index] is None:
        return None
    comp = ctx.component_of(rid, edge_index)
    if comp is None or rid not in comp.order:
        return LaneState(offset_px=0.0, lane_width_px=ctx.grouped_width(1))
    g = len(comp.order)
    step = ctx.lane_step(g)
    offset = (comp.order.index(rid) - (g - 1) / 2) * step
    return LaneState(
        offset_px=offset * ctx.frame_sign(comp, rid),
        lane_width_px=step,
        group_count=g,
    )


def lane_states(ctx: LaneContext, rid: str) -> list[LaneState]:
    """Per-edge lane states along a route, in the route's travel frame.

    Degenerate edges take the state of their nearest real neighbour.
    """
    n = len(ctx.paths[rid].edge_keys)
    states: list[LaneState | None] = [lane_state_for(ctx, rid, i) for i in range(n)]
    last: LaneState | None = None
    for i in range(n):
        if states[i] is None:
            states[i] = last
        else:
            last = states[i]
    last = None
    for i in range(n - 1, -1, -1):
        if states[i] is None:
            states[i] = last
        else:
            last = states[i]
    default = LaneState(offset_px=0.0, lane_width_px=ctx.grouped_width(1))
    return [s if s is not None else default for s in states]


def _transition_windows(
    ctx: LaneContext, states: list[LaneState], cum: list[float]
) -> list[tuple[float, float, LaneState, LaneState]]:
    """Eased windows (start, end, before, after) around each state change."""
    changes = [i for i in range(1, len(states)) if states[i] != states[i - 1]]
    total = cum[-1]
    windows = []
    for k, i in enumerate(changes):
        s = cum[i]
        half = ctx.transition_px / 2
        if k > 0:
            half = min(half, (s - cum[changes[k - 1]]) / 2)
        if k < len(changes) - 1:
            half = min(half, (cum[changes[k + 1]] - s) / 2)
        windows.append(
            (max(0.0, s - half), min(total, s + half), states[i - 1], states[i])
        )
    return windows


def _state_at(
    s: float,
    states: list[LaneState],
    cum: list[float],
    windows: list[tuple[float, float, LaneState, LaneState]],
) -> tuple[float, float]:
    for start, end, before, after in windows:
        if start <= s <= end:
            t = (s - start) / (end - start) if end > start else 1.0
            e = ease(t)
            return (
                before.offset_px + (after.offset_px - before.offset_px) * e,
                before.lane_width_px + (after.lane_width_px - before.lane_width_px) * e,
            )
    idx = min(max(bisect.bisect_right(cum, s) - 1, 0), len(states) - 1)
    return states[idx].offset_px, states[idx].lane_width_px


def _offset_ribbon(
    ctx: LaneContext,
    rid: str,
    points: list[Point],
    offsets: list[float],
    widths: list[float],
    cap_start: bool = True,
    cap_end: bool = True,
) -> LaneRibbon:
    moved = offset_polyline(points, offsets, ctx.miter_limit)
    moved, widths = remove_offset_noise(moved, widths, ctx.max_triangle_px)
    return LaneRibbon(
        route_id=rid,
        color=ctx.segments[rid].color,
        samples=[RibbonSample(x, y, w) for (x, y), w in zip(moved, widths)],
        round_cap_start=cap_start,
        round_cap_end=cap_end,
    )


def build_edge_ribbons(ctx: LaneContext) -> list[LaneRibbon]:
    """One ribbon per route with eased transitions between lane groups."""
    ribbons: list[LaneRibbon] = []
    for rid in ctx.route_order:
        path = ctx.paths[rid]
        states = lane_states(ctx, rid)
        cum = cumulative_lengths(path.xy)
        windows = _transition_windows(ctx, states, cum)
        samples = sample_polyline(path.xy, ctx.sample_step_px)
        if len(samples) < 2:
            continue
        offsets: list[float] = []
        widths: list[float] = []
        for _, s in samples:
            off, width = _state_at(s, states, cum, windows)
            offsets.append(off)
            widths.append(width)
        ribbons.append(
            _offset_ribbon(ctx, rid, [p for p, _ in samples], offsets, widths)
        )
    return ribbons


def build_chain_ribbons(ctx: LaneContext) -> list[LaneRibbon]:
    """Constant-offset ribbons, one per route per lane group run.

    Round caps are only drawn where the route itself starts or ends.
    """
    ribbons: list[LaneRibbon] = []
    for rid in ctx.route_order:
        path = ctx.paths[rid]
        states = lane_states(ctx, rid)
        n = len(states)
        start = 0
        while start < n:
            end = start
            while end + 1 < n and states[end + 1] == states[start]:
                end += 1
            pts = path.xy[start : end + 2]
            samples = sample_polyline(pts, ctx.sample_step_px)
            if len(samples) >= 2:
                state = states[start]
                ribbons.append(
                    _offset_ribbon(
                        ctx,
                        rid,
                        [p for p, _ in samples],
                        [state.offset_px] * len(samples),
                        [state.lane_width_px] * len(samples),
                        cap_start=start == 0,
                        cap_end=end == n - 1,
                    )
                )
            start = end + 1
    return ribbons


def ribbon_trapezoids(ribbon: LaneRibbon) -> list[list[Point]]:
    """Quadrilaterals covering each pair of consecutive ribbon samples."""
    quads: list[list[Point]] = []
    for s0, s1 in zip(ribbon.samples, ribbon.samples[1:]):
        d = direction((s0.x, s0.y), (s1.x, s1.y))
        if d is None:
            continue
        nx, ny = right_normal(d)
        h0, h1 = s0.lane_width_px / 2, s1.lane_width_px / 2
        quads.append(
            [
                (s0.x - nx * h0, s0.y - ny * h0),
                (s1.x - nx * h1, s1.y - ny * h1),
                (s1.x + nx * h1, s1.y + ny * h1),
                (s0.x + nx * h0, s0.y + ny * h0),
            ]
        )
    return quads
