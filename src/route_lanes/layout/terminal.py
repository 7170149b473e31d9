"""Terminal divergence: split sides for routes still grouped at the path end.

When the outermost traced component still carries several routes, nothing
further out separates them, so their sides come from local geometry where
they leave the corridor.

Two routes are compared with three signals in priority order: the heading
of each route's first edge after the corridor, the heading towards a sample
point farther downstream, and the component's base-direction scores. The
first signal whose difference clears the epsilon decides; otherwise the
current lane order does. More routes are ranked by the downstream heading
and bisected into a left and a right half.
"""

from __future__ import annotations

__all__ = ["TerminalSplit", "reconverging_routes", "resolve_terminal_sides"]

from dataclasses import dataclass, field
from typing import Callable

from route_lanes.layout.components import route_run
from route_lanes.layout.context import LaneContext
from route_lanes.layout.geometry import direction, signed_angle, walk_along
from route_lanes.model import OverlapComponent


@dataclass
class TerminalSplit:
    """Side assignment for the routes left at the end of the traced path.

    ``left`` and ``right`` are ordered left to right. ``splits`` lists the
    split events to emit; the route not listed stays as the last lane.
    """

    sides: dict[str, str]
    left: list[str]
    right: list[str]
    method: str = ""
    splits: list[tuple[str, str]] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        return self.left + self.right


def resolve_terminal_sides(
    ctx: LaneContext, comp: OverlapComponent, order: list[str]
) -> TerminalSplit | None:
    """Assign L/R sides to the routes of ``order`` at the end of ``comp``.

    Returns None when fewer than two routes remain.
    """
    if len(order) < 2:
        return None
    if len(order) == 2:
        result = _resolve_pair(ctx, comp, order)
    else:
        result = _resolve_many(ctx, comp, order)

    # Emit left routes outermost first, then right routes outermost first,
    # until a single lane is left.
    remaining = len(result.order)
    for rid in result.left:
        if remaining <= 1:
            break
        result.splits.append((rid, "L"))
        remaining -= 1
    for rid in reversed(result.right):
        if remaining <= 1:
            break
        result.splits.append((rid, "R"))
        remaining -= 1
    return result


def _resolve_pair(
    ctx: LaneContext, comp: OverlapComponent, order: list[str]
) -> TerminalSplit:
    a, b = order
    signals: list[tuple[str, Callable[[str], float | None]]] = [
        ("exit", lambda r: _exit_heading(ctx, comp, r)),
        ("turn", lambda r: _downstream_heading(ctx, comp, r)),
        ("rank", lambda r: _rank_value(comp, r)),
    ]
    for name, signal in signals:
        va, vb = signal(a), signal(b)
        if va is None or vb is None:
            continue
        if abs(va - vb) > ctx.terminal_epsilon:
            left, right = (a, b) if va < vb else (b, a)
            return TerminalSplit(
                sides={left: "L", right: "R"}, left=[left], right=[right], method=name
            )
    # Nothing distinguishes them: keep the current lane order
    return TerminalSplit(sides={a: "L", b: "R"}, left=[a], right=[b], method="index")


def _resolve_many(
    ctx: LaneContext, comp: OverlapComponent, order: list[str]
) -> TerminalSplit:
    values = {r: _downstream_heading(ctx, comp, r) for r in order}
    ranked = sorted(
        order, key=lambda r: (values[r] if values[r] is not None else 0.0, order.index(r))
    )
    half = len(ranked) // 2
    left, right = ranked[:half], ranked[half:]
    sides = {r: "L" for r in left}
    sides.update({r: "R" for r in right})
    return TerminalSplit(sides=sides, left=left, right=right, method="turn")


def _exit_geometry(
    ctx: LaneContext, comp: OverlapComponent, rid: str
) -> tuple[int, tuple[float, float]] | None:
    """Exit vertex index and corridor heading (route frame) where ``rid`` leaves."""
    run = route_run(ctx, comp, rid)
    if not run:
        return None
    last = run[-1]
    xy = ctx.paths[rid].xy
    d = direction(xy[last], xy[last + 1])
    if d is None:
        return None
    return last + 1, d


def _exit_heading(
    ctx: LaneContext, comp: OverlapComponent, rid: str
) -> float | None:
    """Turn from the corridor onto the route's first edge past it.

    Positive values lie right of the component's lead direction.
    """
    geom = _exit_geometry(ctx, comp, rid)
    if geom is None:
        return None
    exit_idx, d = geom
    xy = ctx.paths[rid].xy
    for j in range(exit_idx + 1, len(xy)):
        nxt = direction(xy[exit_idx], xy[j])
        if nxt is not None:
            return signed_angle(d, nxt) * ctx.frame_sign(comp, rid)
    return None


def _downstream_heading(
    ctx: LaneContext, comp: OverlapComponent, rid: str
) -> float | None:
    """Turn from the corridor towards a point ``terminal_sample_px`` downstream."""
    geom = _exit_geometry(ctx, comp, rid)
    if geom is None:
        return None
    exit_idx, d = geom
    xy = ctx.paths[rid].xy
    p = walk_along(xy, exit_idx, ctx.terminal_sample_px)
    if p is None:
        return None
    v = (p[0] - xy[exit_idx][0], p[1] - xy[exit_idx][1])
    return signed_angle(d, v) * ctx.frame_sign(comp, rid)


def _rank_value(comp: OverlapComponent, rid: str) -> float | None:
    # Base scores grow to the left; negate so larger means further right
    score = comp.base_scores.get(rid)
    return None if score is None else -score


def reconverging_routes(
    ctx: LaneContext,
    comp: OverlapComponent,
    split: TerminalSplit,
    on_path: set[str],
) -> tuple[OverlapComponent | None, list[str]]:
    """Split routes that share a component again beyond the traced path.

    Returns the nearest such component and the split routes it carries, in
    the order their merges are emitted (innermost first on each side).
    """
    split_ids = {rid for rid, _ in split.splits}
    candidates = sorted(
        (
            c
            for c in ctx.components.values()
            if c.id not in on_path
            and c.distance > comp.distance
            and len(c.route_ids & set(split.order)) >= 2
        ),
        key=lambda c: (c.distance, int(c.id[1:])),
    )
    for cand in candidates:
        returning = [r for r in split.order if r in cand.route_ids and r in split_ids]
        if returning:
            left = [r for r in reversed(split.left) if r in returning]
            right = [r for r in split.right if r in returning]
            return cand, left + right
    return None, []
