"""Planar geometry helpers for lane building.

All functions work in projected screen coordinates (x right, y down), so a
positive signed angle is a clockwise (right-hand) turn and positive offsets
move a line to the right of its direction of travel.
"""

from __future__ import annotations

__all__ = [
    "cumulative_lengths",
    "direction",
    "ease",
    "nearest_point_on_polyline",
    "offset_polyline",
    "remove_offset_noise",
    "sample_polyline",
    "signed_angle",
    "walk_along",
]

import math

from route_lanes.layout.constants import (
    COORD_TOLERANCE,
    FILTER_PASSES,
    MAX_TRIANGLE_PX,
    MITER_LIMIT,
    SHARP_TURN,
)

Point = tuple[float, float]


def direction(p: Point, q: Point) -> Point | None:
    """Unit vector from p to q, or None for a zero-length segment."""
    dx = q[0] - p[0]
    dy = q[1] - p[1]
    length = math.hypot(dx, dy)
    if length < COORD_TOLERANCE:
        return None
    return (dx / length, dy / length)


def right_normal(d: Point) -> Point:
    return (-d[1], d[0])


def left_normal(d: Point) -> Point:
    return (d[1], -d[0])


def signed_angle(v1: Point, v2: Point) -> float:
    """Signed angle from v1 to v2 in (-pi, pi]; positive turns right."""
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    dot = v1[0] * v2[0] + v1[1] * v2[1]
    return math.atan2(cross, dot)


def wrap_angle(a: float) -> float:
    while a <= -math.pi:
        a += 2 * math.pi
    while a > math.pi:
        a -= 2 * math.pi
    return a


def ease(t: float) -> float:
    """Smoothstep easing on [0, 1]."""
    t = min(max(t, 0.0), 1.0)
    return t * t * (3.0 - 2.0 * t)


def cumulative_lengths(points: list[Point]) -> list[float]:
    """Arc length at every vertex of a polyline."""
    cum = [0.0]
    for i in range(1, len(points)):
        cum.append(cum[-1] + math.dist(points[i - 1], points[i]))
    return cum


def walk_along(points: list[Point], index: int, distance: float) -> Point | None:
    """Point reached by walking ``distance`` px from vertex ``index``.

    Negative distances walk backwards. Stops at the polyline end; returns
    None when no step away from the vertex is possible at all.
    """
    if not points or not 0 <= index < len(points):
        return None
    step = 1 if distance >= 0 else -1
    remaining = abs(distance)
    current = points[index]
    i = index
    moved = False
    while 0 <= i + step < len(points):
        nxt = points[i + step]
        seg = math.dist(current, nxt)
        if seg >= COORD_TOLERANCE:
            moved = True
            if seg >= remaining:
                t = remaining / seg
                return (
                    current[0] + (nxt[0] - current[0]) * t,
                    current[1] + (nxt[1] - current[1]) * t,
                )
            remaining -= seg
        current = nxt
        i += step
    return current if moved else None


def nearest_point_on_polyline(
    points: list[Point], p: Point
) -> tuple[Point, float, int, float]:
    """Closest point on a polyline.

    Returns (point, distance, segment_index, arc_position).
    """
    if len(points) == 1:
        return points[0], math.dist(points[0], p), 0, 0.0
    best: tuple[Point, float, int, float] | None = None
    arc = 0.0
    for i in range(len(points) - 1):
        a, b = points[i], points[i + 1]
        dx, dy = b[0] - a[0], b[1] - a[1]
        seg_sq = dx * dx + dy * dy
        if seg_sq < COORD_TOLERANCE:
            t = 0.0
        else:
            t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / seg_sq
            t = min(max(t, 0.0), 1.0)
        q = (a[0] + dx * t, a[1] + dy * t)
        d = math.dist(q, p)
        seg_len = math.sqrt(seg_sq)
        if best is None or d < best[1] - COORD_TOLERANCE:
            best = (q, d, i, arc + seg_len * t)
        arc += seg_len
    assert best is not None
    return best


def sample_polyline(points: list[Point], step: float) -> list[tuple[Point, float]]:
    """Resample a polyline every ``step`` px, keeping original vertices.

    Returns (point, arc_position) pairs. Zero-length segments are skipped.
    """
    if not points:
        return []
    out: list[tuple[Point, float]] = [(points[0], 0.0)]
    arc = 0.0
    for i in range(1, len(points)):
        a, b = points[i - 1], points[i]
        seg = math.dist(a, b)
        if seg < COORD_TOLERANCE:
            continue
        n = max(1, int(math.ceil(seg / step)))
        for k in range(1, n + 1):
            t = k / n
            out.append(
                ((a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t), arc + seg * t)
            )
        arc += seg
    return out


def offset_polyline(
    points: list[Point],
    offsets: list[float],
    miter_limit: float = MITER_LIMIT,
) -> list[Point]:
    """Offset each vertex to the right of travel by its own distance.

    Interior vertices use a miter join. When the adjacent segments fold back
    on each other, or the miter would exceed ``miter_limit`` times the
    offset, the vertex moves along the plain bisector instead.
    """
    n = len(points)
    if n < 2:
        return list(points)

    # Segment directions, carrying the last valid one across zero-length gaps
    dirs: list[Point | None] = [
        direction(points[i], points[i + 1]) for i in range(n - 1)
    ]
    last: Point | None = None
    for i, d in enumerate(dirs):
        if d is None:
            dirs[i] = last
        else:
            last = d
    last = None
    for i in range(len(dirs) - 1, -1, -1):
        if dirs[i] is None:
            dirs[i] = last
        else:
            last = dirs[i]
    if dirs[0] is None:
        return list(points)

    out: list[Point] = []
    for i, p in enumerate(points):
        off = offsets[i]
        d_prev = dirs[i - 1] if i > 0 else dirs[0]
        d_next = dirs[i] if i < n - 1 else dirs[-1]
        n1 = right_normal(d_prev)
        n2 = right_normal(d_next)
        bx, by = n1[0] + n2[0], n1[1] + n2[1]
        blen = math.hypot(bx, by)
        if blen < COORD_TOLERANCE:
            # Full reversal: no usable bisector, fall back to the incoming normal
            out.append((p[0] + n1[0] * off, p[1] + n1[1] * off))
            continue
        bx, by = bx / blen, by / blen
        cos_half = bx * n1[0] + by * n1[1]
        if cos_half < COORD_TOLERANCE or 1.0 / cos_half > miter_limit:
            scale = off
        else:
            scale = off / cos_half
        out.append((p[0] + bx * scale, p[1] + by * scale))
    return out


def _triangle_size(a: Point, b: Point, c: Point) -> float:
    return max(math.dist(a, b), math.dist(b, c), math.dist(a, c))


def _turn_at(a: Point, b: Point, c: Point) -> float | None:
    d1 = direction(a, b)
    d2 = direction(b, c)
    if d1 is None or d2 is None:
        return None
    return abs(signed_angle(d1, d2))


def remove_offset_noise(
    points: list[Point],
    widths: list[float],
    max_size: float = MAX_TRIANGLE_PX,
    sharp_turn: float = SHARP_TURN,
    passes: int = FILTER_PASSES,
) -> tuple[list[Point], list[float]]:
    """Drop micro-triangles and two-point zigzags left by offsetting.

    A vertex is removed when the path turns back sharply at it and the
    triangle it forms with its neighbours is no larger than ``max_size``.
    A pair of vertices is removed when the path doubles back over a short
    hop and then resumes its original heading. Endpoints are kept.
    """
    pts = list(points)
    ws = list(widths)
    for _ in range(passes):
        changed = False
        i = 1
        while i < len(pts) - 1:
            a, b, c = pts[i - 1], pts[i], pts[i + 1]
            turn = _turn_at(a, b, c)
            if turn is None:
                if math.dist(a, b) < 1e-6:
                    # Duplicate vertex
                    del pts[i]
                    del ws[i]
                    changed = True
                    continue
                i += 1
                continue
            if turn > sharp_turn and _triangle_size(a, b, c) <= max_size:
                del pts[i]
                del ws[i]
                changed = True
                continue
            if i < len(pts) - 2:
                d = pts[i + 2]
                d_in = direction(a, b)
                d_hop = direction(b, c)
                d_out = direction(c, d)
                if (
                    d_in is not None
                    and d_hop is not None
                    and d_out is not None
                    and math.dist(b, c) <= max_size
                    and abs(signed_angle(d_in, d_hop)) > sharp_turn
                    and abs(signed_angle(d_hop, d_out)) > sharp_turn
                ):
                    del pts[i : i + 2]
                    del ws[i : i + 2]
                    changed = True
                    continue
            i += 1
        if not changed:
            break
    return pts, ws
