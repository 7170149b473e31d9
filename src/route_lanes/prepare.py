"""Turn candidate routes into RouteSegments for the lane engine.

Covers the small amount of preparation a departure sign needs before
layout: clipping a shape to the part downstream of the stop, cleaning up
route colours and summarising when a route runs.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_ROUTE_COLOR",
    "build_active_hours_text",
    "build_grouped_active_hours_text",
    "build_route_segment",
    "clip_shape_to_stop",
    "format_clock_time",
    "normalize_color",
    "pick_text_color",
]

import math
import re
from typing import Iterable, Mapping, Sequence

from route_lanes.model import RouteSegment

DEFAULT_ROUTE_COLOR = "#3b82f6"

_HEX6 = re.compile(r"^[0-9a-fA-F]{6}$")
_HEX3 = re.compile(r"^[0-9a-fA-F]{3}$")

# Service day groups shown on the legend, in display order
DAY_GROUPS = (("weekday", "Mon-Fri"), ("saturday", "Sat"), ("sunday", "Sun"))

SECONDS_PER_DAY = 24 * 3600


def normalize_color(value: str | None, fallback: str = DEFAULT_ROUTE_COLOR) -> str:
    """Return ``#rrggbb`` for a feed colour, or ``fallback`` if unusable.

    Accepts six- or three-digit hex with or without a leading ``#``. Short
    forms are expanded so the result can always be parsed as RGB.
    """
    if not value:
        return fallback
    v = str(value).strip().replace("#", "")
    if _HEX6.match(v):
        return f"#{v}"
    if _HEX3.match(v):
        return "#" + "".join(c * 2 for c in v)
    return fallback


def pick_text_color(background: str) -> str:
    """Black or white text, whichever reads better on ``background``."""
    hex_ = normalize_color(background).lstrip("#")
    r, g, b = (int(hex_[i : i + 2], 16) / 255 for i in (0, 2, 4))
    lum = 0.2126 * r + 0.7152 * g + 0.0722 * b
    return "#ffffff" if lum < 0.55 else "#111111"


def format_clock_time(seconds: float) -> str:
    """Format seconds after service-day midnight as ``h:mmam``.

    Times past midnight (feeds allow ``25:10:00``) get a ``+N`` day suffix.
    Negative times wrap onto the service day without a suffix; non-finite
    input gives ``""``.
    """
    if not math.isfinite(seconds):
        return ""
    raw = math.floor(seconds)
    days = max(raw // SECONDS_PER_DAY, 0)
    hours, rem = divmod(raw % SECONDS_PER_DAY, 3600)
    minutes = rem // 60
    suffix = "am" if hours < 12 else "pm"
    hour12 = hours % 12 or 12
    text = f"{hour12}:{minutes:02d}{suffix}"
    if days:
        text += f"+{days}"
    return text


def build_active_hours_text(times: Iterable[float]) -> str:
    """``first-last`` departure range, a single time, or ``""``.

    Non-finite times are ignored.
    """
    ordered = sorted({math.floor(t) for t in times if math.isfinite(t)})
    if not ordered:
        return ""
    if len(ordered) == 1:
        return format_clock_time(ordered[0])
    return f"{format_clock_time(ordered[0])}-{format_clock_time(ordered[-1])}"


def build_grouped_active_hours_text(
    times_by_group: Mapping[str, Iterable[int]],
    fallback_times: Iterable[int] = (),
) -> str:
    """Active hours per day group, e.g. ``Mon-Fri (6:00am-11:00pm), Sun (..)``.

    Groups without departures are omitted. When no group has any,
    ``fallback_times`` are shown as ``All days (..)``.
    """
    parts = []
    for key, name in DAY_GROUPS:
        text = build_active_hours_text(times_by_group.get(key, ()))
        if text:
            parts.append(f"{name} ({text})")
    if parts:
        return ", ".join(parts)
    text = build_active_hours_text(fallback_times)
    return f"All days ({text})" if text else ""


def clip_shape_to_stop(
    points: Sequence[tuple[float, float]], stop: tuple[float, float]
) -> list[tuple[float, float]]:
    """Keep the part of a shape downstream of the point nearest the stop.

    The stop is projected onto the nearest shape segment (longitude scaled
    by the cosine of the stop latitude) and that foot point starts the
    clipped shape.
    """
    pts = [(float(lat), float(lon)) for lat, lon in points]
    if len(pts) < 2:
        return pts
    k = math.cos(math.radians(stop[0]))
    sx, sy = stop[1] * k, stop[0]

    best_index, best_t, best_d = 0, 0.0, math.inf
    for i in range(len(pts) - 1):
        ax, ay = pts[i][1] * k, pts[i][0]
        bx, by = pts[i + 1][1] * k, pts[i + 1][0]
        dx, dy = bx - ax, by - ay
        seg_sq = dx * dx + dy * dy
        t = 0.0 if seg_sq == 0 else ((sx - ax) * dx + (sy - ay) * dy) / seg_sq
        t = min(max(t, 0.0), 1.0)
        d = math.hypot(ax + dx * t - sx, ay + dy * t - sy)
        if d < best_d:
            best_index, best_t, best_d = i, t, d

    a, b = pts[best_index], pts[best_index + 1]
    foot = (a[0] + (b[0] - a[0]) * best_t, a[1] + (b[1] - a[1]) * best_t)
    rest = pts[best_index + 1 :]
    if rest and rest[0] == foot:
        return rest
    return [foot] + rest


def build_route_segment(
    route_id: str,
    points: Sequence[tuple[float, float]],
    stop: tuple[float, float],
    *,
    shape_id: str | None = None,
    color: str | None = None,
    label: str = "",
    direction_id: str | None = None,
    active_hours_text: str = "",
) -> RouteSegment | None:
    """Clip a route's shape to the stop and wrap it as a RouteSegment.

    Returns None when fewer than two points remain after clipping.
    """
    clipped = clip_shape_to_stop(points, stop)
    if len(clipped) < 2:
        return None
    overlap_id = f"{route_id}:{shape_id}" if shape_id else str(route_id)
    return RouteSegment(
        overlap_route_id=overlap_id,
        points=tuple(clipped),
        color=normalize_color(color),
        label=label or str(route_id),
        direction_id=direction_id,
        active_hours_text=active_hours_text,
    )
