"""SVG sign-map renderer built on drawsvg.

The map occupies the top ``width`` x ``height`` px of the drawing; legend
rows are stacked underneath it.
"""

from __future__ import annotations

__all__ = ["render_svg"]

import drawsvg as draw

from route_lanes.layout.lanes import ribbon_trapezoids
from route_lanes.model import LaneLayout, LaneRibbon, MarkerPlacement
from route_lanes.prepare import pick_text_color
from route_lanes.render.style import LIGHT_THEME, Theme


def render_svg(
    layout: LaneLayout,
    theme: Theme = LIGHT_THEME,
    width: float = 600.0,
    height: float = 400.0,
    stop_xy: tuple[float, float] | None = None,
    markers: list[MarkerPlacement] | None = None,
) -> str:
    """Render a lane layout and its legend to an SVG string.

    Ribbons are drawn as one filled quadrilateral per sample pair, so the
    width can change smoothly along a ribbon; round caps are circles at
    the ends that ask for them.
    """
    legend_height = len(layout.legend) * theme.legend_row_height
    total_height = height + (legend_height + theme.padding if layout.legend else 0)
    d = draw.Drawing(width, total_height, origin=(0, 0))

    d.append(draw.Rectangle(0, 0, width, total_height, fill=theme.background_color))
    d.append(draw.Rectangle(0, 0, width, height, fill=theme.map_background_color))

    for ribbon in layout.ribbons:
        _draw_ribbon(d, ribbon)

    for marker in markers or []:
        d.append(
            draw.Circle(
                marker.x,
                marker.y,
                max(marker.lane_width_px * 0.6, 2.5),
                fill=theme.marker_fill,
                stroke=theme.marker_stroke,
                stroke_width=theme.marker_stroke_width,
            )
        )

    if stop_xy is not None:
        d.append(
            draw.Circle(
                stop_xy[0],
                stop_xy[1],
                theme.stop_radius,
                fill=theme.stop_fill,
                stroke=theme.stop_stroke,
                stroke_width=2,
            )
        )

    _draw_legend(d, layout, theme, top=height + theme.padding)
    return d.as_svg()


def _draw_ribbon(d: draw.Drawing, ribbon: LaneRibbon) -> None:
    group = draw.Group(id=f"ribbon-{ribbon.route_id}")
    for quad in ribbon_trapezoids(ribbon):
        coords = [c for point in quad for c in point]
        # Hairline stroke in the fill colour hides seams between quads
        group.append(
            draw.Lines(
                *coords,
                close=True,
                fill=ribbon.color,
                stroke=ribbon.color,
                stroke_width=0.5,
            )
        )
    if ribbon.samples:
        first, last = ribbon.samples[0], ribbon.samples[-1]
        if ribbon.round_cap_start:
            group.append(
                draw.Circle(first.x, first.y, first.lane_width_px / 2, fill=ribbon.color)
            )
        if ribbon.round_cap_end:
            group.append(
                draw.Circle(last.x, last.y, last.lane_width_px / 2, fill=ribbon.color)
            )
    d.append(group)


def _draw_legend(d: draw.Drawing, layout: LaneLayout, theme: Theme, top: float) -> None:
    x = theme.padding
    r = theme.legend_pill_radius
    for i, entry in enumerate(layout.legend):
        cy = top + i * theme.legend_row_height + r
        pill_w = max(2 * r, len(entry.label) * theme.legend_font_size * 0.6 + r)
        d.append(draw.Rectangle(x, cy - r, pill_w, 2 * r, rx=r, ry=r, fill=entry.color))
        d.append(
            draw.Text(
                entry.label,
                theme.legend_font_size,
                x + pill_w / 2,
                cy,
                fill=pick_text_color(entry.color),
                font_family=theme.font_family,
                font_weight="bold",
                text_anchor="middle",
                dominant_baseline="central",
            )
        )
        if entry.active_hours_text:
            d.append(
                draw.Text(
                    entry.active_hours_text,
                    theme.legend_hours_font_size,
                    x + pill_w + 12,
                    cy,
                    fill=theme.secondary_label_color,
                    font_family=theme.font_family,
                    dominant_baseline="central",
                )
            )
