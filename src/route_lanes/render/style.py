"""Colours and sizes for sign-map rendering."""

from __future__ import annotations

__all__ = ["DARK_THEME", "LIGHT_THEME", "THEMES", "Theme"]

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    name: str
    background_color: str
    map_background_color: str
    stop_fill: str
    stop_stroke: str
    stop_radius: float
    marker_fill: str
    marker_stroke: str
    marker_stroke_width: float
    label_color: str
    secondary_label_color: str
    font_family: str = "system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"
    legend_font_size: float = 16.0
    legend_hours_font_size: float = 12.0
    legend_row_height: float = 40.0
    legend_pill_radius: float = 14.0
    padding: float = 24.0


LIGHT_THEME = Theme(
    name="light",
    background_color="#ffffff",
    map_background_color="#f4f4f5",
    stop_fill="#ffffff",
    stop_stroke="#111111",
    stop_radius=7.0,
    marker_fill="#ffffff",
    marker_stroke="#111111",
    marker_stroke_width=1.5,
    label_color="#111111",
    secondary_label_color="#666666",
)

DARK_THEME = Theme(
    name="dark",
    background_color="#18181b",
    map_background_color="#27272a",
    stop_fill="#18181b",
    stop_stroke="#fafafa",
    stop_radius=7.0,
    marker_fill="#18181b",
    marker_stroke="#fafafa",
    marker_stroke_width=1.5,
    label_color="#fafafa",
    secondary_label_color="#a1a1aa",
)

THEMES = {t.name: t for t in (LIGHT_THEME, DARK_THEME)}
