"""Sign-map rendering.

Public API:
- render_svg: Draw a lane layout and legend as SVG
- Theme, LIGHT_THEME, DARK_THEME: Rendering styles
"""

from route_lanes.render.style import DARK_THEME, LIGHT_THEME, THEMES, Theme
from route_lanes.render.svg import render_svg

__all__ = [
    "DARK_THEME",
    "LIGHT_THEME",
    "THEMES",
    "Theme",
    "render_svg",
]
