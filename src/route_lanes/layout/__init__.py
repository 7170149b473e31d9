"""Lane layout engine.

Public API:
- compute_lane_layout: Run the full pipeline for one stop
- build_legend: Merge segments into legend rows
"""

from route_lanes.layout.engine import build_legend, compute_lane_layout

__all__ = [
    "build_legend",
    "compute_lane_layout",
]
