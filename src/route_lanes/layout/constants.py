"""Tunable constants for the lane layout engine.

Distances are in projected pixels unless noted otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Edge index ---

# Node quantization: coordinates snap to a 1/QUANT_PRECISION degree grid
QUANT_PRECISION = 5000

# --- Ordering ---

# Distance walked past a boundary node to read a route's heading
LOOKAHEAD_PX = 24.0

# Refinement passes over all components (alternating forward/backward)
MAX_REFINE_PASSES = 4

# Largest starting route count searched exhaustively by the global trace
MAX_PERMUTATION_ROUTES = 8

# --- Terminal divergence ---

# Signals closer than this are treated as indistinguishable
TERMINAL_EPSILON = 1e-6

# Arc distance past the shared corridor used for the turn-angle test
TERMINAL_SAMPLE_PX = 40.0

# --- Lane geometry ---


@dataclass(frozen=True)
class WidthRule:
    """Grouped corridor width for groups of at most ``max_count`` routes.

    ``max_count=None`` matches any group size.
    """

    max_count: int | None
    width: float


# Evaluated top to bottom, first match wins
GROUPED_WIDTH_RULES: tuple[WidthRule, ...] = (
    WidthRule(1, 6.0),
    WidthRule(2, 10.0),
    WidthRule(3, 13.5),
    WidthRule(4, 16.0),
    WidthRule(6, 20.0),
    WidthRule(None, 24.0),
)

# Narrowest centre-to-centre distance between neighbouring lanes
MIN_LANE_STEP = 2.0

# Arc-length step for sampling route paths before offsetting
SAMPLE_STEP_PX = 4.0

# Length of the eased window where a route changes lane group
TRANSITION_PX = 28.0

# Miter joins longer than this multiple of the offset fall back to the bisector
MITER_LIMIT = 4.0

# Micro-triangle / zigzag filter: largest triangle side removed (px)
MAX_TRIANGLE_PX = 3.0

# Turns sharper than this (radians) count as offsetting noise
SHARP_TURN = 2.0

# Passes of the micro-triangle filter
FILTER_PASSES = 3

# --- Markers ---

# Chain centreline tolerance as a multiple of the chain's grouped width
MARKER_WIDTH_TOLERANCE = 1.5

# Allowed slack over the raw-line distance when matching a chain (px)
MARKER_DISTANCE_SLACK = 2.0

# Numeric guard for divisions by lengths
COORD_TOLERANCE = 1e-9
