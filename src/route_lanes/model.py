"""Data model for route lane layouts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class RouteSegment:
    """One route's path downstream of the stop.

    ``overlap_route_id`` combines route id and shape id and is the identity
    used everywhere in the lane engine.
    """

    overlap_route_id: str
    points: tuple[tuple[float, float], ...]
    color: str
    label: str
    direction_id: str | None = None
    active_hours_text: str = ""


@dataclass
class EdgeUse:
    """How one route traverses an Edge."""

    color: str
    first_index: int
    forward: bool  # True when the route runs along the edge's canonical a -> b


@dataclass
class Edge:
    """An undirected edge between two quantized node keys.

    ``a -> b`` is the canonical direction (the first traversal seen).
    """

    key: tuple[str, str]
    a: str
    b: str
    routes: dict[str, EdgeUse] = field(default_factory=dict)

    @property
    def route_ids(self) -> list[str]:
        return sorted(self.routes)

    @property
    def is_shared(self) -> bool:
        return len(self.routes) > 1


@dataclass
class LaneEvent:
    """A route leaving (split) or joining (merge) a lane group on one side."""

    route_id: str
    op: str  # "S" or "M"
    side: str  # "L" or "R"
    strength: float = 0.0
    node_index: int = 0


@dataclass
class OverlapComponent:
    """A connected stretch of shared edges with one exact route set.

    ``order`` lists route ids left to right, looking along the travel
    direction of ``lead_route``.
    """

    id: str
    route_ids: frozenset[str]
    edges: list[tuple[str, str]]
    nodes: set[str]
    centroid: tuple[float, float]
    lead_route: str
    distance: float = 0.0
    order: list[str] = field(default_factory=list)
    base_scores: dict[str, float] = field(default_factory=dict)
    events: list[LaneEvent] = field(default_factory=list)


@dataclass
class Adjacency:
    """Two touching components whose route sets intersect."""

    source: str
    target: str
    shared_nodes: list[str]
    shared_routes: frozenset[str]


@dataclass
class LaneChain:
    """A maximal run of shared edges drawn as one multi-lane band."""

    component_id: str
    order: list[str]
    points: list[tuple[float, float]]
    lane_step: float
    grouped_width: float

    def offset_for(self, route_id: str) -> float:
        idx = self.order.index(route_id)
        return (idx - (len(self.order) - 1) / 2) * self.lane_step


@dataclass
class LaneState:
    """Where a route sits relative to the corridor centreline on one edge."""

    offset_px: float
    lane_width_px: float
    group_count: int = 1


@dataclass
class RibbonSample:
    x: float
    y: float
    lane_width_px: float


@dataclass
class LaneRibbon:
    """A drawable lane: centre samples with per-sample width."""

    route_id: str
    color: str
    samples: list[RibbonSample]
    round_cap_start: bool = True
    round_cap_end: bool = True

    def to_dict(self) -> dict:
        return {
            "routeId": self.route_id,
            "color": self.color,
            "samples": [
                {"x": s.x, "y": s.y, "laneWidthPx": s.lane_width_px}
                for s in self.samples
            ],
            "roundCapStart": self.round_cap_start,
            "roundCapEnd": self.round_cap_end,
        }


@dataclass
class LegendEntry:
    color: str
    label: str
    active_hours_text: str = ""
    route_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "color": self.color,
            "label": self.label,
            "activeHoursText": self.active_hours_text,
        }


@dataclass
class MarkerPlacement:
    x: float
    y: float
    lane_width_px: float
    on_lane: bool = False

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "laneWidthPx": self.lane_width_px}


@dataclass
class LaneLayout:
    """Result of one lane layout request."""

    ribbons: list[LaneRibbon] = field(default_factory=list)
    legend: list[LegendEntry] = field(default_factory=list)
    event_log: list[dict] = field(default_factory=list)
    snapshots: list[list[str]] = field(default_factory=list)
    components: list[OverlapComponent] = field(default_factory=list)
    chains: list[LaneChain] = field(default_factory=list)
    edges: dict[tuple[str, str], Edge] = field(default_factory=dict)
    marker_placer: Callable[[str, float, float], MarkerPlacement] | None = None

    def place_marker(self, route_id: str, lat: float, lon: float) -> MarkerPlacement:
        """Position a downstream stop marker on ``route_id``'s visible lane."""
        if self.marker_placer is None:
            raise LookupError(f"No lane layout available for route {route_id!r}")
        return self.marker_placer(route_id, lat, lon)

    def component_orders(self) -> dict[str, list[str]]:
        return {comp.id: list(comp.order) for comp in self.components}

    def to_dict(self) -> dict:
        return {
            "ribbons": [r.to_dict() for r in self.ribbons],
            "legend": [e.to_dict() for e in self.legend],
            "eventLog": self.event_log,
            "snapshots": self.snapshots,
        }
