"""Request-scoped state shared by the lane layout stages."""

from __future__ import annotations

from dataclasses import dataclass, field

import networkx as nx

from route_lanes.layout.constants import (
    GROUPED_WIDTH_RULES,
    LOOKAHEAD_PX,
    MAX_PERMUTATION_ROUTES,
    MAX_REFINE_PASSES,
    MAX_TRIANGLE_PX,
    MIN_LANE_STEP,
    MITER_LIMIT,
    SAMPLE_STEP_PX,
    TERMINAL_EPSILON,
    TERMINAL_SAMPLE_PX,
    TRANSITION_PX,
    WidthRule,
)
from route_lanes.layout.edges import RoutePath
from route_lanes.model import Edge, LaneChain, OverlapComponent, RouteSegment


@dataclass
class LaneContext:
    """Everything one lane layout request computes, built fresh per call."""

    segments: dict[str, RouteSegment]
    route_order: list[str]
    paths: dict[str, RoutePath]
    edges: dict[tuple[str, str], Edge]
    node_xy: dict[str, tuple[float, float]]
    node_dist: dict[str, float]
    stop_xy: tuple[float, float]
    lookahead_px: float = LOOKAHEAD_PX
    max_refine_passes: int = MAX_REFINE_PASSES
    max_permutation_routes: int = MAX_PERMUTATION_ROUTES
    terminal_epsilon: float = TERMINAL_EPSILON
    terminal_sample_px: float = TERMINAL_SAMPLE_PX
    width_rules: tuple[WidthRule, ...] = GROUPED_WIDTH_RULES
    min_lane_step: float = MIN_LANE_STEP
    sample_step_px: float = SAMPLE_STEP_PX
    transition_px: float = TRANSITION_PX
    miter_limit: float = MITER_LIMIT
    max_triangle_px: float = MAX_TRIANGLE_PX
    components: dict[str, OverlapComponent] = field(default_factory=dict)
    edge_component: dict[tuple[str, str], str] = field(default_factory=dict)
    adjacency: nx.Graph = field(default_factory=nx.Graph)
    chains: list[LaneChain] = field(default_factory=list)
    event_log: list[dict] = field(default_factory=list)
    snapshots: list[list[str]] = field(default_factory=list)

    @property
    def shared(self) -> dict[tuple[str, str], Edge]:
        return {k: e for k, e in self.edges.items() if e.is_shared}

    def route_rank(self, route_id: str) -> int:
        return self.route_order.index(route_id)

    def label(self, route_id: str) -> str:
        return self.segments[route_id].label

    def frame_sign(self, comp: OverlapComponent, route_id: str) -> int:
        """+1 when the route travels along the component's lead direction."""
        for key in comp.edges:
            use = self.edges[key].routes.get(route_id)
            if use is not None:
                return 1 if use.forward else -1
        return 1

    def grouped_width(self, count: int) -> float:
        """Corridor width for a group of ``count`` routes (first rule wins)."""
        for rule in self.width_rules:
            if rule.max_count is None or count <= rule.max_count:
                return rule.width
        return self.width_rules[-1].width

    def lane_step(self, count: int) -> float:
        return max(self.min_lane_step, self.grouped_width(count) / max(count, 1))

    def component_of(self, route_id: str, edge_index: int) -> OverlapComponent | None:
        """Component holding a route's ``edge_index``-th edge, if shared."""
        key = self.paths[route_id].edge_keys[edge_index]
        if key is None:
            return None
        cid = self.edge_component.get(key)
        return self.components.get(cid) if cid is not None else None
