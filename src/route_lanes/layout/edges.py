"""Edge index and overlap detection.

Route points snap to a fixed coordinate grid so that routes following the
same street produce identical node keys. Consecutive keys form undirected
edges; an edge traversed by more than one route is a shared edge.
"""

from __future__ import annotations

__all__ = ["build_edge_index", "edge_key", "quantize", "shared_edges"]

from dataclasses import dataclass, field

from route_lanes.layout.constants import QUANT_PRECISION
from route_lanes.model import Edge, EdgeUse, RouteSegment


def quantize(lat: float, lon: float, precision: int = QUANT_PRECISION) -> str:
    """Stable node key for a coordinate on the 1/precision degree grid."""
    return f"{round(lat * precision)}:{round(lon * precision)}"


def edge_key(a: str, b: str) -> tuple[str, str]:
    """Order-independent key for the edge between two node keys."""
    return (a, b) if a <= b else (b, a)


@dataclass
class RoutePath:
    """A route's quantized walk, aligned with its projected points.

    ``edge_keys[i]`` is the edge between point i and point i + 1, or None when
    both points snapped to the same node.
    """

    route_id: str
    node_keys: list[str]
    edge_keys: list[tuple[str, str] | None]
    xy: list[tuple[float, float]] = field(default_factory=list)
    arc: list[float] = field(default_factory=list)

    def positions_of(self, node: str) -> list[int]:
        return [i for i, k in enumerate(self.node_keys) if k == node]


def route_path(
    segment: RouteSegment, precision: int = QUANT_PRECISION
) -> RoutePath:
    keys = [quantize(lat, lon, precision) for lat, lon in segment.points]
    edge_keys: list[tuple[str, str] | None] = []
    for i in range(len(keys) - 1):
        if keys[i] == keys[i + 1]:
            edge_keys.append(None)
        else:
            edge_keys.append(edge_key(keys[i], keys[i + 1]))
    return RoutePath(segment.overlap_route_id, keys, edge_keys)


def build_edge_index(
    segments: list[RouteSegment],
    precision: int = QUANT_PRECISION,
) -> tuple[dict[tuple[str, str], Edge], dict[str, RoutePath]]:
    """Build the edge map for a set of route segments.

    Segments with fewer than two points, or whose points all snap to one
    node, contribute no edges. Only the first segment for a given
    ``overlap_route_id`` is indexed.

    Returns (edges keyed by edge key, route paths keyed by route id).
    """
    edges: dict[tuple[str, str], Edge] = {}
    paths: dict[str, RoutePath] = {}

    for segment in segments:
        rid = segment.overlap_route_id
        if rid in paths or len(segment.points) < 2:
            continue
        path = route_path(segment, precision)
        if all(k is None for k in path.edge_keys):
            continue
        paths[rid] = path

        for i, key in enumerate(path.edge_keys):
            if key is None:
                continue
            a, b = path.node_keys[i], path.node_keys[i + 1]
            edge = edges.get(key)
            if edge is None:
                edge = Edge(key=key, a=a, b=b)
                edges[key] = edge
            if rid not in edge.routes:
                # First occurrence is also the lowest segment-local index
                edge.routes[rid] = EdgeUse(
                    color=segment.color, first_index=i, forward=(edge.a == a)
                )

    return edges, paths


def shared_edges(edges: dict[tuple[str, str], Edge]) -> dict[tuple[str, str], Edge]:
    """Edges traversed by more than one route."""
    return {key: edge for key, edge in edges.items() if edge.is_shared}
