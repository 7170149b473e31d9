"""Overlap component graph.

Shared edges with the same exact route set are flood-filled into connected
components. Components that touch at a node and carry at least one common
route are adjacent; the common routes must keep their relative order across
that boundary.
"""

from __future__ import annotations

__all__ = ["build_adjacency", "build_components", "route_run"]

from collections import defaultdict

import networkx as nx

from route_lanes.layout.context import LaneContext
from route_lanes.model import Adjacency, OverlapComponent


def build_components(ctx: LaneContext) -> list[OverlapComponent]:
    """Group shared edges into components and register them on ``ctx``.

    Components are numbered by distance from the stop, then route-set
    signature, then smallest node key, so ids are stable across runs.
    """
    groups: dict[tuple[str, ...], list[tuple[str, str]]] = defaultdict(list)
    for key, edge in ctx.shared.items():
        groups[tuple(edge.route_ids)].append(key)

    found: list[OverlapComponent] = []
    for signature in sorted(groups):
        keys = sorted(groups[signature])
        G = nx.Graph()
        G.add_edges_from(keys)
        for nodes in nx.connected_components(G):
            comp_edges = [k for k in keys if k[0] in nodes]
            xs = [ctx.node_xy[n][0] for n in nodes]
            ys = [ctx.node_xy[n][1] for n in nodes]
            routes = frozenset(signature)
            found.append(
                OverlapComponent(
                    id="",
                    route_ids=routes,
                    edges=comp_edges,
                    nodes=set(nodes),
                    centroid=(sum(xs) / len(xs), sum(ys) / len(ys)),
                    lead_route=min(routes, key=ctx.route_rank),
                    distance=min(ctx.node_dist.get(n, 0.0) for n in nodes),
                )
            )

    found.sort(key=lambda c: (c.distance, sorted(c.route_ids), min(c.nodes)))
    ctx.components = {}
    ctx.edge_component = {}
    for i, comp in enumerate(found):
        comp.id = f"c{i}"
        ctx.components[comp.id] = comp
        for key in comp.edges:
            ctx.edge_component[key] = comp.id
    return found


def build_adjacency(ctx: LaneContext) -> list[Adjacency]:
    """Connect components that share a node and intersect in route set."""
    by_node: dict[str, list[str]] = defaultdict(list)
    for comp in ctx.components.values():
        for node in comp.nodes:
            by_node[node].append(comp.id)

    shared_nodes: dict[tuple[str, str], set[str]] = defaultdict(set)
    for node, cids in by_node.items():
        cids = sorted(cids, key=_comp_index)
        for i, a in enumerate(cids):
            for b in cids[i + 1 :]:
                shared_nodes[(a, b)].add(node)

    G = nx.Graph()
    G.add_nodes_from(sorted(ctx.components, key=_comp_index))
    result: list[Adjacency] = []
    for (a, b), nodes in sorted(
        shared_nodes.items(), key=lambda kv: (_comp_index(kv[0][0]), _comp_index(kv[0][1]))
    ):
        common = ctx.components[a].route_ids & ctx.components[b].route_ids
        if not common:
            continue
        adj = Adjacency(
            source=a, target=b, shared_nodes=sorted(nodes), shared_routes=common
        )
        G.add_edge(a, b, shared_nodes=adj.shared_nodes, shared_routes=common)
        result.append(adj)
    ctx.adjacency = G
    return result


def neighbors(ctx: LaneContext, cid: str) -> list[str]:
    """Adjacent component ids in stable order."""
    return sorted(ctx.adjacency.neighbors(cid), key=_comp_index)


def shared_nodes(ctx: LaneContext, a: str, b: str) -> list[str]:
    return ctx.adjacency.edges[a, b]["shared_nodes"]


def _comp_index(cid: str) -> int:
    return int(cid[1:])


def route_run(ctx: LaneContext, comp: OverlapComponent, rid: str) -> list[int]:
    """Indices of the route's edges that belong to ``comp``."""
    keys = set(comp.edges)
    return [i for i, k in enumerate(ctx.paths[rid].edge_keys) if k in keys]
