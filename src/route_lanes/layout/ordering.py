"""Lane ordering within overlap components.

Each component gets a left-to-right route order. The order starts from the
routes' headings just past the component, is adjusted by split/merge events
observed at component boundaries, refined so neighbouring components agree
on the relative order of the routes they share, and finally made globally
consistent by replaying events along a traced path outward from the stop.
Components off that path are then re-aligned with their neighbours.
"""

from __future__ import annotations

__all__ = [
    "align_order",
    "apply_event",
    "assign_lane_orders",
    "base_order",
    "derive_events",
    "refine_orders",
    "trace_path",
]

import itertools
from dataclasses import dataclass, field

import networkx as nx

from route_lanes.layout.components import neighbors, route_run, shared_nodes
from route_lanes.layout.context import LaneContext
from route_lanes.layout.geometry import (
    direction,
    left_normal,
    signed_angle,
    walk_along,
    wrap_angle,
)
from route_lanes.layout.terminal import (
    TerminalSplit,
    reconverging_routes,
    resolve_terminal_sides,
)
from route_lanes.model import LaneEvent, OverlapComponent

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def assign_lane_orders(ctx: LaneContext) -> list[str]:
    """Order every component's lanes and record the event log on ``ctx``.

    Returns the traced component path (nearest component first).
    """
    comps = _by_distance(ctx)
    for comp in comps:
        comp.order = base_order(ctx, comp)
    for comp in comps:
        comp.events = derive_events(ctx, comp)
        for event in comp.events:
            comp.order = apply_event(comp.order, event)

    refine_orders(ctx)

    path = trace_path(ctx)
    if path:
        _replay_trace(ctx, path)
    return path


def apply_event(order: list[str], event: LaneEvent) -> list[str]:
    """Bubble the event's route to the left or right edge of ``order``.

    The relative order of every other route is unchanged.
    """
    if event.route_id not in order:
        return list(order)
    rest = [r for r in order if r != event.route_id]
    if event.side == "L":
        return [event.route_id] + rest
    return rest + [event.route_id]


def align_order(
    order: list[str], reference: list[str], reverse: bool = False
) -> list[str]:
    """Reorder the routes ``order`` shares with ``reference`` to match it.

    Shared routes are written back into the slots they already occupy, so
    routes absent from the reference keep their positions.
    """
    ref = list(reversed(reference)) if reverse else list(reference)
    members = set(order)
    ref = [r for r in ref if r in members]
    common = set(ref)
    slots = [i for i, r in enumerate(order) if r in common]
    new = list(order)
    for slot, rid in zip(slots, ref):
        new[slot] = rid
    return new


# ---------------------------------------------------------------------------
# Base order
# ---------------------------------------------------------------------------


def base_order(ctx: LaneContext, comp: OverlapComponent) -> list[str]:
    """Initial order from each route's position just past the component.

    Routes are projected onto the left normal of the component's longest
    edge (in the lead route's direction) and sorted by descending
    projection, so the leftmost route comes first. Ties go to route id.
    """
    longest = max(
        comp.edges,
        key=lambda k: (_edge_length(ctx, k), k),
    )
    edge = ctx.edges[longest]
    d = direction(ctx.node_xy[edge.a], ctx.node_xy[edge.b]) or (1.0, 0.0)
    normal = left_normal(d)
    cx, cy = comp.centroid

    scores: dict[str, float] = {}
    for rid in sorted(comp.route_ids):
        run = route_run(ctx, comp, rid)
        path = ctx.paths[rid]
        exit_idx = run[-1] + 1 if run else 0
        p = walk_along(path.xy, exit_idx, ctx.lookahead_px) or path.xy[exit_idx]
        scores[rid] = (p[0] - cx) * normal[0] + (p[1] - cy) * normal[1]
    comp.base_scores = scores
    return sorted(comp.route_ids, key=lambda r: (-round(scores[r], 9), r))


def _edge_length(ctx: LaneContext, key: tuple[str, str]) -> float:
    (ax, ay), (bx, by) = ctx.node_xy[key[0]], ctx.node_xy[key[1]]
    return ((bx - ax) ** 2 + (by - ay) ** 2) ** 0.5


# ---------------------------------------------------------------------------
# Boundary events
# ---------------------------------------------------------------------------


@dataclass
class _Observation:
    route_id: str
    op: str
    side: str
    strength: float
    node_index: int
    neighbor_id: str


def derive_events(ctx: LaneContext, comp: OverlapComponent) -> list[LaneEvent]:
    """Split/merge events for routes that ``comp`` carries but a neighbour doesn't.

    All boundary observations of a route are aggregated into one event: the
    (op, side) pair with the largest accumulated strength wins, ties going
    to the earliest node index and then the neighbour id.
    """
    observations: list[_Observation] = []
    for nid in neighbors(ctx, comp.id):
        neighbor = ctx.components[nid]
        extras = sorted(comp.route_ids - neighbor.route_ids)
        if not extras:
            continue
        for node in shared_nodes(ctx, comp.id, nid):
            for rid in extras:
                observations.extend(_observe(ctx, comp, neighbor, node, rid))

    acc: dict[str, dict[tuple[str, str], list]] = {}
    for obs in observations:
        per_route = acc.setdefault(obs.route_id, {})
        entry = per_route.setdefault(
            (obs.op, obs.side), [0.0, (obs.node_index, obs.neighbor_id)]
        )
        entry[0] += obs.strength
        entry[1] = min(entry[1], (obs.node_index, obs.neighbor_id))

    events: list[LaneEvent] = []
    for rid, per_route in acc.items():
        (op, side), (strength, (node_index, _)) = min(
            per_route.items(), key=lambda kv: (-kv[1][0], kv[1][1], kv[0])
        )
        events.append(
            LaneEvent(
                route_id=rid,
                op=op,
                side=side,
                strength=strength,
                node_index=node_index,
            )
        )
    events.sort(key=lambda e: (e.node_index, e.route_id))
    return events


def _node_visits(keys: list[str], node: str) -> list[tuple[int, int]]:
    """(first, last) index runs where a route sits on ``node``."""
    visits: list[tuple[int, int]] = []
    i = 0
    while i < len(keys):
        if keys[i] == node:
            j = i
            while j + 1 < len(keys) and keys[j + 1] == node:
                j += 1
            visits.append((i, j))
            i = j + 1
        else:
            i += 1
    return visits


def _observe(
    ctx: LaneContext,
    comp: OverlapComponent,
    neighbor: OverlapComponent,
    node: str,
    rid: str,
) -> list[_Observation]:
    path = ctx.paths[rid]
    comp_keys = set(comp.edges)
    found: list[_Observation] = []
    for first, last in _node_visits(path.node_keys, node):
        in_key = path.edge_keys[first - 1] if first > 0 else None
        out_key = path.edge_keys[last] if last < len(path.edge_keys) else None
        in_comp = in_key is not None and in_key in comp_keys
        out_comp = out_key is not None and out_key in comp_keys
        origin = path.xy[first]
        if in_comp and not out_comp:
            op = "S"
            d = direction(path.xy[first - 1], origin)
            p_r = walk_along(path.xy, last, ctx.lookahead_px)
        elif out_comp and not in_comp:
            op = "M"
            d = direction(origin, path.xy[last + 1])
            p_r = walk_along(path.xy, first, -ctx.lookahead_px)
        else:
            continue
        if d is None or p_r is None:
            continue
        p_c = _continuation_point(ctx, comp, neighbor, node)
        if p_c is None:
            continue

        a_r = _heading(d, origin, p_r, op)
        a_c = _heading(d, origin, p_c, op)
        delta = wrap_angle(a_r - a_c)
        side = "R" if delta > 0 else "L"
        if ctx.frame_sign(comp, rid) < 0:
            side = "L" if side == "R" else "R"
        found.append(
            _Observation(
                route_id=rid,
                op=op,
                side=side,
                strength=abs(delta) * ctx.lookahead_px,
                node_index=first,
                neighbor_id=neighbor.id,
            )
        )
    return found


def _heading(
    d: tuple[float, float],
    origin: tuple[float, float],
    p: tuple[float, float],
    op: str,
) -> float:
    """Signed angle of ``p`` around ``origin``; positive means right of travel."""
    v = (p[0] - origin[0], p[1] - origin[1])
    if op == "S":
        return signed_angle(d, v)
    return -signed_angle((-d[0], -d[1]), v)


def _continuation_point(
    ctx: LaneContext,
    comp: OverlapComponent,
    neighbor: OverlapComponent,
    node: str,
) -> tuple[float, float] | None:
    """A point on the neighbour's side of ``node``, taken along a shared route."""
    nb_keys = set(neighbor.edges)
    for cid in sorted(comp.route_ids & neighbor.route_ids):
        path = ctx.paths[cid]
        for first, last in _node_visits(path.node_keys, node):
            if last < len(path.edge_keys) and path.edge_keys[last] in nb_keys:
                p = walk_along(path.xy, last, ctx.lookahead_px)
            elif first > 0 and path.edge_keys[first - 1] in nb_keys:
                p = walk_along(path.xy, first, -ctx.lookahead_px)
            else:
                continue
            if p is not None:
                return p
    for key in neighbor.edges:
        if node in key:
            other = key[1] if key[0] == node else key[0]
            return ctx.node_xy[other]
    return None


# ---------------------------------------------------------------------------
# Refinement
# ---------------------------------------------------------------------------


def refine_orders(ctx: LaneContext) -> int:
    """Make neighbouring components agree on shared routes' relative order.

    Alternates forward (near to far) and backward passes. Each component is
    aligned with all of its already visited neighbours at once (largest
    overlap first, see :func:`_consensus_order`), then the events of routes
    no visited neighbour carries are reapplied. Stops after a pass with no
    change or ``ctx.max_refine_passes`` passes.

    Returns the number of passes run.
    """
    comps = _by_distance(ctx)
    passes = 0
    for pass_no in range(ctx.max_refine_passes):
        passes += 1
        seq = comps if pass_no % 2 == 0 else list(reversed(comps))
        visited: set[str] = set()
        changed = False
        for comp in seq:
            refs = [ctx.components[n] for n in neighbors(ctx, comp.id) if n in visited]
            visited.add(comp.id)
            if not refs:
                continue
            refs.sort(
                key=lambda r: (
                    -len(r.route_ids & comp.route_ids),
                    r.distance,
                    _index(r.id),
                )
            )
            covered = set().union(*(r.route_ids for r in refs))
            new = _consensus_order(ctx, comp, refs)
            for event in comp.events:
                if event.route_id not in covered:
                    new = apply_event(new, event)
            if new != comp.order:
                comp.order = new
                changed = True
        if not changed:
            break
    return passes


def _consensus_order(
    ctx: LaneContext, comp: OverlapComponent, refs: list[OverlapComponent]
) -> list[str]:
    """Align ``comp`` with several neighbours at once.

    Each reference contributes "x before y" constraints for consecutive
    shared routes (in ``comp``'s frame). References are taken in the given
    priority order and one whose constraints would close a cycle is skipped.
    The merged sequence is written into the shared routes' slots; routes the
    constraints leave unordered keep their current relative order.
    """
    G = nx.DiGraph()
    for ref in refs:
        seq = ref.order[::-1] if _reversed_frames(ctx, comp, ref) else ref.order
        shared = [r for r in seq if r in comp.route_ids]
        G.add_nodes_from(shared)
        added = [p for p in zip(shared, shared[1:]) if not G.has_edge(*p)]
        G.add_edges_from(added)
        if not nx.is_directed_acyclic_graph(G):
            G.remove_edges_from(added)
    if not G:
        return list(comp.order)
    pos = {rid: i for i, rid in enumerate(comp.order)}
    merged = list(nx.lexicographical_topological_sort(G, key=pos.__getitem__))
    return align_order(comp.order, merged)


def _reversed_frames(
    ctx: LaneContext, a: OverlapComponent, b: OverlapComponent
) -> bool:
    """True when the two components' left/right frames point opposite ways."""
    common = sorted(a.route_ids & b.route_ids)
    if not common:
        return False
    rid = common[0]
    return ctx.frame_sign(a, rid) * ctx.frame_sign(b, rid) < 0


# ---------------------------------------------------------------------------
# Global trace
# ---------------------------------------------------------------------------


def trace_path(ctx: LaneContext) -> list[str]:
    """Walk components outward from the stop.

    From the nearest component, repeatedly step to the unvisited neighbour
    with the largest route overlap whose distance from the stop does not
    decrease.
    """
    comps = _by_distance(ctx)
    if not comps:
        return []
    current = comps[0]
    path = [current.id]
    visited = {current.id}
    while True:
        candidates = [
            ctx.components[n]
            for n in neighbors(ctx, current.id)
            if n not in visited and ctx.components[n].distance >= current.distance
        ]
        if not candidates:
            break
        current = min(
            candidates,
            key=lambda c: (
                -len(c.route_ids & ctx.components[path[-1]].route_ids),
                c.distance,
                _index(c.id),
            ),
        )
        path.append(current.id)
        visited.add(current.id)
    return path


@dataclass
class _Transition:
    comp_id: str
    splits: list[tuple[str, str]] = field(default_factory=list)
    merges: list[tuple[str, str]] = field(default_factory=list)
    reverse: bool = False
    terminal: bool = False


@dataclass
class _Replay:
    cost: int = 0
    log: list[dict] = field(default_factory=list)
    snapshots: list[list[str]] = field(default_factory=list)
    states: dict[str, list[str]] = field(default_factory=dict)
    master: list[str] = field(default_factory=list)


def _replay_trace(ctx: LaneContext, path: list[str]) -> None:
    first = ctx.components[path[0]]
    init = [rid for rid in first.order if _starts_in(ctx, first, rid)]
    if not init:
        init = first.order[:1]
    transitions = _plan_transitions(ctx, path, init)

    last = ctx.components[path[-1]]
    terminal = resolve_terminal_sides(ctx, last, last.order)
    if terminal is not None:
        transitions.append(
            _Transition(comp_id=last.id, splits=list(terminal.splits), terminal=True)
        )

    if len(init) <= ctx.max_permutation_routes:
        start = _search_permutations(init, transitions)
    else:
        start = _rank_heuristic(init, transitions)

    replay = _replay(start, transitions, record=True)
    ctx.event_log = [{"init": [ctx.label(r) for r in start]}] + replay.log
    ctx.snapshots = [list(start)] + replay.snapshots
    for cid, state in replay.states.items():
        ctx.components[cid].order = state

    if terminal is not None:
        _emit_reconvergence(ctx, last, terminal, set(path), replay.master)
    rank = replay.states.get(last.id, list(last.order))
    _propagate_rank(ctx, last, rank, set(path))
    _settle_off_path(ctx, path)


def _emit_reconvergence(
    ctx: LaneContext,
    last: OverlapComponent,
    terminal: TerminalSplit,
    on_path: set[str],
    master: list[str],
) -> None:
    """Log compensating merges for split routes that meet again further out."""
    _, returning = reconverging_routes(ctx, last, terminal, on_path)
    for rid in returning:
        side = terminal.sides[rid]
        if side == "L":
            master.insert(0, rid)
        else:
            master.append(rid)
        ctx.event_log.append({"id": rid, "op": "M", "side": side})
        ctx.snapshots.append(list(master))


def _starts_in(ctx: LaneContext, comp: OverlapComponent, rid: str) -> bool:
    """True when the route's first real edge lies in ``comp``."""
    keys = set(comp.edges)
    for key in ctx.paths[rid].edge_keys:
        if key is not None:
            return key in keys
    return False


def _positional_side(order: list[str], rid: str) -> str:
    return "L" if order.index(rid) * 2 < len(order) - 1 else "R"


def _event_side(comp: OverlapComponent, rid: str, op: str) -> str:
    fallback = None
    for event in comp.events:
        if event.route_id != rid:
            continue
        if event.op == op:
            return event.side
        fallback = fallback or event.side
    return fallback or _positional_side(comp.order, rid)


def _merge_sequence(comp: OverlapComponent, merges: list[str]) -> list[tuple[str, str]]:
    """Merges ordered so each side's outermost route is inserted last."""
    sided = [(rid, _event_side(comp, rid, "M")) for rid in merges]
    left = sorted(
        (m for m in sided if m[1] == "L"), key=lambda m: -comp.order.index(m[0])
    )
    right = sorted(
        (m for m in sided if m[1] == "R"), key=lambda m: comp.order.index(m[0])
    )
    return left + right


def _plan_transitions(
    ctx: LaneContext, path: list[str], init: list[str]
) -> list[_Transition]:
    first = ctx.components[path[0]]
    start_merges = [r for r in first.order if r not in init]
    transitions = [
        _Transition(comp_id=first.id, merges=_merge_sequence(first, start_merges))
    ]
    for prev_id, next_id in zip(path, path[1:]):
        prev = ctx.components[prev_id]
        nxt = ctx.components[next_id]
        splits = [
            (rid, _event_side(prev, rid, "S"))
            for rid in sorted(prev.route_ids - nxt.route_ids)
        ]
        merges = [r for r in nxt.order if r not in prev.route_ids]
        transitions.append(
            _Transition(
                comp_id=nxt.id,
                splits=splits,
                merges=_merge_sequence(nxt, merges),
                reverse=_reversed_frames(ctx, prev, nxt),
            )
        )
    return transitions


def _split_cost(master: list[str], rid: str, side: str) -> int:
    idx = master.index(rid)
    return idx if side == "L" else len(master) - 1 - idx


def _replay(
    start: list[str] | tuple[str, ...],
    transitions: list[_Transition],
    record: bool = False,
) -> _Replay:
    """Replay split/merge events on a master order, counting lane swaps.

    A split costs the number of lanes its route must cross to reach its
    side; pending splits on one boundary go outermost first.
    """
    result = _Replay(master=list(start))
    master = result.master
    for step in transitions:
        pending = list(step.splits)
        while pending:
            rid, side = min(
                pending, key=lambda s: (_split_cost(master, s[0], s[1]), s[0])
            )
            pending.remove((rid, side))
            result.cost += _split_cost(master, rid, side)
            master.remove(rid)
            if record:
                result.log.append({"id": rid, "op": "S", "side": side})
                result.snapshots.append(list(master))
        if step.reverse:
            master.reverse()
        for rid, side in step.merges:
            if side == "L":
                master.insert(0, rid)
            else:
                master.append(rid)
            if record:
                result.log.append({"id": rid, "op": "M", "side": side})
                result.snapshots.append(list(master))
        if record and not step.terminal:
            result.states[step.comp_id] = list(master)
    return result


def _search_permutations(
    init: list[str], transitions: list[_Transition]
) -> list[str]:
    """Starting order with the lowest replay cost (first found wins ties)."""
    best: list[str] = list(init)
    best_cost: int | None = None
    for perm in itertools.permutations(init):
        cost = _replay(perm, transitions).cost
        if best_cost is None or cost < best_cost:
            best, best_cost = list(perm), cost
            if cost == 0:
                break
    return best


def _rank_heuristic(init: list[str], transitions: list[_Transition]) -> list[str]:
    """Cheap starting order for large groups.

    Routes that first split left go to the left edge (earliest split
    outermost), routes that first split right go to the right edge, and the
    rest keep their current order in between.
    """
    first_split: dict[str, tuple[int, str]] = {}
    for step_no, step in enumerate(transitions):
        for rid, side in step.splits:
            first_split.setdefault(rid, (step_no, side))
    big = len(transitions) + 1

    def rank(item: tuple[int, str]) -> tuple[int, int]:
        pos, rid = item
        if rid in first_split:
            step_no, side = first_split[rid]
            if side == "L":
                return (0, step_no)
            return (2, big - step_no)
        return (1, pos)

    return [rid for _, rid in sorted(enumerate(init), key=rank)]


def _propagate_rank(
    ctx: LaneContext,
    last: OverlapComponent,
    rank: list[str],
    on_path: set[str],
) -> None:
    """Reorder components beyond the traced path to the final global rank."""
    for comp in _by_distance(ctx):
        if comp.id in on_path or comp.distance <= last.distance:
            continue
        common = sorted(comp.route_ids & last.route_ids)
        reverse = bool(common) and (
            ctx.frame_sign(comp, common[0]) * ctx.frame_sign(last, common[0]) < 0
        )
        comp.order = align_order(comp.order, rank, reverse)


def _settle_off_path(ctx: LaneContext, path: list[str]) -> None:
    """Re-align components off the traced path with their settled neighbours.

    The replay rewrites the orders on the path, so every other component is
    aligned again, spreading outward by adjacency from the path. Path
    neighbours take priority, then larger overlap, then nearer components.
    Components not connected to the path keep their refined order.
    """
    on_path = set(path)
    settled = set(path)
    pending = [c for c in _by_distance(ctx) if c.id not in settled]
    progress = True
    while pending and progress:
        progress = False
        for comp in list(pending):
            refs = [
                ctx.components[n] for n in neighbors(ctx, comp.id) if n in settled
            ]
            if not refs:
                continue
            refs.sort(
                key=lambda r: (
                    r.id not in on_path,
                    -len(r.route_ids & comp.route_ids),
                    r.distance,
                    _index(r.id),
                )
            )
            comp.order = _consensus_order(ctx, comp, refs)
            settled.add(comp.id)
            pending.remove(comp)
            progress = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _index(cid: str) -> int:
    return int(cid[1:])


def _by_distance(ctx: LaneContext) -> list[OverlapComponent]:
    return sorted(ctx.components.values(), key=lambda c: (c.distance, _index(c.id)))
