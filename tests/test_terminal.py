"""Tests for terminal divergence side resolution."""

from conftest import context_for, segment, three_way_segments, trunk_segments

from route_lanes.layout.ordering import base_order
from route_lanes.layout.terminal import reconverging_routes, resolve_terminal_sides


def _ordered(segments, **settings):
    ctx = context_for(segments, **settings)
    for comp in ctx.components.values():
        comp.order = base_order(ctx, comp)
    return ctx


def test_pair_resolved_by_exit_heading():
    ctx = _ordered(trunk_segments())
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, comp.order)
    assert split.method == "exit"
    assert split.sides == {"A": "L", "B": "R"}
    assert split.splits == [("A", "L")]
    assert split.order == ["A", "B"]


def test_pair_sides_differ_even_when_order_is_given_reversed():
    ctx = _ordered(trunk_segments())
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, ["B", "A"])
    assert split.sides["A"] != split.sides["B"]
    assert split.sides["A"] == "L"


def test_pair_falls_back_to_downstream_turn():
    """Both routes leave due east, then bend apart further out."""
    trunk = [(0, 0), (0, 1), (0, 2), (0, 3)]
    a = segment("A", trunk + [(0, 4), (1, 5), (2, 6), (3, 7)])
    b = segment("B", trunk + [(0, 5), (-1, 6), (-2, 7)])
    ctx = _ordered([a, b])
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, comp.order)
    assert split.method == "turn"
    assert split.sides == {"A": "L", "B": "R"}


def test_pair_with_no_signal_keeps_lane_order():
    trunk = [(0, 0), (0, 1), (0, 2), (0, 3)]
    ctx = _ordered([segment("A", trunk), segment("B", trunk)])
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, ["B", "A"])
    assert split.method == "index"
    assert split.sides == {"B": "L", "A": "R"}
    assert split.splits == [("B", "L")]


def test_single_route_needs_no_split():
    ctx = _ordered(trunk_segments())
    comp = ctx.components["c0"]
    assert resolve_terminal_sides(ctx, comp, ["A"]) is None


def test_many_routes_bisected_by_turn():
    ctx = _ordered(three_way_segments())
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, comp.order)
    assert split.left == ["A"]
    assert split.right == ["B", "C"]
    # Outermost first on each side, stopping when one lane is left
    assert split.splits == [("A", "L"), ("C", "R")]


def test_reconverging_routes_found_beyond_path():
    a = segment("A", [(0, 0), (0, 1), (0, 2), (1, 2), (2, 2), (2, 3), (2, 4)])
    b = segment("B", [(0, 0), (0, 1), (0, 2), (-1, 2), (-1, 3), (2, 3), (2, 4)])
    ctx = _ordered([a, b])
    near = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, near, near.order)
    far, returning = reconverging_routes(ctx, near, split, {"c0"})
    assert far is ctx.components["c1"]
    assert returning == ["A"]


def test_no_reconvergence_for_plain_trunk():
    ctx = _ordered(trunk_segments())
    comp = ctx.components["c0"]
    split = resolve_terminal_sides(ctx, comp, comp.order)
    assert reconverging_routes(ctx, comp, split, {"c0"}) == (None, [])
