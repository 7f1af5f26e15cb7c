"""Tests for upstream reachability resolution."""

from src.workflow.models import Edge
from src.workflow.reachability import upstream_of, variable_sources


def _pairs(result):
    return [(u.node.id, u.depth) for u in result]


def test_chain_is_returned_nearest_first(build_graph):
    graph = build_graph(
        [("t", "manual-trigger"), ("a", "data-fetch"), ("b", "formula-calc"), ("c", "notify")],
        [("t", "a"), ("a", "b"), ("b", "c")],
    )

    assert _pairs(upstream_of(graph, "c")) == [("b", 1), ("a", 2), ("t", 3)]


def test_shortest_path_depth_wins(build_graph):
    """A node reachable by a long and a short path keeps the smaller depth."""
    graph = build_graph(
        [("t", "manual-trigger"), ("a", "data-fetch"), ("b", "formula-calc"), ("c", "notify")],
        [("t", "a"), ("a", "b"), ("b", "c"), ("t", "c")],
    )

    assert _pairs(upstream_of(graph, "c")) == [("b", 1), ("t", 1), ("a", 2)]


def test_ties_keep_incoming_edge_order(build_graph):
    graph = build_graph(
        [("y", "data-fetch"), ("x", "data-fetch"), ("target", "formula-calc")],
        [("x", "target"), ("y", "target")],
    )

    assert _pairs(upstream_of(graph, "target")) == [("x", 1), ("y", 1)]


def test_forward_and_unrelated_nodes_are_excluded(build_graph):
    graph = build_graph(
        [
            ("t", "manual-trigger"),
            ("a", "data-fetch"),
            ("sibling", "data-fetch"),
            ("after", "notify"),
            ("island", "formula-calc"),
        ],
        [("t", "a"), ("t", "sibling"), ("a", "after")],
    )

    assert _pairs(upstream_of(graph, "a")) == [("t", 1)]


def test_query_node_is_never_returned_on_cycles(build_graph):
    """Cyclic drafts terminate and never list the queried node."""
    graph = build_graph(
        [("a", "formula-calc"), ("b", "formula-calc"), ("c", "formula-calc")],
        [("a", "b"), ("b", "c"), ("c", "a"), ("a", "a")],
    )

    for node_id in ("a", "b", "c"):
        result = upstream_of(graph, node_id)
        assert node_id not in [u.node.id for u in result]
        assert len(result) == 2


def test_unknown_node_yields_empty_result(build_graph):
    graph = build_graph([("a", "formula-calc")])

    assert upstream_of(graph, "missing") == []


def test_dangling_incoming_edges_are_skipped(build_graph):
    graph = build_graph(
        [("a", "data-fetch"), ("b", "formula-calc")],
        [Edge("e1", "ghost", "b"), Edge("e2", "a", "b")],
    )

    assert _pairs(upstream_of(graph, "b")) == [("a", 1)]


def test_every_depth_is_backed_by_a_path(build_graph):
    """A node at depth k has an edge into some node at depth k - 1."""
    graph = build_graph(
        [(n, "formula-calc") for n in "abcdefg"],
        [("a", "b"), ("b", "d"), ("c", "d"), ("d", "g"), ("e", "f"), ("f", "g"), ("a", "e"), ("g", "a")],
    )

    result = upstream_of(graph, "g")
    depth = {u.node.id: u.depth for u in result}
    depth["g"] = 0
    for upstream in result:
        successors = [e.dest for e in graph.outgoing(upstream.node.id)]
        assert any(depth.get(s) == upstream.depth - 1 for s in successors)


def test_variable_sources_drop_nodes_without_outputs(build_graph, catalog):
    graph = build_graph(
        [("t", "manual-trigger"), ("fetch", "data-fetch"), ("alert", "notify"), ("calc", "formula-calc")],
        [("t", "fetch"), ("fetch", "alert"), ("alert", "calc")],
    )

    assert [u.node.id for u in upstream_of(graph, "calc")] == ["alert", "fetch", "t"]
    assert [u.node.id for u in variable_sources(graph, "calc", catalog)] == ["fetch", "t"]
