"""Tests for graph parsing, normalisation and edge classification."""

from __future__ import annotations

import pytest

from conftest import block, link

from Blockduino.transpile.graph import BlockKind, Edge, EdgeKind, FlowGraph, Node
from Blockduino.transpile.normalize import kind_of, normalize
from Blockduino.transpile.parser import parse_flow_graph, parse_flow_graph_json


def test_parse_drops_malformed_entries(flow) -> None:
    raw = flow(
        [
            block("d1", "delay", ms=10),
            {"type": "visualBlock", "data": {"blockType": "delay"}},
            {"id": 7, "data": {"blockType": "delay"}},
            "not a node",
        ],
        [
            link("loop", "d1", "body"),
            {"id": "bad_source", "source": 3, "target": "d1"},
            {"source": "loop", "target": "d1"},
            None,
        ],
    )

    graph = parse_flow_graph(raw)

    assert [node.id for node in graph.nodes] == ["setup", "loop", "d1"]
    assert [edge.id for edge in graph.edges] == ["e_loop_body_d1"]


def test_parse_keeps_first_of_duplicate_node_ids(flow) -> None:
    raw = flow([block("d1", "delay", ms=10), block("d1", "comment", text="x")], [])

    graph = parse_flow_graph(raw)

    dupes = [node for node in graph.nodes if node.id == "d1"]
    assert len(dupes) == 1
    assert dupes[0].kind is BlockKind.DELAY


def test_parse_non_mapping_gives_rooted_empty_graph() -> None:
    graph = parse_flow_graph(["nodes"])

    assert graph.version == 2
    assert sorted(node.kind.value for node in graph.nodes) == ["loop", "setup"]
    assert graph.edges == []


def test_parse_invalid_json_is_tolerated() -> None:
    graph = parse_flow_graph_json("{not json")

    assert graph.version == 2
    assert {node.id for node in graph.nodes} == {"setup", "loop"}


def test_parse_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        parse_flow_graph({}, mode="diagram")


def test_parse_current_mode_types_every_edge(flow) -> None:
    raw = flow(
        [block("d1", "delay"), block("d2", "delay")],
        [link("loop", "d1"), link("d1", "d2")],
        version=None,
    )

    graph = parse_flow_graph(raw, mode="current")

    kinds = {(edge.source, edge.target): edge.kind for edge in graph.edges}
    assert kinds == {("loop", "d1"): EdgeKind.BODY, ("d1", "d2"): EdgeKind.NEXT}
    assert all(edge.target_handle == "in" for edge in graph.edges)
    assert all(edge.source_handle == edge.kind.value for edge in graph.edges)


def test_parse_auto_detects_typed_edges_without_version(flow) -> None:
    raw = flow(
        [block("if1", "if_condition"), block("d1", "delay")],
        [link("loop", "if1", "body"), link("if1", "d1", "body")],
        version=None,
    )

    graph = parse_flow_graph(raw)

    assert graph.version == 2
    assert any(e.source == "if1" and e.kind is EdgeKind.BODY for e in graph.edges)


def test_parse_preserves_presentation_metadata(flow) -> None:
    raw = flow([block("d1", "delay", ms=5)], [link("loop", "d1", "body")])

    graph = parse_flow_graph(raw)
    node = graph.nodes_by_id()["d1"]

    assert node.extra["position"] == {"x": 0, "y": 0}
    assert graph.to_dict()["nodes"][2]["data"] == {
        "blockType": "delay",
        "params": {"ms": 5},
    }


def test_kind_of_resolution_order() -> None:
    nodes = {
        "loop": Node(id="loop", block_type="loop"),
        "d1": Node(id="d1", block_type="delay"),
    }

    assert kind_of(Edge("a", "d1", "loop", kind=EdgeKind.ELSE, source_handle="body"), nodes) is EdgeKind.ELSE
    assert kind_of(Edge("b", "d1", "loop", source_handle="else"), nodes) is EdgeKind.ELSE
    assert kind_of(Edge("c", "loop", "d1", source_handle="out"), nodes) is EdgeKind.BODY
    assert kind_of(Edge("d", "d1", "loop"), nodes) is EdgeKind.NEXT
    assert kind_of(Edge("e", "ghost", "d1"), nodes) is EdgeKind.NEXT


def test_normalize_synthesizes_roots_once() -> None:
    graph = FlowGraph(nodes=[Node(id="d1", block_type="delay")])

    once = normalize(graph)
    twice = normalize(once)

    kinds = [node.kind for node in once.nodes]
    assert kinds.count(BlockKind.SETUP) == 1
    assert kinds.count(BlockKind.LOOP) == 1
    assert once == twice


def test_normalize_avoids_taken_root_ids() -> None:
    graph = FlowGraph(
        nodes=[Node(id="setup", block_type="delay"), Node(id="loop", block_type="comment")]
    )

    ids = {node.id: node.kind for node in normalize(graph).nodes}

    assert ids["setup_root"] is BlockKind.SETUP
    assert ids["loop_root"] is BlockKind.LOOP


def test_normalize_keeps_duplicate_roots() -> None:
    graph = FlowGraph(
        nodes=[
            Node(id="l1", block_type="loop"),
            Node(id="l2", block_type="loop"),
            Node(id="s1", block_type="setup"),
        ]
    )

    result = normalize(graph)

    assert [node.id for node in result.nodes] == ["l1", "l2", "s1"]


def test_normalize_tags_block_nodes_only() -> None:
    graph = FlowGraph(
        nodes=[
            Node(id="a", block_type="delay", type="default"),
            Node(id="b", block_type="mystery"),
            Node(id="note", type="sticky"),
        ]
    )

    types = {node.id: node.type for node in normalize(graph).nodes}

    assert types["a"] == "visualBlock"
    assert types["b"] == "visualBlock"
    assert types["note"] == "sticky"
