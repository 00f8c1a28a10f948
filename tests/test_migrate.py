"""Tests for upgrading legacy linear graphs."""

from __future__ import annotations

from conftest import block, link

from Blockduino.transpile.graph import BlockKind, EdgeKind
from Blockduino.transpile.migrate import migrate
from Blockduino.transpile.parser import parse_flow_graph


def _edges(graph):
    return {(e.source, e.target, e.kind) for e in graph.edges}


def test_migrate_end_block_sequence(flow) -> None:
    raw = flow(
        [
            block("if1", "if_condition", "If", condition="true"),
            block("delay1", "delay", "Delay", ms=10),
            block("end1", "end_block", "End"),
            block("serial1", "serial_print", "Serial Print", message="Hi"),
        ],
        [
            link("loop", "if1"),
            link("if1", "delay1"),
            link("delay1", "end1"),
            link("end1", "serial1"),
        ],
        version=None,
    )

    graph = parse_flow_graph(raw)

    assert graph.version == 2
    assert all(node.id != "end1" for node in graph.nodes)
    assert _edges(graph) == {
        ("loop", "if1", EdgeKind.BODY),
        ("if1", "delay1", EdgeKind.BODY),
        ("if1", "serial1", EdgeKind.NEXT),
    }
    assert all(edge.id == f"v2_{edge.kind.value}_{edge.source}_{edge.target}" for edge in graph.edges)


def test_migrate_nested_containers(flow) -> None:
    raw = flow(
        [
            block("for1", "for_loop"),
            block("if1", "if_condition"),
            block("d1", "delay"),
            block("end_if", "end_block"),
            block("d2", "delay"),
            block("end_for", "end_block"),
            block("d3", "delay"),
        ],
        [
            link("loop", "for1"),
            link("for1", "if1"),
            link("if1", "d1"),
            link("d1", "end_if"),
            link("end_if", "d2"),
            link("d2", "end_for"),
            link("end_for", "d3"),
        ],
        version=None,
    )

    graph = migrate(parse_flow_graph(raw, mode="legacy"))

    assert _edges(graph) == {
        ("loop", "for1", EdgeKind.BODY),
        ("for1", "if1", EdgeKind.BODY),
        ("if1", "d1", EdgeKind.BODY),
        ("if1", "d2", EdgeKind.NEXT),
        ("for1", "d3", EdgeKind.NEXT),
    }


def test_migrate_container_followed_by_end_has_no_body(flow) -> None:
    raw = flow(
        [block("w1", "while_loop"), block("end1", "end_block"), block("d1", "delay")],
        [link("loop", "w1"), link("w1", "end1"), link("end1", "d1")],
        version=None,
    )

    graph = parse_flow_graph(raw, mode="legacy")

    assert _edges(graph) == {
        ("loop", "w1", EdgeKind.BODY),
        ("w1", "d1", EdgeKind.NEXT),
    }


def test_migrate_skips_leading_end_blocks(flow) -> None:
    raw = flow(
        [block("end0", "end_block"), block("d1", "delay")],
        [link("setup", "end0"), link("end0", "d1")],
        version=None,
    )

    graph = parse_flow_graph(raw, mode="legacy")

    assert _edges(graph) == {("setup", "d1", EdgeKind.BODY)}


def test_migrate_stops_on_cycles(flow) -> None:
    raw = flow(
        [block("a", "delay"), block("b", "delay")],
        [link("loop", "a"), link("a", "b"), link("b", "a")],
        version=None,
    )

    graph = parse_flow_graph(raw, mode="legacy")

    assert _edges(graph) == {("loop", "a", EdgeKind.BODY), ("a", "b", EdgeKind.NEXT)}


def test_migrate_stops_at_missing_node(flow) -> None:
    raw = flow(
        [block("a", "delay")],
        [link("loop", "a"), link("a", "ghost")],
        version=None,
    )

    graph = parse_flow_graph(raw, mode="legacy")

    assert _edges(graph) == {("loop", "a", EdgeKind.BODY)}


def test_migrate_without_roots_synthesizes_them(flow) -> None:
    raw = flow([block("d1", "delay")], [], with_roots=False, version=None)

    graph = parse_flow_graph(raw)

    kinds = sorted(node.kind.value for node in graph.nodes if node.kind.is_root)
    assert kinds == ["loop", "setup"]
    assert graph.edges == []


def test_migrate_is_idempotent(flow) -> None:
    raw = flow(
        [block("if1", "if_condition"), block("d1", "delay"), block("end1", "end_block")],
        [link("loop", "if1"), link("if1", "d1"), link("d1", "end1")],
        version=None,
    )

    once = parse_flow_graph(raw)

    assert migrate(once) == once
    assert migrate(migrate(once)) == migrate(once)
    assert all(node.kind is not BlockKind.END_BLOCK for node in once.nodes)


def test_migrate_leaves_current_graphs_alone(flow) -> None:
    raw = flow(
        [block("d1", "delay"), block("d2", "delay")],
        [link("loop", "d1", "body"), link("d1", "d2", "next")],
    )

    graph = parse_flow_graph(raw)

    assert migrate(graph) == graph
    assert [edge.id for edge in graph.edges] == ["e_loop_body_d1", "e_d1_next_d2"]
