"""Bring a parsed graph into the shape the compiler expects."""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Mapping

from .catalog import create_node
from .graph import TARGET_HANDLE, VISUAL_BLOCK, BlockKind, Edge, EdgeKind, FlowGraph, Node

ROOT_POSITIONS = {
    BlockKind.SETUP: (60, 60),
    BlockKind.LOOP: (60, 160),
}


def kind_of(edge: Edge, nodes_by_id: Mapping[str, Node]) -> EdgeKind:
    """Classify ``edge`` even when it was stored without a kind."""

    if edge.kind is not None:
        return edge.kind

    from_handle = EdgeKind.parse(edge.source_handle)
    if from_handle is not None:
        return from_handle

    source = nodes_by_id.get(edge.source)
    if source is not None and source.kind is not None and source.kind.is_root:
        return EdgeKind.BODY
    return EdgeKind.NEXT


def tag_block_nodes(nodes: List[Node]) -> List[Node]:
    """Mark every node carrying a block type with the block render type."""

    tagged: List[Node] = []
    for node in nodes:
        if node.block_type is None or node.type == VISUAL_BLOCK:
            tagged.append(node)
        else:
            tagged.append(dataclasses.replace(node, type=VISUAL_BLOCK))
    return tagged


def ensure_roots(nodes: List[Node]) -> List[Node]:
    """Append a ``setup`` and/or ``loop`` block when the graph lacks one.

    Duplicate roots are left alone; the builder reports their orphaned
    chains.
    """

    present = {node.kind for node in nodes}
    if BlockKind.SETUP in present and BlockKind.LOOP in present:
        return nodes

    result = list(nodes)
    used_ids = {node.id for node in nodes}
    for kind in (BlockKind.SETUP, BlockKind.LOOP):
        if kind in present:
            continue
        node_id = kind.value if kind.value not in used_ids else f"{kind.value}_root"
        used_ids.add(node_id)
        result.append(create_node(kind, node_id, ROOT_POSITIONS[kind]))
    return result


def normalize_nodes(nodes: List[Node]) -> List[Node]:
    return ensure_roots(tag_block_nodes(nodes))


def type_edge(edge: Edge, nodes_by_id: Mapping[str, Node]) -> Edge:
    """Return ``edge`` with an explicit kind and both handles filled in."""

    kind = kind_of(edge, nodes_by_id)
    return dataclasses.replace(
        edge,
        kind=kind,
        source_handle=edge.source_handle or kind.value,
        target_handle=edge.target_handle or TARGET_HANDLE,
    )


def normalize(graph: FlowGraph) -> FlowGraph:
    """Return a copy of ``graph`` with roots present and every edge typed.

    Running it on its own output yields an equal graph.
    """

    nodes = normalize_nodes(graph.nodes)
    nodes_by_id: Dict[str, Node] = {node.id: node for node in nodes}
    edges = [type_edge(edge, nodes_by_id) for edge in graph.edges]
    return FlowGraph(version=graph.version, nodes=nodes, edges=edges)
