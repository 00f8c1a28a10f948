"""Upgrade legacy linear graphs to the typed ``next``/``body``/``else`` format.

Legacy graphs chain every block with plain edges.  Entering a container's
body is implicit (the edge right after the container) and an ``end_block``
node closes the innermost open body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .graph import TARGET_HANDLE, BlockKind, Edge, EdgeKind, FlowGraph, Node
from .normalize import normalize, normalize_nodes

logger = logging.getLogger(__name__)


@dataclass
class _Scope:
    owner_id: str
    last_statement_id: Optional[str] = None


def typed_edge(source: str, target: str, kind: EdgeKind) -> Edge:
    return Edge(
        id=f"v2_{kind.value}_{source}_{target}",
        source=source,
        target=target,
        kind=kind,
        source_handle=kind.value,
        target_handle=TARGET_HANDLE,
    )


class _EdgeSink:
    """Collect generated edges, ignoring self-loops and repeats."""

    def __init__(self) -> None:
        self.edges: List[Edge] = []
        self._ids: Set[str] = set()

    def add(self, source: str, target: str, kind: EdgeKind) -> None:
        if source == target:
            return
        edge = typed_edge(source, target, kind)
        if edge.id in self._ids:
            return
        self._ids.add(edge.id)
        self.edges.append(edge)


def _is_end(node: Optional[Node]) -> bool:
    return node is not None and node.kind is BlockKind.END_BLOCK


def migrate(graph: FlowGraph) -> FlowGraph:
    """Return the version 2 equivalent of ``graph``.

    Graphs that are already at version 2 only get normalised, so applying
    the migration twice gives the same result as applying it once.
    """

    if graph.version == 2:
        return normalize(graph)

    nodes = normalize_nodes(graph.nodes)
    nodes_by_id: Dict[str, Node] = {node.id: node for node in nodes}

    outgoing: Dict[str, List[str]] = {}
    for edge in graph.edges:
        outgoing.setdefault(edge.source, []).append(edge.target)

    def next_from(node_id: str) -> Optional[str]:
        targets = outgoing.get(node_id)
        return targets[0] if targets else None

    sink = _EdgeSink()
    roots = [node.id for node in nodes if node.kind is not None and node.kind.is_root]

    for root_id in roots:
        first = next_from(root_id)
        while first is not None and _is_end(nodes_by_id.get(first)):
            first = next_from(first)
        if first is None or first not in nodes_by_id:
            continue

        sink.add(root_id, first, EdgeKind.BODY)
        stack: List[_Scope] = [_Scope(owner_id=root_id)]
        visited: Set[str] = set()
        current: Optional[str] = first

        while current is not None:
            if current in visited:
                logger.debug(f"legacy chain from '{root_id}' revisits '{current}'; stopping")
                break
            visited.add(current)

            node = nodes_by_id.get(current)
            if node is None:
                break

            if node.kind is BlockKind.END_BLOCK:
                if len(stack) > 1:
                    stack.pop()
                current = next_from(current)
                continue

            scope = stack[-1]
            if scope.last_statement_id is not None:
                sink.add(scope.last_statement_id, current, EdgeKind.NEXT)
            scope.last_statement_id = current

            following = next_from(current)
            if (
                node.kind is not None
                and node.kind.is_container
                and following is not None
                and following in nodes_by_id
                and not _is_end(nodes_by_id[following])
            ):
                sink.add(current, following, EdgeKind.BODY)
                stack.append(_Scope(owner_id=current))

            current = following

    kept = [node for node in nodes if node.kind is not BlockKind.END_BLOCK]
    logger.debug(
        f"migrated legacy graph: {len(graph.edges)} linear edges -> {len(sink.edges)} typed edges, "
        f"{len(nodes) - len(kept)} end blocks dropped"
    )
    return FlowGraph(version=2, nodes=kept, edges=sink.edges)
