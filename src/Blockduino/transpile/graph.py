"""Block graph data model and wire-format parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

ParamValue = Union[str, int, float, bool]

VISUAL_BLOCK = "visualBlock"
TARGET_HANDLE = "in"


class BlockKind(str, Enum):
    """Every block type understood by the compiler, keyed by its wire tag."""

    SETUP = "setup"
    LOOP = "loop"
    VARIABLE = "variable"
    PIN_MODE = "pin_mode"
    COMMENT = "comment"
    DELAY = "delay"
    DIGITAL_WRITE = "digital_write"
    DIGITAL_READ = "digital_read"
    ANALOG_WRITE = "analog_write"
    ANALOG_READ = "analog_read"
    SERVO_ATTACH = "servo_attach"
    SERVO_WRITE = "servo_write"
    VARIABLE_SET = "variable_set"
    VARIABLE_CHANGE = "variable_change"
    MATH_SET = "math_set"
    MATH_RANDOM = "math_random"
    SERIAL_BEGIN = "serial_begin"
    SERIAL_PRINT = "serial_print"
    SERIAL_PRINT_VALUE = "serial_print_value"
    IF = "if_condition"
    IF_ELSE = "if_else"
    FOR_LOOP = "for_loop"
    WHILE_LOOP = "while_loop"
    END_BLOCK = "end_block"

    @classmethod
    def parse(cls, tag: object) -> Optional["BlockKind"]:
        """Return the kind for ``tag`` or ``None`` when it is not recognised."""

        if not isinstance(tag, str):
            return None
        try:
            return cls(tag)
        except ValueError:
            return None

    @property
    def is_root(self) -> bool:
        return self in (BlockKind.SETUP, BlockKind.LOOP)

    @property
    def is_declaration(self) -> bool:
        return self in (BlockKind.VARIABLE, BlockKind.PIN_MODE)

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_KINDS


CONTAINER_KINDS = frozenset(
    {BlockKind.IF, BlockKind.IF_ELSE, BlockKind.FOR_LOOP, BlockKind.WHILE_LOOP}
)


class EdgeKind(str, Enum):
    """How an edge connects its source block to its target block."""

    NEXT = "next"
    BODY = "body"
    ELSE = "else"

    @classmethod
    def parse(cls, tag: object) -> Optional["EdgeKind"]:
        if not isinstance(tag, str):
            return None
        try:
            return cls(tag)
        except ValueError:
            return None


@dataclass
class Node:
    """One block on the canvas.

    ``block_type`` keeps the tag exactly as stored so unrecognised blocks
    survive a round trip; ``extra`` holds caller-owned presentation data
    such as ``position``.
    """

    id: str
    block_type: Optional[str] = None
    label: Optional[str] = None
    params: Dict[str, ParamValue] = field(default_factory=dict)
    type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> Optional[BlockKind]:
        return BlockKind.parse(self.block_type)

    @property
    def title(self) -> str:
        """Human readable name used in diagnostics."""

        return self.label or self.block_type or self.id

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.block_type is not None:
            data["blockType"] = self.block_type
        if self.label is not None:
            data["label"] = self.label
        if self.params:
            data["params"] = dict(self.params)
        out: Dict[str, Any] = {"id": self.id}
        if self.type is not None:
            out["type"] = self.type
        out.update(self.extra)
        out["data"] = data
        return out


@dataclass
class Edge:
    """A directed connection leaving ``source`` through one of its slots."""

    id: str
    source: str
    target: str
    kind: Optional[EdgeKind] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.source_handle is not None:
            out["sourceHandle"] = self.source_handle
        if self.target_handle is not None:
            out["targetHandle"] = self.target_handle
        out.update(self.extra)
        if self.kind is not None:
            out["data"] = {"kind": self.kind.value}
        return out


@dataclass
class FlowGraph:
    """A versioned block graph: version 1 is the legacy linear format."""

    version: int = 2
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def nodes_by_id(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


def _node_from_raw(item: Mapping[str, Any]) -> Node:
    data = item.get("data")
    if not isinstance(data, Mapping):
        data = {}
    block_type = data.get("blockType")
    label = data.get("label")
    params = data.get("params")
    render_type = item.get("type")
    return Node(
        id=item["id"],
        block_type=block_type if isinstance(block_type, str) else None,
        label=label if isinstance(label, str) else None,
        params=dict(params) if isinstance(params, Mapping) else {},
        type=render_type if isinstance(render_type, str) else None,
        extra={k: v for k, v in item.items() if k not in ("id", "type", "data")},
    )


def _edge_from_raw(item: Mapping[str, Any]) -> Edge:
    data = item.get("data")
    kind = EdgeKind.parse(data.get("kind")) if isinstance(data, Mapping) else None
    source_handle = item.get("sourceHandle")
    target_handle = item.get("targetHandle")
    skip = ("id", "source", "target", "sourceHandle", "targetHandle", "data")
    return Edge(
        id=item["id"],
        source=item["source"],
        target=item["target"],
        kind=kind,
        source_handle=source_handle if isinstance(source_handle, str) else None,
        target_handle=target_handle if isinstance(target_handle, str) else None,
        extra={k: v for k, v in item.items() if k not in skip},
    )


def graph_from_raw(raw: object) -> FlowGraph:
    """Read the wire format, silently dropping malformed entries.

    The version is ``2`` only when the record says so explicitly; anything
    else is treated as legacy data.
    """

    if not isinstance(raw, Mapping):
        return FlowGraph(version=1)

    nodes: List[Node] = []
    seen: set = set()
    nodes_raw = raw.get("nodes")
    if isinstance(nodes_raw, list):
        for item in nodes_raw:
            if not isinstance(item, Mapping) or not isinstance(item.get("id"), str):
                continue
            if item["id"] in seen:
                continue
            seen.add(item["id"])
            nodes.append(_node_from_raw(item))

    edges: List[Edge] = []
    edges_raw = raw.get("edges")
    if isinstance(edges_raw, list):
        for item in edges_raw:
            if not isinstance(item, Mapping) or not isinstance(item.get("id"), str):
                continue
            if not isinstance(item.get("source"), str) or not isinstance(item.get("target"), str):
                continue
            edges.append(_edge_from_raw(item))

    version = 2 if raw.get("version") == 2 else 1
    return FlowGraph(version=version, nodes=nodes, edges=edges)


def has_typed_edges(graph: FlowGraph) -> bool:
    """Return ``True`` when any edge already names its kind or slot."""

    for edge in graph.edges:
        if edge.kind is not None:
            return True
        if EdgeKind.parse(edge.source_handle) is not None:
            return True
    return False
