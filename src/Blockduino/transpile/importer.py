"""Best-effort conversion of sketch text back into a legacy block graph.

Only the body of ``loop()`` is read.  Each trimmed line is matched against a
handful of common statement shapes; a closing brace on its own line ends the
innermost imported container.  Lines that match nothing are dropped.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .catalog import create_node
from .graph import BlockKind, Edge, FlowGraph, Node, ParamValue

logger = logging.getLogger(__name__)

LOOP_BODY_RE = re.compile(r"void\s+loop\s*\(\s*\)\s*\{(.*?)\n\}", re.S)

ROW_X = 200
FIRST_ROW_Y = 300
ROW_STEP = 80

Handler = Callable[[re.Match[str]], Tuple[BlockKind, Dict[str, ParamValue]]]

PATTERNS: List[Tuple[re.Pattern[str], Handler]] = [
    (
        re.compile(r"delay\s*\(\s*(\d+)\s*\)"),
        lambda m: (BlockKind.DELAY, {"ms": int(m.group(1))}),
    ),
    (
        re.compile(r"digitalWrite\s*\(\s*(\d+)\s*,\s*(HIGH|LOW)\s*\)"),
        lambda m: (BlockKind.DIGITAL_WRITE, {"pin": int(m.group(1)), "value": m.group(2)}),
    ),
    (
        re.compile(r"analogWrite\s*\(\s*(\d+)\s*,\s*(\d+)\s*\)"),
        lambda m: (BlockKind.ANALOG_WRITE, {"pin": int(m.group(1)), "value": int(m.group(2))}),
    ),
    (
        re.compile(r"(\w+)\.write\s*\(\s*(\d+)\s*\)"),
        lambda m: (BlockKind.SERVO_WRITE, {"variable": m.group(1), "angle": int(m.group(2))}),
    ),
    (
        re.compile(r"(\w+)\.attach\s*\(\s*(\d+)\s*\)"),
        lambda m: (BlockKind.SERVO_ATTACH, {"variable": m.group(1), "pin": int(m.group(2))}),
    ),
    (
        re.compile(r'Serial\.println\s*\(\s*"([^"]*)"\s*\)'),
        lambda m: (BlockKind.SERIAL_PRINT, {"message": m.group(1)}),
    ),
    (
        re.compile(
            r"for\s*\(\s*int\s+(\w+)\s*=\s*(-?\d+)\s*;\s*\w+\s*([<>])\s*(-?\d+)\s*;"
            r"(?:\s*\w+\s*\+=\s*(-?\d+))?"
        ),
        lambda m: (
            BlockKind.FOR_LOOP,
            {
                "variable": m.group(1),
                "start": int(m.group(2)),
                "end": int(m.group(4)),
                "step": int(m.group(5)) if m.group(5) else (-1 if m.group(3) == ">" else 1),
            },
        ),
    ),
    (
        re.compile(r"if\s*\(\s*([^)]+)\s*\)\s*\{"),
        lambda m: (BlockKind.IF, {"condition": m.group(1).strip()}),
    ),
    (
        re.compile(r"while\s*\(\s*([^)]+)\s*\)\s*\{"),
        lambda m: (BlockKind.WHILE_LOOP, {"condition": m.group(1).strip()}),
    ),
]


def _match_line(line: str) -> Optional[Tuple[BlockKind, Dict[str, ParamValue]]]:
    for regex, handler in PATTERNS:
        match = regex.search(line)
        if match:
            return handler(match)
    return None


def import_source(text: str) -> FlowGraph:
    """Approximate ``text`` as a legacy (version 1) graph."""

    nodes: List[Node] = [
        create_node(BlockKind.SETUP, "setup", (60, 60)),
        create_node(BlockKind.LOOP, "loop", (60, 180)),
    ]
    edges: List[Edge] = []

    counter = 1
    y = FIRST_ROW_Y
    last_id = "loop"
    open_containers = 0

    def append(kind: BlockKind, params: Dict[str, ParamValue]) -> None:
        nonlocal counter, y, last_id
        node_id = f"node_{counter}"
        counter += 1
        nodes.append(create_node(kind, node_id, (ROW_X, y), params=params))
        edges.append(Edge(id=f"edge_{last_id}_{node_id}", source=last_id, target=node_id))
        last_id = node_id
        y += ROW_STEP

    match = LOOP_BODY_RE.search(text)
    if match:
        lines = [line.strip() for line in match.group(1).split("\n")]
        for line in filter(None, lines):
            found = _match_line(line)
            if found is not None:
                append(*found)
                if found[0].is_container:
                    open_containers += 1
            if line == "}" and open_containers:
                open_containers -= 1
                append(BlockKind.END_BLOCK, {})
    else:
        logger.debug("no loop() body found in imported source")

    return FlowGraph(version=1, nodes=nodes, edges=edges)
