"""Turn a typed block graph into a :class:`~Blockduino.transpile.ast.Program`.

The builder never raises on bad graphs.  Structural problems end up in
``Program.errors`` and likely mistakes in ``Program.warnings``; the returned
program is always the best rendering of whatever could be understood.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Mapping, Optional, Set

from .ast import (
    AnalogRead,
    AnalogWrite,
    Comment,
    Delay,
    DigitalRead,
    DigitalWrite,
    ForLoop,
    IfStatement,
    MathRandom,
    MathSet,
    Number,
    Program,
    SerialBegin,
    SerialPrint,
    SerialPrintValue,
    ServoAttach,
    ServoWrite,
    UnknownBlock,
    VarAssign,
    VarChange,
    VarDecl,
    WhileLoop,
    format_number,
    walk_statements,
)
from .catalog import default_param
from .graph import BlockKind, EdgeKind, FlowGraph, Node
from .normalize import kind_of

logger = logging.getLogger(__name__)

PIN_MODES = ("INPUT", "OUTPUT", "INPUT_PULLUP")

# containers nested deeper than this keep an empty body
MAX_NESTING = 100

Params = Mapping[str, object]


def _to_number(raw: object) -> Optional[Number]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    try:
        if not math.isfinite(value):
            return None
    except OverflowError:
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def num_param(params: Params, key: str, fallback: Number) -> Number:
    """Read a numeric parameter, accepting numeric strings."""

    value = _to_number(params.get(key))
    return fallback if value is None else value


def str_param(params: Params, key: str, fallback: str) -> str:
    raw = params.get(key)
    return raw if isinstance(raw, str) else fallback


def expr_param(params: Params, key: str, fallback: str) -> str:
    """Read an expression parameter given either as text or as a number."""

    raw = params.get(key)
    if isinstance(raw, str):
        return raw
    value = _to_number(raw)
    return fallback if value is None else format_number(value)


def _defaults(kind: BlockKind) -> Callable[[str], object]:
    return lambda key: default_param(kind, key)


def _leaf_statement(kind: BlockKind, params: Params) -> Optional[object]:
    """Build the statement for a non-container block, ``None`` if ``kind`` is a container."""

    d = _defaults(kind)
    if kind is BlockKind.COMMENT:
        return Comment(text=str_param(params, "text", d("text")))
    if kind is BlockKind.DELAY:
        return Delay(ms=num_param(params, "ms", d("ms")))
    if kind is BlockKind.DIGITAL_WRITE:
        return DigitalWrite(
            pin=num_param(params, "pin", d("pin")),
            value=str_param(params, "value", d("value")),
        )
    if kind is BlockKind.DIGITAL_READ:
        return DigitalRead(
            pin=num_param(params, "pin", d("pin")),
            variable=str_param(params, "variable", d("variable")),
        )
    if kind is BlockKind.ANALOG_WRITE:
        return AnalogWrite(
            pin=num_param(params, "pin", d("pin")),
            value=expr_param(params, "value", d("value")),
        )
    if kind is BlockKind.ANALOG_READ:
        return AnalogRead(
            pin=expr_param(params, "pin", d("pin")),
            variable=str_param(params, "variable", d("variable")),
        )
    if kind is BlockKind.SERVO_ATTACH:
        return ServoAttach(
            variable=str_param(params, "variable", d("variable")),
            pin=num_param(params, "pin", d("pin")),
        )
    if kind is BlockKind.SERVO_WRITE:
        return ServoWrite(
            variable=str_param(params, "variable", d("variable")),
            angle=expr_param(params, "angle", d("angle")),
        )
    if kind is BlockKind.VARIABLE_SET:
        return VarAssign(
            name=str_param(params, "name", d("name")),
            expr=expr_param(params, "value", d("value")),
        )
    if kind is BlockKind.VARIABLE_CHANGE:
        return VarChange(
            name=str_param(params, "name", d("name")),
            delta=num_param(params, "delta", d("delta")),
        )
    if kind is BlockKind.MATH_SET:
        return MathSet(
            target=str_param(params, "target", d("target")),
            left=expr_param(params, "left", d("left")),
            op=str_param(params, "op", d("op")),
            right=expr_param(params, "right", d("right")),
        )
    if kind is BlockKind.MATH_RANDOM:
        return MathRandom(
            target=str_param(params, "target", d("target")),
            min=num_param(params, "min", d("min")),
            max=num_param(params, "max", d("max")),
        )
    if kind is BlockKind.SERIAL_BEGIN:
        return SerialBegin(baud=num_param(params, "baud", d("baud")))
    if kind is BlockKind.SERIAL_PRINT:
        return SerialPrint(message=str_param(params, "message", d("message")))
    if kind is BlockKind.SERIAL_PRINT_VALUE:
        return SerialPrintValue(
            value=expr_param(params, "value", d("value")),
            newline=params.get("newline") is not False,
        )
    return None


class _Builder:
    """State for a single :func:`build_ast` call."""

    def __init__(self, graph: FlowGraph) -> None:
        self.nodes_by_id: Dict[str, Node] = graph.nodes_by_id()
        self.outgoing: Dict[str, Dict[str, str]] = {}
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.used: Set[str] = set()
        self.body_warnings: List[str] = []
        self.depth = 0

        duplicate_errors: List[str] = []
        for edge in graph.edges:
            if edge.source not in self.nodes_by_id or edge.target not in self.nodes_by_id:
                continue
            kind = kind_of(edge, self.nodes_by_id)
            slots = self.outgoing.setdefault(edge.source, {})
            if kind.value in slots:
                msg = f"Block {edge.source} has multiple '{kind.value}' outputs."
                if msg not in duplicate_errors:
                    duplicate_errors.append(msg)
                continue
            slots[kind.value] = edge.target
        self.errors.extend(duplicate_errors)

    def next(self, node_id: str, kind: EdgeKind) -> Optional[str]:
        return self.outgoing.get(node_id, {}).get(kind.value)

    def start_from(self, root: Optional[Node]) -> Optional[str]:
        if root is None:
            return None
        return self.next(root.id, EdgeKind.BODY) or self.next(root.id, EdgeKind.NEXT)

    def _missing_body(self, node: Node) -> None:
        msg = f'"{node.title}" has no body connected.'
        if msg not in self.body_warnings:
            self.body_warnings.append(msg)

    def _container(self, node: Node, kind: BlockKind, params: Params) -> object:
        body_start = self.next(node.id, EdgeKind.BODY)
        else_start = self.next(node.id, EdgeKind.ELSE)
        if self.depth >= MAX_NESTING:
            self.errors.append(f"Nesting deeper than {MAX_NESTING} at node {node.id}.")
            body_start = else_start = None
        elif body_start is None:
            self._missing_body(node)

        self.depth += 1
        try:
            return self._build_container(node, kind, params, body_start, else_start)
        finally:
            self.depth -= 1

    def _build_container(
        self,
        node: Node,
        kind: BlockKind,
        params: Params,
        body_start: Optional[str],
        else_start: Optional[str],
    ) -> object:
        d = _defaults(kind)
        if kind in (BlockKind.IF, BlockKind.IF_ELSE):
            return IfStatement(
                condition=str_param(params, "condition", d("condition")),
                body=self.build_chain(body_start, f"if-body({node.id})"),
                else_body=self.build_chain(else_start, f"if-else({node.id})"),
            )
        if kind is BlockKind.FOR_LOOP:
            step = num_param(params, "step", d("step"))
            if step == 0:
                self.warnings.append(f'"{node.title}" has a step of 0; using 1.')
                step = 1
            return ForLoop(
                var_name=str_param(params, "variable", d("variable")),
                start=num_param(params, "start", d("start")),
                end=num_param(params, "end", d("end")),
                step=step,
                body=self.build_chain(body_start, f"for-body({node.id})"),
            )
        return WhileLoop(
            condition=str_param(params, "condition", d("condition")),
            body=self.build_chain(body_start, f"while-body({node.id})"),
        )

    def build_chain(self, start_id: Optional[str], context: str) -> List[object]:
        """Follow ``next`` edges from ``start_id``, recursing into container bodies."""

        stmts: List[object] = []
        visited: Set[str] = set()
        current = start_id

        while current is not None:
            if current in visited:
                self.errors.append(f"Cycle detected in {context} chain at node {current}.")
                break
            visited.add(current)

            node = self.nodes_by_id[current]
            kind = node.kind
            following = self.next(current, EdgeKind.NEXT)

            if kind is not None and (
                kind.is_root or kind.is_declaration or kind is BlockKind.END_BLOCK
            ):
                current = following
                continue

            if current in self.used:
                self.errors.append(
                    f"Node {current} is reachable from multiple paths (shared nodes)."
                )
                break
            self.used.add(current)

            if kind is None:
                self.warnings.append(f"Unknown block type at node {current}.")
                stmts.append(UnknownBlock(block_type=node.block_type or ""))
            elif kind.is_container:
                stmts.append(self._container(node, kind, node.params))
            else:
                stmts.append(_leaf_statement(kind, node.params))
            current = following

        return stmts


def _explicit_globals(nodes: List[Node]) -> Dict[str, VarDecl]:
    d = _defaults(BlockKind.VARIABLE)
    declared: Dict[str, VarDecl] = {}
    for node in nodes:
        if node.kind is not BlockKind.VARIABLE:
            continue
        params = node.params
        name = str_param(params, "name", d("name")).strip() or d("name")
        c_type = str_param(params, "varType", d("varType")).strip() or d("varType")
        raw_value = params.get("value")
        if isinstance(raw_value, str):
            expr = raw_value
        else:
            value = _to_number(raw_value)
            expr = "0" if value is None else format_number(value)
        declared.setdefault(name, VarDecl(name=name, c_type=c_type, expr=expr))
    return declared


def _explicit_pin_modes(nodes: List[Node]) -> Dict[Number, str]:
    modes: Dict[Number, str] = {}
    for node in nodes:
        if node.kind is not BlockKind.PIN_MODE:
            continue
        pin = _to_number(node.params.get("pin"))
        if pin is None:
            continue
        mode = str_param(node.params, "mode", "INPUT")
        if mode in PIN_MODES:
            modes[pin] = mode
    return modes


def _assigned_name(stmt: object) -> Optional[str]:
    if isinstance(stmt, (VarAssign, VarChange)):
        return stmt.name
    if isinstance(stmt, (MathSet, MathRandom)):
        return stmt.target
    if isinstance(stmt, (DigitalRead, AnalogRead)):
        return stmt.variable
    return None


def build_ast(graph: FlowGraph) -> Program:
    """Compile ``graph`` into a program plus its errors and warnings."""

    builder = _Builder(graph)
    errors = builder.errors
    warnings = builder.warnings

    setup_root = next((n for n in graph.nodes if n.kind is BlockKind.SETUP), None)
    loop_root = next((n for n in graph.nodes if n.kind is BlockKind.LOOP), None)
    if loop_root is None:
        errors.append("Missing loop() root block.")
    if setup_root is None:
        warnings.append("Missing setup() root block; using defaults.")

    explicit_globals = _explicit_globals(graph.nodes)
    pin_modes = _explicit_pin_modes(graph.nodes)
    explicit_pins = set(pin_modes)

    setup = builder.build_chain(builder.start_from(setup_root), "setup")
    loop = builder.build_chain(builder.start_from(loop_root), "loop")
    warnings.extend(builder.body_warnings)

    unreachable: List[str] = []
    for node in graph.nodes:
        kind = node.kind
        if kind is not None and (kind.is_root or kind.is_declaration):
            continue
        if node.id in builder.used:
            continue
        msg = f'"{node.title}" is not connected to setup() or loop().'
        if msg not in unreachable:
            unreachable.append(msg)
    warnings.extend(unreachable)

    auto_globals: Dict[str, VarDecl] = {}
    servo_vars: Set[str] = set()
    conflicting_pins: Set[Number] = set()
    uses_serial = False
    has_serial_begin = False

    for stmt in list(walk_statements(setup)) + list(walk_statements(loop)):
        if isinstance(stmt, (ServoAttach, ServoWrite)):
            servo_vars.add(stmt.variable)
        elif isinstance(stmt, (SerialPrint, SerialPrintValue)):
            uses_serial = True
        elif isinstance(stmt, SerialBegin):
            uses_serial = True
            has_serial_begin = True
        elif isinstance(stmt, (DigitalWrite, AnalogWrite)):
            if stmt.pin not in explicit_pins:
                pin_modes[stmt.pin] = "OUTPUT"
            elif pin_modes[stmt.pin] != "OUTPUT" and stmt.pin not in conflicting_pins:
                conflicting_pins.add(stmt.pin)
                warnings.append(
                    f"Pin {format_number(stmt.pin)} is written to but its Pin Mode block "
                    f"sets {pin_modes[stmt.pin]}."
                )
        elif isinstance(stmt, DigitalRead):
            pin_modes.setdefault(stmt.pin, "INPUT")

        name = _assigned_name(stmt)
        if name is None:
            continue
        name = name.strip()
        if name and name not in explicit_globals and name not in auto_globals:
            auto_globals[name] = VarDecl(name=name, c_type="int", expr="0")

    global_decls: List[VarDecl] = []
    for decl in sorted(
        list(explicit_globals.values()) + list(auto_globals.values()),
        key=lambda decl: decl.name,
    ):
        if decl.name in servo_vars:
            warnings.append(
                f'"{decl.name}" is used as a servo and as a variable; '
                "keeping the Servo declaration."
            )
            continue
        global_decls.append(decl)

    logger.debug(
        f"built program: {len(setup)} setup / {len(loop)} loop statements, "
        f"{len(errors)} errors, {len(warnings)} warnings"
    )
    return Program(
        setup_body=setup,
        loop_body=loop,
        global_decls=global_decls,
        servo_variables=sorted(servo_vars),
        uses_serial=uses_serial,
        has_serial_begin=has_serial_begin,
        pin_modes=dict(sorted(pin_modes.items())),
        errors=errors,
        warnings=warnings,
    )
