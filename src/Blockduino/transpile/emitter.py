"""Translate Blockduino AST nodes into Arduino sketch source."""

from __future__ import annotations

from typing import Iterable, List, Union

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
    Program,
    SerialBegin,
    SerialPrint,
    SerialPrintValue,
    ServoAttach,
    ServoWrite,
    UnknownBlock,
    VarAssign,
    VarChange,
    WhileLoop,
    format_number,
)

SERVO_HEADER = "#include <Servo.h>"
SETUP_START = "void setup() {"
LOOP_START = "void loop() {"
BLOCK_END = "}"
INDENT = "  "
DEFAULT_BAUD = 9600

_C_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _emit_expr(v: Union[int, float, str]) -> str:
    """Render a number literal or a user-written expression string."""

    if isinstance(v, str):
        return v
    return format_number(v)


def _c_string(text: str) -> str:
    """Quote ``text`` as a C string literal."""

    out: List[str] = []
    for ch in text:
        if ch in _C_ESCAPES:
            out.append(_C_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\{ord(ch):03o}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _comment_text(text: str) -> str:
    # a trailing backslash would splice the next line into the comment
    flat = " ".join(text.split()).rstrip("\\ ")
    return flat or "..."


def _emit_block(nodes: Iterable[object], depth: int = 1) -> List[str]:
    """Emit a block of statements, one line per statement."""

    pad = INDENT * depth
    lines: List[str] = []
    for node in nodes:
        if isinstance(node, Comment):
            lines.append(f"{pad}// {_comment_text(node.text)}")
        elif isinstance(node, Delay):
            lines.append(f"{pad}delay({_emit_expr(node.ms)});")
        elif isinstance(node, DigitalWrite):
            lines.append(f"{pad}digitalWrite({_emit_expr(node.pin)}, {node.value});")
        elif isinstance(node, DigitalRead):
            lines.append(f"{pad}{node.variable} = digitalRead({_emit_expr(node.pin)});")
        elif isinstance(node, AnalogWrite):
            lines.append(f"{pad}analogWrite({_emit_expr(node.pin)}, {node.value});")
        elif isinstance(node, AnalogRead):
            lines.append(f"{pad}{node.variable} = analogRead({node.pin});")
        elif isinstance(node, ServoAttach):
            lines.append(f"{pad}{node.variable}.attach({_emit_expr(node.pin)});")
        elif isinstance(node, ServoWrite):
            lines.append(f"{pad}{node.variable}.write({node.angle});")
        elif isinstance(node, VarAssign):
            lines.append(f"{pad}{node.name} = {node.expr};")
        elif isinstance(node, VarChange):
            lines.append(f"{pad}{node.name} += {_emit_expr(node.delta)};")
        elif isinstance(node, MathSet):
            lines.append(f"{pad}{node.target} = {node.left} {node.op} {node.right};")
        elif isinstance(node, MathRandom):
            lines.append(
                f"{pad}{node.target} = random({_emit_expr(node.min)}, {_emit_expr(node.max)});"
            )
        elif isinstance(node, SerialBegin):
            lines.append(f"{pad}Serial.begin({_emit_expr(node.baud)});")
        elif isinstance(node, SerialPrint):
            lines.append(f"{pad}Serial.println({_c_string(node.message)});")
        elif isinstance(node, SerialPrintValue):
            method = "println" if node.newline else "print"
            lines.append(f"{pad}Serial.{method}({node.value});")
        elif isinstance(node, IfStatement):
            lines.append(f"{pad}if ({node.condition}) {{")
            lines.extend(_emit_block(node.body, depth + 1))
            if node.else_body:
                lines.append(f"{pad}}} else {{")
                lines.extend(_emit_block(node.else_body, depth + 1))
            lines.append(f"{pad}}}")
        elif isinstance(node, ForLoop):
            var = node.var_name
            cmp = ">" if node.step < 0 else "<"
            lines.append(
                f"{pad}for (int {var} = {_emit_expr(node.start)}; {var} {cmp} {_emit_expr(node.end)}; "
                f"{var} += {_emit_expr(node.step)}) {{"
            )
            lines.extend(_emit_block(node.body, depth + 1))
            lines.append(f"{pad}}}")
        elif isinstance(node, WhileLoop):
            lines.append(f"{pad}while ({node.condition}) {{")
            lines.extend(_emit_block(node.body, depth + 1))
            lines.append(f"{pad}}}")
        elif isinstance(node, UnknownBlock):
            lines.append(f"{pad}// Unsupported block: {node.block_type or 'unknown'}")
        else:
            lines.append(f"{pad}// Unsupported block: {type(node).__name__}")
    return lines


def emit(ast: Program) -> str:
    """Serialize a :class:`~Blockduino.transpile.ast.Program` into sketch text."""

    parts: List[str] = []
    if ast.servo_variables:
        parts.extend([SERVO_HEADER, ""])

    globals_: List[str] = [f"Servo {name};" for name in sorted(ast.servo_variables)]
    for decl in sorted(ast.global_decls, key=lambda d: d.name):
        globals_.append(f"{decl.c_type} {decl.name} = {decl.expr};")
    if globals_:
        parts.extend(globals_)
        parts.append("")

    setup_lines: List[str] = []
    if ast.uses_serial and not ast.has_serial_begin:
        setup_lines.append(f"{INDENT}Serial.begin({DEFAULT_BAUD});")
    for pin in sorted(ast.pin_modes):
        setup_lines.append(f"{INDENT}pinMode({_emit_expr(pin)}, {ast.pin_modes[pin]});")
    setup_lines.extend(_emit_block(ast.setup_body))

    parts.append(SETUP_START)
    parts.extend(setup_lines or [f"{INDENT}// no setup actions"])
    parts.extend([BLOCK_END, ""])

    parts.append(LOOP_START)
    parts.extend(_emit_block(ast.loop_body) or [f"{INDENT}// no loop actions"])
    parts.extend([BLOCK_END, ""])

    return "\n".join(parts)
