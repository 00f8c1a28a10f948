"""AST node definitions shared by the builder and emitter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Union

Number = Union[int, float]


@dataclass
class Program:
    """Container for a compiled block graph."""

    setup_body: List[object] = field(default_factory=list)
    loop_body: List[object] = field(default_factory=list)
    global_decls: List["VarDecl"] = field(default_factory=list)
    servo_variables: List[str] = field(default_factory=list)
    uses_serial: bool = False
    has_serial_begin: bool = False
    pin_modes: Dict[Number, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class VarDecl:
    """Declare a global variable with an initializer."""

    name: str
    c_type: str = "int"
    expr: str = "0"


@dataclass
class Comment:
    """A free-text comment line."""

    text: str


@dataclass
class Delay:
    """Pause execution for ``ms`` milliseconds."""

    ms: Number


@dataclass
class DigitalWrite:
    """Drive a digital pin ``HIGH`` or ``LOW``."""

    pin: Number
    value: str


@dataclass
class DigitalRead:
    """Store the level of a digital pin in ``variable``."""

    pin: Number
    variable: str


@dataclass
class AnalogWrite:
    """Write a PWM duty cycle expression to ``pin``."""

    pin: Number
    value: str


@dataclass
class AnalogRead:
    """Store an analog reading of ``pin`` (e.g. ``A0``) in ``variable``."""

    pin: str
    variable: str


@dataclass
class ServoAttach:
    """Attach the servo instance ``variable`` to ``pin``."""

    variable: str
    pin: Number


@dataclass
class ServoWrite:
    """Move the servo instance ``variable`` to ``angle``."""

    variable: str
    angle: str


@dataclass
class VarAssign:
    """Assign a new value to a variable."""

    name: str
    expr: str


@dataclass
class VarChange:
    """Add ``delta`` to a variable."""

    name: str
    delta: Number


@dataclass
class MathSet:
    """Store ``left op right`` in ``target``."""

    target: str
    left: str
    op: str
    right: str


@dataclass
class MathRandom:
    """Store ``random(min, max)`` in ``target``."""

    target: str
    min: Number
    max: Number


@dataclass
class SerialBegin:
    """Open the serial port at ``baud``."""

    baud: Number


@dataclass
class SerialPrint:
    """Print a literal message followed by a newline."""

    message: str


@dataclass
class SerialPrintValue:
    """Print the value of an expression."""

    value: str
    newline: bool = True


@dataclass
class IfStatement:
    """An ``if`` block with an optional ``else`` branch."""

    condition: str
    body: List[object] = field(default_factory=list)
    else_body: List[object] = field(default_factory=list)


@dataclass
class ForLoop:
    """A counting ``for`` loop; a negative ``step`` counts down."""

    var_name: str
    start: Number
    end: Number
    step: Number = 1
    body: List[object] = field(default_factory=list)


@dataclass
class WhileLoop:
    """A ``while`` loop with a condition and body."""

    condition: str
    body: List[object] = field(default_factory=list)


@dataclass
class UnknownBlock:
    """Placeholder for a block type the compiler does not recognise."""

    block_type: str


def format_number(value: Number) -> str:
    """Render ``value`` the way the editor displays it (``3`` not ``3.0``)."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def walk_statements(stmts: List[object]) -> Iterator[object]:
    """Yield every statement in ``stmts`` depth-first, nested bodies included."""

    for stmt in stmts:
        yield stmt
        if isinstance(stmt, IfStatement):
            yield from walk_statements(stmt.body)
            yield from walk_statements(stmt.else_body)
        elif isinstance(stmt, (ForLoop, WhileLoop)):
            yield from walk_statements(stmt.body)
