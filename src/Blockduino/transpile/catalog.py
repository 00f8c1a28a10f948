"""Static catalog of the blocks offered by the editor palette."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .graph import VISUAL_BLOCK, BlockKind, Node, ParamValue


@dataclass(frozen=True)
class BlockDefaults:
    """Label and starting parameters for a freshly placed block."""

    label: str
    params: Dict[str, ParamValue] = field(default_factory=dict)


@dataclass(frozen=True)
class PaletteCategory:
    """A group of blocks shown together in the palette."""

    id: str
    label: str
    blocks: Tuple[BlockKind, ...]


BLOCK_DEFAULTS: Dict[BlockKind, BlockDefaults] = {
    BlockKind.SETUP: BlockDefaults("setup()"),
    BlockKind.LOOP: BlockDefaults("loop()"),
    BlockKind.VARIABLE: BlockDefaults(
        "Global Variable", {"name": "value", "varType": "int", "value": 0}
    ),
    BlockKind.VARIABLE_SET: BlockDefaults("Set Variable", {"name": "value", "value": "0"}),
    BlockKind.VARIABLE_CHANGE: BlockDefaults("Change Variable", {"name": "value", "delta": 1}),
    BlockKind.MATH_SET: BlockDefaults(
        "Math Operation", {"target": "value", "left": "value", "op": "+", "right": "1"}
    ),
    BlockKind.MATH_RANDOM: BlockDefaults("Random", {"target": "value", "min": 0, "max": 10}),
    BlockKind.COMMENT: BlockDefaults("Comment", {"text": ""}),
    BlockKind.PIN_MODE: BlockDefaults("Pin Mode", {"pin": 2, "mode": "INPUT"}),
    BlockKind.SERVO_ATTACH: BlockDefaults("Servo Attach", {"variable": "servo", "pin": 9}),
    BlockKind.SERVO_WRITE: BlockDefaults("Servo Write", {"variable": "servo", "angle": "90"}),
    BlockKind.DELAY: BlockDefaults("Delay", {"ms": 500}),
    BlockKind.DIGITAL_WRITE: BlockDefaults("Digital Write", {"pin": 13, "value": "HIGH"}),
    BlockKind.DIGITAL_READ: BlockDefaults("Digital Read", {"pin": 2, "variable": "buttonState"}),
    BlockKind.ANALOG_WRITE: BlockDefaults("PWM Write", {"pin": 9, "value": "128"}),
    BlockKind.ANALOG_READ: BlockDefaults("Analog Read", {"pin": "A0", "variable": "sensorValue"}),
    BlockKind.SERIAL_BEGIN: BlockDefaults("Serial Begin", {"baud": 9600}),
    BlockKind.SERIAL_PRINT: BlockDefaults("Serial Print", {"message": "Hello"}),
    BlockKind.SERIAL_PRINT_VALUE: BlockDefaults(
        "Serial Print Value", {"value": "value", "newline": True}
    ),
    BlockKind.IF: BlockDefaults("If", {"condition": "true"}),
    BlockKind.IF_ELSE: BlockDefaults("If", {"condition": "true"}),
    BlockKind.FOR_LOOP: BlockDefaults(
        "For Loop", {"variable": "i", "start": 0, "end": 10, "step": 1}
    ),
    BlockKind.WHILE_LOOP: BlockDefaults("While", {"condition": "true"}),
    BlockKind.END_BLOCK: BlockDefaults("End"),
}

FALLBACK_DEFAULTS = BlockDefaults("Block")

PALETTE: List[PaletteCategory] = [
    PaletteCategory(
        "variables",
        "Variables",
        (BlockKind.VARIABLE, BlockKind.VARIABLE_SET, BlockKind.VARIABLE_CHANGE),
    ),
    PaletteCategory("operators", "Operators", (BlockKind.MATH_SET, BlockKind.MATH_RANDOM)),
    PaletteCategory(
        "control", "Control", (BlockKind.IF, BlockKind.FOR_LOOP, BlockKind.WHILE_LOOP)
    ),
    PaletteCategory("timing", "Timing", (BlockKind.DELAY,)),
    PaletteCategory(
        "io",
        "I/O",
        (
            BlockKind.PIN_MODE,
            BlockKind.DIGITAL_WRITE,
            BlockKind.DIGITAL_READ,
            BlockKind.ANALOG_WRITE,
            BlockKind.ANALOG_READ,
        ),
    ),
    PaletteCategory("servo", "Servo", (BlockKind.SERVO_ATTACH, BlockKind.SERVO_WRITE)),
    PaletteCategory(
        "serial",
        "Serial",
        (BlockKind.SERIAL_BEGIN, BlockKind.SERIAL_PRINT, BlockKind.SERIAL_PRINT_VALUE),
    ),
    PaletteCategory("text", "Text", (BlockKind.COMMENT,)),
]


def get_block_defaults(kind: Optional[BlockKind]) -> BlockDefaults:
    """Return the defaults registered for ``kind``."""

    if kind is None:
        return FALLBACK_DEFAULTS
    return BLOCK_DEFAULTS.get(kind, FALLBACK_DEFAULTS)


def default_param(kind: BlockKind, key: str) -> ParamValue:
    return get_block_defaults(kind).params[key]


def create_node(
    kind: BlockKind,
    node_id: str,
    position: Tuple[float, float] = (0, 0),
    *,
    label: Optional[str] = None,
    params: Optional[Dict[str, ParamValue]] = None,
) -> Node:
    """Build a new block node seeded with the catalog defaults.

    ``params`` entries override the defaults key by key.
    """

    defaults = get_block_defaults(kind)
    merged = copy.deepcopy(dict(defaults.params))
    if params:
        merged.update(params)
    x, y = position
    return Node(
        id=node_id,
        block_type=kind.value,
        label=label if label is not None else defaults.label,
        params=merged,
        type=VISUAL_BLOCK,
        extra={"position": {"x": x, "y": y}},
    )
