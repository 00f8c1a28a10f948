from __future__ import annotations

from Blockduino.transpile.catalog import PALETTE, create_node, get_block_defaults
from Blockduino.transpile.graph import BlockKind


def test_every_palette_block_has_defaults() -> None:
    for category in PALETTE:
        for kind in category.blocks:
            assert get_block_defaults(kind).label != "Block"


def test_palette_omits_roots_and_end_blocks() -> None:
    offered = {kind for category in PALETTE for kind in category.blocks}

    assert BlockKind.SETUP not in offered
    assert BlockKind.END_BLOCK not in offered
    assert not any(kind.is_root for kind in offered)


def test_unknown_kind_falls_back() -> None:
    defaults = get_block_defaults(None)

    assert defaults.label == "Block"
    assert defaults.params == {}


def test_create_node_copies_defaults() -> None:
    node = create_node(BlockKind.FOR_LOOP, "for1", (10, 20), params={"end": 3})
    node.params["step"] = 5

    assert node.label == "For Loop"
    assert node.params == {"variable": "i", "start": 0, "end": 3, "step": 5}
    assert node.extra == {"position": {"x": 10, "y": 20}}
    assert get_block_defaults(BlockKind.FOR_LOOP).params["step"] == 1
