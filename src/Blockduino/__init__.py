from __future__ import annotations

"""User-facing helpers for the Blockduino graph compiler."""

__all__ = ["compile_graph", "required_libraries", "target"]
__version__ = "0.1.0"

import logging
import pathlib
import tempfile
from typing import Optional, Tuple

from Blockduino.toolchain.pio import (
    compile_upload,
    ensure_pio,
    required_libraries,
    resolve_board,
    write_project,
)
from Blockduino.transpile.ast import Program
from Blockduino.transpile.builder import build_ast
from Blockduino.transpile.emitter import emit
from Blockduino.transpile.parser import parse_flow_graph

logger = logging.getLogger(__name__)


def compile_graph(raw: object, mode: str = "auto") -> Tuple[str, Program]:
    """Compile decoded editor state into sketch text.

    The program is returned alongside the text so callers can inspect its
    ``errors`` (e.g. to refuse a download) and ``warnings``.
    """

    program = build_ast(parse_flow_graph(raw, mode=mode))
    return emit(program), program


def target(
    raw: object,
    port: str,
    *,
    upload: bool = False,
    platform: Optional[str] = None,
    board: str = "uno",
    project_dir: Optional[pathlib.Path] = None,
) -> str:
    """Compile ``raw`` and prepare a PlatformIO project for it.

    Parameters
    ----------
    raw:
        Decoded editor state accepted by :func:`parse_flow_graph`.
    port:
        Serial port that the generated project should target.
    upload:
        When set to ``True`` the helper also triggers ``pio run -t upload``
        after generating the project directory.  Uploading is disabled by
        default so that the helper can be exercised without a board.
    platform:
        PlatformIO platform; inferred from ``board`` when omitted.
    project_dir:
        Where to write the project; a fresh temporary directory otherwise.
    """

    board_target = resolve_board(board, port, platform)
    sketch, program = compile_graph(raw)
    for message in program.errors:
        logger.warning(message)

    if upload:
        ensure_pio()

    out_dir = project_dir or pathlib.Path(tempfile.mkdtemp(prefix="blockduino-pio-"))
    write_project(out_dir, program, board_target, sketch=sketch)
    if upload:
        compile_upload(out_dir)

    return sketch
