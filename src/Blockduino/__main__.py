"""Command line interface for the Blockduino graph compiler.

Usage
-----
    python -m Blockduino compile graph.json [-o sketch.ino] [--strict]
    python -m Blockduino import sketch.ino [-o graph.json]
    python -m Blockduino project graph.json --port /dev/ttyACM0 [--board uno] [--upload]
"""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from Blockduino import compile_graph, target
from Blockduino.transpile.ast import Program
from Blockduino.transpile.importer import import_source
from Blockduino.transpile.migrate import migrate
from Blockduino.transpile.parser import PARSE_MODES


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockduino",
        description="Compile visual block graphs into Arduino sketches.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler internals.")
    sub = parser.add_subparsers(dest="command", required=True)

    compile_p = sub.add_parser("compile", help="Compile a graph JSON file into a sketch.")
    compile_p.add_argument("graph", type=Path, help="Path to the editor state JSON file.")
    compile_p.add_argument("-o", "--output", type=Path, help="Write the sketch here instead of stdout.")
    compile_p.add_argument("--mode", choices=PARSE_MODES, default="auto", help="Graph format (default: auto).")
    compile_p.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when the graph has errors.",
    )

    import_p = sub.add_parser("import", help="Approximate a sketch as a block graph.")
    import_p.add_argument("sketch", type=Path, help="Path to the sketch source.")
    import_p.add_argument("-o", "--output", type=Path, help="Write the graph JSON here instead of stdout.")

    project_p = sub.add_parser("project", help="Write (and optionally upload) a PlatformIO project.")
    project_p.add_argument("graph", type=Path, help="Path to the editor state JSON file.")
    project_p.add_argument("--port", required=True, help="Serial port of the board.")
    project_p.add_argument("--platform", help="PlatformIO platform (default: inferred from the board).")
    project_p.add_argument("--board", default="uno", help="PlatformIO board (default: uno).")
    project_p.add_argument(
        "--dir",
        type=Path,
        dest="project_dir",
        default=Path("blockduino-project"),
        help="Project directory (default: ./blockduino-project).",
    )
    project_p.add_argument("--upload", action="store_true", help="Build and upload after writing.")
    return parser


def _read_json(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


def _report(program: Program) -> None:
    for message in program.errors:
        print(f"[error] {message}", file=sys.stderr)
    for message in program.warnings:
        print(f"[warning] {message}", file=sys.stderr)


def _write_or_print(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text)
    else:
        output.write_text(text, encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        if args.command == "compile":
            sketch, program = compile_graph(_read_json(args.graph), mode=args.mode)
            _report(program)
            _write_or_print(sketch, args.output)
            if args.strict and program.errors:
                return 1
        elif args.command == "import":
            graph = migrate(import_source(args.sketch.read_text(encoding="utf-8")))
            _write_or_print(json.dumps(graph.to_dict(), indent=2) + "\n", args.output)
        else:
            target(
                _read_json(args.graph),
                args.port,
                upload=args.upload,
                platform=args.platform,
                board=args.board,
                project_dir=args.project_dir,
            )
            print(f"PlatformIO project written to {args.project_dir}", file=sys.stderr)
    except (OSError, ValueError, RuntimeError, subprocess.CalledProcessError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
