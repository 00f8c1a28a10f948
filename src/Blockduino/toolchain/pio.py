"""Lay out and drive PlatformIO projects for compiled programs."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from Blockduino.transpile.ast import Program
from Blockduino.transpile.emitter import emit

logger = logging.getLogger(__name__)

# board id -> PlatformIO platform
BOARDS: Dict[str, str] = {
    "uno": "atmelavr",
    "nano": "atmelavr",
    "megaatmega2560": "atmelavr",
    "due": "atmelsam",
    "esp32dev": "espressif32",
    "esp32doit-devkit-v1": "espressif32",
}

ARDUINO_HEADER = "#include <Arduino.h>\n\n"


def required_libraries(program: Program) -> List[str]:
    """Return the Arduino libraries the emitted sketch depends on."""

    libs: List[str] = []
    if program.servo_variables:
        libs.append("Servo")
    return libs


@dataclass(frozen=True)
class BoardTarget:
    """A supported board, its platform and the port to upload through."""

    board: str
    platform: str
    port: str

    @property
    def env_name(self) -> str:
        return re.sub(r"[^A-Za-z0-9_]+", "_", self.board)

    def ini(self, libraries: List[str]) -> str:
        """Render ``platformio.ini`` for this board."""

        lines = [
            f"[env:{self.env_name}]",
            f"platform = {self.platform}",
            f"board = {self.board}",
            "framework = arduino",
            f"upload_port = {self.port}",
        ]
        if libraries:
            lines.extend(["", "lib_deps ="])
            lines.extend(f"  {name}" for name in dict.fromkeys(libraries))
        return "\n".join(lines) + "\n"


def resolve_board(board: str, port: str, platform: Optional[str] = None) -> BoardTarget:
    """Look ``board`` up, inferring its platform when none is given.

    Raises :class:`ValueError` for unknown boards or a mismatched platform.
    """

    try:
        required = BOARDS[board]
    except KeyError:
        supported = ", ".join(sorted(BOARDS))
        raise ValueError(
            f"Unsupported PlatformIO board '{board}'. Supported boards: {supported}."
        ) from None
    if platform is not None and platform != required:
        raise ValueError(
            f"Board '{board}' requires PlatformIO platform '{required}', not '{platform}'."
        )
    return BoardTarget(board=board, platform=required, port=port)


def write_project(
    project_dir: Path,
    program: Program,
    board: BoardTarget,
    *,
    sketch: Optional[str] = None,
) -> Path:
    """Write ``program`` as a PlatformIO project and return its source path.

    ``sketch`` is the already-emitted text of ``program``, if the caller has
    it.  Sketch text has no ``Arduino.h`` include (the IDE adds it for
    ``.ino`` files), so one is prepended to ``src/main.cpp``.
    """

    if sketch is None:
        sketch = emit(program)
    project_dir = Path(project_dir)
    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True, exist_ok=True)
    main_cpp = src_dir / "main.cpp"
    main_cpp.write_text(ARDUINO_HEADER + sketch, encoding="utf-8")
    (project_dir / "platformio.ini").write_text(
        board.ini(required_libraries(program)), encoding="utf-8"
    )
    logger.debug(f"wrote PlatformIO project for {board.board} to {project_dir}")
    return main_cpp


def _pio(*args: str, cwd: Optional[Path] = None) -> None:
    logger.debug(f"running pio {' '.join(args)}")
    subprocess.run(["pio", *args], cwd=cwd, check=True)


def ensure_pio() -> None:
    try:
        subprocess.run(["pio", "--version"], check=True, stdout=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError) as e:
        raise RuntimeError(
            "PlatformIO (pio) not found. Install with: pip install platformio"
        ) from e


def compile_upload(project_dir: Path) -> None:
    """Build the project, then flash it to the configured port."""

    # First run triggers toolchain download automatically
    _pio("run", cwd=Path(project_dir))
    _pio("run", "-t", "upload", cwd=Path(project_dir))
