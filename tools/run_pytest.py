"""Run the wallog test suite with the project virtual environment when present."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _venv_python(root: Path) -> Path | None:
    scripts_dir = "Scripts" if os.name == "nt" else "bin"
    executable = "python.exe" if os.name == "nt" else "python"
    candidate = root / ".venv" / scripts_dir / executable
    return candidate if candidate.exists() else None


def main(argv: list[str] | None = None) -> int:
    root = Path(__file__).resolve().parents[1]
    python = str(_venv_python(root) or sys.executable)
    extra = list(argv or [])
    targets = [] if any(not arg.startswith("-") for arg in extra) else ["tests"]
    return subprocess.call([python, "-m", "pytest", "-q", *targets, *extra], cwd=root)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
