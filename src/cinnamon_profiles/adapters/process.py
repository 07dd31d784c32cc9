"""Blocking child-process execution and prerequisite lookup."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence


@dataclass(frozen=True)
class CommandResult:
    code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.code == 0


def run_command(args: Sequence[str], *, cwd: Path | None = None, stdin_text: str | None = None) -> CommandResult:
    """Run ``args`` to completion; a missing executable is reported as code -1."""

    try:
        result = subprocess.run(
            list(args),
            cwd=str(cwd) if cwd else None,
            input=stdin_text,
            stdin=None if stdin_text is not None else subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        return CommandResult(code=-1, stdout="", stderr=str(exc))
    return CommandResult(code=result.returncode, stdout=result.stdout, stderr=result.stderr)


def find_missing_tools(names: Iterable[str]) -> List[str]:
    return [name for name in names if shutil.which(name) is None]


__all__ = ["CommandResult", "find_missing_tools", "run_command"]
