"""Process execution for external build and test commands."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, TextIO

from .errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandResult:
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class ProcessExecutor:
    """Runs external commands; a non-zero exit raises CommandError unless ``check`` is off."""

    env: Dict[str, str] = field(default_factory=dict)
    output: Optional[TextIO] = None

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        stream: bool = False,
        check: bool = True,
    ) -> CommandResult:
        args = [str(part) for part in command]
        merged_env = {**os.environ, **self.env, **(env or {})}
        logger.info("Running: %s", " ".join(args))
        try:
            if stream:
                result = self._run_streaming(args, cwd=cwd, env=merged_env)
            else:
                proc = subprocess.run(
                    args,
                    cwd=str(cwd) if cwd else None,
                    env=merged_env,
                    capture_output=True,
                    text=True,
                    check=False,
                )
                result = CommandResult(args, proc.returncode, proc.stdout, proc.stderr)
        except FileNotFoundError as exc:
            raise CommandError(args, 127, str(exc)) from exc

        if check and not result.ok:
            raise CommandError(args, result.returncode, result.stderr)
        return result

    def _run_streaming(self, args: List[str], *, cwd: Optional[Path], env: Mapping[str, str]) -> CommandResult:
        sink = self.output or sys.stdout
        lines: List[str] = []
        with subprocess.Popen(
            args,
            cwd=str(cwd) if cwd else None,
            env=dict(env),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        ) as proc:
            assert proc.stdout is not None
            for line in proc.stdout:
                sink.write(line)
                lines.append(line)
            returncode = proc.wait()
        return CommandResult(args, returncode, "".join(lines), "")
