"""Build stage: run the plugin build and move its outputs into the job folder."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..env import CiContext
from ..errors import PreconditionError
from ..executor import ProcessExecutor
from ..jobs import JobFolderHandle, JobFolderManager
from ..schemas.plugin import JobStats

logger = logging.getLogger(__name__)

BUILD_DESCRIPTOR = "Makefile"
BACKEND_COMMAND = ("make", "backend-plugin-ci")
FRONTEND_COMMAND = ("npx", "grafana-toolkit", "plugin:build", "--coverage")
OUTPUT_FOLDERS = ("dist", "coverage")


@dataclass(slots=True)
class BuildResult:
    job: JobFolderHandle
    backend: bool
    stats: JobStats
    moved: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "job": self.job.name,
            "job_folder": str(self.job.path),
            "backend": self.backend,
            "moved": list(self.moved),
            "stats": self.stats.to_json_dict(),
        }


def build_plugin(
    context: CiContext,
    *,
    backend: bool = False,
    executor: Optional[ProcessExecutor] = None,
    backend_command: Sequence[str] = BACKEND_COMMAND,
    frontend_command: Sequence[str] = FRONTEND_COMMAND,
) -> BuildResult:
    """Build the plugin and move ``dist``/``coverage`` into this job's folder.

    The outputs are moved even when the build command fails, so nothing is
    left in the workspace for the next job; the command's failure is then
    re-raised.
    """

    start = context.clock()
    jobs = JobFolderManager(context.jobs_dir, build_number=context.settings.build_number, clock=context.clock)
    handle = jobs.allocate(context.job)
    workspace = context.workspace_root
    runner = executor or ProcessExecutor()

    if backend:
        makefile = workspace / BUILD_DESCRIPTOR
        if not makefile.exists():
            raise PreconditionError(f"Missing: {makefile}. A Makefile is required for backend plugins.")
        command = backend_command
    else:
        command = frontend_command

    try:
        runner.run(command, cwd=workspace, stream=True)
    finally:
        moved = _move_outputs(workspace, handle.path)
        stats = jobs.record_stats(handle, start)

    return BuildResult(job=handle, backend=backend, stats=stats, moved=moved)


def _move_outputs(workspace: Path, job_folder: Path) -> List[str]:
    moved: List[str] = []
    for name in OUTPUT_FOLDERS:
        source = workspace / name
        if source.exists():
            shutil.move(str(source), str(job_folder / name))
            moved.append(name)
            logger.info("Moved %s into %s", name, job_folder)
    return moved
