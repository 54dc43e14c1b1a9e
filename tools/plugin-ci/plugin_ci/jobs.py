"""Job folder allocation and per-job statistics."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .env import now_ms
from .errors import JobFolderError
from .schemas.plugin import JobStats
from .utils import sorted_subdirectories, write_json

logger = logging.getLogger(__name__)

STATS_FILE = "job.json"
MAX_ALLOCATIONS = 1000


@dataclass(frozen=True)
class JobFolderHandle:
    name: str
    path: Path

    @property
    def stats_path(self) -> Path:
        return self.path / STATS_FILE


class JobFolderManager:
    """Allocates one working directory per stage invocation under ``jobs_root``."""

    def __init__(
        self,
        jobs_root: Path,
        *,
        build_number: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.jobs_root = jobs_root
        self.build_number = build_number
        self.clock = clock

    def allocate(self, name: str) -> JobFolderHandle:
        """Create a new, empty folder for ``name`` without touching existing ones.

        The first allocation gets ``name`` itself; later ones in the same jobs
        root get ``name-2``, ``name-3`` and so on. Every ``mkdir`` is
        exclusive, so concurrent allocations never share a folder.
        """

        if not name or "/" in name or name in {".", ".."}:
            raise JobFolderError(f"Invalid job name: {name!r}")
        try:
            self.jobs_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JobFolderError(f"Jobs root is not usable: {self.jobs_root} ({exc})") from exc
        if not os.access(self.jobs_root, os.W_OK):
            raise JobFolderError(f"Jobs root is not writable: {self.jobs_root}")

        for attempt in range(1, MAX_ALLOCATIONS + 1):
            folder_name = name if attempt == 1 else f"{name}-{attempt}"
            path = self.jobs_root / folder_name
            try:
                path.mkdir()
            except FileExistsError:
                continue
            except OSError as exc:
                raise JobFolderError(f"Unable to allocate job folder {path}: {exc}") from exc
            logger.debug("Allocated job folder %s", path)
            return JobFolderHandle(name=folder_name, path=path)
        raise JobFolderError(f"No free job folder name for {name!r} under {self.jobs_root}")

    def open(self, name: str) -> JobFolderHandle:
        """Return the folder for ``name`` without clearing what it already holds."""

        path = self.jobs_root / name
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JobFolderError(f"Unable to open job folder {path}: {exc}") from exc
        return JobFolderHandle(name=name, path=path)

    def record_stats(self, handle: JobFolderHandle, start_time: int) -> JobStats:
        end_time = self.clock()
        stats = JobStats(
            job=handle.name,
            start_time=start_time,
            end_time=end_time,
            elapsed=end_time - start_time,
            build_number=self.build_number,
        )
        write_json(stats.to_json_dict(), handle.stats_path)
        return stats

    def job_folders(self) -> List[JobFolderHandle]:
        """Existing job folders in lexicographic order of their names."""

        return [JobFolderHandle(name=item.name, path=item) for item in sorted_subdirectories(self.jobs_root)]

    def load_stats(self) -> List[JobStats]:
        stats: List[JobStats] = []
        for handle in self.job_folders():
            if handle.stats_path.exists():
                stats.append(JobStats.model_validate_json(handle.stats_path.read_text(encoding="utf-8")))
        return stats
