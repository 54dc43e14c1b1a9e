"""Docs stage: stage the project's ``docs/`` folder for packaging."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..env import CiContext
from ..jobs import JobFolderManager
from ..schemas.plugin import JobStats
from ..utils import copy_tree, iter_files, reset_directory, write_text

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DocsResult:
    built: bool
    docs_dir: Optional[str] = None
    stats: Optional[JobStats] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "built": self.built,
            "docs_dir": self.docs_dir,
            "stats": self.stats.to_json_dict() if self.stats else None,
        }


def build_plugin_docs(context: CiContext) -> DocsResult:
    source = context.workspace_root / "docs"
    if not source.is_dir():
        logger.info("No docs src")
        return DocsResult(built=False)

    start = context.clock()
    jobs = JobFolderManager(context.jobs_dir, build_number=context.settings.build_number, clock=context.clock)
    handle = jobs.allocate(context.job)

    destination = context.docs_dir
    copy_tree(source, reset_directory(destination))
    if not (destination / "index.html").exists():
        write_text(destination / "index.html", _render_index(destination))

    stats = jobs.record_stats(handle, start)
    return DocsResult(built=True, docs_dir=str(destination), stats=stats)


def _render_index(root: Path) -> str:
    items = [
        f'    <li><a href="{html.escape(path.relative_to(root).as_posix())}">'
        f"{html.escape(path.relative_to(root).as_posix())}</a></li>"
        for path in iter_files(root)
    ]
    body = "\n".join(items)
    return f"<!DOCTYPE html>\n<html>\n<body>\n  <ul>\n{body}\n  </ul>\n</body>\n</html>\n"
