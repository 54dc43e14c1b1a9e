from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from plugin_ci.env import CiContext
from plugin_ci.errors import CommandError
from plugin_ci.executor import CommandResult
from plugin_ci.settings import CiSettings

PLUGIN_ID = "my-panel"


def write_plugin_json(path: Path, *, plugin_id: str = PLUGIN_ID, version: str = "1.2.0", **extra: object) -> Path:
    payload = {
        "id": plugin_id,
        "name": "My Panel",
        "type": "panel",
        "info": {
            "version": version,
            "logos": {"small": "img/logo.svg", "large": "img/logo.svg"},
        },
    }
    payload.update(extra)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def write_files(root: Path, files: dict[str, str]) -> Path:
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


def plugin_dist_files(**extra: str) -> dict[str, str]:
    files = {
        "module.js": "define([], function () { return {}; });\n" * 20,
        "img/logo.svg": "<svg xmlns='http://www.w3.org/2000/svg'></svg>\n",
        "README.md": "# My Panel\n",
    }
    files.update(extra)
    return files


class FakeExecutor:
    """Records commands; ``on_run`` can create files the real tool would."""

    def __init__(self, on_run: Optional[Callable[[Sequence[str], Optional[Path]], None]] = None, returncode: int = 0):
        self.on_run = on_run
        self.returncode = returncode
        self.calls: List[List[str]] = []

    def run(self, command, *, cwd=None, env=None, stream=False, check=True) -> CommandResult:
        args = [str(part) for part in command]
        self.calls.append(args)
        if self.on_run is not None:
            self.on_run(args, cwd)
        result = CommandResult(args, self.returncode, "", "boom" if self.returncode else "")
        if check and self.returncode != 0:
            raise CommandError(args, self.returncode, result.stderr)
        return result


class Clock:
    def __init__(self, start: int = 1_700_000_000_000, step: int = 1500) -> None:
        self.value = start
        self.step = step

    def __call__(self) -> int:
        current = self.value
        self.value += self.step
        return current


@pytest.fixture()
def settings() -> CiSettings:
    return CiSettings(
        job="build_frontend",
        build_number=17,
        branch="main",
        sha="def456",
        repository_url="https://github.com/example/my-panel",
        workflow_id="wf-1",
    )


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    write_plugin_json(root / "src" / "plugin.json")
    return root


@pytest.fixture()
def context(workspace: Path, settings: CiSettings) -> CiContext:
    return CiContext(workspace_root=workspace, settings=settings, clock=Clock())


def add_job_dist(context: CiContext, job: str, files: dict[str, str]) -> Path:
    return write_files(context.jobs_dir / job / "dist", files)
