"""End-to-end test runner interface and the command-driven implementation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .env import CiContext
from .errors import CommandError
from .executor import ProcessExecutor
from .manifest import MANIFEST_NAME, get_plugin_id, load_manifest
from .schemas.plugin import PluginManifest, TestResultsInfo

logger = logging.getLogger(__name__)

SUMMARY_FILE = "summary.json"
DEFAULT_TEMPLATE = Path("node_modules/@grafana/toolkit/src/plugins/e2e/commonPluginTests.ts")


@dataclass
class EndToEndSettings:
    plugin: PluginManifest
    output_folder: Path
    temp_folder: Path
    template: Path


def get_end_to_end_settings(context: CiContext, *, template: Optional[Path] = None) -> EndToEndSettings:
    """Settings for testing the plugin staged in the canonical dist tree."""

    plugin_id = get_plugin_id(context.workspace_root)
    plugin = load_manifest(context.dist_dir / plugin_id / MANIFEST_NAME)
    chosen = template or DEFAULT_TEMPLATE
    return EndToEndSettings(
        plugin=plugin,
        output_folder=context.workspace_root / "e2e-results",
        temp_folder=context.workspace_root / "e2e-temp",
        template=chosen if chosen.is_absolute() else context.workspace_root / chosen,
    )


class EndToEndRunner(Protocol):
    def run(self, output_folder: Path, results: TestResultsInfo) -> None:  # pragma: no cover - interface
        ...


@dataclass
class CommandEndToEndRunner:
    """Runs an external test command and reads its ``summary.json`` counts.

    Without a summary the command's exit status counts as one passed or
    failed check.
    """

    command: Sequence[str]
    cwd: Optional[Path] = None
    executor: ProcessExecutor = field(default_factory=ProcessExecutor)

    def run(self, output_folder: Path, results: TestResultsInfo) -> None:
        env = {"E2E_OUTPUT_DIR": str(output_folder)}
        try:
            self.executor.run(self.command, cwd=self.cwd, env=env, stream=True)
            failure: Optional[str] = None
        except CommandError as exc:
            failure = str(exc)

        summary = output_folder / SUMMARY_FILE
        if summary.exists():
            payload = json.loads(summary.read_text(encoding="utf-8"))
            results.passed += int(payload.get("passed", 0))
            results.failed += int(payload.get("failed", 0))
        elif failure is None:
            results.passed += 1
        else:
            results.failed += 1

        if failure is not None:
            results.error = _append_error(results.error, failure)


def _append_error(existing: Optional[str], message: str) -> str:
    parts: List[str] = [existing] if existing else []
    parts.append(message)
    return "\n".join(parts)
