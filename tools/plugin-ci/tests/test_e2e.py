from __future__ import annotations

import json
from pathlib import Path

from plugin_ci.e2e import CommandEndToEndRunner, get_end_to_end_settings
from plugin_ci.env import CiContext
from plugin_ci.schemas.plugin import TestResultsInfo

from conftest import PLUGIN_ID, FakeExecutor, write_plugin_json


def test_settings_point_at_staged_plugin(context: CiContext) -> None:
    write_plugin_json(context.dist_dir / PLUGIN_ID / "plugin.json")

    settings = get_end_to_end_settings(context, template=Path("e2e/custom.ts"))

    assert settings.plugin.id == PLUGIN_ID
    assert settings.output_folder == context.workspace_root / "e2e-results"
    assert settings.temp_folder == context.workspace_root / "e2e-temp"
    assert settings.template == context.workspace_root / "e2e" / "custom.ts"


def test_runner_reads_summary_counts(tmp_path: Path) -> None:
    output = tmp_path / "out"
    output.mkdir()

    def on_run(command, cwd):
        (output / "summary.json").write_text(json.dumps({"passed": 4, "failed": 1}), encoding="utf-8")

    executor = FakeExecutor(on_run=on_run)
    runner = CommandEndToEndRunner(command=["npx", "jest"], cwd=tmp_path, executor=executor)
    results = TestResultsInfo(job="test")

    runner.run(output, results)

    assert executor.calls == [["npx", "jest"]]
    assert (results.passed, results.failed) == (4, 1)
    assert results.error is None


def test_runner_counts_exit_status_without_summary(tmp_path: Path) -> None:
    runner = CommandEndToEndRunner(command=["npx", "jest"], executor=FakeExecutor(returncode=1))
    results = TestResultsInfo(job="test", error="earlier")

    runner.run(tmp_path, results)

    assert (results.passed, results.failed) == (0, 1)
    assert results.error.startswith("earlier\nCommand 'npx jest' exited with status 1")
