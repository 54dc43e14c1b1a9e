from __future__ import annotations

from pathlib import Path
from unittest import mock

from plugin_ci.env import CiContext
from plugin_ci.instance import InstanceClient
from plugin_ci.pipeline import run_pipeline
from plugin_ci.schemas.plugin import TestResultsInfo
from plugin_ci.store import LocalObjectStore

from conftest import PLUGIN_ID, FakeExecutor, plugin_dist_files, write_files, write_plugin_json


class PassingRunner:
    def run(self, output_folder: Path, results: TestResultsInfo) -> None:
        results.passed += 1


def test_stages_run_in_order(context: CiContext, tmp_path: Path) -> None:
    workspace = context.workspace_root

    def build(command, cwd):
        write_files(workspace / "dist", plugin_dist_files())
        write_plugin_json(workspace / "dist" / "plugin.json")

    template = tmp_path / "common.ts"
    template.write_text("// checks\n", encoding="utf-8")
    store = LocalObjectStore(tmp_path / "store")

    with mock.patch("plugin_ci.stages.test.InstanceClient", autospec=True) as client_type:
        client = client_type.return_value
        client.get_build_info.return_value = {"version": "7.3.0"}
        client.get_plugin_settings.return_value = {"info": {"build": {"hash": "def456"}}}
        with mock.patch("plugin_ci.stages.report.get_artifacts_base_url", return_value=None):
            result = run_pipeline(
                context,
                store=store,
                runner=PassingRunner(),
                executor=FakeExecutor(on_run=build),
                template=template,
            )

    assert result.build.moved == ["dist"]
    assert result.package.plugin_id == PLUGIN_ID
    assert result.test.results.passed == 1
    assert result.test.results.error is None
    assert result.report.job_key == "dev/my-panel/branch/main/17/index.json"
    assert result.report.report.tests[0].passed == 1
    assert set(result.to_dict()) == {"build", "package", "test", "report"}
    client_type.assert_called_once()
