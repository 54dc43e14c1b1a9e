from __future__ import annotations

import json
from pathlib import Path

import pytest

from plugin_ci import cli

from conftest import PLUGIN_ID, plugin_dist_files, write_files, write_plugin_json

CI_VARIABLES = (
    "CIRCLE_JOB",
    "CIRCLE_BUILD_NUM",
    "CIRCLE_PULL_REQUEST",
    "CIRCLE_BRANCH",
    "CIRCLE_SHA1",
    "CIRCLE_REPOSITORY_URL",
    "CIRCLE_WORKFLOW_ID",
    "CIRCLE_PROJECT_USERNAME",
    "CIRCLE_PROJECT_REPONAME",
    "PLUGIN_CI_STORE",
    "PLUGIN_CI_STORE_ROOT",
    "PLUGIN_CI_PUBLIC_URL",
)


@pytest.fixture()
def ci_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in CI_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CIRCLE_JOB", "build_frontend")
    monkeypatch.setenv("CIRCLE_BUILD_NUM", "17")
    monkeypatch.setenv("CIRCLE_BRANCH", "main")
    monkeypatch.setenv("CIRCLE_SHA1", "def456")
    return monkeypatch


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, dict]:
    code = cli.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_package_failure_prints_error_payload(
    ci_env: pytest.MonkeyPatch, workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code, payload = _run(capsys, "--workspace-root", str(workspace), "package")

    assert code == 1
    assert payload["type"] == "EmptyDistributionError"


def test_package_then_report(ci_env: pytest.MonkeyPatch, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    dist = write_files(workspace / "ci" / "jobs" / "build_frontend" / "dist", plugin_dist_files())
    write_plugin_json(dist / "plugin.json")

    code, packaged = _run(capsys, "--workspace-root", str(workspace), "package")
    assert code == 0
    assert packaged["plugin_id"] == PLUGIN_ID
    assert packaged["packages"]["plugin"]["name"] == "my-panel-1.2.0.zip"

    code, reported = _run(capsys, "--workspace-root", str(workspace), "report")
    assert code == 0
    assert reported["job_key"] == "dev/my-panel/branch/main/17/index.json"
    assert (workspace / "ci" / "store" / "dev" / "my-panel" / "branch" / "main" / "history.json").exists()

    code, again = _run(capsys, "--workspace-root", str(workspace), "report")
    assert code == 1
    assert again["type"] == "JobAlreadyRegisteredError"


def test_dotenv_supplies_missing_variables(
    ci_env: pytest.MonkeyPatch, workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    ci_env.delenv("CIRCLE_JOB")
    (workspace / ".env").write_text("CIRCLE_JOB=docs_job\n", encoding="utf-8")
    write_files(workspace / "docs", {"guide.md": "# Guide\n"})

    code, payload = _run(capsys, "--workspace-root", str(workspace), "docs")

    assert code == 0
    assert payload["built"] is True
    assert payload["stats"]["job"] == "docs_job"


def test_configuration_errors_print_error_payload(
    ci_env: pytest.MonkeyPatch, workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    ci_env.setenv("PLUGIN_CI_STORE", "ftp")
    code, payload = _run(capsys, "--workspace-root", str(workspace), "report")
    assert code == 1
    assert payload["type"] == "StoreError"

    ci_env.setenv("CIRCLE_BUILD_NUM", "seventeen")
    code, payload = _run(capsys, "--workspace-root", str(workspace), "package")
    assert code == 1
    assert payload["type"] == "PreconditionError"
