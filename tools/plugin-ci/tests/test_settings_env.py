from __future__ import annotations

import json
from pathlib import Path
from unittest import mock

import pytest
import requests

from plugin_ci.env import (
    CiContext,
    get_artifacts_base_url,
    get_build_info,
    get_platform_versions,
    get_pull_request_number,
)
from plugin_ci.errors import PreconditionError
from plugin_ci.settings import CiSettings, load_settings, read_dotenv


def test_load_settings_maps_ci_variables() -> None:
    settings = load_settings(
        {
            "CIRCLE_JOB": "build_backend",
            "CIRCLE_BUILD_NUM": "17",
            "CIRCLE_BRANCH": "main",
            "CIRCLE_SHA1": "def456",
            "CIRCLE_PULL_REQUEST": "https://github.com/example/my-panel/pull/42",
            "PLUGIN_CI_STORE": "s3",
            "PLUGIN_CI_S3_BUCKET": "plugins",
        }
    )

    assert settings.job == "build_backend"
    assert settings.build_number == 17
    assert settings.sha == "def456"
    assert settings.store.kind == "s3"
    assert settings.store.bucket == "plugins"
    assert settings.base_url == "http://localhost:3000/"


def test_load_settings_prefers_environment_over_dotenv(tmp_path: Path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text(
        "# local overrides\n"
        "export CIRCLE_BRANCH=from-file\n"
        "BASE_URL='http://grafana:3000/'\n"
        "broken line\n",
        encoding="utf-8",
    )

    settings = load_settings({"CIRCLE_BRANCH": "from-env", "CIRCLE_JOB": ""}, dotenv=dotenv)

    assert settings.branch == "from-env"
    assert settings.base_url == "http://grafana:3000/"
    assert settings.job == "local"
    assert settings.warnings == [f"{dotenv}:4: missing '='"]


def test_read_dotenv_missing_file(tmp_path: Path) -> None:
    assert read_dotenv(tmp_path / "absent.env") == {}


def test_pull_request_number() -> None:
    assert get_pull_request_number(CiSettings(pull_request_url="https://github.com/a/b/pull/42")) == 42
    assert get_pull_request_number(CiSettings(pull_request_url="https://github.com/a/b/pull/42/")) == 42
    assert get_pull_request_number(CiSettings(pull_request_url="https://github.com/a/b/compare")) is None
    assert get_pull_request_number(CiSettings()) is None


def test_build_info_from_settings() -> None:
    settings = CiSettings(
        branch="main",
        sha="def456",
        repository_url="https://github.com/a/b",
        pull_request_url="https://github.com/a/b/pull/42",
    )

    info = get_build_info(settings, 1234)

    assert info.time == 1234
    assert info.hash == "def456"
    assert info.pr == 42
    assert info.number is None


def test_context_defaults(tmp_path: Path) -> None:
    context = CiContext(workspace_root=tmp_path)

    assert context.job == "local"
    assert context.build_number == 0
    assert context.branch == "unknown"
    assert context.jobs_dir == tmp_path / "ci" / "jobs"
    assert context.sandbox_dir == tmp_path / "ci" / "grafana-test-env"


def _circle_settings() -> CiSettings:
    return CiSettings(project_username="example", project_reponame="my-panel", build_number=17)


def test_artifacts_base_url_trims_to_container_prefix() -> None:
    session = mock.Mock()
    session.get.return_value.json.return_value = [
        {"path": "ci/report.json", "url": "https://17-1-gh.circle-artifacts.com/0/ci/report.json"},
    ]

    url = get_artifacts_base_url(_circle_settings(), session=session)

    assert url == "https://17-1-gh.circle-artifacts.com/0/"
    requested = session.get.call_args[0][0]
    assert requested == "https://circleci.com/api/v1.1/project/github/example/my-panel/17/artifacts"


def test_artifacts_base_url_failure_is_not_fatal() -> None:
    session = mock.Mock()
    session.get.side_effect = requests.ConnectionError("offline")

    assert get_artifacts_base_url(_circle_settings(), session=session) is None


def test_artifacts_base_url_needs_project() -> None:
    session = mock.Mock()

    assert get_artifacts_base_url(CiSettings(build_number=17), session=session) is None
    session.get.assert_not_called()


def test_platform_versions(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps(
            {
                "dependencies": {"@grafana/data": "7.3.0", "lodash": "4"},
                "devDependencies": {"@grafana/toolkit": "7.3.0", "@grafana/data": "7.0.0"},
            }
        ),
        encoding="utf-8",
    )

    assert get_platform_versions(tmp_path) == {"@grafana/data": "7.3.0", "@grafana/toolkit": "7.3.0"}
    assert get_platform_versions(tmp_path / "missing") == {}


def test_invalid_build_number_is_a_precondition_error() -> None:
    with pytest.raises(PreconditionError, match="Invalid CI settings"):
        load_settings({"CIRCLE_BUILD_NUM": "seventeen"})
