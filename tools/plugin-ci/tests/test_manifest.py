from __future__ import annotations

import json
from pathlib import Path

import pytest

from plugin_ci.errors import PreconditionError
from plugin_ci.manifest import get_plugin_id, load_manifest, stamp_build_info
from plugin_ci.schemas.plugin import PluginBuildInfo

from conftest import write_plugin_json


def test_stamped_build_info_survives_reload(tmp_path: Path) -> None:
    path = write_plugin_json(tmp_path / "plugin.json", dependencies={"grafanaVersion": "7.x"})
    build = PluginBuildInfo(time=1_700_000_000_000, repo="https://example/repo", branch="main", hash="abc123", number=17)

    stamp_build_info(path, build)
    reloaded = load_manifest(path)

    assert reloaded.info.build == build
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["info"]["build"]["hash"] == "abc123"
    assert payload["dependencies"] == {"grafanaVersion": "7.x"}
    assert payload["info"]["logos"]["small"] == "img/logo.svg"


def test_load_manifest_requires_file(tmp_path: Path) -> None:
    with pytest.raises(PreconditionError):
        load_manifest(tmp_path / "plugin.json")


def test_get_plugin_id_reads_src_manifest(tmp_path: Path) -> None:
    write_plugin_json(tmp_path / "src" / "plugin.json", plugin_id="other-app")

    assert get_plugin_id(tmp_path) == "other-app"


def test_get_plugin_id_without_manifest(tmp_path: Path) -> None:
    with pytest.raises(PreconditionError):
        get_plugin_id(tmp_path)
