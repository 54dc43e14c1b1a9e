from __future__ import annotations

import json
from pathlib import Path

import pytest

from plugin_ci.errors import JobFolderError
from plugin_ci.jobs import JobFolderManager

from conftest import Clock


def test_allocate_gives_each_invocation_its_own_folder(tmp_path: Path) -> None:
    manager = JobFolderManager(tmp_path / "jobs")
    first = manager.allocate("build_frontend")
    (first.path / "module.js").write_text("built", encoding="utf-8")

    second = manager.allocate("build_frontend")
    third = manager.allocate("build_frontend")

    assert first.path == tmp_path / "jobs" / "build_frontend"
    assert [second.name, third.name] == ["build_frontend-2", "build_frontend-3"]
    assert list(second.path.iterdir()) == []
    assert (first.path / "module.js").read_text(encoding="utf-8") == "built"


def test_allocate_rejects_unusable_jobs_root(tmp_path: Path) -> None:
    blocker = tmp_path / "jobs"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(JobFolderError):
        JobFolderManager(blocker).allocate("build")


@pytest.mark.parametrize("name", ["", "..", "a/b"])
def test_allocate_rejects_invalid_names(tmp_path: Path, name: str) -> None:
    with pytest.raises(JobFolderError):
        JobFolderManager(tmp_path / "jobs").allocate(name)


def test_open_keeps_existing_contents(tmp_path: Path) -> None:
    manager = JobFolderManager(tmp_path / "jobs")
    handle = manager.allocate("local")
    (handle.path / "dist").mkdir()

    reopened = manager.open("local")

    assert (reopened.path / "dist").is_dir()


def test_record_stats_writes_elapsed_time(tmp_path: Path) -> None:
    manager = JobFolderManager(tmp_path / "jobs", build_number=17, clock=Clock(start=5_000, step=250))
    handle = manager.allocate("package")

    stats = manager.record_stats(handle, start_time=4_000)

    payload = json.loads(handle.stats_path.read_text(encoding="utf-8"))
    assert payload == {"job": "package", "startTime": 4_000, "endTime": 5_000, "elapsed": 1_000, "buildNumber": 17}
    assert stats.elapsed == 1_000
    assert manager.load_stats() == [stats]


def test_job_folders_are_listed_by_name(tmp_path: Path) -> None:
    manager = JobFolderManager(tmp_path / "jobs")
    for name in ("build_z", "build_a", "build_m"):
        manager.allocate(name)
    (tmp_path / "jobs" / "notes.txt").write_text("ignored", encoding="utf-8")

    assert [handle.name for handle in manager.job_folders()] == ["build_a", "build_m", "build_z"]
