"""Test stage: check the deployed build and run the end-to-end suite against it."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..e2e import EndToEndRunner, EndToEndSettings, get_end_to_end_settings
from ..env import CiContext
from ..errors import PreconditionError, VersionMismatchError
from ..instance import InstanceClient
from ..jobs import JobFolderHandle, JobFolderManager
from ..schemas.plugin import JobStats, TestResultsInfo
from ..utils import copy_tree, find_images_in_folder, reset_directory, write_json
from ..workflow import RESULTS_FILE

logger = logging.getLogger(__name__)

TEMP_TEST_FILE = "common.test.ts"


@dataclass(slots=True)
class TestStageResult:
    __test__ = False

    job: JobFolderHandle
    results: TestResultsInfo
    results_path: Path
    stats: JobStats

    def to_dict(self) -> dict[str, object]:
        return {
            "job": self.job.name,
            "results_path": str(self.results_path),
            "results": self.results.to_json_dict(),
            "stats": self.stats.to_json_dict(),
        }


def run_plugin_tests(
    context: CiContext,
    runner: EndToEndRunner,
    *,
    client: Optional[InstanceClient] = None,
    settings: Optional[EndToEndSettings] = None,
) -> TestStageResult:
    """Run the end-to-end checks; failures end up in the results, not as exceptions.

    Only setting up the scratch and output folders may raise.
    """

    start = context.clock()
    jobs = JobFolderManager(context.jobs_dir, build_number=context.settings.build_number, clock=context.clock)
    handle = jobs.open(context.job)
    e2e = settings or get_end_to_end_settings(context)
    results = TestResultsInfo(job=context.job)

    reset_directory(e2e.output_folder)
    reset_directory(e2e.temp_folder)

    instance = client or InstanceClient(
        context.settings.base_url,
        username=context.settings.admin_user,
        password=context.settings.admin_password,
    )
    try:
        _run_checks(instance, e2e, runner, results)
    except Exception as exc:  # recorded in the results; the report stage still runs
        results.error = str(exc)
        logger.warning("Test Error: %s", exc)
    finally:
        shutil.rmtree(e2e.temp_folder, ignore_errors=True)

    copy_tree(e2e.output_folder, handle.path)
    results.screenshots = find_images_in_folder(handle.path, relative_to=context.ci_dir)

    results_path = handle.path / RESULTS_FILE
    write_json(results.to_json_dict(), results_path)
    stats = jobs.record_stats(handle, start)
    return TestStageResult(job=handle, results=results, results_path=results_path, stats=stats)


def _run_checks(
    instance: InstanceClient,
    e2e: EndToEndSettings,
    runner: EndToEndRunner,
    results: TestResultsInfo,
) -> None:
    results.grafana = instance.get_build_info()
    logger.info("Grafana: %s", results.grafana)

    loaded = instance.get_plugin_settings(e2e.plugin.id)
    loaded_build = (loaded.get("info") or {}).get("build")
    if loaded_build:
        expected = e2e.plugin.info.build.hash if e2e.plugin.info.build else None
        found = loaded_build.get("hash")
        logger.info("Check version: %s", loaded_build)
        if found != expected:
            logger.warning("Testing wrong plugin version. Expected: %s, found: %s", expected, found)
            raise VersionMismatchError(expected, found)

    if not e2e.template.is_file():
        raise PreconditionError(f"Test template not found: {e2e.template}")
    e2e.temp_folder.mkdir(parents=True, exist_ok=True)
    shutil.copy2(e2e.template, e2e.temp_folder / TEMP_TEST_FILE)

    runner.run(e2e.output_folder, results)
