"""Aggregate per-job outputs into workflow, coverage and test summaries."""

from __future__ import annotations

import json
from typing import List

from .env import CiContext
from .jobs import JobFolderManager
from .schemas.plugin import CoverageInfo, TestResultsInfo, WorkflowInfo

COVERAGE_SUMMARY = ("coverage", "coverage-summary.json")
RESULTS_FILE = "results.json"


def aggregate_workflow_info(context: CiContext) -> WorkflowInfo:
    stats = JobFolderManager(context.jobs_dir).load_stats()
    settings = context.settings
    info = WorkflowInfo(
        workflow_id=settings.workflow_id,
        repo=settings.repository_url,
        branch=settings.branch,
        hash=settings.sha,
        build=settings.build_number,
    )
    if stats:
        info.start_time = min(item.start_time for item in stats)
        info.end_time = max(item.end_time for item in stats)
        info.elapsed = info.end_time - info.start_time
    return info


def aggregate_coverage_info(context: CiContext) -> List[CoverageInfo]:
    coverage: List[CoverageInfo] = []
    for handle in JobFolderManager(context.jobs_dir).job_folders():
        summary_path = handle.path.joinpath(*COVERAGE_SUMMARY)
        if not summary_path.exists():
            continue
        coverage.append(
            CoverageInfo(
                job=handle.name,
                summary=json.loads(summary_path.read_text(encoding="utf-8")),
                report=summary_path.relative_to(context.ci_dir).as_posix(),
            )
        )
    return coverage


def aggregate_test_info(context: CiContext) -> List[TestResultsInfo]:
    tests: List[TestResultsInfo] = []
    for handle in JobFolderManager(context.jobs_dir).job_folders():
        results_path = handle.path / RESULTS_FILE
        if results_path.exists():
            tests.append(TestResultsInfo.model_validate_json(results_path.read_text(encoding="utf-8")))
    return tests
