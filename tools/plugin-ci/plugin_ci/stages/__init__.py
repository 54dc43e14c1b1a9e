"""The fixed pipeline stages: build, docs, package, test and report."""

from .build import BuildResult, build_plugin
from .docs import DocsResult, build_plugin_docs
from .package import PackageResult, package_plugin
from .report import ReportResult, history_key, job_key, publish_report
from .test import TestStageResult, run_plugin_tests

__all__ = [
    "BuildResult",
    "DocsResult",
    "PackageResult",
    "ReportResult",
    "TestStageResult",
    "build_plugin",
    "build_plugin_docs",
    "history_key",
    "job_key",
    "package_plugin",
    "publish_report",
    "run_plugin_tests",
]
