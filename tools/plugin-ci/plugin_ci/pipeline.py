"""The fixed build -> package -> test -> report sequence."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .e2e import EndToEndRunner, get_end_to_end_settings
from .env import CiContext
from .executor import ProcessExecutor
from .stages import (
    BuildResult,
    PackageResult,
    ReportResult,
    TestStageResult,
    build_plugin,
    package_plugin,
    publish_report,
    run_plugin_tests,
)
from .store import ObjectStore


@dataclass
class PipelineResult:
    build: Optional[BuildResult] = None
    package: Optional[PackageResult] = None
    test: Optional[TestStageResult] = None
    report: Optional[ReportResult] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "build": self.build.to_dict() if self.build else None,
            "package": self.package.to_dict() if self.package else None,
            "test": self.test.to_dict() if self.test else None,
            "report": self.report.to_dict() if self.report else None,
        }


def run_pipeline(
    context: CiContext,
    *,
    store: ObjectStore,
    runner: EndToEndRunner,
    backend: bool = False,
    upload: bool = False,
    executor: Optional[ProcessExecutor] = None,
    template: Optional[Path] = None,
) -> PipelineResult:
    """Run every stage in order within one process; the first fatal error stops the run."""

    result = PipelineResult()
    result.build = build_plugin(context, backend=backend, executor=executor)
    result.package = package_plugin(context)
    result.test = run_plugin_tests(context, runner, settings=get_end_to_end_settings(context, template=template))
    result.report = publish_report(context, store, upload=upload)
    return result
