"""Report stage: assemble the build report and publish it to the remote store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..env import CiContext, get_artifacts_base_url, get_platform_versions
from ..errors import JobAlreadyRegisteredError, PreconditionError, StoreConflictError
from ..manifest import MANIFEST_NAME, get_plugin_id, load_manifest
from ..schemas.plugin import (
    BuildReport,
    DevSummary,
    HistoryIndex,
    HistoryRecord,
    PluginDevSummary,
    PluginPackageDetails,
)
from ..store import ObjectStore, merge_json, upload_logo, upload_packages, upload_test_files
from ..utils import write_json
from ..workflow import aggregate_coverage_info, aggregate_test_info, aggregate_workflow_info
from .package import INFO_FILE

logger = logging.getLogger(__name__)

ROOT_PREFIX = "dev"


def plugin_root(plugin_id: str) -> str:
    return f"{ROOT_PREFIX}/{plugin_id}"


def scope_prefix(plugin_id: str, *, branch: str, pr: Optional[int]) -> str:
    """Key prefix of the branch or pull request a run belongs to."""

    if pr:
        return f"{plugin_root(plugin_id)}/pr/{pr}"
    return f"{plugin_root(plugin_id)}/branch/{branch}"


def job_dir_key(plugin_id: str, *, branch: str, pr: Optional[int], build_number: int) -> str:
    return f"{scope_prefix(plugin_id, branch=branch, pr=pr)}/{build_number}"


def job_key(plugin_id: str, *, branch: str, pr: Optional[int], build_number: int) -> str:
    return f"{job_dir_key(plugin_id, branch=branch, pr=pr, build_number=build_number)}/index.json"


def history_key(plugin_id: str, *, branch: str, pr: Optional[int]) -> str:
    return f"{scope_prefix(plugin_id, branch=branch, pr=pr)}/history.json"


def plugin_index_key(plugin_id: str) -> str:
    return f"{plugin_root(plugin_id)}/index.json"


GLOBAL_INDEX_KEY = f"{ROOT_PREFIX}/index.json"


@dataclass(slots=True)
class ReportResult:
    report: BuildReport
    report_path: Path
    job_key: str
    history_key: str
    latest: HistoryRecord
    logo: Optional[str] = None
    uploaded: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "report_path": str(self.report_path),
            "job_key": self.job_key,
            "history_key": self.history_key,
            "latest": self.latest.to_json_dict(),
            "logo": self.logo,
            "uploaded": list(self.uploaded),
            "warnings": list(self.warnings),
        }


def build_report(context: CiContext, *, artifacts_base_url: Optional[str] = None) -> BuildReport:
    """Collect package details, manifest and job summaries into one report."""

    info_path = context.packages_dir / INFO_FILE
    if not info_path.exists():
        raise PreconditionError(f"Missing package info: {info_path}")
    packages = PluginPackageDetails.model_validate_json(info_path.read_text(encoding="utf-8"))

    plugin_id = get_plugin_id(context.workspace_root)
    manifest_path = context.dist_dir / plugin_id / MANIFEST_NAME
    logger.info("Load info from: %s", manifest_path)
    manifest = load_manifest(manifest_path)

    return BuildReport(
        plugin=manifest,
        packages=packages,
        workflow=aggregate_workflow_info(context),
        coverage=aggregate_coverage_info(context),
        tests=aggregate_test_info(context),
        artifacts_base_url=artifacts_base_url,
        grafana_version=get_platform_versions(context.workspace_root),
        pull_request=context.pull_request,
        created_at=datetime.now(timezone.utc),
    )


def publish_report(
    context: CiContext,
    store: ObjectStore,
    *,
    upload: bool = False,
    artifacts_base_url: Optional[Callable[[], Optional[str]]] = None,
) -> ReportResult:
    """Write the report once under its job key and fold it into the history indexes.

    Everything up to and including the job record write is fatal on error.
    Logo and artifact uploads afterwards are best-effort and only reported
    as warnings; index updates still raise, but never undo the job record.
    """

    resolve_base_url = artifacts_base_url or (lambda: get_artifacts_base_url(context.settings))
    report = build_report(context, artifacts_base_url=resolve_base_url())
    write_json(report.to_json_dict(), context.report_path)

    manifest = report.plugin
    build = manifest.info.build
    if build is None:
        raise PreconditionError("Metadata missing build info")

    plugin_id = manifest.id
    version = manifest.info.version or "unknown"
    branch = build.branch or "unknown"
    pr = report.pull_request
    build_number = context.build_number

    key = job_key(plugin_id, branch=branch, pr=pr, build_number=build_number)
    if store.exists(key):
        raise JobAlreadyRegisteredError(key)

    logger.info("Write Job %s", key)
    try:
        store.write_json(
            key,
            report.to_json_dict(),
            tags={"version": version, "type": manifest.type or "unknown"},
            if_none_match=True,
        )
    except StoreConflictError as exc:
        raise JobAlreadyRegisteredError(key) from exc

    warnings: List[str] = []
    root = plugin_root(plugin_id)
    logo: Optional[str] = None
    try:
        logo = upload_logo(store, manifest.info, local=context.dist_dir / plugin_id, remote=root)
    except Exception as exc:  # best-effort; reported below
        warnings.append(f"Logo upload failed: {exc}")

    latest_build = build.model_copy(update={"number": build_number, "pr": pr or build.pr})
    latest = HistoryRecord(
        plugin_id=plugin_id,
        name=manifest.name,
        logo=logo,
        build=latest_build,
        version=version,
    )

    scope_history_key = history_key(plugin_id, branch=branch, pr=pr)
    logger.info("Read %s", scope_history_key)
    merge_json(store, scope_history_key, HistoryIndex, lambda history: history.record(latest, branch=branch, pr=pr))
    logger.info("wrote history")

    uploaded: List[str] = []
    if upload:
        dir_key = job_dir_key(plugin_id, branch=branch, pr=pr, build_number=build_number)
        try:
            uploaded.extend(
                upload_packages(store, report.packages, local=context.packages_dir, remote=f"{dir_key}/packages")
            )
        except Exception as exc:  # best-effort; reported below
            warnings.append(f"Package upload failed: {exc}")
        try:
            uploaded.extend(upload_test_files(store, report.tests, local=context.ci_dir, remote=dir_key))
        except Exception as exc:  # best-effort; reported below
            warnings.append(f"Test file upload failed: {exc}")

    logger.info("Update Directory Indexes")
    merge_json(
        store,
        plugin_index_key(plugin_id),
        PluginDevSummary,
        lambda index: index.record(latest, branch=branch, pr=pr),
    )
    merge_json(store, GLOBAL_INDEX_KEY, DevSummary, lambda index: index.record(latest))
    logger.info("wrote index")

    for warning in warnings:
        logger.warning(warning)

    return ReportResult(
        report=report,
        report_path=context.report_path,
        job_key=key,
        history_key=scope_history_key,
        latest=latest,
        logo=logo,
        uploaded=uploaded,
        warnings=warnings,
    )
