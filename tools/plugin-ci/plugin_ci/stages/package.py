"""Package stage: merge job outputs into one dist tree, stamp it, zip it, stage a sandbox."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..env import CiContext
from ..errors import ArtifactIntegrityError, EmptyDistributionError
from ..jobs import JobFolderManager
from ..manifest import MANIFEST_NAME, get_plugin_id, stamp_build_info
from ..schemas.plugin import JobStats, PluginBuildInfo, PluginManifest, PluginPackageDetails
from ..utils import (
    extract_archive,
    get_package_details,
    iter_files,
    merge_tree,
    reset_directory,
    write_json,
    write_text,
    zip_directory,
)

logger = logging.getLogger(__name__)

MIN_ARCHIVE_SIZE = 100
INFO_FILE = "info.json"
SANDBOX_CONFIG = "custom.ini"


@dataclass(slots=True)
class PackageResult:
    plugin_id: str
    manifest: PluginManifest
    dist_dir: Path
    archive_path: Path
    docs_archive_path: Optional[Path]
    details: PluginPackageDetails
    sources: List[str]
    stats: JobStats

    def to_dict(self) -> dict[str, object]:
        return {
            "plugin_id": self.plugin_id,
            "version": self.manifest.info.version,
            "dist_dir": str(self.dist_dir),
            "archive_path": str(self.archive_path),
            "docs_archive_path": str(self.docs_archive_path) if self.docs_archive_path else None,
            "packages": self.details.to_json_dict(),
            "sources": list(self.sources),
            "stats": self.stats.to_json_dict(),
        }


def archive_name(manifest: PluginManifest, suffix: str = "") -> str:
    version = manifest.info.version or "unknown"
    return f"{manifest.id}-{version}{suffix}.zip"


def package_plugin(context: CiContext, *, min_archive_size: int = MIN_ARCHIVE_SIZE) -> PackageResult:
    """Merge every build output into ``ci/dist/<pluginId>`` and package it.

    Contributions never overwrite each other: the workspace ``dist`` folder is
    merged first, then each job's ``dist`` in job-name order, and the first
    file that is already present fails the stage with DuplicateFilesError.
    """

    start = context.clock()
    jobs = JobFolderManager(context.jobs_dir, build_number=context.settings.build_number, clock=context.clock)

    packages_dir = reset_directory(context.packages_dir)
    reset_directory(context.dist_dir)
    sandbox_dir = reset_directory(context.sandbox_dir)

    plugin_id = get_plugin_id(context.workspace_root)
    dist_dir = context.dist_dir / plugin_id
    dist_dir.mkdir()

    logger.info("Build Dist Folder")
    sources: List[str] = []
    local_dist = context.workspace_root / "dist"
    if local_dist.is_dir():
        merge_tree(local_dist, dist_dir)
        sources.append(str(local_dist))
    for handle in jobs.job_folders():
        contents = handle.path / "dist"
        if contents.is_dir():
            merge_tree(contents, dist_dir)
            sources.append(str(contents))

    if not iter_files(dist_dir):
        raise EmptyDistributionError(f"No build job contributed files to {dist_dir}")

    logger.info("Save the source info in %s", MANIFEST_NAME)
    manifest = stamp_build_info(dist_dir / MANIFEST_NAME, _build_info(context))

    logger.info("Building ZIP")
    archive_path = zip_directory(dist_dir, packages_dir / archive_name(manifest), prefix=plugin_id)
    size = archive_path.stat().st_size
    if size < min_archive_size:
        raise ArtifactIntegrityError(f"Invalid zip file: {archive_path} ({size} bytes)")
    details = PluginPackageDetails(plugin=get_package_details(archive_path))

    logger.info("Setup Grafana Environment")
    plugins_dir = sandbox_dir / "plugins"
    extract_archive(archive_path, plugins_dir)

    docs_archive_path: Optional[Path] = None
    if context.docs_dir.is_dir():
        logger.info("Creating documentation zip")
        docs_archive_path = zip_directory(context.docs_dir, packages_dir / archive_name(manifest, "-docs"))
        details.docs = get_package_details(docs_archive_path)

    write_json(details.to_json_dict(), packages_dir / INFO_FILE)
    write_text(
        sandbox_dir / SANDBOX_CONFIG,
        "# Autogenerated by plugin-ci\n"
        "[paths]\n"
        f"plugins = {plugins_dir}\n"
        "\n",
    )

    stats = jobs.record_stats(jobs.open(context.job), start)
    return PackageResult(
        plugin_id=plugin_id,
        manifest=manifest,
        dist_dir=dist_dir,
        archive_path=archive_path,
        docs_archive_path=docs_archive_path,
        details=details,
        sources=sources,
        stats=stats,
    )


def _build_info(context: CiContext) -> PluginBuildInfo:
    info = context.build_info()
    info.number = context.settings.build_number
    return info
