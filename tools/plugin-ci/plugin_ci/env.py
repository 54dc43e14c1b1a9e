"""CI environment helpers: folder layout, build provenance and external lookups."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

import requests
from requests import Session
from requests.exceptions import RequestException

from .schemas.plugin import PluginBuildInfo
from .settings import CiSettings

logger = logging.getLogger(__name__)

CIRCLE_API = "https://circleci.com/api/v1.1"
PLATFORM_PACKAGE_PREFIX = "@grafana/"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CiContext:
    """Where a pipeline run lives on disk and which CI run it belongs to."""

    workspace_root: Path
    settings: CiSettings = field(default_factory=CiSettings)
    clock: Callable[[], int] = now_ms

    @property
    def ci_dir(self) -> Path:
        return self.workspace_root / "ci"

    @property
    def jobs_dir(self) -> Path:
        return self.ci_dir / "jobs"

    @property
    def packages_dir(self) -> Path:
        return self.ci_dir / "packages"

    @property
    def dist_dir(self) -> Path:
        return self.ci_dir / "dist"

    @property
    def docs_dir(self) -> Path:
        return self.ci_dir / "docs"

    @property
    def sandbox_dir(self) -> Path:
        return self.ci_dir / "grafana-test-env"

    @property
    def report_path(self) -> Path:
        return self.ci_dir / "report.json"

    @property
    def job(self) -> str:
        return self.settings.job

    @property
    def build_number(self) -> int:
        return self.settings.build_number or 0

    @property
    def branch(self) -> str:
        return self.settings.branch or "unknown"

    @property
    def pull_request(self) -> Optional[int]:
        return get_pull_request_number(self.settings)

    def build_info(self) -> PluginBuildInfo:
        return get_build_info(self.settings, self.clock())


def get_pull_request_number(settings: CiSettings) -> Optional[int]:
    """Return the PR number from the trailing segment of the pull request URL."""

    url = settings.pull_request_url
    if not url:
        return None
    match = re.search(r"(\d+)/?$", url)
    if not match:
        return None
    return int(match.group(1))


def get_build_info(settings: CiSettings, time_ms: Optional[int] = None) -> PluginBuildInfo:
    info = PluginBuildInfo(
        time=time_ms if time_ms is not None else now_ms(),
        repo=settings.repository_url,
        branch=settings.branch,
        hash=settings.sha,
    )
    pr = get_pull_request_number(settings)
    if pr:
        info.pr = pr
    return info


def get_artifacts_base_url(settings: CiSettings, *, session: Optional[Session] = None) -> Optional[str]:
    """Resolve the download prefix of this build's stored artifacts, if any."""

    if not (settings.project_username and settings.project_reponame and settings.build_number):
        return None
    url = (
        f"{CIRCLE_API}/project/github/{settings.project_username}/"
        f"{settings.project_reponame}/{settings.build_number}/artifacts"
    )
    http = session or requests.Session()
    try:
        response = http.get(url, timeout=20)
        response.raise_for_status()
        artifacts = response.json()
    except (RequestException, ValueError) as exc:
        logger.warning("Error reading CircleCI artifact URL: %s", exc)
        return None

    for artifact in artifacts or []:
        artifact_url = artifact.get("url") if isinstance(artifact, dict) else None
        if artifact_url and "/0/" in artifact_url:
            return artifact_url[: artifact_url.index("/0/") + len("/0/")]
    return None


def get_platform_versions(workspace_root: Path) -> Dict[str, str]:
    """Collect the platform package versions the plugin declares in ``package.json``."""

    package_json = workspace_root / "package.json"
    if not package_json.exists():
        return {}
    payload = json.loads(package_json.read_text(encoding="utf-8"))
    versions: Dict[str, str] = {}
    for section in ("dependencies", "devDependencies", "peerDependencies"):
        for name, version in (payload.get(section) or {}).items():
            if name.startswith(PLATFORM_PACKAGE_PREFIX):
                versions.setdefault(name, str(version))
    return dict(sorted(versions.items()))
