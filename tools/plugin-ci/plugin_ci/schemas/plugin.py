"""Pydantic models describing plugin metadata, packages, reports and history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PluginBuildInfo(_CamelModel):
    time: Optional[int] = Field(default=None, description="Build time in milliseconds since the epoch.")
    repo: Optional[str] = None
    branch: Optional[str] = None
    hash: Optional[str] = None
    number: Optional[int] = None
    pr: Optional[int] = None


class PluginLogos(_CamelModel):
    small: Optional[str] = None
    large: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class PluginInfo(_CamelModel):
    version: Optional[str] = None
    logos: Optional[PluginLogos] = None
    build: Optional[PluginBuildInfo] = None

    model_config = ConfigDict(extra="allow")


class PluginManifest(_CamelModel):
    """The subset of ``plugin.json`` the pipeline reads; other keys are preserved."""

    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    info: PluginInfo = Field(default_factory=PluginInfo)

    model_config = ConfigDict(extra="allow")


class JobStats(_CamelModel):
    job: str
    start_time: int
    end_time: int
    elapsed: int
    build_number: Optional[int] = None


class PackageDetails(_CamelModel):
    name: str
    size: int
    sha256: str
    files: int = 0


class PluginPackageDetails(_CamelModel):
    plugin: PackageDetails
    docs: Optional[PackageDetails] = None


class TestResultsInfo(_CamelModel):
    __test__ = False

    job: str
    passed: int = 0
    failed: int = 0
    screenshots: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    grafana: Optional[Dict[str, Any]] = Field(default=None, description="Build info reported by the live instance.")


class WorkflowInfo(_CamelModel):
    workflow_id: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    elapsed: Optional[int] = None
    repo: Optional[str] = None
    branch: Optional[str] = None
    hash: Optional[str] = None
    build: Optional[int] = None


class CoverageInfo(_CamelModel):
    job: str
    summary: Dict[str, Any] = Field(default_factory=dict)
    report: Optional[str] = None


class BuildReport(_CamelModel):
    plugin: PluginManifest
    packages: PluginPackageDetails
    workflow: WorkflowInfo
    coverage: List[CoverageInfo] = Field(default_factory=list)
    tests: List[TestResultsInfo] = Field(default_factory=list)
    artifacts_base_url: Optional[str] = None
    grafana_version: Dict[str, str] = Field(default_factory=dict)
    pull_request: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class HistoryRecord(_CamelModel):
    plugin_id: str
    name: Optional[str] = None
    logo: Optional[str] = None
    build: PluginBuildInfo
    version: str


class PluginDevSummary(_CamelModel):
    """Per-plugin index: latest record per branch and per pull request."""

    branch: Dict[str, HistoryRecord] = Field(default_factory=dict)
    pr: Dict[str, HistoryRecord] = Field(default_factory=dict)

    def record(self, latest: HistoryRecord, *, branch: str, pr: Optional[int]) -> None:
        if pr:
            self.pr[str(pr)] = latest
        else:
            self.branch[branch] = latest


class HistoryIndex(PluginDevSummary):
    """Per-scope history: latest pointers plus every published build."""

    builds: List[HistoryRecord] = Field(default_factory=list)

    def record(self, latest: HistoryRecord, *, branch: str, pr: Optional[int]) -> None:
        super().record(latest, branch=branch, pr=pr)
        self.builds.append(latest)


class DevSummary(RootModel[Dict[str, HistoryRecord]]):
    """Global index keyed by plugin id."""

    root: Dict[str, HistoryRecord] = Field(default_factory=dict)

    def record(self, latest: HistoryRecord) -> None:
        self.root[latest.plugin_id] = latest

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
