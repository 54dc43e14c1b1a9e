"""Pydantic schemas shared across pipeline stages."""

from .plugin import (
    BuildReport,
    CoverageInfo,
    DevSummary,
    HistoryIndex,
    HistoryRecord,
    JobStats,
    PackageDetails,
    PluginBuildInfo,
    PluginDevSummary,
    PluginInfo,
    PluginManifest,
    PluginPackageDetails,
    TestResultsInfo,
    WorkflowInfo,
)

__all__ = [
    "BuildReport",
    "CoverageInfo",
    "DevSummary",
    "HistoryIndex",
    "HistoryRecord",
    "JobStats",
    "PackageDetails",
    "PluginBuildInfo",
    "PluginDevSummary",
    "PluginInfo",
    "PluginManifest",
    "PluginPackageDetails",
    "TestResultsInfo",
    "WorkflowInfo",
]
