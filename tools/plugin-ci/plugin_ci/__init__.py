"""Continuous-integration pipeline for packaging and publishing plugins."""

__version__ = "0.1.0"

from .env import CiContext
from .errors import (
    ArtifactIntegrityError,
    DuplicateFilesError,
    EmptyDistributionError,
    JobAlreadyRegisteredError,
    JobFolderError,
    PluginCiError,
    PreconditionError,
    VersionMismatchError,
)
from .jobs import JobFolderHandle, JobFolderManager
from .pipeline import PipelineResult, run_pipeline
from .settings import CiSettings, load_settings
from .stages import (
    build_plugin,
    build_plugin_docs,
    history_key,
    job_key,
    package_plugin,
    publish_report,
    run_plugin_tests,
)

__all__ = [
    "__version__",
    "ArtifactIntegrityError",
    "CiContext",
    "CiSettings",
    "DuplicateFilesError",
    "EmptyDistributionError",
    "JobAlreadyRegisteredError",
    "JobFolderError",
    "JobFolderHandle",
    "JobFolderManager",
    "PipelineResult",
    "PluginCiError",
    "PreconditionError",
    "VersionMismatchError",
    "build_plugin",
    "build_plugin_docs",
    "history_key",
    "job_key",
    "load_settings",
    "package_plugin",
    "publish_report",
    "run_pipeline",
    "run_plugin_tests",
]
