"""Exception types raised by the plugin CI pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class PluginCiError(RuntimeError):
    """Base class for all pipeline failures."""


class PreconditionError(PluginCiError):
    """A required input (manifest, build descriptor, info file) is missing."""


class EmptyDistributionError(PreconditionError):
    """No build job contributed anything to the canonical distribution tree."""


class JobFolderError(PluginCiError):
    """The jobs root cannot host a new job folder."""


class DuplicateFilesError(PluginCiError):
    """Two contributions tried to place the same file into the dist tree."""

    def __init__(self, path: Path, source: Path) -> None:
        super().__init__(f"Duplicate files found in dist folders: {path} (from {source})")
        self.path = path
        self.source = source


class ArtifactIntegrityError(PluginCiError):
    """A packaged archive failed verification."""


class VersionMismatchError(PluginCiError):
    """The live instance runs a different build than the one under test."""

    def __init__(self, expected: Optional[str], found: Optional[str]) -> None:
        super().__init__(f"Wrong plugin version. Expected: {expected}, found: {found}")
        self.expected = expected
        self.found = found


class JobAlreadyRegisteredError(PluginCiError):
    """A report was already published under the job key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Job already registered: {key}")
        self.key = key


class JsonWriteError(PluginCiError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Error writing: {path} ({reason})")
        self.path = path


class CommandError(PluginCiError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = "") -> None:
        rendered = " ".join(command)
        message = f"Command '{rendered}' exited with status {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode


class StoreError(PluginCiError):
    """The remote store rejected or failed an operation."""


class StoreConflictError(StoreError):
    """A conditional write lost against a concurrent writer."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Conditional write conflict on {key}")
        self.key = key


class InstanceError(PluginCiError):
    """The live test instance could not be queried."""
