"""Filesystem, archive and hashing helpers shared by the pipeline stages."""

from __future__ import annotations

import hashlib
import json
import shutil
import zipfile
from pathlib import Path
from typing import Any, Iterable, List, Optional

from .errors import DuplicateFilesError, JsonWriteError
from .schemas.plugin import PackageDetails

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Fixed timestamp so identical trees produce identical archives.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def compute_sha256(path: Path) -> str:
    """Return the SHA-256 checksum for a file."""

    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_json(payload: Any, path: Path) -> None:
    """Write JSON payload to disk; failures are reported against ``path``."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        raise JsonWriteError(path, str(exc)) from exc


def write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise JsonWriteError(path, str(exc)) from exc


def reset_directory(path: Path) -> Path:
    """Remove ``path`` if present and recreate it empty."""

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
    path.mkdir(parents=True)
    return path


def iter_files(root: Path) -> List[Path]:
    """Files under ``root`` ordered by their POSIX relative path."""

    return sorted(
        (item for item in root.rglob("*") if item.is_file()),
        key=lambda item: item.relative_to(root).as_posix(),
    )


def merge_tree(source: Path, target: Path) -> List[Path]:
    """Copy every file of ``source`` into ``target`` without overwriting anything.

    Raises DuplicateFilesError at the first path already taken in ``target``,
    either by a file or directory at the same place or by a file where a
    parent directory is needed; files copied before that point stay in place.
    """

    copied: List[Path] = []
    for item in iter_files(source):
        relative = item.relative_to(source)
        destination = target / relative
        if destination.exists():
            raise DuplicateFilesError(destination, source)
        for parent in relative.parents:
            if (target / parent).is_file():
                raise DuplicateFilesError(target / parent, source)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, destination)
        copied.append(destination)
    return copied


def copy_tree(source: Path, target: Path) -> None:
    """Copy ``source`` contents into ``target``, replacing same-named files."""

    target.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, target, dirs_exist_ok=True)


def zip_directory(source: Path, archive_path: Path, *, prefix: Optional[str] = None) -> Path:
    """Zip the contents of ``source``, optionally nested under ``prefix/``.

    Entries are sorted and stamped with a fixed date so the archive bytes only
    depend on file names, modes and contents.
    """

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    entries = sorted(source.rglob("*"), key=lambda item: item.relative_to(source).as_posix())
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        if prefix:
            archive.writestr(_zip_info(f"{prefix}/", 0o755, is_dir=True), b"")
        for entry in entries:
            relative = entry.relative_to(source).as_posix()
            arcname = f"{prefix}/{relative}" if prefix else relative
            mode = entry.stat().st_mode & 0o777
            if entry.is_dir():
                archive.writestr(_zip_info(f"{arcname}/", mode, is_dir=True), b"")
            else:
                archive.writestr(_zip_info(arcname, mode), entry.read_bytes())
    return archive_path


def _zip_info(name: str, mode: int, *, is_dir: bool = False) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    if is_dir:
        info.external_attr = ((0o40000 | mode) << 16) | 0x10
    else:
        info.external_attr = (0o100000 | mode) << 16
        info.compress_type = zipfile.ZIP_DEFLATED
    return info


def extract_archive(archive_path: Path, target: Path) -> Path:
    target.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path) as archive:
        archive.extractall(target)
    return target


def get_package_details(archive_path: Path) -> PackageDetails:
    with zipfile.ZipFile(archive_path) as archive:
        files = sum(1 for info in archive.infolist() if not info.is_dir())
    return PackageDetails(
        name=archive_path.name,
        size=archive_path.stat().st_size,
        sha256=compute_sha256(archive_path),
        files=files,
    )


def find_images_in_folder(folder: Path, *, relative_to: Optional[Path] = None) -> List[str]:
    """Image files under ``folder`` as POSIX paths relative to ``relative_to``."""

    base = relative_to or folder
    if not folder.exists():
        return []
    return [
        item.relative_to(base).as_posix()
        for item in iter_files(folder)
        if item.suffix.lower() in IMAGE_SUFFIXES
    ]


def sorted_subdirectories(root: Path) -> Iterable[Path]:
    if not root.exists():
        return []
    return sorted((item for item in root.iterdir() if item.is_dir()), key=lambda item: item.name)
