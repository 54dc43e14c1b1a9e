"""Directory-backed object store, used for local runs and tests."""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Tuple

from ..errors import StoreConflictError, StoreError
from .base import ObjectStore

TAGS_SUFFIX = ".tags.json"


class LocalObjectStore(ObjectStore):
    name = "local"

    def __init__(self, root: Path, *, public_url: Optional[str] = None) -> None:
        self.root = Path(root)
        self.public_base = public_url

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def read_json_versioned(self, key: str) -> Tuple[Optional[Any], Optional[str]]:
        path = self._path(key)
        if not path.exists():
            return None, None
        raw = path.read_bytes()
        try:
            return json.loads(raw), _token(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON stored at {key}: {exc}") from exc

    def write_json(
        self,
        key: str,
        value: Any,
        *,
        tags: Optional[Mapping[str, str]] = None,
        if_match: Optional[str] = None,
        if_none_match: bool = False,
    ) -> str:
        path = self._path(key)
        raw = (json.dumps(value, indent=2) + "\n").encode("utf-8")
        with self._locked(path):
            if if_none_match and path.exists():
                raise StoreConflictError(key)
            if if_match is not None:
                if not path.exists() or _token(path.read_bytes()) != if_match:
                    raise StoreConflictError(key)
            staging = path.with_name(f".{path.name}.tmp")
            staging.write_bytes(raw)
            os.replace(staging, path)
            if tags:
                tags_path = path.with_name(path.name + TAGS_SUFFIX)
                tags_path.write_text(json.dumps(dict(tags), indent=2) + "\n", encoding="utf-8")
        return _token(raw)

    def read_tags(self, key: str) -> dict[str, str]:
        tags_path = self._path(key).with_name(Path(key).name + TAGS_SUFFIX)
        if not tags_path.exists():
            return {}
        return json.loads(tags_path.read_text(encoding="utf-8"))

    def upload_file(self, local: Path, key: str) -> str:
        if not local.is_file():
            raise StoreError(f"Upload source not found: {local}")
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(local, path)
        if self.public_base:
            return f"{self.public_base.rstrip('/')}/{key}"
        return path.as_uri()

    def _path(self, key: str) -> Path:
        parts = [part for part in key.split("/") if part]
        if not parts or any(part in {".", ".."} for part in parts):
            raise StoreError(f"Invalid store key: {key!r}")
        return self.root.joinpath(*parts)

    @contextmanager
    def _locked(self, path: Path) -> Iterator[None]:
        path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = path.with_name(f".{path.name}.lock")
        with lock_path.open("a") as handle:
            fcntl.flock(handle, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle, fcntl.LOCK_UN)


def _token(raw: bytes) -> str:
    return hashlib.sha256(raw).hexdigest()
