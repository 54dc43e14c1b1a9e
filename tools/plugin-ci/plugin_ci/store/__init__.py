"""Remote store adapters used by the report stage."""

from __future__ import annotations

from pathlib import Path

from ..errors import StoreError
from ..settings import StoreSettings
from .base import DEFAULT_MERGE_ATTEMPTS, ObjectStore, merge_json
from .local import LocalObjectStore
from .s3 import S3ObjectStore
from .uploads import upload_logo, upload_packages, upload_test_files


def build_store(settings: StoreSettings, *, workspace_root: Path) -> ObjectStore:
    if settings.kind == "local":
        root = Path(settings.root) if settings.root else workspace_root / "ci" / "store"
        if not root.is_absolute():
            root = workspace_root / root
        return LocalObjectStore(root, public_url=settings.public_url)
    if settings.kind == "s3":
        if not settings.bucket:
            raise StoreError("S3 store requires PLUGIN_CI_S3_BUCKET")
        return S3ObjectStore(
            settings.bucket,
            region=settings.region,
            profile=settings.profile,
            public_url=settings.public_url,
        )
    raise StoreError(f"Unknown store '{settings.kind}'")


__all__ = [
    "DEFAULT_MERGE_ATTEMPTS",
    "LocalObjectStore",
    "ObjectStore",
    "S3ObjectStore",
    "build_store",
    "merge_json",
    "upload_logo",
    "upload_packages",
    "upload_test_files",
]
