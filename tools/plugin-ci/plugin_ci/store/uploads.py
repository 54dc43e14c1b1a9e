"""Best-effort uploads of logos, packages and test artifacts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..schemas.plugin import PluginInfo, PluginPackageDetails, TestResultsInfo
from .base import ObjectStore

logger = logging.getLogger(__name__)


def upload_logo(store: ObjectStore, info: PluginInfo, *, local: Path, remote: str) -> Optional[str]:
    """Upload the manifest's logos; returns the reference of the small logo."""

    logos = info.logos
    if logos is None:
        return None

    reference: Optional[str] = None
    for attr in ("small", "large"):
        relative = getattr(logos, attr)
        if not relative:
            continue
        source = local / relative
        if not source.is_file():
            logger.warning("Logo %s not found at %s", attr, source)
            continue
        uploaded = store.upload_file(source, f"{remote}/{Path(relative).as_posix()}")
        if attr == "small":
            reference = uploaded
    return reference


def upload_packages(store: ObjectStore, packages: PluginPackageDetails, *, local: Path, remote: str) -> List[str]:
    uploaded: List[str] = []
    for details in (packages.plugin, packages.docs):
        if details is None:
            continue
        uploaded.append(store.upload_file(local / details.name, f"{remote}/{details.name}"))
    return uploaded


def upload_test_files(
    store: ObjectStore,
    tests: Sequence[TestResultsInfo],
    *,
    local: Path,
    remote: str,
) -> List[str]:
    uploaded: List[str] = []
    for result in tests:
        for screenshot in result.screenshots:
            source = local / screenshot
            if not source.is_file():
                logger.warning("Screenshot missing: %s", source)
                continue
            uploaded.append(store.upload_file(source, f"{remote}/{screenshot}"))
    return uploaded
