"""Plugin manifest (``plugin.json``) helpers."""

from __future__ import annotations

import json
from pathlib import Path

from .errors import PreconditionError
from .schemas.plugin import PluginBuildInfo, PluginManifest
from .utils import write_json

MANIFEST_NAME = "plugin.json"


def load_manifest(path: Path) -> PluginManifest:
    """Load a plugin manifest from JSON."""

    if not path.exists():
        raise PreconditionError(f"Missing plugin manifest: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PreconditionError(f"Invalid plugin manifest at {path}: {exc}") from exc
    return PluginManifest.model_validate(payload)


def dump_manifest(manifest: PluginManifest, path: Path) -> None:
    write_json(manifest.to_json_dict(), path)


def get_plugin_id(workspace_root: Path) -> str:
    """Plugin id declared by the project sources (``src/plugin.json``)."""

    for candidate in (workspace_root / "src" / MANIFEST_NAME, workspace_root / MANIFEST_NAME):
        if candidate.exists():
            return load_manifest(candidate).id
    raise PreconditionError(f"Missing {MANIFEST_NAME} under {workspace_root / 'src'}")


def stamp_build_info(path: Path, build: PluginBuildInfo) -> PluginManifest:
    """Record build provenance in the manifest at ``path`` and persist it."""

    manifest = load_manifest(path)
    manifest.info.build = build
    dump_manifest(manifest, path)
    return manifest
