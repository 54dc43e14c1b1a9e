"""Settings resolution from the CI environment and an optional ``.env`` file."""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import PreconditionError

DEFAULT_BASE_URL = "http://localhost:3000/"


class StoreSettings(BaseModel):
    kind: str = "local"
    root: Optional[str] = None
    bucket: Optional[str] = None
    region: Optional[str] = None
    profile: Optional[str] = None
    public_url: Optional[str] = None


class CiSettings(BaseModel):
    """Values read once per invocation; stages never consult ``os.environ`` directly."""

    job: str = "local"
    build_number: Optional[int] = None
    pull_request_url: Optional[str] = None
    branch: Optional[str] = None
    sha: Optional[str] = None
    repository_url: Optional[str] = None
    workflow_id: Optional[str] = None
    project_username: Optional[str] = None
    project_reponame: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    admin_user: str = "admin"
    admin_password: str = "admin"
    store: StoreSettings = Field(default_factory=StoreSettings)
    warnings: List[str] = Field(default_factory=list)


_ENV_FIELDS = {
    "CIRCLE_JOB": "job",
    "CIRCLE_BUILD_NUM": "build_number",
    "CIRCLE_PULL_REQUEST": "pull_request_url",
    "CIRCLE_BRANCH": "branch",
    "CIRCLE_SHA1": "sha",
    "CIRCLE_REPOSITORY_URL": "repository_url",
    "CIRCLE_WORKFLOW_ID": "workflow_id",
    "CIRCLE_PROJECT_USERNAME": "project_username",
    "CIRCLE_PROJECT_REPONAME": "project_reponame",
    "BASE_URL": "base_url",
    "GRAFANA_ADMIN_USER": "admin_user",
    "GRAFANA_ADMIN_PASSWORD": "admin_password",
}

_STORE_FIELDS = {
    "PLUGIN_CI_STORE": "kind",
    "PLUGIN_CI_STORE_ROOT": "root",
    "PLUGIN_CI_S3_BUCKET": "bucket",
    "PLUGIN_CI_S3_REGION": "region",
    "PLUGIN_CI_S3_PROFILE": "profile",
    "PLUGIN_CI_PUBLIC_URL": "public_url",
}


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    dotenv: Optional[str | Path] = None,
) -> CiSettings:
    """Build settings from ``environ`` (default: process env), falling back to ``dotenv``."""

    env: Dict[str, str] = {}
    warnings: List[str] = []
    if dotenv is not None:
        env.update(read_dotenv(Path(dotenv), warnings))
    env.update({key: value for key, value in (os.environ if environ is None else environ).items() if value})

    payload: Dict[str, object] = {key: env[name] for name, key in _ENV_FIELDS.items() if env.get(name)}
    store: Dict[str, object] = {key: env[name] for name, key in _STORE_FIELDS.items() if env.get(name)}
    payload["store"] = store
    payload["warnings"] = warnings
    try:
        return CiSettings.model_validate(payload)
    except ValidationError as exc:
        raise PreconditionError(f"Invalid CI settings: {exc}") from exc


def read_dotenv(path: Path, warnings: Optional[List[str]] = None) -> Dict[str, str]:
    """Parse KEY=value lines; malformed lines are reported through ``warnings``."""

    notes = warnings if warnings is not None else []
    values: Dict[str, str] = {}
    if not path.exists():
        return values

    for idx, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        raw = line.strip()
        if not raw or raw.startswith("#"):
            continue
        if raw.lower().startswith("export "):
            raw = raw[6:].strip()
        if "=" not in raw:
            notes.append(f"{path}:{idx}: missing '='")
            continue
        key, value_part = raw.split("=", 1)
        key = key.strip()
        if not key:
            notes.append(f"{path}:{idx}: empty key")
            continue
        try:
            tokens = shlex.split(value_part, posix=True, comments=True)
        except ValueError as exc:
            notes.append(f"{path}:{idx}: {exc}")
            continue
        values[key] = " ".join(tokens)
    return values
