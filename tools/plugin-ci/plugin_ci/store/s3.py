"""S3-backed object store driven through the AWS CLI."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from ..errors import StoreConflictError, StoreError
from ..executor import CommandResult, ProcessExecutor
from .base import ObjectStore

_MISSING_MARKERS = ("Not Found", "NoSuchKey", "(404)")
_CONFLICT_MARKERS = ("PreconditionFailed", "ConditionalRequestConflict", "(412)", "(409)")


class S3ObjectStore(ObjectStore):
    name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        public_url: Optional[str] = None,
        executor: Optional[ProcessExecutor] = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.profile = profile
        self.public_url_template = public_url
        self.executor = executor or ProcessExecutor()

    def exists(self, key: str) -> bool:
        result = self._aws(["s3api", "head-object", "--bucket", self.bucket, "--key", key])
        if result.ok:
            return True
        if _is_missing(result):
            return False
        raise StoreError(f"Unable to check s3://{self.bucket}/{key}: {result.stderr.strip()}")

    def read_json_versioned(self, key: str) -> Tuple[Optional[Any], Optional[str]]:
        with tempfile.TemporaryDirectory(prefix="plugin-ci-") as tmp_dir:
            target = Path(tmp_dir) / "object.json"
            result = self._aws(["s3api", "get-object", "--bucket", self.bucket, "--key", key, str(target)])
            if not result.ok:
                if _is_missing(result):
                    return None, None
                raise StoreError(f"Unable to read s3://{self.bucket}/{key}: {result.stderr.strip()}")
            try:
                payload = json.loads(target.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise StoreError(f"Invalid JSON stored at s3://{self.bucket}/{key}: {exc}") from exc
        return payload, _etag(result)

    def write_json(
        self,
        key: str,
        value: Any,
        *,
        tags: Optional[Mapping[str, str]] = None,
        if_match: Optional[str] = None,
        if_none_match: bool = False,
    ) -> str:
        with tempfile.TemporaryDirectory(prefix="plugin-ci-") as tmp_dir:
            body = Path(tmp_dir) / "body.json"
            body.write_text(json.dumps(value, indent=2) + "\n", encoding="utf-8")
            args = [
                "s3api",
                "put-object",
                "--bucket",
                self.bucket,
                "--key",
                key,
                "--body",
                str(body),
                "--content-type",
                "application/json",
            ]
            if tags:
                args.extend(["--tagging", urlencode(dict(tags))])
            if if_match is not None:
                args.extend(["--if-match", if_match])
            elif if_none_match:
                args.extend(["--if-none-match", "*"])
            result = self._aws(args)
        if not result.ok:
            if any(marker in result.stderr for marker in _CONFLICT_MARKERS):
                raise StoreConflictError(key)
            raise StoreError(f"Unable to write s3://{self.bucket}/{key}: {result.stderr.strip()}")
        return _etag(result) or ""

    def upload_file(self, local: Path, key: str) -> str:
        if not local.is_file():
            raise StoreError(f"Upload source not found: {local}")
        result = self._aws(["s3", "cp", str(local), f"s3://{self.bucket}/{key}"])
        if not result.ok:
            raise StoreError(f"Unable to upload {local} to s3://{self.bucket}/{key}: {result.stderr.strip()}")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        if self.public_url_template:
            return self.public_url_template.format(bucket=self.bucket, key=key)
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{key}"

    def _aws(self, args: List[str]) -> CommandResult:
        cmd = ["aws", *args]
        if self.region:
            cmd.extend(["--region", self.region])
        if self.profile:
            cmd.extend(["--profile", self.profile])
        return self.executor.run(cmd, check=False)


def _is_missing(result: CommandResult) -> bool:
    return any(marker in result.stderr for marker in _MISSING_MARKERS)


def _etag(result: CommandResult) -> Optional[str]:
    try:
        payload = json.loads(result.stdout or "{}")
    except json.JSONDecodeError:
        return None
    etag = payload.get("ETag") if isinstance(payload, dict) else None
    return str(etag) if etag else None
