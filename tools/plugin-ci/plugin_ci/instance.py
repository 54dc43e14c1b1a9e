"""HTTP client for the live instance the packaged plugin is deployed to."""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from requests import Session
from requests.exceptions import RequestException

from .errors import InstanceError


class InstanceClient:
    def __init__(
        self,
        base_url: str,
        *,
        username: str = "admin",
        password: str = "admin",
        session: Optional[Session] = None,
        timeout: float = 20,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.auth = (username, password)
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_build_info(self) -> Dict[str, Any]:
        """Platform build info from the frontend settings endpoint."""

        settings = self._get("api/frontend/settings")
        return dict(settings.get("buildInfo") or {})

    def get_plugin_settings(self, plugin_id: str) -> Dict[str, Any]:
        return self._get(f"api/plugins/{plugin_id}/settings")

    def _get(self, path: str) -> Dict[str, Any]:
        url = urljoin(self.base_url, path)
        try:
            response = self.session.get(url, auth=self.auth, timeout=self.timeout)
        except RequestException as exc:
            raise InstanceError(f"Request to {url} failed: {exc}") from exc
        if response.status_code != 200:
            raise InstanceError(f"{url} returned {response.status_code}: {response.text or response.reason}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise InstanceError(f"{url} returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise InstanceError(f"{url} returned {type(payload).__name__}, expected an object")
        return payload
