from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from poggit.core.config import GitHubSettings
from poggit.core.errors import GitHubApiError

logger = logging.getLogger(__name__)

LICENSES_PREVIEW_ACCEPT = "application/vnd.github.drax-preview+json"


@dataclass(slots=True)
class GitHubRepository:
    repo_id: int
    full_name: str
    admin: bool


@dataclass(slots=True)
class GitHubFile:
    path: str
    download_url: str | None
    content: bytes


class GitHubClient:
    """Synchronous GitHub REST client covering the calls the release pipeline needs.

    Every call takes the acting user's token explicitly. Failures raise
    :class:`GitHubApiError`; retries and backoff are left to the transport.
    """

    def __init__(self, settings: GitHubSettings, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self._client = httpx.Client(
            base_url=settings.api_url,
            timeout=settings.timeout_seconds,
            transport=transport,
            headers={"Accept": "application/vnd.github.v3+json", "User-Agent": "poggit"},
        )

    def close(self) -> None:
        self._client.close()

    def get_repository(self, repo_id: int, token: str) -> GitHubRepository:
        data = self._request_json("GET", f"/repositories/{repo_id}", token)
        permissions = data.get("permissions") or {}
        return GitHubRepository(
            repo_id=int(data.get("id", repo_id)),
            full_name=str(data.get("full_name") or ""),
            admin=bool(permissions.get("admin", False)),
        )

    def get_file(self, repo_full_name: str, path: str, ref: str, token: str) -> GitHubFile:
        data = self._request_json(
            "GET",
            f"/repos/{repo_full_name}/contents/{path.lstrip('/')}",
            token,
            params={"ref": ref},
        )
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise GitHubApiError(f"{path} is not a file", status_code=None)
        raw = str(data.get("content") or "")
        try:
            content = base64.b64decode(raw, validate=False)
        except ValueError as exc:
            raise GitHubApiError(f"Undecodable content for {path}") from exc
        return GitHubFile(path=path, download_url=data.get("download_url"), content=content)

    def list_license_keys(self, token: str) -> list[str]:
        data = self._request_json("GET", "/licenses", token, headers={"Accept": LICENSES_PREVIEW_ACCEPT})
        if not isinstance(data, list):
            raise GitHubApiError("Unexpected license list payload")
        return [str(item["key"]) for item in data if isinstance(item, dict) and item.get("key")]

    def render_markdown(self, text: str, context: str, token: str) -> str:
        response = self._request(
            "POST",
            "/markdown",
            token,
            json={"text": text, "mode": "gfm", "context": context},
        )
        return response.text

    def _request_json(self, method: str, url: str, token: str, **kwargs: Any) -> Any:
        response = self._request(method, url, token, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubApiError(f"Invalid JSON from GitHub for {url}", status_code=response.status_code) from exc

    def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"bearer {token}"
        try:
            response = self._client.request(method, url, headers=request_headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("GitHub request %s %s failed: %s", method, url, exc)
            raise GitHubApiError(f"GitHub request failed: {exc}") from exc
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("GitHub %s %s returned %d: %s", method, url, response.status_code, message)
            raise GitHubApiError(message, status_code=response.status_code)
        return response


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return f"GitHub API error {response.status_code}: {payload['message']}"
    return f"GitHub API error {response.status_code}"
