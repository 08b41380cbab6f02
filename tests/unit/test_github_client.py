import base64
import json

import httpx
import pytest

from poggit.core.config import GitHubSettings
from poggit.core.errors import GitHubApiError
from poggit.infrastructure.github.client import LICENSES_PREVIEW_ACCEPT, GitHubClient

SETTINGS = GitHubSettings(api_url="https://api.github.test", timeout_seconds=5.0, token=None)


def _client(handler) -> GitHubClient:
    return GitHubClient(SETTINGS, transport=httpx.MockTransport(handler))


def test_get_repository_reads_admin_permission() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"id": 42, "full_name": "octo/demo", "permissions": {"admin": True, "push": True}},
        )

    repo = _client(handler).get_repository(42, "gho_abc")

    assert repo.repo_id == 42
    assert repo.full_name == "octo/demo"
    assert repo.admin is True
    assert seen[0].url.path == "/repositories/42"
    assert seen[0].headers["Authorization"] == "bearer gho_abc"


def test_error_status_carries_code_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(GitHubApiError) as excinfo:
        _client(handler).get_repository(1, "t")
    assert excinfo.value.status_code == 404
    assert "Not Found" in str(excinfo.value)


def test_transport_failure_becomes_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(GitHubApiError) as excinfo:
        _client(handler).list_license_keys("t")
    assert excinfo.value.status_code is None


def test_get_file_decodes_base64_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/octo/demo/contents/assets/icon.png"
        assert request.url.params["ref"] == "abc123"
        return httpx.Response(
            200,
            json={
                "type": "file",
                "content": base64.b64encode(b"\x89PNG...").decode() + "\n",
                "download_url": "https://raw.example/icon.png",
            },
        )

    icon = _client(handler).get_file("octo/demo", "/assets/icon.png", "abc123", "t")
    assert icon.content == b"\x89PNG..."
    assert icon.download_url == "https://raw.example/icon.png"


def test_list_license_keys_uses_preview_accept_header() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == LICENSES_PREVIEW_ACCEPT
        return httpx.Response(200, json=[{"key": "mit"}, {"key": "gpl-3.0"}, {"name": "no key"}])

    assert _client(handler).list_license_keys("t") == ["mit", "gpl-3.0"]


def test_render_markdown_posts_gfm_with_context() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"text": "# Hi", "mode": "gfm", "context": "octo/demo"}
        return httpx.Response(200, text="<h1>Hi</h1>")

    assert _client(handler).render_markdown("# Hi", "octo/demo", "t") == "<h1>Hi</h1>"
