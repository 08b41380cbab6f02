from __future__ import annotations

from pathlib import Path

import pytest

from poggit.application.services.artifact_service import ArtifactRepackagingService
from poggit.application.services.build_service import BuildService, RegisteredBuild
from poggit.core.errors import GitHubApiError
from poggit.domain.models.build import Repo
from poggit.infrastructure.artifacts.phar import build_phar
from poggit.infrastructure.db.repos.build_repo import BuildRepo
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.db.sqlite import initialize_schema
from poggit.infrastructure.github.client import GitHubFile, GitHubRepository
from poggit.infrastructure.resources.store import ResourceStore


def schema_path() -> Path:
    return (
        Path(__file__).resolve().parents[2]
        / "src"
        / "poggit"
        / "infrastructure"
        / "db"
        / "schema.sql"
    )


def plugin_phar(name: str = "DemoPlugin", version: str = "1.0.0", **kwargs) -> bytes:
    manifest = f"name: {name}\nmain: demo\\Main\nversion: {version}\napi: [3.0.0]\n".encode()
    return build_phar(
        {
            "plugin.yml": manifest,
            "src/demo/Main.php": b"<?php\nnamespace demo;\nclass Main {}\n",
        },
        **kwargs,
    )


class FakeGitHub:
    """In-memory stand-in for GitHubClient."""

    def __init__(self) -> None:
        self.admin = True
        self.repo_error: int | None = None
        self.files: dict[str, bytes] = {}
        self.licenses = ["mit", "apache-2.0", "gpl-3.0"]
        self.rendered: list[str] = []

    def close(self) -> None:
        pass

    def get_repository(self, repo_id: int, token: str) -> GitHubRepository:
        if self.repo_error is not None:
            raise GitHubApiError("GitHub API error", status_code=self.repo_error)
        return GitHubRepository(repo_id=repo_id, full_name="octo/demo", admin=self.admin)

    def get_file(self, repo_full_name: str, path: str, ref: str, token: str) -> GitHubFile:
        if path not in self.files:
            raise GitHubApiError("GitHub API error 404: Not Found", status_code=404)
        return GitHubFile(
            path=path,
            download_url=f"https://raw.githubusercontent.com/{repo_full_name}/{ref}/{path}",
            content=self.files[path],
        )

    def list_license_keys(self, token: str) -> list[str]:
        return list(self.licenses)

    def render_markdown(self, text: str, context: str, token: str) -> str:
        self.rendered.append(text)
        return f"<p>{text}</p>"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "poggit.db"
    initialize_schema(path, schema_path())
    return path


@pytest.fixture
def resource_dir(tmp_path: Path) -> Path:
    return tmp_path / "resources"


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


def register_build(db_path: Path, resource_dir: Path, tmp_path: Path, data: bytes | None = None) -> RegisteredBuild:
    artifact = tmp_path / "DemoPlugin.phar"
    artifact.write_bytes(data if data is not None else plugin_phar())
    store = ResourceStore(resource_dir, ResourceRepo(db_path))
    service = BuildService(BuildRepo(db_path), store, ArtifactRepackagingService(store))
    return service.register_build(
        artifact,
        repo=Repo(repo_id=42, owner="octo", name="demo"),
        project_name="DemoPlugin",
        project_path="",
        sha="abc123",
    )
