from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from poggit.application.services.artifact_service import (
    ARTIFACT_MIME_TYPE,
    ARTIFACT_TYPE,
    ArtifactRepackagingService,
)
from poggit.core.errors import PoggitError
from poggit.core.files import safe_copy_atomic
from poggit.core.time import now_unix
from poggit.domain.models.build import BuildRecord, Repo
from poggit.infrastructure.db.repos.build_repo import BuildRepo
from poggit.infrastructure.resources.store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RegisteredBuild:
    build: BuildRecord
    plugin_name: str | None
    plugin_version: str | None


class BuildService:
    """Records externally produced build artifacts so they can be released."""

    def __init__(
        self,
        build_repo: BuildRepo,
        resource_store: ResourceStore,
        artifacts: ArtifactRepackagingService,
    ) -> None:
        self.build_repo = build_repo
        self.resource_store = resource_store
        self.artifacts = artifacts

    def register_build(
        self,
        artifact_path: Path,
        repo: Repo,
        project_name: str,
        project_path: str,
        sha: str,
    ) -> RegisteredBuild:
        path = artifact_path.expanduser().resolve()
        if not path.is_file():
            raise PoggitError(f"Artifact not found: {path}")

        resource_id, resource_path = self.resource_store.create(ARTIFACT_TYPE, ARTIFACT_MIME_TYPE)
        safe_copy_atomic(path, resource_path)
        manifest = self.artifacts.read_manifest(resource_id)

        self.build_repo.upsert_repo(repo)
        project = self.build_repo.get_project_by_name(repo.repo_id, project_name)
        if project is None:
            project = self.build_repo.insert_project(repo.repo_id, project_name, project_path)
        build = self.build_repo.insert_build(project.project_id, resource_id, sha, created_at=now_unix())

        logger.info("Registered build #%d of %s as resource #%d", build.build_id, project_name, resource_id)
        return RegisteredBuild(
            build=build,
            plugin_name=_opt_str(manifest.get("name")),
            plugin_version=_opt_str(manifest.get("version")),
        )


def _opt_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None
