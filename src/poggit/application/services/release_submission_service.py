from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from poggit.application.services.article_service import ArticleService
from poggit.application.services.artifact_service import ArtifactRepackagingService
from poggit.application.services.icon_service import IconService
from poggit.application.services.release_persistence_service import ReleasePersistenceService
from poggit.application.services.release_validation_service import (
    ReleaseValidationService,
    SubmissionContext,
)
from poggit.core.errors import PoggitError
from poggit.domain.catalog import ReleaseStage
from poggit.infrastructure.db.repos.build_repo import BuildRepo
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.github.client import GitHubClient
from poggit.infrastructure.resources.store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubmissionResult:
    release_id: int
    name: str
    version: str
    stage: ReleaseStage
    artifact_resource_id: int
    warnings: list[str] = field(default_factory=list)


class ReleaseSubmissionService:
    def __init__(self, validator: ReleaseValidationService, persister: ReleasePersistenceService) -> None:
        self.validator = validator
        self.persister = persister

    def submit(self, raw: object, context: SubmissionContext) -> SubmissionResult:
        try:
            candidate = self.validator.validate(raw, context)
            release_id = self.persister.persist(candidate)
        except PoggitError as exc:
            logger.info("Rejected release submission: %s", exc)
            raise

        assert candidate.artifact_resource_id is not None
        logger.info(
            "Accepted release #%d %s v%s (%s)",
            release_id,
            candidate.name,
            candidate.version,
            candidate.stage.human_name,
        )
        return SubmissionResult(
            release_id=release_id,
            name=candidate.name,
            version=candidate.version,
            stage=candidate.stage,
            artifact_resource_id=candidate.artifact_resource_id,
            warnings=list(candidate.warnings),
        )


def create_submission_service(db_path: Path, resource_dir: Path, github: GitHubClient) -> ReleaseSubmissionService:
    store = ResourceStore(resource_dir, ResourceRepo(db_path))
    validator = ReleaseValidationService(
        build_repo=BuildRepo(db_path),
        release_repo=ReleaseRepo(db_path),
        github=github,
        article_service=ArticleService(store, github),
        icon_service=IconService(github),
        repackager=ArtifactRepackagingService(store),
    )
    return ReleaseSubmissionService(validator=validator, persister=ReleasePersistenceService(db_path))
