from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path

from poggit.core.errors import PersistenceError, ReleaseSubmitError
from poggit.core.time import now_unix
from poggit.domain.models.release import ReleaseCandidate
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo
from poggit.infrastructure.db.sqlite import transaction

logger = logging.getLogger(__name__)


class ReleasePersistenceService:
    def __init__(self, db_path: Path, clock: Callable[[], int] = now_unix) -> None:
        self.db_path = db_path
        self.clock = clock

    def persist(self, candidate: ReleaseCandidate) -> int:
        """Write the release and its child rows in one transaction and return the new id."""
        if candidate.artifact_resource_id is None:
            raise PersistenceError("Release candidate has no artifact")
        try:
            with transaction(self.db_path) as conn:
                # The write lock is held from here, so this check cannot race another submission.
                if candidate.version in ReleaseRepo.versions_in(conn, candidate.project_id):
                    raise ReleaseSubmitError("This version name has already been used for your plugin!")
                release_id = ReleaseRepo.insert_candidate(conn, candidate, creation=self.clock())
        except sqlite3.IntegrityError as exc:
            if "releases.project_id" in str(exc):
                raise ReleaseSubmitError("This version name has already been used for your plugin!") from exc
            raise PersistenceError(f"Could not save release: {exc}") from exc
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not save release: {exc}") from exc

        logger.info("Saved release #%d %s v%s", release_id, candidate.name, candidate.version)
        return release_id
