from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from poggit.core.config import AppPaths
from poggit.core.errors import ProjectNotInitializedError
from poggit.core.files import ensure_directory
from poggit.infrastructure.db.sqlite import initialize_schema

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "infrastructure" / "db" / "schema.sql"


@dataclass(slots=True)
class InitResult:
    paths_created: list[Path]
    db_path: Path


class ProjectService:
    def __init__(self, paths: AppPaths) -> None:
        self.paths = paths

    def init_project(self) -> InitResult:
        paths_created: list[Path] = []

        for path in (self.paths.poggit_dir, self.paths.resource_dir):
            if not path.exists():
                paths_created.append(path)
            ensure_directory(path)

        initialize_schema(self.paths.db_path, SCHEMA_PATH)

        return InitResult(paths_created=paths_created, db_path=self.paths.db_path)

    def is_initialized(self) -> bool:
        return self.paths.db_path.exists()

    def require_initialized(self) -> None:
        if not self.is_initialized():
            raise ProjectNotInitializedError(
                f"Project is not initialized. Run 'poggit init' first in {self.paths.project_root}"
            )
