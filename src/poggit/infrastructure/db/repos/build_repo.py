from __future__ import annotations

from pathlib import Path

from poggit.domain.models.build import BuildRecord, Project, Repo
from poggit.infrastructure.db.sqlite import get_connection


class BuildRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get_build(self, build_id: int) -> BuildRecord | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT p.repo_id, p.path, b.build_id, b.project_id, b.sha, b.internal, b.resource_id
                FROM builds b INNER JOIN projects p ON b.project_id = p.project_id
                WHERE b.build_id = ?
                """,
                (build_id,),
            ).fetchone()
        if row is None:
            return None
        return BuildRecord(
            build_id=row["build_id"],
            project_id=row["project_id"],
            repo_id=row["repo_id"],
            path=row["path"],
            sha=row["sha"],
            internal=row["internal"],
            resource_id=row["resource_id"],
        )

    def upsert_repo(self, repo: Repo) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO repos (repo_id, owner, name, private) VALUES (?, ?, ?, ?)
                ON CONFLICT(repo_id) DO UPDATE SET
                    owner = excluded.owner,
                    name = excluded.name,
                    private = excluded.private
                """,
                (repo.repo_id, repo.owner, repo.name, 1 if repo.private else 0),
            )
            conn.commit()

    def get_project_by_name(self, repo_id: int, name: str) -> Project | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM projects WHERE repo_id = ? AND name = ?",
                (repo_id, name),
            ).fetchone()
        if row is None:
            return None
        return Project(project_id=row["project_id"], repo_id=row["repo_id"], name=row["name"], path=row["path"])

    def insert_project(self, repo_id: int, name: str, path: str) -> Project:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO projects (repo_id, name, path) VALUES (?, ?, ?)",
                (repo_id, name, path),
            )
            conn.commit()
        return Project(project_id=int(cursor.lastrowid), repo_id=repo_id, name=name, path=path)

    def insert_build(self, project_id: int, resource_id: int, sha: str, created_at: int) -> BuildRecord:
        with get_connection(self.db_path) as conn:
            internal_row = conn.execute(
                "SELECT COALESCE(MAX(internal), 0) + 1 AS next FROM builds WHERE project_id = ?",
                (project_id,),
            ).fetchone()
            internal = int(internal_row["next"])
            cursor = conn.execute(
                """
                INSERT INTO builds (project_id, resource_id, sha, internal, created)
                VALUES (?, ?, ?, ?, ?)
                """,
                (project_id, resource_id, sha, internal, created_at),
            )
            conn.commit()
        build = self.get_build(int(cursor.lastrowid))
        assert build is not None
        return build
