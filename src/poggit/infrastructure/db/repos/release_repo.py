from __future__ import annotations

import sqlite3
from pathlib import Path

from poggit.domain.catalog import META_PERMISSION, ReleaseStage
from poggit.domain.models.release import (
    PluginDependency,
    PluginRequirement,
    Release,
    ReleaseCandidate,
    ReleaseDetail,
    Spoon,
)
from poggit.infrastructure.db.sqlite import get_connection


class ReleaseRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def list_versions(self, project_id: int) -> list[str]:
        with get_connection(self.db_path) as conn:
            return self.versions_in(conn, project_id)

    @staticmethod
    def versions_in(conn: sqlite3.Connection, project_id: int) -> list[str]:
        rows = conn.execute(
            "SELECT version FROM releases WHERE project_id = ?",
            (project_id,),
        ).fetchall()
        return [row["version"] for row in rows]

    def count_name_prefix(self, name: str, min_stage: ReleaseStage) -> int:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                r"SELECT COUNT(*) AS dups FROM releases WHERE name LIKE ? ESCAPE '\' AND state >= ?",
                (_escape_like(name) + "%", int(min_stage)),
            ).fetchone()
        return int(row["dups"])

    def get_by_id(self, release_id: int) -> Release | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM releases WHERE release_id = ?",
                (release_id,),
            ).fetchone()
        return self._to_release(row) if row else None

    def list(self, limit: int = 100, min_stage: ReleaseStage = ReleaseStage.DRAFT) -> list[Release]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM releases
                WHERE state >= ?
                ORDER BY creation DESC, release_id DESC
                LIMIT ?
                """,
                (int(min_stage), limit),
            ).fetchall()
        return [self._to_release(row) for row in rows]

    def get_detail(self, release_id: int) -> ReleaseDetail | None:
        release = self.get_by_id(release_id)
        if release is None:
            return None
        with get_connection(self.db_path) as conn:
            categories = conn.execute(
                "SELECT category FROM release_categories WHERE release_id = ? ORDER BY is_main DESC, rowid",
                (release_id,),
            ).fetchall()
            keywords = conn.execute(
                "SELECT word FROM release_keywords WHERE release_id = ? ORDER BY rowid",
                (release_id,),
            ).fetchall()
            spoons = conn.execute(
                "SELECT * FROM release_spoons WHERE release_id = ? ORDER BY rowid",
                (release_id,),
            ).fetchall()
            deps = conn.execute(
                "SELECT * FROM release_deps WHERE release_id = ? ORDER BY rowid",
                (release_id,),
            ).fetchall()
            perms = conn.execute(
                "SELECT val FROM release_meta WHERE release_id = ? AND type = ? ORDER BY rowid",
                (release_id, META_PERMISSION),
            ).fetchall()
            reqrs = conn.execute(
                "SELECT * FROM release_reqr WHERE release_id = ? ORDER BY rowid",
                (release_id,),
            ).fetchall()
        return ReleaseDetail(
            release=release,
            categories=[row["category"] for row in categories],
            keywords=[row["word"] for row in keywords],
            spoons=[
                Spoon(
                    since=row["since"],
                    till=row["till"],
                    since_index=row["since_index"],
                    till_index=row["till_index"],
                )
                for row in spoons
            ],
            dependencies=[
                PluginDependency(
                    name=row["name"],
                    version=row["version"],
                    dependency_release_id=row["dep_rel_id"],
                    is_hard=bool(row["is_hard"]),
                )
                for row in deps
            ],
            permissions=[int(row["val"]) for row in perms],
            requirements=[
                PluginRequirement(type=row["type"], details=row["details"], is_require=bool(row["is_require"]))
                for row in reqrs
            ],
        )

    @staticmethod
    def insert_candidate(conn: sqlite3.Connection, candidate: ReleaseCandidate, creation: int) -> int:
        """Insert a release and all its child rows on an open transaction."""
        cursor = conn.execute(
            """
            INSERT INTO releases (
                name,
                short_desc,
                artifact,
                project_id,
                build_id,
                version,
                description,
                changelog,
                license,
                license_res,
                flags,
                creation,
                state,
                icon
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                candidate.name,
                candidate.short_desc,
                candidate.artifact_resource_id,
                candidate.project_id,
                candidate.build_id,
                candidate.version,
                candidate.description_resource_id,
                candidate.changelog_resource_id,
                candidate.license.tag,
                candidate.license.resource_id,
                candidate.flags.to_bitmask(),
                creation,
                int(candidate.stage),
                candidate.icon_url,
            ),
        )
        release_id = int(cursor.lastrowid)

        conn.executemany(
            "INSERT INTO release_deps (release_id, name, version, dep_rel_id, is_hard) VALUES (?, ?, ?, ?, ?)",
            [
                (release_id, dep.name, dep.version, dep.dependency_release_id, 1 if dep.is_hard else 0)
                for dep in candidate.dependencies
            ],
        )
        conn.executemany(
            "INSERT INTO release_meta (release_id, type, val) VALUES (?, ?, ?)",
            [(release_id, META_PERMISSION, str(perm)) for perm in candidate.permissions],
        )
        conn.executemany(
            "INSERT INTO release_spoons (release_id, since, till, since_index, till_index) VALUES (?, ?, ?, ?, ?)",
            [
                (release_id, spoon.since, spoon.till, spoon.since_index, spoon.till_index)
                for spoon in candidate.spoons
            ],
        )
        conn.executemany(
            "INSERT INTO release_reqr (release_id, type, details, is_require) VALUES (?, ?, ?, ?)",
            [
                (release_id, reqr.type, reqr.details, 1 if reqr.is_require else 0)
                for reqr in candidate.requirements
            ],
        )
        conn.executemany(
            "INSERT INTO release_categories (release_id, category, is_main) VALUES (?, ?, ?)",
            [(release_id, candidate.major_category, 1)]
            + [(release_id, category, 0) for category in candidate.minor_categories],
        )
        conn.executemany(
            "INSERT INTO release_keywords (release_id, word) VALUES (?, ?)",
            [(release_id, word) for word in candidate.keywords],
        )
        return release_id

    @staticmethod
    def _to_release(row) -> Release:
        return Release(
            release_id=row["release_id"],
            name=row["name"],
            short_desc=row["short_desc"],
            version=row["version"],
            project_id=row["project_id"],
            build_id=row["build_id"],
            artifact=row["artifact"],
            description=row["description"],
            changelog=row["changelog"],
            license=row["license"],
            license_res=row["license_res"],
            flags=row["flags"],
            creation=row["creation"],
            stage=ReleaseStage(row["state"]),
            icon=row["icon"],
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
