from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from poggit.core.time import now_unix
from poggit.domain.models.resource import NULL_RESOURCE_ID
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.db.sqlite import get_connection
from poggit.infrastructure.resources.store import ResourceStore


@dataclass(slots=True)
class DoctorIssue:
    check: str
    level: str
    message: str


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks_run: int
    issues: list[DoctorIssue]
    db_runtime: dict[str, object]


class HealthService:
    def __init__(self, db_path: Path, resource_dir: Path) -> None:
        self.db_path = db_path
        self.resource_dir = resource_dir

    def run_doctor(self) -> DoctorReport:
        issues: list[DoctorIssue] = []
        checks_run = 0

        resource_repo = ResourceRepo(self.db_path)
        store = ResourceStore(self.resource_dir, resource_repo)

        # Check 1: database runtime pragmas support concurrent access.
        checks_run += 1
        with get_connection(self.db_path) as conn:
            journal_mode = str(conn.execute("PRAGMA journal_mode;").fetchone()[0]).lower()
            busy_timeout_ms = int(conn.execute("PRAGMA busy_timeout;").fetchone()[0])
            foreign_keys = int(conn.execute("PRAGMA foreign_keys;").fetchone()[0])

        db_runtime: dict[str, object] = {
            "journal_mode": journal_mode,
            "busy_timeout_ms": busy_timeout_ms,
            "foreign_keys": bool(foreign_keys),
        }
        if journal_mode != "wal":
            issues.append(
                DoctorIssue(
                    check="db_runtime",
                    level="error",
                    message=f"SQLite journal_mode is '{journal_mode}', expected 'wal' for concurrent submissions.",
                )
            )
        if foreign_keys != 1:
            issues.append(DoctorIssue(check="db_runtime", level="error", message="SQLite foreign_keys pragma is disabled."))

        # Check 2: the null resource sentinel exists.
        checks_run += 1
        if resource_repo.get_by_id(NULL_RESOURCE_ID) is None:
            issues.append(
                DoctorIssue(
                    check="null_resource",
                    level="error",
                    message=f"Null resource #{NULL_RESOURCE_ID} is missing from the resources table.",
                )
            )

        # Check 3: live resources have a backing file.
        checks_run += 1
        now = now_unix()
        for res in resource_repo.list(limit=1_000_000):
            if res.is_expired(now):
                continue
            path = store.path_to(res.id, res.type)
            if not path.is_file():
                issues.append(
                    DoctorIssue(
                        check="resource_files",
                        level="warning",
                        message=f"Missing file for resource #{res.id}: {path}",
                    )
                )

        # Check 4: releases point at artifacts that still exist.
        checks_run += 1
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT r.release_id, r.artifact, res.type
                FROM releases r INNER JOIN resources res ON res.resource_id = r.artifact
                """
            ).fetchall()
        for row in rows:
            if not store.path_to(row["artifact"], row["type"]).is_file():
                issues.append(
                    DoctorIssue(
                        check="release_artifacts",
                        level="error",
                        message=f"Release #{row['release_id']} artifact #{row['artifact']} is missing on disk",
                    )
                )

        return DoctorReport(
            ok=not any(i.level == "error" for i in issues),
            checks_run=checks_run,
            issues=issues,
            db_runtime=db_runtime,
        )
