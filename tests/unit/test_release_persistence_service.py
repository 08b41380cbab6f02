from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

from poggit.application.services.release_persistence_service import ReleasePersistenceService
from poggit.core.errors import PersistenceError, ReleaseSubmitError
from poggit.domain.catalog import ReleaseStage
from poggit.domain.models.release import (
    NoLicense,
    PluginDependency,
    PluginRequirement,
    ReleaseCandidate,
    ReleaseFlags,
    Spoon,
)
from poggit.domain.models.resource import NULL_RESOURCE_ID
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo
from poggit.infrastructure.db.sqlite import get_connection

from conftest import register_build


def _candidate(db_path: Path, resource_dir: Path, tmp_path: Path, version: str = "1.0.0") -> ReleaseCandidate:
    build = register_build(db_path, resource_dir, tmp_path).build
    return ReleaseCandidate(
        name="DemoPlugin",
        short_desc="Does demo things",
        version=version,
        project_id=build.project_id,
        build_id=build.build_id,
        description_resource_id=NULL_RESOURCE_ID,
        changelog_resource_id=NULL_RESOURCE_ID,
        license=NoLicense(),
        flags=ReleaseFlags(pre_release=True),
        stage=ReleaseStage.UNCHECKED,
        categories=[8, 1],
        keywords=["money", "shop"],
        spoons=[Spoon(since="2.0.0", till="3.0.0-ALPHA6", since_index=14, till_index=21)],
        dependencies=[PluginDependency(name="EconomyAPI", version="5.7", dependency_release_id=None, is_hard=True)],
        permissions=[8, 13],
        requirements=[PluginRequirement(type=2, details="MySQL server", is_require=True)],
        artifact_resource_id=build.resource_id,
    )


def _release_count(db_path: Path) -> int:
    with get_connection(db_path) as conn:
        return int(conn.execute("SELECT COUNT(*) FROM releases").fetchone()[0])


def test_persist_writes_release_and_children(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    release_id = ReleasePersistenceService(db_path, clock=lambda: 1_500_000_000).persist(candidate)

    detail = ReleaseRepo(db_path).get_detail(release_id)
    assert detail is not None
    assert detail.release.creation == 1_500_000_000
    assert detail.release.license == "none"
    assert detail.release.license_res is None
    assert detail.release.release_flags.pre_release is True
    assert detail.release.stage == ReleaseStage.UNCHECKED
    assert detail.categories == [8, 1]
    assert detail.keywords == ["money", "shop"]
    assert detail.spoons == candidate.spoons
    assert detail.dependencies == candidate.dependencies
    assert detail.permissions == [8, 13]
    assert detail.requirements == candidate.requirements


def test_failed_child_insert_rolls_back_release(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    candidate.spoons = [Spoon(since="3.0.0-ALPHA6", till="2.0.0", since_index=21, till_index=14)]

    with pytest.raises(PersistenceError):
        ReleasePersistenceService(db_path).persist(candidate)

    assert _release_count(db_path) == 0
    with get_connection(db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM release_deps").fetchone()[0] == 0
        assert conn.execute("SELECT COUNT(*) FROM release_keywords").fetchone()[0] == 0


def test_duplicate_version_is_rejected(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    service = ReleasePersistenceService(db_path)
    service.persist(candidate)

    with pytest.raises(ReleaseSubmitError, match="already been used"):
        service.persist(candidate)
    assert _release_count(db_path) == 1


def test_unique_index_backs_the_version_check(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    with get_connection(db_path) as conn:
        ReleaseRepo.insert_candidate(conn, candidate, creation=1)
        conn.commit()
        with pytest.raises(sqlite3.IntegrityError, match="UNIQUE"):
            ReleaseRepo.insert_candidate(conn, candidate, creation=2)
        conn.rollback()


def test_concurrent_submissions_of_same_version_yield_one_release(
    db_path: Path, resource_dir: Path, tmp_path: Path
) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def _submit() -> None:
        service = ReleasePersistenceService(db_path)
        barrier.wait()
        try:
            service.persist(candidate)
            outcome = "ok"
        except ReleaseSubmitError:
            outcome = "rejected"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_submit) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert sorted(outcomes) == ["ok", "rejected"]
    assert _release_count(db_path) == 1


def test_candidate_without_artifact_is_refused(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    candidate.artifact_resource_id = None
    with pytest.raises(PersistenceError):
        ReleasePersistenceService(db_path).persist(candidate)


def test_major_category_is_flagged_main(db_path: Path, resource_dir: Path, tmp_path: Path) -> None:
    candidate = _candidate(db_path, resource_dir, tmp_path)
    candidate.categories = [8, 1, 13]
    release_id = ReleasePersistenceService(db_path).persist(candidate)

    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT category, is_main FROM release_categories WHERE release_id = ? ORDER BY rowid",
            (release_id,),
        ).fetchall()
    assert [(row["category"], row["is_main"]) for row in rows] == [(8, 1), (1, 0), (13, 0)]
