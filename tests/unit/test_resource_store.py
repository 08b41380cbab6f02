from pathlib import Path

import pytest

from poggit.core.errors import ResourceExpiredError, ResourceNotFoundError
from poggit.domain.models.resource import NULL_RESOURCE_ID
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.resources.store import ResourceStore


class _Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_create_places_file_in_thousand_bucket(db_path: Path, resource_dir: Path) -> None:
    store = ResourceStore(resource_dir, ResourceRepo(db_path))
    resource_id, path = store.create("phar", "application/octet-stream")

    assert resource_id > NULL_RESOURCE_ID
    assert path == resource_dir / str(resource_id // 1000) / f"{resource_id}.phar"
    assert path.parent.is_dir()
    assert store.path_to(12345, "txt") == resource_dir / "12" / "12345.txt"


def test_resolve_returns_written_file(db_path: Path, resource_dir: Path) -> None:
    repo = ResourceRepo(db_path)
    store = ResourceStore(resource_dir, repo)
    resource_id, path = store.create("txt", "text/plain", access_filters=[{"repo": 42}])
    path.write_text("hello", encoding="utf-8")

    fresh = ResourceStore(resource_dir, repo)
    assert fresh.resolve(resource_id) == path
    assert fresh.resolve(resource_id, expected_type="txt") == path

    stored = repo.get_by_id(resource_id)
    assert stored is not None
    assert stored.mime_type == "text/plain"
    assert stored.access_filters == [{"repo": 42}]


def test_null_resource_never_resolves(db_path: Path, resource_dir: Path) -> None:
    store = ResourceStore(resource_dir, ResourceRepo(db_path))
    with pytest.raises(ResourceNotFoundError):
        store.resolve(NULL_RESOURCE_ID)
    with pytest.raises(ResourceNotFoundError):
        store.resolve(NULL_RESOURCE_ID, expected_type="txt")


def test_unknown_id_and_unwritten_file_are_not_found(db_path: Path, resource_dir: Path) -> None:
    store = ResourceStore(resource_dir, ResourceRepo(db_path))
    with pytest.raises(ResourceNotFoundError):
        store.resolve(9999)

    resource_id, _ = store.create("phar", "application/octet-stream")
    with pytest.raises(ResourceNotFoundError):
        store.resolve(resource_id)


def test_expired_resource_rejected_even_if_file_exists(db_path: Path, resource_dir: Path) -> None:
    repo = ResourceRepo(db_path)
    clock = _Clock(1_000)
    store = ResourceStore(resource_dir, repo, clock=clock)
    resource_id, path = store.create("txt", "text/plain", duration_seconds=60)
    path.write_text("short lived", encoding="utf-8")

    clock.now = 1_060
    assert store.resolve(resource_id) == path

    clock.now = 1_100
    with pytest.raises(ResourceExpiredError) as excinfo:
        store.resolve(resource_id)
    assert excinfo.value.expired_for == 40
    assert path.exists()

    uncached = ResourceStore(resource_dir, repo, clock=clock)
    with pytest.raises(ResourceExpiredError):
        uncached.resolve(resource_id)


def test_cached_type_is_reused_without_metadata_lookup(db_path: Path, resource_dir: Path) -> None:
    repo = ResourceRepo(db_path)
    store = ResourceStore(resource_dir, repo)
    resource_id, path = store.create("html", "text/html")
    path.write_text("<p>hi</p>", encoding="utf-8")

    calls: list[int] = []
    original = repo.get_by_id

    def _counting_get(rid: int):
        calls.append(rid)
        return original(rid)

    repo.get_by_id = _counting_get  # type: ignore[method-assign]
    fresh = ResourceStore(resource_dir, repo)
    fresh.resolve(resource_id)
    fresh.resolve(resource_id)
    assert calls == [resource_id]


def test_typed_lookup_does_not_hide_expiry_from_later_lookups(db_path: Path, resource_dir: Path) -> None:
    repo = ResourceRepo(db_path)
    clock = _Clock(1_000)
    resource_id, path = ResourceStore(resource_dir, repo, clock=clock).create(
        "txt", "text/plain", duration_seconds=10
    )
    path.write_text("short lived", encoding="utf-8")

    store = ResourceStore(resource_dir, repo, clock=clock)
    assert store.resolve(resource_id, expected_type="txt") == path

    clock.now = 5_000
    with pytest.raises(ResourceExpiredError):
        store.resolve(resource_id)
    with pytest.raises(ResourceExpiredError):
        store.resolve(resource_id, expected_type="txt")
