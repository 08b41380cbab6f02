from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from poggit.core.errors import ResourceExpiredError, ResourceNotFoundError
from poggit.core.files import ensure_directory
from poggit.core.time import now_unix
from poggit.domain.models.resource import DEFAULT_RESOURCE_DURATION_SECONDS, NULL_RESOURCE_ID
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo

logger = logging.getLogger(__name__)

RESOURCES_PER_BUCKET = 1000


@dataclass(slots=True)
class _CachedResource:
    type: str
    expires_at: int | None


class ResourceStore:
    """Id-addressed, expiring blob storage on disk.

    Files live at ``<base_dir>/<id // 1000>/<id>.<type>``. Metadata looked up
    during ``resolve`` is cached per instance, including the expiry time, so a
    resource that expires while cached is still rejected.
    """

    def __init__(
        self,
        base_dir: Path,
        resource_repo: ResourceRepo,
        clock: Callable[[], int] = now_unix,
    ) -> None:
        self.base_dir = base_dir
        self.resource_repo = resource_repo
        self.clock = clock
        self._cache: dict[int, _CachedResource] = {}

    def create(
        self,
        type: str,
        mime_type: str,
        access_filters: Sequence[object] = (),
        duration_seconds: int = DEFAULT_RESOURCE_DURATION_SECONDS,
    ) -> tuple[int, Path]:
        created_at = self.clock()
        resource_id = self.resource_repo.insert(
            type=type,
            mime_type=mime_type,
            access_filters=list(access_filters),
            created_at=created_at,
            duration_seconds=duration_seconds,
        )
        self._cache[resource_id] = _CachedResource(type=type, expires_at=created_at + duration_seconds)
        logger.debug("Allocated resource #%d (%s)", resource_id, type)
        return resource_id, self.path_to(resource_id, type)

    def resolve(self, resource_id: int, expected_type: str = "") -> Path:
        if resource_id == NULL_RESOURCE_ID:
            raise ResourceNotFoundError(resource_id)

        cached = self._cache.get(resource_id)
        if cached is None and expected_type:
            cached = _CachedResource(type=expected_type, expires_at=None)
            self._cache[resource_id] = cached
        elif cached is None or (cached.expires_at is None and not expected_type):
            # An entry cached from a typed lookup carries no expiry yet.
            resource = self.resource_repo.get_by_id(resource_id)
            if resource is None:
                raise ResourceNotFoundError(resource_id)
            cached = _CachedResource(type=resource.type, expires_at=resource.expires_at)
            self._cache[resource_id] = cached

        if cached.expires_at is not None:
            now = self.clock()
            if cached.expires_at < now:
                raise ResourceExpiredError(resource_id, now - cached.expires_at)

        path = self.path_to(resource_id, cached.type)
        if not path.is_file():
            raise ResourceNotFoundError(resource_id)
        return path

    def path_to(self, resource_id: int, type: str) -> Path:
        bucket = self.base_dir / str(resource_id // RESOURCES_PER_BUCKET)
        ensure_directory(bucket)
        return bucket / f"{resource_id}.{type}"
