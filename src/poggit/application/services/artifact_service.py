from __future__ import annotations

import logging

import yaml

from poggit.core.errors import (
    ArtifactFormatError,
    BuildArtifactGoneError,
    ResourceExpiredError,
    ResourceNotFoundError,
)
from poggit.core.files import safe_copy_atomic, write_bytes_atomic
from poggit.infrastructure.artifacts.phar import PharFormatError, open_package
from poggit.infrastructure.resources.store import ResourceStore

logger = logging.getLogger(__name__)

ARTIFACT_TYPE = "phar"
ARTIFACT_MIME_TYPE = "application/octet-stream"
PLUGIN_MANIFEST = "plugin.yml"


class ArtifactRepackagingService:
    def __init__(self, resource_store: ResourceStore) -> None:
        self.resource_store = resource_store

    def repackage(self, source_resource_id: int, new_version: str) -> int:
        """Copy a build artifact into a new resource with plugin.yml's version replaced.

        The source resource is never modified.
        """
        try:
            source_path = self.resource_store.resolve(source_resource_id)
        except (ResourceNotFoundError, ResourceExpiredError) as exc:
            raise BuildArtifactGoneError("Build already deleted") from exc

        new_id, new_path = self.resource_store.create(ARTIFACT_TYPE, ARTIFACT_MIME_TYPE)
        safe_copy_atomic(source_path, new_path)

        try:
            package = open_package(new_path.read_bytes())
            if PLUGIN_MANIFEST not in package.names():
                raise ArtifactFormatError(f"Build artifact has no {PLUGIN_MANIFEST}")
            manifest_raw = package.read(PLUGIN_MANIFEST)
        except PharFormatError as exc:
            raise ArtifactFormatError(f"Build artifact is not a readable plugin: {exc}") from exc

        manifest = _parse_manifest(manifest_raw)
        manifest["version"] = new_version
        package.replace(PLUGIN_MANIFEST, _emit_manifest(manifest))
        write_bytes_atomic(new_path, package.to_bytes())

        logger.info(
            "Repackaged artifact #%d as #%d with version %s",
            source_resource_id,
            new_id,
            new_version,
        )
        return new_id

    def read_manifest(self, resource_id: int) -> dict[str, object]:
        path = self.resource_store.resolve(resource_id)
        try:
            package = open_package(path.read_bytes())
            if PLUGIN_MANIFEST not in package.names():
                raise ArtifactFormatError(f"Artifact #{resource_id} has no {PLUGIN_MANIFEST}")
            return _parse_manifest(package.read(PLUGIN_MANIFEST))
        except PharFormatError as exc:
            raise ArtifactFormatError(f"Artifact #{resource_id} is not a readable plugin: {exc}") from exc


def _parse_manifest(raw: bytes) -> dict[str, object]:
    try:
        data = yaml.safe_load(raw.decode("utf-8-sig"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ArtifactFormatError(f"{PLUGIN_MANIFEST} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ArtifactFormatError(f"{PLUGIN_MANIFEST} must be a mapping")
    return data


def _emit_manifest(manifest: dict[str, object]) -> bytes:
    return yaml.safe_dump(manifest, allow_unicode=True, sort_keys=False, default_flow_style=False).encode("utf-8")
