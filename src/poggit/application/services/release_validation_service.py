from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from poggit.application.services.article_service import ArticleService
from poggit.application.services.artifact_service import ArtifactRepackagingService
from poggit.application.services.icon_service import IconService
from poggit.core.errors import AuthorizationError, GitHubApiError, ReleaseSubmitError, UpstreamError
from poggit.domain.catalog import CATEGORIES, PERMISSIONS, POCKETMINE_API_VERSIONS, ReleaseStage
from poggit.domain.models.release import (
    CustomLicense,
    License,
    NamedLicense,
    NoLicense,
    PluginDependency,
    PluginRequirement,
    ReleaseCandidate,
    ReleaseFlags,
    Spoon,
)
from poggit.domain.models.resource import NULL_RESOURCE_ID
from poggit.infrastructure.db.repos.build_repo import BuildRepo
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo
from poggit.infrastructure.github.client import GitHubClient, GitHubRepository
from poggit.infrastructure.importers.submission_json import (
    CustomLicenseInput,
    ExternalDependencyInput,
    NoLicenseInput,
    ensure_document,
    read_article,
    read_categories,
    read_dependencies,
    read_flag,
    read_int,
    read_keywords,
    read_license,
    read_permissions,
    read_requirements,
    read_spoons,
    read_string,
    require_param,
)

logger = logging.getLogger(__name__)

MAX_SHORT_DESC_LENGTH = 128
MAX_VERSION_LENGTH = 20
MAX_KEYWORD_COUNT = 100

_PLUGIN_NAME_RE = re.compile(r"[A-Za-z0-9_]{2,}")
_UNAUTHORIZED_STATUSES = {401, 403, 404}


@dataclass(slots=True)
class SubmissionContext:
    access_token: str
    api_versions: Sequence[str] = POCKETMINE_API_VERSIONS


@dataclass(slots=True)
class NameCheck:
    valid: bool
    duplicates: int
    message: str

    @property
    def ok(self) -> bool:
        return self.valid and self.duplicates == 0


class ReleaseValidationService:
    """Turns an untrusted submission document into a :class:`ReleaseCandidate`.

    Steps run in a fixed order and the first failure aborts the whole
    submission. Repackaging the build artifact is always the final step so a
    rejected submission never produces a release artifact.
    """

    def __init__(
        self,
        build_repo: BuildRepo,
        release_repo: ReleaseRepo,
        github: GitHubClient,
        article_service: ArticleService,
        icon_service: IconService,
        repackager: ArtifactRepackagingService,
    ) -> None:
        self.build_repo = build_repo
        self.release_repo = release_repo
        self.github = github
        self.article_service = article_service
        self.icon_service = icon_service
        self.repackager = repackager

    def check_name(self, name: str) -> NameCheck:
        if not _PLUGIN_NAME_RE.fullmatch(name):
            return NameCheck(
                valid=False,
                duplicates=0,
                message="Plugin name must be at least two characters long, consisting of A-Z, a-z, 0-9 or _ only",
            )
        dups = self.release_repo.count_name_prefix(name, ReleaseStage.RESTRICTED)
        if dups > 0:
            return NameCheck(
                valid=True,
                duplicates=dups,
                message=f"There are {dups} other checked plugins with names starting with '{name}'",
            )
        return NameCheck(valid=True, duplicates=0, message="Great name!")

    def validate(self, raw: object, context: SubmissionContext) -> ReleaseCandidate:
        data = ensure_document(raw)
        token = context.access_token
        warnings: list[str] = []

        build_id = read_int(require_param(data, "buildId"), "buildId")
        build = self.build_repo.get_build(build_id)
        if build is None:
            raise ReleaseSubmitError("Param 'buildId' does not represent a valid build")

        repo = self._require_admin(build.repo_id, token)

        icon_url: str | None = None
        icon_name = data.get("iconName")
        if icon_name:
            icon = self.icon_service.find_icon(repo.full_name, build.path + str(icon_name), build.sha, token)
            icon_url = icon.url

        prev_versions = self.release_repo.list_versions(build.project_id)
        update = len(prev_versions) > 0

        name = read_string(data, "name")
        name_check = self.check_name(name)
        if not name_check.valid:
            raise ReleaseSubmitError(f"Invalid plugin name: {name_check.message}")
        if name_check.duplicates > 0:
            logger.warning("Name collision for submitted plugin %s: %d checked releases", name, name_check.duplicates)
            warnings.append(name_check.message)

        short_desc = read_string(data, "shortDesc")
        if len(short_desc) > MAX_SHORT_DESC_LENGTH:
            raise ReleaseSubmitError("Param 'shortDesc' is too long")

        version = read_string(data, "version")
        if len(version) > MAX_VERSION_LENGTH:
            raise ReleaseSubmitError("Version is too long")
        if update and version in prev_versions:
            raise ReleaseSubmitError("This version name has already been used for your plugin!")

        description = read_article(data.get("desc"), "desc")
        description_id = self.article_service.store_article(description, repo.full_name, token, "description")

        if update:
            changelog = read_article(require_param(data, "changeLog"), "changeLog")
            changelog_id = self.article_service.store_article(changelog, repo.full_name, token, "changelog")
        else:
            changelog_id = NULL_RESOURCE_ID

        license_choice = self._resolve_license(data, repo.full_name, token)

        flags = ReleaseFlags(pre_release=read_flag(data, "preRelease"))

        category_input = read_categories(data)
        categories = [category_input.major, *category_input.minor]
        for category in categories:
            if category not in CATEGORIES:
                raise ReleaseSubmitError(f"Unknown category {category}")

        keywords = self._clean_keywords(read_keywords(data))

        spoons = self._resolve_spoons(read_spoons(data), context.api_versions)

        dependencies = self._resolve_dependencies(data)

        permissions: list[int] = []
        for perm in read_permissions(data):
            if perm not in PERMISSIONS:
                raise ReleaseSubmitError(f"Unknown perm {perm}")
            if perm not in permissions:
                permissions.append(perm)

        requirements = [
            PluginRequirement(type=reqr.type, details=reqr.details, is_require=reqr.is_require)
            for reqr in read_requirements(data)
        ]

        stage = ReleaseStage.DRAFT if read_flag(data, "asDraft") else ReleaseStage.UNCHECKED

        candidate = ReleaseCandidate(
            name=name,
            short_desc=short_desc,
            version=version,
            project_id=build.project_id,
            build_id=build.build_id,
            description_resource_id=description_id,
            changelog_resource_id=changelog_id,
            license=license_choice,
            flags=flags,
            stage=stage,
            categories=categories,
            keywords=keywords,
            spoons=spoons,
            dependencies=dependencies,
            permissions=permissions,
            requirements=requirements,
            icon_url=icon_url,
            warnings=warnings,
        )

        # Last step: only repackage once everything else has passed.
        candidate.artifact_resource_id = self.repackager.repackage(build.resource_id, version)
        return candidate

    def _require_admin(self, repo_id: int, token: str) -> GitHubRepository:
        try:
            repo = self.github.get_repository(repo_id, token)
        except GitHubApiError as exc:
            if exc.status_code in _UNAUTHORIZED_STATUSES:
                raise AuthorizationError("Admin access required for releasing plugins") from exc
            raise UpstreamError("Could not verify repository access with GitHub") from exc
        if not repo.admin:
            raise AuthorizationError("Admin access required for releasing plugins")
        return repo

    def _resolve_license(self, data: dict[str, Any], repo_full_name: str, token: str) -> License:
        license_input = read_license(data)
        if isinstance(license_input, NoLicenseInput):
            return NoLicense()
        if isinstance(license_input, CustomLicenseInput):
            text_id = self.article_service.store_article(license_input.text, repo_full_name, token, "custom license")
            return CustomLicense(text_resource_id=text_id)
        try:
            known = self.github.list_license_keys(token)
        except GitHubApiError as exc:
            raise UpstreamError("Could not fetch the license list from GitHub") from exc
        if license_input.key not in known:
            raise ReleaseSubmitError("Param 'license' contains unknown field")
        return NamedLicense(key=license_input.key)

    @staticmethod
    def _clean_keywords(raw: list[str]) -> list[str]:
        keywords: list[str] = []
        for keyword in raw:
            word = keyword.strip()
            if word and word not in keywords:
                keywords.append(word)
        if not keywords:
            raise ReleaseSubmitError("Please enter at least one keyword so that others can search for your plugin!")
        return keywords[:MAX_KEYWORD_COUNT]

    @staticmethod
    def _resolve_spoons(pairs: list[tuple[str, str]], api_versions: Sequence[str]) -> list[Spoon]:
        if not pairs:
            raise ReleaseSubmitError("You should at least declare one compatible API version!")
        index = {api: i for i, api in enumerate(api_versions)}
        spoons: list[Spoon] = []
        for api0, api1 in pairs:
            for api in (api0, api1):
                if api not in index:
                    raise ReleaseSubmitError(f"Unknown API version {api}")
            low, high = sorted(((index[api0], api0), (index[api1], api1)))
            spoons.append(Spoon(since=low[1], till=high[1], since_index=low[0], till_index=high[0]))
        return spoons

    def _resolve_dependencies(self, data: dict[str, Any]) -> list[PluginDependency]:
        dependencies: list[PluginDependency] = []
        for i, dep in enumerate(read_dependencies(data)):
            if isinstance(dep, ExternalDependencyInput):
                dependencies.append(
                    PluginDependency(name=dep.name, version=dep.version, dependency_release_id=None, is_hard=dep.is_hard)
                )
                continue
            target = self.release_repo.get_by_id(dep.release_id)
            if target is None:
                raise ReleaseSubmitError(f"Param deps[{i}] declares invalid dependency")
            dependencies.append(
                PluginDependency(
                    name=target.name,
                    version=target.version,
                    dependency_release_id=target.release_id,
                    is_hard=dep.is_hard,
                )
            )
        return dependencies
