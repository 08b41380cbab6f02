from __future__ import annotations

from dataclasses import dataclass, field

from poggit.domain.catalog import FLAG_OFFICIAL, FLAG_OUTDATED, FLAG_PRE_RELEASE, ReleaseStage


@dataclass(frozen=True, slots=True)
class NoLicense:
    @property
    def tag(self) -> str:
        return "none"

    @property
    def resource_id(self) -> int | None:
        return None


@dataclass(frozen=True, slots=True)
class CustomLicense:
    text_resource_id: int

    @property
    def tag(self) -> str:
        return "custom"

    @property
    def resource_id(self) -> int | None:
        return self.text_resource_id


@dataclass(frozen=True, slots=True)
class NamedLicense:
    key: str

    @property
    def tag(self) -> str:
        return self.key

    @property
    def resource_id(self) -> int | None:
        return None


License = NoLicense | CustomLicense | NamedLicense


@dataclass(slots=True)
class ReleaseFlags:
    pre_release: bool = False
    outdated: bool = False
    official: bool = False

    def to_bitmask(self) -> int:
        mask = 0
        if self.pre_release:
            mask |= FLAG_PRE_RELEASE
        if self.outdated:
            mask |= FLAG_OUTDATED
        if self.official:
            mask |= FLAG_OFFICIAL
        return mask

    @classmethod
    def from_bitmask(cls, mask: int) -> ReleaseFlags:
        return cls(
            pre_release=bool(mask & FLAG_PRE_RELEASE),
            outdated=bool(mask & FLAG_OUTDATED),
            official=bool(mask & FLAG_OFFICIAL),
        )


@dataclass(slots=True)
class Spoon:
    since: str
    till: str
    since_index: int
    till_index: int


@dataclass(slots=True)
class PluginDependency:
    name: str
    version: str
    dependency_release_id: int | None
    is_hard: bool


@dataclass(slots=True)
class PluginRequirement:
    type: int
    details: str
    is_require: bool


@dataclass(slots=True)
class ReleaseCandidate:
    name: str
    short_desc: str
    version: str
    project_id: int
    build_id: int
    description_resource_id: int
    changelog_resource_id: int
    license: License
    flags: ReleaseFlags
    stage: ReleaseStage
    categories: list[int]
    keywords: list[str]
    spoons: list[Spoon]
    dependencies: list[PluginDependency]
    permissions: list[int]
    requirements: list[PluginRequirement]
    icon_url: str | None = None
    artifact_resource_id: int | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def major_category(self) -> int:
        return self.categories[0]

    @property
    def minor_categories(self) -> list[int]:
        return self.categories[1:]


@dataclass(slots=True)
class Release:
    release_id: int
    name: str
    short_desc: str
    version: str
    project_id: int
    build_id: int
    artifact: int
    description: int
    changelog: int
    license: str
    license_res: int | None
    flags: int
    creation: int
    stage: ReleaseStage
    icon: str | None

    @property
    def release_flags(self) -> ReleaseFlags:
        return ReleaseFlags.from_bitmask(self.flags)


@dataclass(slots=True)
class ReleaseDetail:
    release: Release
    categories: list[int]
    keywords: list[str]
    spoons: list[Spoon]
    dependencies: list[PluginDependency]
    permissions: list[int]
    requirements: list[PluginRequirement]
