from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Repo:
    repo_id: int
    owner: str
    name: str
    private: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(slots=True)
class Project:
    project_id: int
    repo_id: int
    name: str
    path: str


@dataclass(slots=True)
class BuildRecord:
    """A build joined with the project it belongs to."""

    build_id: int
    project_id: int
    repo_id: int
    path: str
    sha: str
    internal: int
    resource_id: int
