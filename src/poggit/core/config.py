from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppPaths:
    project_root: Path
    poggit_dir: Path
    db_path: Path
    resource_dir: Path


@dataclass(frozen=True)
class GitHubSettings:
    api_url: str
    timeout_seconds: float
    token: str | None


DEFAULT_POGGIT_DIRNAME = ".poggit"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GITHUB_TIMEOUT_SECONDS = 10.0


def load_paths(project_root: Path | None = None) -> AppPaths:
    root = (project_root or Path.cwd()).expanduser().resolve()

    poggit_home_raw = os.getenv("POGGIT_HOME")
    if poggit_home_raw:
        poggit_dir = Path(poggit_home_raw).expanduser().resolve()
    else:
        poggit_dir = root / DEFAULT_POGGIT_DIRNAME

    return AppPaths(
        project_root=root,
        poggit_dir=poggit_dir,
        db_path=poggit_dir / "poggit.db",
        resource_dir=poggit_dir / "resources",
    )


def read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_github_settings() -> GitHubSettings:
    api_url = (os.getenv("POGGIT_GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/")
    token = (os.getenv("POGGIT_GITHUB_TOKEN") or "").strip() or None
    return GitHubSettings(
        api_url=api_url,
        timeout_seconds=read_float_env("POGGIT_GITHUB_TIMEOUT_SECONDS", DEFAULT_GITHUB_TIMEOUT_SECONDS),
        token=token,
    )
