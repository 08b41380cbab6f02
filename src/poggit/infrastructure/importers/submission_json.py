"""Structural reading of a release submission document.

Each reader checks shape only (presence, JSON types) and returns typed
input values. Membership checks against the catalog tables, lookups and
storage happen in the validation service, which calls these readers in
submission order.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from poggit.core.errors import ReleaseSubmitError
from poggit.domain.catalog import REQUIREMENT_TYPES, SELF_RELEASE_DEPENDENCY

_INT_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True, slots=True)
class ArticleInput:
    type: str
    text: str


@dataclass(frozen=True, slots=True)
class NoLicenseInput:
    pass


@dataclass(frozen=True, slots=True)
class CustomLicenseInput:
    text: ArticleInput


@dataclass(frozen=True, slots=True)
class NamedLicenseInput:
    key: str


LicenseInput = NoLicenseInput | CustomLicenseInput | NamedLicenseInput


@dataclass(frozen=True, slots=True)
class CategoryInput:
    major: int
    minor: list[int]


@dataclass(frozen=True, slots=True)
class ExternalDependencyInput:
    name: str
    version: str
    is_hard: bool


@dataclass(frozen=True, slots=True)
class ReleaseDependencyInput:
    release_id: int
    is_hard: bool


DependencyInput = ExternalDependencyInput | ReleaseDependencyInput


@dataclass(frozen=True, slots=True)
class RequirementInput:
    type: int
    details: str
    is_require: bool


def load_submission_from_json(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ReleaseSubmitError(f"Submission is not valid JSON: {exc}") from exc
    return ensure_document(payload)


def ensure_document(payload: object) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ReleaseSubmitError("Submission must be a JSON object")
    return {str(k): v for k, v in payload.items()}


def require_param(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ReleaseSubmitError(f"Param '{key}' missing")
    return value


def read_string(data: dict[str, Any], key: str) -> str:
    value = require_param(data, key)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ReleaseSubmitError(f"Param '{key}' must be a string")
    return str(value)


def read_int(value: object, param: str) -> int:
    if isinstance(value, bool):
        raise ReleaseSubmitError(f"Param '{param}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    raise ReleaseSubmitError(f"Param '{param}' must be an integer")


def read_flag(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)):
        return str(value).strip().lower() in {"1", "true", "yes", "on"}
    raise ReleaseSubmitError(f"Param '{key}' must be a boolean")


def read_article(value: object, param: str) -> ArticleInput:
    if not isinstance(value, dict):
        raise ReleaseSubmitError(f"Param '{param}' missing or incorrect")
    article_type = value.get("type") or "md"
    text = value.get("text") or ""
    if not isinstance(article_type, str) or not isinstance(text, str):
        raise ReleaseSubmitError(f"Param '{param}' missing or incorrect")
    return ArticleInput(type=article_type.strip().lower(), text=text)


def read_license(data: dict[str, Any]) -> LicenseInput:
    value = data.get("license")
    if not isinstance(value, dict) or not isinstance(value.get("type"), str):
        raise ReleaseSubmitError("Param 'license' missing or incorrect")
    license_type = value["type"].strip().lower()
    if license_type == "custom":
        custom = value.get("val")
        if custom is None:
            raise ReleaseSubmitError("Param 'license' missing custom value")
        if isinstance(custom, str):
            return CustomLicenseInput(text=ArticleInput(type="txt", text=custom))
        return CustomLicenseInput(text=read_article(custom, "license.val"))
    if license_type == "none":
        return NoLicenseInput()
    return NamedLicenseInput(key=license_type)


def read_categories(data: dict[str, Any]) -> CategoryInput:
    value = data.get("categories")
    if not isinstance(value, dict) or value.get("major") is None or value.get("minor") is None:
        raise ReleaseSubmitError("Param 'categories' missing")
    minor = value["minor"]
    if not isinstance(minor, list):
        raise ReleaseSubmitError("Param 'categories.minor' must be a list")
    return CategoryInput(
        major=read_int(value["major"], "categories.major"),
        minor=[read_int(item, f"categories.minor[{i}]") for i, item in enumerate(minor)],
    )


def read_keywords(data: dict[str, Any]) -> list[str]:
    value = require_param(data, "keywords")
    if not isinstance(value, list):
        raise ReleaseSubmitError("Param 'keywords' must be a list")
    return [str(item) for item in value if item is not None]


def read_spoons(data: dict[str, Any]) -> list[tuple[str, str]]:
    value = require_param(data, "spoons")
    if not isinstance(value, list):
        raise ReleaseSubmitError("Param 'spoons' must be a list")
    pairs: list[tuple[str, str]] = []
    for i, entry in enumerate(value):
        if not isinstance(entry, dict) or entry.get("api") is None:
            raise ReleaseSubmitError(f"Param spoons[{i}] missing property api")
        apis = entry["api"]
        if not isinstance(apis, list) or len(apis) != 2:
            raise ReleaseSubmitError(f"Param spoons[{i}].api is invalid")
        pairs.append((str(apis[0]), str(apis[1])))
    return pairs


def read_dependencies(data: dict[str, Any]) -> list[DependencyInput]:
    value = data.get("deps") or []
    if not isinstance(value, list):
        raise ReleaseSubmitError("Param 'deps' must be a list")
    deps: list[DependencyInput] = []
    for i, dep in enumerate(value):
        if (
            not isinstance(dep, dict)
            or dep.get("name") is None
            or dep.get("version") is None
            or dep.get("softness") not in {"hard", "soft"}
        ):
            raise ReleaseSubmitError(f"Param deps[{i}] is incorrect")
        is_hard = dep["softness"] == "hard"
        if dep["name"] == SELF_RELEASE_DEPENDENCY:
            deps.append(ReleaseDependencyInput(release_id=read_int(dep["version"], f"deps[{i}].version"), is_hard=is_hard))
        else:
            deps.append(ExternalDependencyInput(name=str(dep["name"]), version=str(dep["version"]), is_hard=is_hard))
    return deps


def read_permissions(data: dict[str, Any]) -> list[int]:
    value = require_param(data, "perms")
    if not isinstance(value, list):
        raise ReleaseSubmitError("Param 'perms' must be a list")
    return [read_int(item, f"perms[{i}]") for i, item in enumerate(value)]


def read_requirements(data: dict[str, Any]) -> list[RequirementInput]:
    value = data.get("reqr") or []
    if not isinstance(value, list):
        raise ReleaseSubmitError("Param 'reqr' must be a list")
    return [_read_requirement(entry, i) for i, entry in enumerate(value)]


def _read_requirement(entry: object, index: int) -> RequirementInput:
    if not isinstance(entry, dict) or entry.get("type") is None:
        raise ReleaseSubmitError(f"Param reqr[{index}] is incorrect")
    raw_type = entry["type"]
    if isinstance(raw_type, str) and raw_type in REQUIREMENT_TYPES:
        req_type = REQUIREMENT_TYPES[raw_type]
    else:
        req_type = read_int(raw_type, f"reqr[{index}].type")
        if req_type not in REQUIREMENT_TYPES.values():
            raise ReleaseSubmitError(f"Param reqr[{index}] has unknown type {raw_type}")
    details = entry.get("details") or ""
    if not isinstance(details, str):
        raise ReleaseSubmitError(f"Param reqr[{index}].details must be a string")
    is_require = True if entry.get("isRequire") is None else read_flag(entry, "isRequire")
    return RequirementInput(type=req_type, details=details, is_require=is_require)
