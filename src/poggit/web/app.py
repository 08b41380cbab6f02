from __future__ import annotations

from dataclasses import asdict, is_dataclass
from enum import IntEnum
from typing import Any, NoReturn

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict

from poggit.application.services.project_service import ProjectService
from poggit.application.services.release_submission_service import (
    ReleaseSubmissionService,
    create_submission_service,
)
from poggit.application.services.release_validation_service import SubmissionContext
from poggit.core.config import AppPaths, load_github_settings
from poggit.core.errors import (
    AuthorizationError,
    PersistenceError,
    PoggitError,
    ResourceExpiredError,
    ResourceNotFoundError,
    UpstreamError,
)
from poggit.domain.catalog import ReleaseStage
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.github.client import GitHubClient
from poggit.infrastructure.resources.store import ResourceStore


class ReleaseSubmitRequest(BaseModel):
    """Raw submission document; fields are checked by the validation pipeline."""

    model_config = ConfigDict(extra="allow")


def _jsonable(value: Any) -> Any:
    if isinstance(value, IntEnum):
        return int(value)
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def _raise_http(exc: PoggitError) -> NoReturn:
    if isinstance(exc, AuthorizationError):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    if isinstance(exc, UpstreamError):
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if isinstance(exc, PersistenceError):
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(exc, ResourceExpiredError):
        raise HTTPException(status_code=410, detail=str(exc)) from exc
    if isinstance(exc, ResourceNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Authorization header must be 'Bearer <token>'")
    return token.strip()


def create_app(paths: AppPaths, github: GitHubClient | None = None) -> FastAPI:
    app = FastAPI(title="Poggit Release Submission", version="0.1.0")

    project_service = ProjectService(paths)
    project_service.init_project()
    github_client = github or GitHubClient(load_github_settings())
    owns_client = github is None

    def get_release_repo() -> ReleaseRepo:
        return ReleaseRepo(paths.db_path)

    def get_resource_repo() -> ResourceRepo:
        return ResourceRepo(paths.db_path)

    def get_resource_store() -> ResourceStore:
        return ResourceStore(paths.resource_dir, get_resource_repo())

    def get_submission_service() -> ReleaseSubmissionService:
        return create_submission_service(paths.db_path, paths.resource_dir, github_client)

    @app.on_event("shutdown")
    def _close_github_client() -> None:
        if owns_client:
            github_client.close()

    @app.post("/api/releases")
    def api_submit_release(
        req: ReleaseSubmitRequest,
        authorization: str | None = Header(default=None),
    ) -> dict[str, Any]:
        token = _bearer_token(authorization)
        try:
            result = get_submission_service().submit(req.model_dump(), SubmissionContext(access_token=token))
        except PoggitError as exc:
            _raise_http(exc)
        return {"ok": True, "release": _jsonable(result)}

    @app.get("/api/releases")
    def api_list_releases(
        limit: int = Query(default=50, ge=1, le=1000),
        min_stage: int = Query(default=int(ReleaseStage.UNCHECKED), ge=0, le=int(ReleaseStage.FEATURED)),
    ) -> dict[str, Any]:
        releases = get_release_repo().list(limit=limit, min_stage=ReleaseStage(min_stage))
        return {"ok": True, "count": len(releases), "releases": _jsonable(releases)}

    @app.get("/api/releases/check-name")
    def api_check_name(name: str = Query(...)) -> dict[str, Any]:
        check = get_submission_service().validator.check_name(name)
        return {"ok": check.ok, "valid": check.valid, "duplicates": check.duplicates, "message": check.message}

    @app.get("/api/releases/{release_id}")
    def api_get_release(release_id: int) -> dict[str, Any]:
        detail = get_release_repo().get_detail(release_id)
        if detail is None:
            raise HTTPException(status_code=404, detail=f"Release not found: {release_id}")
        payload = _jsonable(detail)
        payload["release"]["pre_release"] = detail.release.release_flags.pre_release
        return {"ok": True, **payload}

    @app.get("/api/resources/{resource_id}")
    def api_get_resource(resource_id: int) -> FileResponse:
        store = get_resource_store()
        try:
            path = store.resolve(resource_id)
        except PoggitError as exc:
            _raise_http(exc)
        resource = get_resource_repo().get_by_id(resource_id)
        media_type = resource.mime_type if resource is not None else "application/octet-stream"
        return FileResponse(path, media_type=media_type, filename=path.name)

    return app
