from pathlib import Path

from fastapi.testclient import TestClient

from poggit.core.config import AppPaths
from poggit.web.app import create_app

from conftest import FakeGitHub, register_build


def _paths(tmp_path: Path) -> AppPaths:
    project_root = tmp_path / "proj"
    project_root.mkdir(parents=True, exist_ok=True)
    return AppPaths(
        project_root=project_root,
        poggit_dir=project_root / ".poggit",
        db_path=project_root / ".poggit" / "poggit.db",
        resource_dir=project_root / ".poggit" / "resources",
    )


def test_web_app_submission_smoke(tmp_path: Path) -> None:
    paths = _paths(tmp_path)
    github = FakeGitHub()
    client = TestClient(create_app(paths, github=github))
    build = register_build(paths.db_path, paths.resource_dir, tmp_path).build

    payload = {
        "buildId": build.build_id,
        "name": "DemoPlugin",
        "shortDesc": "Does demo things",
        "version": "1.0.0",
        "desc": {"type": "md", "text": "A description that is long enough."},
        "license": {"type": "none"},
        "categories": {"major": 1, "minor": []},
        "keywords": ["demo"],
        "spoons": [{"api": ["3.0.0-ALPHA1", "3.0.0-ALPHA1"]}],
        "perms": [],
    }

    # Missing token
    r = client.post("/api/releases", json=payload)
    assert r.status_code == 401

    # Field-level rejection
    r = client.post(
        "/api/releases",
        json={**payload, "shortDesc": "x" * 200},
        headers={"Authorization": "Bearer gho_test"},
    )
    assert r.status_code == 400
    assert "shortDesc" in r.json()["detail"]

    # Not an admin
    github.admin = False
    r = client.post("/api/releases", json=payload, headers={"Authorization": "Bearer gho_test"})
    assert r.status_code == 403
    github.admin = True

    # Accepted
    r = client.post("/api/releases", json=payload, headers={"Authorization": "Bearer gho_test"})
    assert r.status_code == 200
    release = r.json()["release"]
    assert release["name"] == "DemoPlugin"
    assert release["stage"] == 1
    release_id = release["release_id"]
    artifact_id = release["artifact_resource_id"]

    r = client.get("/api/releases")
    assert r.status_code == 200
    assert [item["release_id"] for item in r.json()["releases"]] == [release_id]

    r = client.get(f"/api/releases/{release_id}")
    assert r.status_code == 200
    detail = r.json()
    assert detail["release"]["version"] == "1.0.0"
    assert detail["release"]["pre_release"] is False
    assert detail["keywords"] == ["demo"]
    assert detail["spoons"][0]["since"] == "3.0.0-ALPHA1"

    r = client.get("/api/releases/999")
    assert r.status_code == 404

    r = client.get("/api/releases/check-name", params={"name": "Demo"})
    assert r.status_code == 200
    assert r.json()["valid"] is True

    r = client.get(f"/api/resources/{artifact_id}")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/octet-stream")
    assert b"__HALT_COMPILER();" in r.content

    r = client.get("/api/resources/1")
    assert r.status_code == 404
