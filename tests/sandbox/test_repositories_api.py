"""Integration tests for the repository endpoints."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from httpx import AsyncClient

from tests.conftest import OWNER, REPO
from vibeconsole.sandbox.settings import VibeSettings

pytestmark = pytest.mark.integration


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_clone_list_touch_delete(client: AsyncClient, settings: VibeSettings, remote_repo: Path) -> None:
    """Exercise clone -> re-clone -> list -> touch -> delete in one test."""
    # Clone
    resp = await client.post("/api/repos/clone", json={"owner_login": OWNER, "name": REPO})
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "cloned"
    repo_path = settings.workspace_path / REPO
    assert (repo_path / ".git").is_dir()

    # Clone again updates in place
    resp = await client.post("/api/repos/clone", json={"owner_login": OWNER, "name": REPO})
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "updated"

    # List
    resp = await client.get("/api/repos/list")
    assert resp.status_code == 200
    repos = resp.json()
    assert len(repos) == 1
    assert repos[0]["name"] == REPO
    assert repos[0]["full_name"] == f"{OWNER}/{REPO}"
    assert repos[0]["default_branch"] == "main"

    # Touch
    resp = await client.post("/api/repos/touch", json={"repo_name": REPO})
    assert resp.status_code == 200
    assert resp.json()["last_used_at"] is not None

    # Delete
    resp = await client.post("/api/repos/delete", json={"repo_name": REPO})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert not repo_path.exists()

    resp = await client.get("/api/repos/list")
    assert resp.json() == []


async def test_list_is_per_operator(client: AsyncClient, remote_repo: Path) -> None:
    resp = await client.post(
        "/api/repos/clone",
        json={"owner_login": OWNER, "name": REPO},
        headers={"X-Operator-Id": "alice"},
    )
    assert resp.status_code == 200

    resp = await client.get("/api/repos/list", headers={"X-Operator-Id": "alice"})
    assert [r["name"] for r in resp.json()] == [REPO]
    resp = await client.get("/api/repos/list", headers={"X-Operator-Id": "bob"})
    assert resp.json() == []


async def test_list_hides_records_without_workspace(
    client: AsyncClient, settings: VibeSettings, remote_repo: Path
) -> None:
    await client.post("/api/repos/clone", json={"owner_login": OWNER, "name": REPO})
    shutil.rmtree(settings.workspace_path / REPO)

    resp = await client.get("/api/repos/list")
    assert resp.json() == []


async def test_clone_unknown_remote(client: AsyncClient, remote_repo: Path) -> None:
    resp = await client.post("/api/repos/clone", json={"owner_login": OWNER, "name": "missing"})
    assert resp.status_code == 502
    assert "output" in resp.json()["detail"]


@pytest.mark.parametrize("name", ["..", "a/b", "bad name", ""])
async def test_clone_rejects_bad_names(client: AsyncClient, name: str) -> None:
    resp = await client.post("/api/repos/clone", json={"owner_login": OWNER, "name": name})
    assert resp.status_code == 400


async def test_touch_unknown(client: AsyncClient) -> None:
    resp = await client.post("/api/repos/touch", json={"repo_name": "nope"})
    assert resp.status_code == 404


async def test_delete_unknown(client: AsyncClient) -> None:
    resp = await client.post("/api/repos/delete", json={"repo_name": "nope"})
    assert resp.status_code == 404


async def test_install_requires_workspace(client: AsyncClient) -> None:
    resp = await client.post("/api/repos/install", json={"name": REPO})
    assert resp.status_code == 404


async def test_install_skips_when_node_modules_present(client: AsyncClient, cloned_repo: Path) -> None:
    (cloned_repo / "node_modules").mkdir()
    resp = await client.post("/api/repos/install", json={"name": REPO})
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "skipped"


async def test_auth_token_required_when_configured(client: AsyncClient, settings: VibeSettings) -> None:
    settings.auth_token = "s3cret"

    resp = await client.get("/api/repos/list")
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"

    resp = await client.get("/api/repos/list", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401

    resp = await client.get("/api/repos/list", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200

    # Health stays open.
    resp = await client.get("/api/health")
    assert resp.status_code == 200


async def test_delete_unknown_keeps_preview_running(client: AsyncClient, cloned_repo: Path) -> None:
    # The workspace exists but was never recorded for this operator.
    resp = await client.post("/api/dev-server/start", json={"repo_name": REPO})
    assert resp.json()["running"] is True

    resp = await client.post("/api/repos/delete", json={"repo_name": REPO})
    assert resp.status_code == 404

    status = (await client.get("/api/dev-server/status")).json()
    assert status["running"] is True
    assert status["repo_name"] == REPO
    assert cloned_repo.is_dir()
